"""Built-in webhook auth plugins, one package per policy.

- :mod:`wagate.plugins.none` -- no authentication.
- :mod:`wagate.plugins.basic` -- HTTP Basic.
- :mod:`wagate.plugins.bearer` -- static bearer token.
- :mod:`wagate.plugins.oauth2` -- broker-managed OAuth2 access token.
"""

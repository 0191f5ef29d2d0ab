"""OAuth2 webhook authentication plugin.

Implements the ``oauth2`` policy. Access tokens are obtained, cached on
the tenant record, and refreshed by :class:`~wagate.auth.token_broker.TokenBroker`;
this plugin only turns the broker's answer into a bearer header.

See Also:
    :class:`~wagate.plugins.oauth2.plugin.OAuth2AuthPlugin`
"""

from wagate.plugins.oauth2.plugin import OAuth2AuthPlugin

__all__ = ["OAuth2AuthPlugin"]

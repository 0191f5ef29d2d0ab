"""Built-in CLI sub-commands for wagate.

* :mod:`~wagate.commands.tenant` -- create, list, and remove tenants.
* :mod:`~wagate.commands.webhook_auth` -- configure webhook authentication
  and obtain OAuth2 tokens.

Each module exports a :class:`typer.Typer` sub-application registered on
the root app in :mod:`wagate.app`.
"""

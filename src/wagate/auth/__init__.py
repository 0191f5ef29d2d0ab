"""Webhook credential lifecycle for wagate.

This package decides how every outbound webhook call is authenticated,
according to a per-tenant policy chosen from ``none``, ``basic``,
``bearer``, and ``oauth2``.

The main entry points are:

- :class:`TenantStore` -- durable tenant records, including cached tokens.
- :class:`TokenBroker` -- OAuth2 grants, caching, and refresh.
- :class:`AuthHeaderResolver` -- turns a tenant into request headers.
- :func:`create_default_resolver` -- a resolver with all built-in plugins.
- :func:`configure_webhook_auth` -- validated policy replacement.

Typical usage::

    from wagate.auth import TokenBroker, create_default_resolver

    broker = TokenBroker(store)
    resolver = create_default_resolver(broker)
    headers = await resolver.resolve(store.get_by_username("alice"))
"""

from wagate.auth.base import AuthPlugin, AuthResult
from wagate.auth.manager import AuthHeaderResolver, create_default_resolver
from wagate.auth.settings import configure_webhook_auth, describe_webhook_auth
from wagate.auth.store import FileTenantStore, MemoryTenantStore, TenantStore
from wagate.auth.token_broker import TokenBroker

__all__ = [
    "AuthPlugin",
    "AuthResult",
    "AuthHeaderResolver",
    "FileTenantStore",
    "MemoryTenantStore",
    "TenantStore",
    "TokenBroker",
    "configure_webhook_auth",
    "create_default_resolver",
    "describe_webhook_auth",
]

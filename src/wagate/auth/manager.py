"""Auth header resolver -- registry and dispatcher for webhook auth plugins.

:class:`AuthHeaderResolver` maps each :class:`~wagate.models.WebhookAuthType`
to a concrete :class:`~wagate.auth.base.AuthPlugin` and exposes
:meth:`~AuthHeaderResolver.resolve`, which the webhook dispatcher calls
before every delivery.

Resolution is best effort. Webhook delivery is fire-and-forget, so a
missing credential or a failing token endpoint yields an empty header set
and the call goes out unauthenticated rather than failing.

For most use cases, call :func:`create_default_resolver` to get a resolver
pre-loaded with every built-in plugin.
"""

from __future__ import annotations

import logging
from typing import Optional

from wagate.auth.base import AuthPlugin, AuthResult
from wagate.auth.token_broker import TokenBroker
from wagate.models import Tenant, WebhookAuthSettings, WebhookAuthType

logger = logging.getLogger(__name__)


class AuthHeaderResolver:
    """Registry and dispatcher for webhook auth plugins.

    Example::

        resolver = create_default_resolver(broker)
        headers = await resolver.resolve(tenant)
    """

    def __init__(self) -> None:
        self._plugins: dict[WebhookAuthType, AuthPlugin] = {}

    def register(self, plugin: AuthPlugin) -> None:
        """Register a plugin, replacing any plugin for the same policy."""
        self._plugins[plugin.auth_type] = plugin

    def get_plugin(self, auth_type: WebhookAuthType) -> Optional[AuthPlugin]:
        return self._plugins.get(auth_type)

    def list_types(self) -> list[str]:
        return sorted(t.value for t in self._plugins)

    async def resolve(self, tenant: Optional[Tenant]) -> dict[str, str]:
        """Return the headers to attach to a webhook call for *tenant*.

        Never raises. Returns an empty dict when *tenant* is ``None``, the
        policy is ``none``, no plugin is registered for the policy, the
        required credentials are missing, or the plugin fails unexpectedly.
        """
        if tenant is None or tenant.webhook_auth_type == WebhookAuthType.NONE:
            return {}

        plugin = self._plugins.get(tenant.webhook_auth_type)
        if plugin is None:
            logger.warning(
                "No webhook auth plugin registered for type '%s'",
                tenant.webhook_auth_type.value,
            )
            return {}

        try:
            result: AuthResult = await plugin.authenticate(tenant)
        except Exception:
            logger.exception(
                "Webhook auth plugin '%s' failed for tenant '%s'",
                tenant.webhook_auth_type.value,
                tenant.username,
            )
            return {}

        if not result:
            logger.debug(
                "No webhook credentials available for tenant '%s' (%s)",
                tenant.username,
                tenant.webhook_auth_type.value,
            )
        return dict(result.headers)

    def validate(self, settings: WebhookAuthSettings) -> list[str]:
        """Run the matching plugin's configuration-time validation."""
        plugin = self._plugins.get(settings.auth_type)
        if plugin is None:
            return []
        return plugin.validate_settings(settings)


def create_default_resolver(broker: TokenBroker) -> AuthHeaderResolver:
    """Create an :class:`AuthHeaderResolver` with every built-in plugin.

    The following plugins are registered:

    - ``none`` -- empty header set.
    - ``basic`` -- HTTP Basic from the tenant's username and password.
    - ``bearer`` -- the tenant's static bearer token.
    - ``oauth2`` -- an access token managed by *broker*.
    """
    from wagate.plugins.basic import BasicAuthPlugin
    from wagate.plugins.bearer import BearerAuthPlugin
    from wagate.plugins.none import NoneAuthPlugin
    from wagate.plugins.oauth2 import OAuth2AuthPlugin

    resolver = AuthHeaderResolver()
    resolver.register(NoneAuthPlugin())
    resolver.register(BasicAuthPlugin())
    resolver.register(BearerAuthPlugin())
    resolver.register(OAuth2AuthPlugin(broker))
    return resolver

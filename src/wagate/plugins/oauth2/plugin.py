"""OAuth2 webhook authentication plugin.

This module provides :class:`OAuth2AuthPlugin`, which implements the
``oauth2`` webhook auth policy. It does no token handling of its own:
every call is delegated to :meth:`~wagate.auth.token_broker.TokenBroker.get_valid_token`,
which serves the cached token, refreshes it, or falls back to the stale
token. The result is sent as ``Authorization: Bearer <token>``.

See Also:
    :mod:`wagate.auth.token_broker` for the grant flows and caching rules.
"""

from __future__ import annotations

from wagate.auth.base import AuthPlugin, AuthResult
from wagate.auth.token_broker import TokenBroker
from wagate.models import Tenant, WebhookAuthSettings, WebhookAuthType


class OAuth2AuthPlugin(AuthPlugin):
    """Authenticate webhook calls with a broker-managed OAuth2 access token.

    Args:
        broker: The token broker that owns the grant flows.
    """

    def __init__(self, broker: TokenBroker) -> None:
        self._broker = broker

    @property
    def auth_type(self) -> WebhookAuthType:
        return WebhookAuthType.OAUTH2

    async def authenticate(self, tenant: Tenant) -> AuthResult:
        token = await self._broker.get_valid_token(tenant)
        if not token:
            return AuthResult()
        return AuthResult(headers={"Authorization": f"Bearer {token}"})

    def validate_settings(self, settings: WebhookAuthSettings) -> list[str]:
        errors: list[str] = []
        if (
            not settings.oauth2_client_id
            or not settings.oauth2_client_secret
            or not settings.oauth2_token_url
        ):
            errors.append(
                "Client ID, client secret, and token URL are required for "
                "OAuth2 authentication"
            )
        return errors

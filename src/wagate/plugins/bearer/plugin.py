"""Static bearer token authentication plugin.

This module provides :class:`BearerAuthPlugin`, which implements the
``bearer`` webhook auth policy. The token stored on the tenant is sent
as an ``Authorization: Bearer <token>`` header.

This plugin does not perform any token exchange or refresh. For tokens
obtained from an OAuth2 endpoint see :mod:`wagate.plugins.oauth2`.
"""

from __future__ import annotations

from wagate.auth.base import AuthPlugin, AuthResult
from wagate.models import Tenant, WebhookAuthSettings, WebhookAuthType


class BearerAuthPlugin(AuthPlugin):
    """Authenticate webhook calls with a static bearer token."""

    @property
    def auth_type(self) -> WebhookAuthType:
        return WebhookAuthType.BEARER

    async def authenticate(self, tenant: Tenant) -> AuthResult:
        token = tenant.webhook_auth_bearer_token
        if not token:
            return AuthResult()
        return AuthResult(headers={"Authorization": f"Bearer {token}"})

    def validate_settings(self, settings: WebhookAuthSettings) -> list[str]:
        errors: list[str] = []
        if not settings.auth_bearer_token:
            errors.append("Bearer token is required for bearer authentication")
        return errors

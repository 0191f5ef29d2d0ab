"""HTTP Basic authentication plugin.

This module provides :class:`BasicAuthPlugin`, which implements the
``basic`` webhook auth policy. The tenant's username and password are
joined with a colon, Base64-encoded, and sent as an
``Authorization: Basic <encoded>`` header per :rfc:`7617`.

See Also:
    :class:`wagate.auth.base.AuthPlugin` for the base interface.
"""

from __future__ import annotations

import base64

from wagate.auth.base import AuthPlugin, AuthResult
from wagate.models import Tenant, WebhookAuthSettings, WebhookAuthType


def encode_basic_credentials(username: str, password: str) -> str:
    """Return the Base64 token for ``username:password``."""
    raw = f"{username}:{password}"
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


class BasicAuthPlugin(AuthPlugin):
    """Authenticate webhook calls via HTTP Basic authentication."""

    @property
    def auth_type(self) -> WebhookAuthType:
        return WebhookAuthType.BASIC

    async def authenticate(self, tenant: Tenant) -> AuthResult:
        """Return a Basic auth header, or nothing if a credential is missing."""
        username = tenant.webhook_auth_username
        password = tenant.webhook_auth_password
        if not username or not password:
            return AuthResult()
        encoded = encode_basic_credentials(username, password)
        return AuthResult(headers={"Authorization": f"Basic {encoded}"})

    def validate_settings(self, settings: WebhookAuthSettings) -> list[str]:
        errors: list[str] = []
        if not settings.auth_username or not settings.auth_password:
            errors.append("Username and password are required for basic authentication")
        return errors

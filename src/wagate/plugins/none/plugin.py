"""Plugin for tenants whose webhooks are delivered without authentication."""

from __future__ import annotations

from wagate.auth.base import AuthPlugin, AuthResult
from wagate.models import Tenant, WebhookAuthType


class NoneAuthPlugin(AuthPlugin):
    """Always returns an empty header set."""

    @property
    def auth_type(self) -> WebhookAuthType:
        return WebhookAuthType.NONE

    async def authenticate(self, tenant: Tenant) -> AuthResult:
        return AuthResult()

"""Configuration-time operations on a tenant's webhook auth policy.

These functions back the "configure webhook auth" and "show webhook auth"
operations of the gateway. Validation happens here, synchronously, so an
invalid policy is rejected before anything is written and never surfaces
at dispatch time.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from wagate.auth.manager import AuthHeaderResolver
from wagate.auth.store import TenantStore
from wagate.exceptions import ConfigurationError
from wagate.models import Tenant, WebhookAuthSettings

logger = logging.getLogger(__name__)


def configure_webhook_auth(
    store: TenantStore,
    resolver: AuthHeaderResolver,
    tenant_id: int,
    settings: WebhookAuthSettings,
) -> Tenant:
    """Validate *settings* and replace the tenant's webhook auth policy.

    The policy, every credential field, and the three cached OAuth2 token
    fields are written in one update. Tokens are always reset so that a
    token never outlives the configuration that produced it.

    Raises:
        ConfigurationError: If a field required by ``settings.auth_type``
            is missing. Nothing is written.
        TenantNotFoundError: If *tenant_id* does not exist.
    """
    errors = resolver.validate(settings)
    if errors:
        raise ConfigurationError("; ".join(errors))

    tenant = store.update_webhook_auth(tenant_id, settings.to_update())
    logger.info(
        "Webhook auth for tenant '%s' set to '%s'",
        tenant.username,
        tenant.webhook_auth_type.value,
    )
    return tenant


def mask_secret(value: Optional[str]) -> Optional[str]:
    """Mask all but the last four characters of *value*."""
    if not value:
        return None
    return "***" + value[-4:]


def describe_webhook_auth(tenant: Tenant) -> dict[str, Any]:
    """Return a view of the tenant's webhook auth that is safe to display.

    Passwords, client secrets, and tokens are never included; the static
    bearer token is masked.
    """
    return {
        "auth_type": tenant.webhook_auth_type.value,
        "has_credentials": tenant.has_webhook_credentials(),
        "auth_username": tenant.webhook_auth_username,
        "auth_bearer_token": mask_secret(tenant.webhook_auth_bearer_token),
        "oauth2_client_id": tenant.webhook_oauth2_client_id,
        "oauth2_token_url": tenant.webhook_oauth2_token_url,
        "oauth2_scope": tenant.webhook_oauth2_scope,
        "oauth2_has_token": bool(tenant.webhook_oauth2_access_token),
        "oauth2_token_expiry": tenant.webhook_oauth2_token_expiry,
    }

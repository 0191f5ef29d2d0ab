"""Canonical Pydantic models shared across all wagate modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Tenant records** -- persisted by :mod:`wagate.auth.store`:
    :class:`WebhookAuthType`, :class:`Tenant`, :class:`WebhookAuthUpdate`,
    and :class:`WebhookAuthSettings`.

**Token and handshake results** -- transient values produced by the core:
    :class:`TokenResponse`, :class:`TokenRecord`, :class:`TokenStatus`,
    :class:`TokenResult`, :class:`Connected`, :class:`PairingRequired`,
    :class:`SessionStatus`, and :class:`SessionEvent`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`WebhookConfig`, :class:`OAuth2Config`, and :class:`GatewayConfig`.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Tenant records ---


class WebhookAuthType(str, enum.Enum):
    """Authentication policy applied to a tenant's outbound webhook calls."""

    NONE = "none"
    BASIC = "basic"
    BEARER = "bearer"
    OAUTH2 = "oauth2"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Tenant(BaseModel):
    """A non-admin user owning one messaging session and one webhook target.

    The three ``webhook_oauth2_*`` token fields are cache state derived from
    the OAuth2 configuration. They are written only by
    :class:`~wagate.auth.token_broker.TokenBroker` and reset together
    whenever the webhook auth configuration is replaced.
    """

    id: int
    username: str
    session_name: Optional[str] = None
    callback_url: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    webhook_auth_type: WebhookAuthType = WebhookAuthType.NONE
    # basic
    webhook_auth_username: Optional[str] = None
    webhook_auth_password: Optional[str] = None
    # bearer
    webhook_auth_bearer_token: Optional[str] = None
    # oauth2 configuration
    webhook_oauth2_client_id: Optional[str] = None
    webhook_oauth2_client_secret: Optional[str] = None
    webhook_oauth2_token_url: Optional[str] = None
    webhook_oauth2_scope: Optional[str] = None
    # oauth2 token cache
    webhook_oauth2_access_token: Optional[str] = None
    webhook_oauth2_token_expiry: Optional[int] = Field(
        default=None, description="Absolute expiry as epoch milliseconds"
    )
    webhook_oauth2_refresh_token: Optional[str] = None

    @property
    def effective_session_name(self) -> str:
        """The key used to address the session engine."""
        return self.session_name or self.username

    def has_oauth2_config(self) -> bool:
        return bool(
            self.webhook_oauth2_client_id
            and self.webhook_oauth2_client_secret
            and self.webhook_oauth2_token_url
        )

    def has_webhook_credentials(self) -> bool:
        """Return whether the fields required by the active policy are present."""
        auth_type = self.webhook_auth_type
        if auth_type == WebhookAuthType.BASIC:
            return bool(self.webhook_auth_username and self.webhook_auth_password)
        if auth_type == WebhookAuthType.BEARER:
            return bool(self.webhook_auth_bearer_token)
        if auth_type == WebhookAuthType.OAUTH2:
            return self.has_oauth2_config()
        return False


class WebhookAuthUpdate(BaseModel):
    """Partial update of a tenant's webhook auth columns.

    Only fields that were explicitly passed to the constructor are written
    by :meth:`~wagate.auth.store.TenantStore.update_webhook_auth`. Passing
    ``None`` explicitly clears a column; omitting a field leaves it untouched.

    Example::

        update = WebhookAuthUpdate(webhook_oauth2_access_token="tok")
        assert update.changes() == {"webhook_oauth2_access_token": "tok"}
    """

    model_config = ConfigDict(extra="forbid")

    webhook_auth_type: Optional[WebhookAuthType] = None
    webhook_auth_username: Optional[str] = None
    webhook_auth_password: Optional[str] = None
    webhook_auth_bearer_token: Optional[str] = None
    webhook_oauth2_client_id: Optional[str] = None
    webhook_oauth2_client_secret: Optional[str] = None
    webhook_oauth2_token_url: Optional[str] = None
    webhook_oauth2_scope: Optional[str] = None
    webhook_oauth2_access_token: Optional[str] = None
    webhook_oauth2_token_expiry: Optional[int] = None
    webhook_oauth2_refresh_token: Optional[str] = None

    def changes(self) -> dict[str, Any]:
        """Return only the explicitly set fields, keyed by tenant column name."""
        return self.model_dump(exclude_unset=True)

    @classmethod
    def token_reset(cls) -> WebhookAuthUpdate:
        """An update that clears the three cached OAuth2 token fields."""
        return cls(
            webhook_oauth2_access_token=None,
            webhook_oauth2_token_expiry=None,
            webhook_oauth2_refresh_token=None,
        )


class WebhookAuthSettings(BaseModel):
    """A configuration-time request to replace a tenant's webhook auth policy.

    Fields not relevant to ``auth_type`` are stored as given (usually
    ``None``). Validation of required fields happens in
    :func:`~wagate.auth.settings.configure_webhook_auth`.
    """

    auth_type: WebhookAuthType
    auth_username: Optional[str] = None
    auth_password: Optional[str] = None
    auth_bearer_token: Optional[str] = None
    oauth2_client_id: Optional[str] = None
    oauth2_client_secret: Optional[str] = None
    oauth2_token_url: Optional[str] = None
    oauth2_scope: Optional[str] = None

    def to_update(self) -> WebhookAuthUpdate:
        """Build the store update, resetting cached tokens in the same write."""
        return WebhookAuthUpdate(
            webhook_auth_type=self.auth_type,
            webhook_auth_username=self.auth_username,
            webhook_auth_password=self.auth_password,
            webhook_auth_bearer_token=self.auth_bearer_token,
            webhook_oauth2_client_id=self.oauth2_client_id,
            webhook_oauth2_client_secret=self.oauth2_client_secret,
            webhook_oauth2_token_url=self.oauth2_token_url,
            webhook_oauth2_scope=self.oauth2_scope,
            webhook_oauth2_access_token=None,
            webhook_oauth2_token_expiry=None,
            webhook_oauth2_refresh_token=None,
        )


# --- Token results ---


DEFAULT_EXPIRES_IN = 3600
"""Token lifetime in seconds assumed when the endpoint omits ``expires_in``."""


class TokenResponse(BaseModel):
    """JSON body returned by an OAuth2 token endpoint."""

    model_config = ConfigDict(extra="allow")

    access_token: str
    expires_in: Optional[float] = None
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None

    def to_record(self, captured_at_ms: int) -> TokenRecord:
        """Compute the absolute expiry relative to *captured_at_ms*."""
        expires_in = self.expires_in if self.expires_in is not None else DEFAULT_EXPIRES_IN
        return TokenRecord(
            access_token=self.access_token,
            token_expiry=captured_at_ms + int(expires_in * 1000),
            refresh_token=self.refresh_token,
        )


class TokenRecord(BaseModel):
    """The cached token triple persisted on a tenant."""

    access_token: str
    token_expiry: int
    refresh_token: Optional[str] = None


class TokenStatus(str, enum.Enum):
    """How :meth:`~wagate.auth.token_broker.TokenBroker.obtain_token` produced its token."""

    CACHED = "cached"
    REFRESHED = "refreshed"
    REAUTHENTICATED = "reauthenticated"
    STALE = "stale"
    UNAVAILABLE = "unavailable"


class TokenResult(BaseModel):
    """Outcome of the implicit token path used during webhook dispatch.

    ``token`` is ``None`` only for :attr:`TokenStatus.UNAVAILABLE`. ``error``
    carries the refresh failure message when a refresh was attempted and
    failed.
    """

    status: TokenStatus
    token: Optional[str] = None
    error: Optional[str] = None

    @property
    def usable(self) -> bool:
        return self.token is not None


# --- Session handshake and events ---


class Connected(BaseModel):
    """Handshake outcome: the session is authenticated and connected."""

    model_config = ConfigDict(frozen=True)

    session_name: str


class PairingRequired(BaseModel):
    """Handshake outcome: the caller must present *artifact* (a QR payload)."""

    model_config = ConfigDict(frozen=True)

    session_name: str
    artifact: str


HandshakeResult = Union[Connected, PairingRequired]


class SessionStatus(str, enum.Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class SessionEvent(BaseModel):
    """A lifecycle event emitted by the session engine for one session."""

    model_config = ConfigDict(frozen=True)

    session: str
    status: SessionStatus


# --- Configuration ---


class WebhookConfig(BaseModel):
    """Outbound webhook delivery settings."""

    base_url: Optional[str] = Field(
        default=None,
        description="Fallback webhook base URL for tenants without a callback URL",
    )
    timeout: float = Field(default=10.0, description="Request timeout in seconds")
    max_retries: int = Field(default=2, description="Retries on 5xx and network errors")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class OAuth2Config(BaseModel):
    """Settings for token endpoint calls made by the token broker."""

    token_timeout: float = Field(
        default=5.0, description="Timeout in seconds for token endpoint requests"
    )
    client_credentials_fallback: bool = Field(
        default=False,
        description="Re-authenticate with a client_credentials grant when no "
        "refresh token can be used",
    )


class GatewayConfig(BaseModel):
    """Gateway-wide configuration persisted at ``~/.config/wagate/config.json``.

    Loaded and saved by :func:`~wagate.config.load_gateway_config` and
    :func:`~wagate.config.save_gateway_config`. See
    :func:`~wagate.config.resolve_config` for the precedence chain.
    """

    admin_username: str = Field(
        default="admin", description="Reserved virtual admin identity"
    )
    store_path: Optional[str] = Field(
        default=None, description="Tenant store file (default: <data_dir>/tenants.json)"
    )
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    oauth2: OAuth2Config = Field(default_factory=OAuth2Config)

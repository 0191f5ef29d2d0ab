"""OAuth2 token acquisition, caching, and refresh for webhook delivery.

This module provides :class:`TokenBroker`, which encapsulates the three
OAuth2 grants the gateway uses against a tenant's token endpoint:

- Authorization Code (:rfc:`6749` section 4.1) -- explicit, configuration time.
- Client Credentials (:rfc:`6749` section 4.4) -- explicit, configuration time.
- Refresh Token (:rfc:`6749` section 6) -- implicit, on the dispatch path.

The broker keeps no token state of its own. The cached token triple
(``access_token``, ``token_expiry`` in epoch milliseconds, ``refresh_token``)
lives on the tenant record and is written back through
:meth:`~wagate.auth.store.TenantStore.update_webhook_auth`, once per
successful grant.

Concurrent dispatches for the same tenant may both observe an expired
token and both refresh it. Nothing serialises them: the token endpoint
tolerates duplicate refreshes and the last write wins.

See Also:
    :class:`wagate.plugins.oauth2.OAuth2AuthPlugin` -- turns the broker's
    token into a bearer header.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import httpx

from wagate.auth.store import TenantStore
from wagate.exceptions import ConfigurationError, TokenAcquisitionError
from wagate.models import (
    OAuth2Config,
    Tenant,
    TokenRecord,
    TokenResponse,
    TokenResult,
    TokenStatus,
    WebhookAuthType,
    WebhookAuthUpdate,
)

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]
Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def _error_detail(response: httpx.Response) -> str:
    """Extract the endpoint's own error text from a failed token response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("error_description") or body.get("error")
        if detail:
            return str(detail)
    return response.text[:200] if response.text else f"HTTP {response.status_code}"


class TokenBroker:
    """Acquire and refresh OAuth2 access tokens for tenants.

    Args:
        store: The tenant store where token triples are persisted.
        timeout: Timeout in seconds for each token endpoint request.
        client_credentials_fallback: When ``True``, the implicit path tries
            one client-credentials grant before falling back to a stale
            token.
        client_factory: Callable returning a fresh :class:`httpx.AsyncClient`
            for each request. Defaults to a client with *timeout*.
        clock: Callable returning the current time in epoch milliseconds.

    Example::

        broker = TokenBroker(store)
        token = await broker.get_valid_token(tenant)
    """

    def __init__(
        self,
        store: TenantStore,
        timeout: float = 5.0,
        client_credentials_fallback: bool = False,
        client_factory: Optional[ClientFactory] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._timeout = timeout
        self._client_credentials_fallback = client_credentials_fallback
        self._client_factory = client_factory or self._default_client
        self._clock = clock or now_ms

    @classmethod
    def from_config(
        cls,
        store: TenantStore,
        config: OAuth2Config,
        client_factory: Optional[ClientFactory] = None,
    ) -> TokenBroker:
        return cls(
            store,
            timeout=config.token_timeout,
            client_credentials_fallback=config.client_credentials_fallback,
            client_factory=client_factory,
        )

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout)

    # ------------------------------------------------------------------ #
    # Implicit path (webhook dispatch)
    # ------------------------------------------------------------------ #

    async def get_valid_token(self, tenant: Tenant) -> Optional[str]:
        """Return a token to use for *tenant*'s next webhook call, or ``None``.

        Never raises for token endpoint failures; see :meth:`obtain_token`.
        """
        result = await self.obtain_token(tenant)
        return result.token

    async def obtain_token(self, tenant: Tenant) -> TokenResult:
        """Resolve a token for *tenant*, first match wins.

        1. A cached access token whose expiry lies in the future is returned
           as is, with no network call.
        2. With a refresh token and a full OAuth2 config, one refresh grant
           is performed and the new triple persisted.
        3. Otherwise (or if the refresh fails) the cached access token is
           returned unchanged even though it has expired, so that delivery
           is attempted rather than blocked. When client-credentials
           fallback is enabled, one client-credentials grant is tried first.

        Returns:
            A :class:`~wagate.models.TokenResult` describing which branch
            produced the token.
        """
        cached = tenant.webhook_oauth2_access_token
        expiry = tenant.webhook_oauth2_token_expiry
        if cached and expiry is not None and expiry > self._clock():
            return TokenResult(status=TokenStatus.CACHED, token=cached)

        error: Optional[str] = None

        if tenant.webhook_oauth2_refresh_token and tenant.has_oauth2_config():
            try:
                record = await self._refresh(tenant)
                return TokenResult(status=TokenStatus.REFRESHED, token=record.access_token)
            except TokenAcquisitionError as exc:
                logger.warning(
                    "OAuth2 token refresh failed for tenant '%s': %s",
                    tenant.username,
                    exc,
                )
                error = str(exc)

        if self._client_credentials_fallback and tenant.has_oauth2_config():
            try:
                record = await self._client_credentials(tenant, tenant.webhook_oauth2_scope)
                return TokenResult(
                    status=TokenStatus.REAUTHENTICATED, token=record.access_token
                )
            except TokenAcquisitionError as exc:
                logger.warning(
                    "OAuth2 client_credentials re-authentication failed for tenant '%s': %s",
                    tenant.username,
                    exc,
                )
                error = str(exc)

        if cached:
            logger.debug("Using expired OAuth2 token for tenant '%s'", tenant.username)
            return TokenResult(status=TokenStatus.STALE, token=cached, error=error)
        return TokenResult(status=TokenStatus.UNAVAILABLE, error=error)

    # ------------------------------------------------------------------ #
    # Explicit acquisition (configuration time)
    # ------------------------------------------------------------------ #

    async def acquire_with_authorization_code(
        self,
        tenant: Tenant,
        code: str,
        redirect_uri: Optional[str] = None,
    ) -> TokenRecord:
        """Exchange an authorization code for tokens and persist them.

        Args:
            tenant: A tenant with policy ``oauth2`` and a full OAuth2 config.
            code: The authorization code issued to the tenant.
            redirect_uri: The redirect URI used in the authorization
                request, when the provider requires it.

        Returns:
            The persisted :class:`~wagate.models.TokenRecord`.

        Raises:
            ConfigurationError: If OAuth2 is not configured for the tenant.
            TokenAcquisitionError: If the token endpoint rejects the grant.
        """
        self._require_oauth2(tenant)
        data = self._client_fields(tenant)
        data["grant_type"] = "authorization_code"
        data["code"] = code
        if redirect_uri:
            data["redirect_uri"] = redirect_uri

        response = await self._request_token(tenant, data)
        record = response.to_record(self._clock())
        self._persist(tenant, record, keep_refresh_token=False)
        logger.info(
            "Obtained OAuth2 token for tenant '%s' via authorization_code grant",
            tenant.username,
        )
        return record

    async def acquire_with_client_credentials(
        self,
        tenant: Tenant,
        scope: Optional[str] = None,
    ) -> TokenRecord:
        """Obtain a token with the client-credentials grant and persist it.

        Args:
            tenant: A tenant with policy ``oauth2`` and a full OAuth2 config.
            scope: Scope to request. Defaults to the tenant's configured scope.

        Raises:
            ConfigurationError: If OAuth2 is not configured for the tenant.
            TokenAcquisitionError: If the token endpoint rejects the grant.
        """
        self._require_oauth2(tenant)
        return await self._client_credentials(
            tenant, scope if scope is not None else tenant.webhook_oauth2_scope
        )

    # ------------------------------------------------------------------ #
    # Grants
    # ------------------------------------------------------------------ #

    async def _client_credentials(
        self, tenant: Tenant, scope: Optional[str]
    ) -> TokenRecord:
        data = self._client_fields(tenant)
        data["grant_type"] = "client_credentials"
        if scope:
            data["scope"] = scope

        response = await self._request_token(tenant, data)
        record = response.to_record(self._clock())
        self._persist(tenant, record, keep_refresh_token=False)
        logger.info(
            "Obtained OAuth2 token for tenant '%s' via client_credentials grant",
            tenant.username,
        )
        return record

    async def _refresh(self, tenant: Tenant) -> TokenRecord:
        assert tenant.webhook_oauth2_refresh_token is not None
        data = self._client_fields(tenant)
        data["grant_type"] = "refresh_token"
        data["refresh_token"] = tenant.webhook_oauth2_refresh_token

        response = await self._request_token(tenant, data)
        record = response.to_record(self._clock())
        self._persist(tenant, record, keep_refresh_token=True)
        logger.info("Refreshed OAuth2 token for tenant '%s'", tenant.username)
        return record

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _require_oauth2(tenant: Tenant) -> None:
        if tenant.webhook_auth_type != WebhookAuthType.OAUTH2 or not tenant.has_oauth2_config():
            raise ConfigurationError("OAuth2 is not configured for this user")

    @staticmethod
    def _client_fields(tenant: Tenant) -> dict[str, str]:
        return {
            "client_id": tenant.webhook_oauth2_client_id or "",
            "client_secret": tenant.webhook_oauth2_client_secret or "",
        }

    async def _request_token(self, tenant: Tenant, data: dict[str, str]) -> TokenResponse:
        """POST a form-encoded grant to the tenant's token endpoint.

        Raises:
            TokenAcquisitionError: On HTTP or network errors, a non-JSON
                body, or a response without ``access_token``.
        """
        token_url = tenant.webhook_oauth2_token_url
        assert token_url is not None

        try:
            async with self._client_factory() as client:
                response = await client.post(
                    token_url,
                    data=data,
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                payload: Any = response.json()
        except httpx.HTTPStatusError as exc:
            raise TokenAcquisitionError(
                f"Token request failed with status {exc.response.status_code}: "
                f"{_error_detail(exc.response)}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TokenAcquisitionError(f"Token request failed: {exc}") from exc
        except ValueError as exc:
            raise TokenAcquisitionError("Token response is not valid JSON") from exc

        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise TokenAcquisitionError("Token response missing 'access_token' field")
        try:
            return TokenResponse.model_validate(payload)
        except ValueError as exc:
            raise TokenAcquisitionError(f"Malformed token response: {exc}") from exc

    def _persist(self, tenant: Tenant, record: TokenRecord, keep_refresh_token: bool) -> None:
        """Write the token triple in a single update.

        With *keep_refresh_token*, a response without a new refresh token
        leaves the stored one untouched.
        """
        fields: dict[str, Any] = {
            "webhook_oauth2_access_token": record.access_token,
            "webhook_oauth2_token_expiry": record.token_expiry,
        }
        if record.refresh_token is not None or not keep_refresh_token:
            fields["webhook_oauth2_refresh_token"] = record.refresh_token
        self._store.update_webhook_auth(tenant.id, WebhookAuthUpdate(**fields))

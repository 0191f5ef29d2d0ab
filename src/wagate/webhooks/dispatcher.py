"""Outbound webhook delivery.

:class:`WebhookDispatcher` POSTs JSON payloads to a tenant's webhook
endpoint. Every call is authenticated with the headers returned by
:class:`~wagate.auth.manager.AuthHeaderResolver` for that tenant, so the
tenant's configured policy (none, basic, bearer, or OAuth2 with automatic
refresh) applies transparently.

The target URL is the tenant's ``callback_url`` when set, otherwise the
gateway-wide ``webhook.base_url`` joined with the event path. With neither
configured the delivery is skipped.

Failed deliveries are retried on 5xx responses and network errors with
exponential backoff (1 s, 2 s, 4 s, ...).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

import httpx

from wagate.auth.manager import AuthHeaderResolver
from wagate.auth.store import TenantStore
from wagate.exceptions import WebhookDeliveryError
from wagate.models import SessionEvent, Tenant, WebhookConfig

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]

SESSION_PATH = "/session"


class WebhookDispatcher:
    """Deliver webhook payloads on behalf of tenants.

    Args:
        store: Tenant store, used to map session names back to tenants.
        resolver: Produces the auth headers for each delivery.
        config: Target URL, timeout, retry, and SSL settings.
        client_factory: Callable returning a fresh :class:`httpx.AsyncClient`
            for each delivery. Defaults to one built from *config*.
        backoff_base: Seconds to wait before the first retry; doubles on
            each subsequent attempt.
    """

    def __init__(
        self,
        store: TenantStore,
        resolver: AuthHeaderResolver,
        config: Optional[WebhookConfig] = None,
        client_factory: Optional[ClientFactory] = None,
        backoff_base: float = 1.0,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._config = config or WebhookConfig()
        self._client_factory = client_factory or self._default_client
        self._backoff_base = backoff_base

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=True,
        )

    def target_url(self, tenant: Optional[Tenant], path: str) -> Optional[str]:
        """Return the URL a delivery for *tenant* would go to, if any."""
        if tenant is not None and tenant.callback_url:
            return tenant.callback_url
        if self._config.base_url:
            return f"{self._config.base_url.rstrip('/')}{path}"
        return None

    async def deliver(
        self,
        tenant: Optional[Tenant],
        path: str,
        payload: dict[str, Any],
        max_retries: Optional[int] = None,
    ) -> Optional[httpx.Response]:
        """POST *payload* as JSON for *tenant*.

        Args:
            tenant: The owning tenant, or ``None`` for deliveries with no
                tenant (sent unauthenticated to the base URL).
            path: Event path appended to the base URL, e.g. ``/session``.
            payload: JSON-serialisable body.
            max_retries: Overrides ``webhook.max_retries`` for this delivery.

        Returns:
            The final :class:`httpx.Response`, or ``None`` when no target
            URL is configured.

        Raises:
            WebhookDeliveryError: On a 5xx response or network error that
                persists after all retries.
        """
        url = self.target_url(tenant, path)
        if url is None:
            logger.debug("No webhook target configured for %s, skipping", path)
            return None

        headers = await self._resolver.resolve(tenant)
        response = await self._post_with_retry(url, headers, payload, max_retries)

        if response.status_code >= 400:
            logger.warning(
                "Webhook %s answered HTTP %d", url, response.status_code
            )
        else:
            logger.debug("Webhook %s delivered (HTTP %d)", url, response.status_code)
        return response

    async def _post_with_retry(
        self,
        url: str,
        headers: dict[str, str],
        payload: dict[str, Any],
        max_retries: Optional[int] = None,
    ) -> httpx.Response:
        if max_retries is None:
            max_retries = self._config.max_retries

        async with self._client_factory() as client:
            for attempt in range(max_retries + 1):
                delay = self._backoff_base * (2 ** attempt)
                try:
                    response = await client.post(url, json=payload, headers=headers)
                except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
                    if attempt < max_retries:
                        logger.debug(
                            "Webhook connection error: %s, retrying in %ss (attempt %d/%d)",
                            exc, delay, attempt + 1, max_retries,
                        )
                        await asyncio.sleep(delay)
                        continue
                    raise WebhookDeliveryError(
                        f"Webhook delivery to {url} failed after "
                        f"{max_retries + 1} attempts: {exc}"
                    ) from exc

                if response.status_code >= 500:
                    if attempt < max_retries:
                        logger.debug(
                            "Webhook server error %d, retrying in %ss (attempt %d/%d)",
                            response.status_code, delay, attempt + 1, max_retries,
                        )
                        await asyncio.sleep(delay)
                        continue
                    raise WebhookDeliveryError(
                        f"Webhook delivery to {url} failed with HTTP "
                        f"{response.status_code} after {max_retries + 1} attempts"
                    )
                return response

        raise WebhookDeliveryError(f"Webhook delivery to {url} failed")  # pragma: no cover

    async def deliver_session_event(
        self,
        event: SessionEvent,
        max_retries: Optional[int] = None,
    ) -> Optional[httpx.Response]:
        """Deliver a session status change to the owning tenant's webhook."""
        tenant = self._store.get_by_session_name(event.session)
        return await self.deliver(
            tenant,
            SESSION_PATH,
            {"session": event.session, "status": event.status.value},
            max_retries=max_retries,
        )

    def session_sink(self, max_retries: Optional[int] = None) -> Callable[[SessionEvent], Any]:
        """Return a bridge sink that delivers session events as webhooks.

        Delivery failures are logged and dropped; the sink never raises.

        The bridge delivers events one at a time, so while a failing target
        is being retried every later session event waits behind it. Pass a
        small *max_retries* (``0`` disables retries) to bound that delay;
        ``None`` keeps ``webhook.max_retries``.
        """

        async def _sink(event: SessionEvent) -> None:
            try:
                await self.deliver_session_event(event, max_retries=max_retries)
            except WebhookDeliveryError as exc:
                logger.warning("Session webhook for '%s' dropped: %s", event.session, exc)

        return _sink

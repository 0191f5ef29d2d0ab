"""Test doubles and helpers shared across the wagate test suite.

- :class:`FakeEngine` -- a scriptable in-memory session engine.
- :class:`RecordingTransport` and :func:`token_handler` -- mocked HTTP
  endpoints built on ``httpx.MockTransport``.
- :func:`make_oauth2_tenant` -- a tenant with a full OAuth2 config.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Optional
from urllib.parse import parse_qsl

import httpx

from wagate.auth.store import TenantStore
from wagate.models import Tenant, WebhookAuthType, WebhookAuthUpdate
from wagate.session.engine import SessionCallbacks, SessionEngine, SessionListener, Unsubscribe


NOW_MS = 1_700_000_000_000
"""Fixed clock value used by token broker tests."""


# ---------------------------------------------------------------------------
# Tenants
# ---------------------------------------------------------------------------


def make_oauth2_tenant(
    store: TenantStore,
    username: str = "oauth-user",
    access_token: Optional[str] = None,
    token_expiry: Optional[int] = None,
    refresh_token: Optional[str] = None,
    scope: Optional[str] = None,
) -> Tenant:
    """Create a tenant with a full OAuth2 config and the given token triple."""
    created = store.create_tenant(username)
    return store.update_webhook_auth(
        created.id,
        WebhookAuthUpdate(
            webhook_auth_type=WebhookAuthType.OAUTH2,
            webhook_oauth2_client_id="c",
            webhook_oauth2_client_secret="s",
            webhook_oauth2_token_url="https://auth.example.com/token",
            webhook_oauth2_scope=scope,
            webhook_oauth2_access_token=access_token,
            webhook_oauth2_token_expiry=token_expiry,
            webhook_oauth2_refresh_token=refresh_token,
        ),
    )


# ---------------------------------------------------------------------------
# Mocked HTTP
# ---------------------------------------------------------------------------


class RecordingTransport:
    """Wrap a handler in an httpx.MockTransport and record every request."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []
        self._handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def client_factory(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    @property
    def call_count(self) -> int:
        return len(self.requests)


def token_handler(
    access_token: str = "new-access",
    expires_in: Optional[int] = 3600,
    refresh_token: Optional[str] = None,
    status_code: int = 200,
    body: Optional[dict[str, Any]] = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """Build a handler that answers like an OAuth2 token endpoint."""

    def _handler(request: httpx.Request) -> httpx.Response:
        if body is not None:
            return httpx.Response(status_code, json=body)
        data: dict[str, Any] = {"access_token": access_token, "token_type": "Bearer"}
        if expires_in is not None:
            data["expires_in"] = expires_in
        if refresh_token is not None:
            data["refresh_token"] = refresh_token
        return httpx.Response(status_code, json=data)

    return _handler


def form_body(request: httpx.Request) -> dict[str, str]:
    """Decode a form-encoded request body."""
    return dict(parse_qsl(request.content.decode()))


def json_body(request: httpx.Request) -> Any:
    return json.loads(request.content.decode())


# ---------------------------------------------------------------------------
# Fake session engine
# ---------------------------------------------------------------------------


class FakeEngine(SessionEngine):
    """Scriptable in-memory session engine.

    ``script`` lists the emissions made synchronously inside ``start``, as
    ``("qr", payload)`` or ``("connected", None)`` tuples. ``start_error``
    is raised after the script has run. When ``hold`` is set, ``start``
    then waits on it before returning.
    """

    def __init__(
        self,
        active: tuple[str, ...] = (),
        script: tuple[tuple[str, Optional[str]], ...] = (),
        start_error: Optional[Exception] = None,
        hold: Optional[Any] = None,
    ) -> None:
        self.active: set[str] = set(active)
        self.script = list(script)
        self.start_error = start_error
        self.hold = hold
        self.start_calls: list[str] = []
        self.stop_calls: list[str] = []
        self.callbacks: dict[str, SessionCallbacks] = {}
        self._listeners: dict[str, list[SessionListener]] = {
            "connecting": [],
            "connected": [],
            "disconnected": [],
        }

    def is_active(self, session_name: str) -> bool:
        return session_name in self.active

    async def start(self, session_name: str, callbacks: SessionCallbacks) -> None:
        self.start_calls.append(session_name)
        self.callbacks[session_name] = callbacks
        for kind, value in self.script:
            if kind == "qr":
                callbacks.on_qr_updated(value or "")
            else:
                self.active.add(session_name)
                callbacks.on_connected()
        if self.start_error is not None:
            raise self.start_error
        if self.hold is not None:
            await self.hold.wait()

    async def stop(self, session_name: str) -> None:
        self.stop_calls.append(session_name)
        self.active.discard(session_name)

    def on_connecting(self, listener: SessionListener) -> Unsubscribe:
        return self._subscribe("connecting", listener)

    def on_connected(self, listener: SessionListener) -> Unsubscribe:
        return self._subscribe("connected", listener)

    def on_disconnected(self, listener: SessionListener) -> Unsubscribe:
        return self._subscribe("disconnected", listener)

    def emit(self, kind: str, session_name: str) -> None:
        for listener in list(self._listeners[kind]):
            listener(session_name)

    def listener_count(self, kind: str) -> int:
        return len(self._listeners[kind])

    def _subscribe(self, kind: str, listener: SessionListener) -> Unsubscribe:
        self._listeners[kind].append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners[kind]:
                self._listeners[kind].remove(listener)

        return _unsubscribe

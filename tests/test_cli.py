"""End-to-end tests for the ``wagate`` operator CLI."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from support import RecordingTransport, form_body, make_oauth2_tenant, token_handler
from wagate import __version__
from wagate.app import app
from wagate.auth.store import FileTenantStore
from wagate.auth.token_broker import TokenBroker
from wagate.models import WebhookAuthType


pytestmark = pytest.mark.usefixtures("isolated_config")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "tenants.json"


@pytest.fixture
def invoke(cli_runner, store_path: Path):
    """Run the CLI against the test store with JSON data and no diagnostics."""

    def _invoke(*args: str, quiet: bool = True, input: str | None = None):
        base = ["--store", str(store_path), "--json", "--no-color"]
        if quiet:
            base.append("--quiet")
        return cli_runner.invoke(app, [*base, *args], input=input)

    return _invoke


@pytest.fixture
def mock_token_endpoint(monkeypatch: pytest.MonkeyPatch):
    """Route the CLI's token broker through a RecordingTransport."""

    def _install(handler) -> RecordingTransport:
        transport = RecordingTransport(handler)

        def _build(store, config) -> TokenBroker:
            return TokenBroker.from_config(
                store, config.oauth2, client_factory=transport.client_factory
            )

        monkeypatch.setattr("wagate.commands.webhook_auth._build_broker", _build)
        return transport

    return _install


def _data(result: Any) -> Any:
    return json.loads(result.stdout)


def _oauth2_args(username: str = "alice") -> list[str]:
    return [
        "webhook-auth", "set", username, "--type", "oauth2",
        "--client-id", "c", "--client-secret", "s",
        "--token-url", "https://auth.example.com/token",
    ]


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class TestRoot:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"wagate {__version__}" in result.output

    def test_no_args_shows_help(self, cli_runner) -> None:
        result = cli_runner.invoke(app, [])
        assert "tenant" in result.output
        assert "webhook-auth" in result.output


# ---------------------------------------------------------------------------
# Tenants
# ---------------------------------------------------------------------------


class TestTenantCommands:
    def test_add_and_show(self, invoke) -> None:
        result = invoke(
            "tenant", "add", "alice",
            "--session-name", "alice-main",
            "--callback-url", "https://hooks.example.com/alice",
        )
        assert result.exit_code == 0, result.output
        added = _data(result)
        assert added["id"] == 1
        assert added["session_name"] == "alice-main"

        shown = _data(invoke("tenant", "show", "alice"))
        assert shown["callback_url"] == "https://hooks.example.com/alice"
        assert shown["webhook_auth_type"] == "none"

    def test_add_writes_store_file(self, invoke, store_path: Path) -> None:
        invoke("tenant", "add", "alice")
        tenant = FileTenantStore(store_path).get_by_username("alice")
        assert tenant is not None
        assert tenant.effective_session_name == "alice"

    def test_admin_name_rejected(self, invoke) -> None:
        result = invoke("tenant", "add", "admin")
        assert result.exit_code == 2
        assert "reserved for the admin" in result.output

    def test_admin_name_from_env(self, invoke, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WAGATE_ADMIN_USER", "root")
        assert invoke("tenant", "add", "root").exit_code == 2
        assert invoke("tenant", "add", "admin").exit_code == 0

    def test_duplicate_rejected(self, invoke) -> None:
        invoke("tenant", "add", "alice")
        result = invoke("tenant", "add", "alice")
        assert result.exit_code == 2
        assert "already exists" in result.output

    def test_list(self, invoke) -> None:
        invoke("tenant", "add", "alice")
        invoke("tenant", "add", "bob", "--session-name", "bob-1")
        rows = _data(invoke("tenant", "list"))
        assert [(r["Username"], r["Session"]) for r in rows] == [
            ("alice", "alice"),
            ("bob", "bob-1"),
        ]

    def test_list_empty(self, invoke) -> None:
        result = invoke("tenant", "list", quiet=False)
        assert result.exit_code == 0
        assert "No tenants found." in result.output

    def test_show_unknown(self, invoke) -> None:
        result = invoke("tenant", "show", "ghost")
        assert result.exit_code == 4
        assert "Tenant 'ghost' not found" in result.output

    def test_remove_with_confirmation(self, invoke) -> None:
        invoke("tenant", "add", "alice")
        result = invoke("tenant", "remove", "alice", input="y\n")
        assert result.exit_code == 0
        assert invoke("tenant", "show", "alice").exit_code == 4

    def test_remove_declined(self, invoke) -> None:
        invoke("tenant", "add", "alice")
        result = invoke("tenant", "remove", "alice", input="n\n")
        assert result.exit_code != 0
        assert invoke("tenant", "show", "alice").exit_code == 0

    def test_remove_yes(self, invoke, store_path: Path) -> None:
        invoke("tenant", "add", "alice")
        assert invoke("tenant", "remove", "alice", "--yes").exit_code == 0
        assert FileTenantStore(store_path).list_tenants() == []

    def test_callback_set_and_clear(self, invoke) -> None:
        invoke("tenant", "add", "alice")
        assert invoke("tenant", "callback", "alice", "https://new.example.com").exit_code == 0
        assert _data(invoke("tenant", "show", "alice"))["callback_url"] == "https://new.example.com"

        assert invoke("tenant", "callback", "alice", "--clear").exit_code == 0
        assert _data(invoke("tenant", "show", "alice"))["callback_url"] is None

    @pytest.mark.parametrize(
        "args",
        [["alice"], ["alice", "https://x.example.com", "--clear"]],
        ids=["neither", "both"],
    )
    def test_callback_usage_errors(self, invoke, args: list[str]) -> None:
        invoke("tenant", "add", "alice")
        assert invoke("tenant", "callback", *args).exit_code == 2


# ---------------------------------------------------------------------------
# Webhook auth configuration
# ---------------------------------------------------------------------------


class TestWebhookAuthSet:
    def test_basic_then_show(self, invoke) -> None:
        invoke("tenant", "add", "alice")
        result = invoke(
            "webhook-auth", "set", "alice", "--type", "basic",
            "--username", "svc", "--password", "hunter2",
        )
        assert result.exit_code == 0, result.output

        view = _data(invoke("webhook-auth", "show", "alice"))
        assert view["auth_type"] == "basic"
        assert view["auth_username"] == "svc"
        assert view["has_credentials"] is True
        assert "hunter2" not in json.dumps(view)

    def test_missing_fields_rejected(self, invoke, store_path: Path) -> None:
        invoke("tenant", "add", "alice")
        result = invoke("webhook-auth", "set", "alice", "--type", "basic", "--username", "svc")
        assert result.exit_code == 2
        assert "Username and password are required" in result.output
        tenant = FileTenantStore(store_path).require_username("alice")
        assert tenant.webhook_auth_type == WebhookAuthType.NONE

    def test_unknown_type_is_usage_error(self, invoke) -> None:
        invoke("tenant", "add", "alice")
        result = invoke("webhook-auth", "set", "alice", "--type", "digest")
        assert result.exit_code == 2

    def test_unknown_tenant(self, invoke) -> None:
        result = invoke("webhook-auth", "set", "ghost", "--type", "none")
        assert result.exit_code == 4

    def test_oauth2_suggests_token(self, invoke) -> None:
        invoke("tenant", "add", "alice")
        result = invoke(*_oauth2_args(), quiet=False)
        assert result.exit_code == 0
        assert "wagate webhook-auth client-credentials alice" in result.output

    def test_bearer_token_masked_in_show(self, invoke) -> None:
        invoke("tenant", "add", "alice")
        invoke("webhook-auth", "set", "alice", "--type", "bearer", "--token", "static-token-1234")
        view = _data(invoke("webhook-auth", "show", "alice"))
        assert view["auth_bearer_token"] == "***1234"


class TestWebhookAuthHeaders:
    def test_bearer_headers_masked(self, invoke) -> None:
        invoke("tenant", "add", "alice")
        invoke("webhook-auth", "set", "alice", "--type", "bearer", "--token", "static-token-1234")
        result = invoke("webhook-auth", "headers", "alice")
        assert result.exit_code == 0
        assert _data(result) == {"Authorization": "Bearer ***1234"}

    def test_no_headers(self, invoke) -> None:
        invoke("tenant", "add", "alice")
        result = invoke("webhook-auth", "headers", "alice", quiet=False)
        assert result.exit_code == 0
        assert "No auth headers for 'alice'." in result.output

    def test_oauth2_headers_use_cached_token(self, invoke, store_path: Path, mock_token_endpoint) -> None:
        transport = mock_token_endpoint(token_handler())
        make_oauth2_tenant(
            FileTenantStore(store_path),
            username="alice",
            access_token="cached-token-9999",
            token_expiry=2**53,
        )
        result = invoke("webhook-auth", "headers", "alice")
        assert _data(result) == {"Authorization": "Bearer ***9999"}
        assert transport.call_count == 0


# ---------------------------------------------------------------------------
# OAuth2 token commands
# ---------------------------------------------------------------------------


class TestOAuth2Commands:
    def test_client_credentials(self, invoke, store_path: Path, mock_token_endpoint) -> None:
        transport = mock_token_endpoint(token_handler(access_token="new-access"))
        invoke("tenant", "add", "alice")
        invoke(*_oauth2_args(), "--scope", "hooks")

        result = invoke("webhook-auth", "client-credentials", "alice")

        assert result.exit_code == 0, result.output
        view = _data(result)
        assert view["access_token"] == "***cess"
        assert view["has_refresh_token"] is False
        assert form_body(transport.requests[0]) == {
            "client_id": "c",
            "client_secret": "s",
            "grant_type": "client_credentials",
            "scope": "hooks",
        }
        stored = FileTenantStore(store_path).require_username("alice")
        assert stored.webhook_oauth2_access_token == "new-access"

    def test_client_credentials_rejected(self, invoke, mock_token_endpoint) -> None:
        mock_token_endpoint(
            token_handler(status_code=401, body={"error": "invalid_client"})
        )
        invoke("tenant", "add", "alice")
        invoke(*_oauth2_args())

        result = invoke("webhook-auth", "client-credentials", "alice")

        assert result.exit_code == 3
        assert "invalid_client" in result.output

    def test_client_credentials_without_oauth2(self, invoke, mock_token_endpoint) -> None:
        transport = mock_token_endpoint(token_handler())
        invoke("tenant", "add", "alice")
        result = invoke("webhook-auth", "client-credentials", "alice")
        assert result.exit_code == 2
        assert transport.call_count == 0

    def test_exchange_code(self, invoke, store_path: Path, mock_token_endpoint) -> None:
        transport = mock_token_endpoint(
            token_handler(access_token="code-access", refresh_token="code-refresh")
        )
        invoke("tenant", "add", "alice")
        invoke(*_oauth2_args())

        result = invoke(
            "webhook-auth", "exchange-code", "alice", "the-code",
            "--redirect-uri", "https://app.example.com/cb",
        )

        assert result.exit_code == 0, result.output
        assert _data(result)["has_refresh_token"] is True
        body = form_body(transport.requests[0])
        assert body["grant_type"] == "authorization_code"
        assert body["code"] == "the-code"
        assert body["redirect_uri"] == "https://app.example.com/cb"
        stored = FileTenantStore(store_path).require_username("alice")
        assert stored.webhook_oauth2_refresh_token == "code-refresh"

    def test_token_refreshes_expired(self, invoke, store_path: Path, mock_token_endpoint) -> None:
        mock_token_endpoint(token_handler(access_token="fresh-access"))
        make_oauth2_tenant(
            FileTenantStore(store_path),
            username="alice",
            access_token="old-access",
            token_expiry=1,
            refresh_token="R",
        )

        result = invoke("webhook-auth", "token", "alice")

        assert result.exit_code == 0, result.output
        assert _data(result) == {
            "username": "alice",
            "status": "refreshed",
            "access_token": "***cess",
        }
        stored = FileTenantStore(store_path).require_username("alice")
        assert stored.webhook_oauth2_access_token == "fresh-access"
        assert stored.webhook_oauth2_refresh_token == "R"

    def test_token_falls_back_to_stale(self, invoke, store_path: Path, mock_token_endpoint) -> None:
        mock_token_endpoint(token_handler(status_code=500, body={"error": "server_error"}))
        make_oauth2_tenant(
            FileTenantStore(store_path),
            username="alice",
            access_token="old-token-0000",
            token_expiry=1,
            refresh_token="R",
        )

        result = invoke("webhook-auth", "token", "alice")

        assert result.exit_code == 0
        assert '"status": "stale"' in result.output
        assert "server_error" in result.output

    def test_token_for_non_oauth2_tenant(self, invoke) -> None:
        invoke("tenant", "add", "alice")
        result = invoke("webhook-auth", "token", "alice", quiet=False)
        assert result.exit_code == 0
        assert "does not use oauth2" in result.output

"""Helpers shared by the CLI sub-command modules."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import typer

from wagate.auth.store import FileTenantStore
from wagate.exceptions import GatewayError
from wagate.models import GatewayConfig, Tenant
from wagate.output import debug, error


def load_gateway(ctx: typer.Context) -> tuple[GatewayConfig, FileTenantStore]:
    """Resolve the gateway config and open the tenant store it points to."""
    from wagate.config import resolve_config

    obj: dict[str, Any] = ctx.obj or {}
    config = resolve_config(cli_store_path=obj.get("store_path"))
    assert config.store_path is not None
    debug(f"Tenant store: {config.store_path}")
    store = FileTenantStore(Path(config.store_path), admin_username=config.admin_username)
    return config, store


@contextmanager
def exit_on_error() -> Iterator[None]:
    """Report a :class:`GatewayError` on stderr and exit with its code."""
    try:
        yield
    except GatewayError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def tenant_summary(tenant: Tenant) -> dict[str, Any]:
    return {
        "id": tenant.id,
        "username": tenant.username,
        "session_name": tenant.effective_session_name,
        "callback_url": tenant.callback_url,
        "webhook_auth_type": tenant.webhook_auth_type.value,
        "created_at": tenant.created_at.isoformat(),
    }

"""Tenant commands -- create, inspect, and remove gateway tenants.

Provides the ``wagate tenant`` sub-command group. Every tenant owns one
messaging session (named after the tenant unless ``--session-name`` is
given) and one optional webhook callback URL.

Typical workflow::

    wagate tenant add alice --callback-url https://hooks.example.com/alice
    wagate tenant list
    wagate tenant remove alice --yes
"""

from __future__ import annotations

from typing import Optional

import typer

from wagate.commands._common import exit_on_error, load_gateway, tenant_summary
from wagate.output import info, print_record, print_table, success, suggest


tenant_app = typer.Typer(no_args_is_help=True)


@tenant_app.command("add")
def tenant_add(
    ctx: typer.Context,
    username: str = typer.Argument(help="Tenant username."),
    session_name: Optional[str] = typer.Option(
        None, "--session-name", help="Session name (defaults to the username)."
    ),
    callback_url: Optional[str] = typer.Option(
        None, "--callback-url", help="Webhook callback URL."
    ),
) -> None:
    """Create a tenant.

    The admin username is reserved and cannot own a session.

    Example::

        wagate tenant add alice --session-name alice-main
    """
    _, store = load_gateway(ctx)
    with exit_on_error():
        tenant = store.create_tenant(
            username, session_name=session_name, callback_url=callback_url
        )
    success(f"Tenant '{tenant.username}' created (id {tenant.id}).")
    print_record(tenant_summary(tenant))
    suggest(f"Configure webhook auth: wagate webhook-auth set {tenant.username} --type bearer --token ...")


@tenant_app.command("list")
def tenant_list(ctx: typer.Context) -> None:
    """List all tenants."""
    _, store = load_gateway(ctx)
    tenants = store.list_tenants()
    if not tenants:
        info("No tenants found.")
        return

    rows = [
        [
            str(t.id),
            t.username,
            t.effective_session_name,
            t.callback_url or "",
            t.webhook_auth_type.value,
        ]
        for t in tenants
    ]
    print_table(
        ["ID", "Username", "Session", "Callback URL", "Webhook Auth"],
        rows,
        title="Tenants",
    )


@tenant_app.command("show")
def tenant_show(
    ctx: typer.Context,
    username: str = typer.Argument(help="Tenant username."),
) -> None:
    """Show one tenant."""
    _, store = load_gateway(ctx)
    with exit_on_error():
        tenant = store.require_username(username)
    print_record(tenant_summary(tenant))


@tenant_app.command("remove")
def tenant_remove(
    ctx: typer.Context,
    username: str = typer.Argument(help="Tenant username."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Remove a tenant and its stored webhook credentials.

    The tenant's messaging session is not stopped by this command.
    """
    _, store = load_gateway(ctx)
    with exit_on_error():
        tenant = store.require_username(username)
        if not yes:
            typer.confirm(f"Remove tenant '{username}'?", abort=True)
        store.delete_tenant(tenant.id)
    success(f"Tenant '{username}' removed.")


@tenant_app.command("callback")
def tenant_callback(
    ctx: typer.Context,
    username: str = typer.Argument(help="Tenant username."),
    url: Optional[str] = typer.Argument(None, help="New webhook callback URL."),
    clear: bool = typer.Option(False, "--clear", help="Remove the callback URL."),
) -> None:
    """Set or clear a tenant's webhook callback URL.

    Example::

        wagate tenant callback alice https://hooks.example.com/alice
        wagate tenant callback alice --clear
    """
    from wagate.output import error

    if url is None and not clear:
        error("Provide a URL or --clear.")
        raise typer.Exit(code=2)
    if url is not None and clear:
        error("Use either a URL or --clear, not both.")
        raise typer.Exit(code=2)

    _, store = load_gateway(ctx)
    with exit_on_error():
        tenant = store.require_username(username)
        store.update_callback_url(tenant.id, None if clear else url)

    if clear:
        success(f"Callback URL cleared for '{username}'.")
    else:
        success(f"Callback URL for '{username}' set to {url}.")

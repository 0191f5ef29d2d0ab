"""Webhook auth commands -- configure how a tenant's webhooks authenticate.

Provides the ``wagate webhook-auth`` sub-command group:

* ``set`` replaces the tenant's policy (none, basic, bearer, oauth2) and
  clears any cached OAuth2 token.
* ``show`` prints the policy with secrets masked.
* ``exchange-code`` and ``client-credentials`` obtain an OAuth2 token
  explicitly and store it.
* ``token`` runs the same token resolution a webhook delivery would.
* ``headers`` prints the headers the next webhook call would carry.

Typical workflow::

    wagate webhook-auth set alice --type oauth2 \\
        --client-id abc --client-secret s3cret \\
        --token-url https://auth.example.com/token
    wagate webhook-auth client-credentials alice
    wagate webhook-auth headers alice
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

import typer

from wagate.auth import TokenBroker, configure_webhook_auth, create_default_resolver
from wagate.auth.settings import describe_webhook_auth, mask_secret
from wagate.auth.store import TenantStore
from wagate.commands._common import exit_on_error, load_gateway
from wagate.models import GatewayConfig, TokenRecord, WebhookAuthSettings, WebhookAuthType
from wagate.output import info, print_record, success, suggest, warning


webhook_auth_app = typer.Typer(no_args_is_help=True)


def _build_broker(store: TenantStore, config: GatewayConfig) -> TokenBroker:
    return TokenBroker.from_config(store, config.oauth2)


def _format_expiry(expiry_ms: Optional[int]) -> Optional[str]:
    if expiry_ms is None:
        return None
    return datetime.fromtimestamp(expiry_ms / 1000, tz=timezone.utc).isoformat()


def _mask_header(value: str) -> str:
    """Mask the credential part of an ``Authorization`` style header value."""
    scheme, _, credential = value.partition(" ")
    if not credential:
        return mask_secret(value) or ""
    return f"{scheme} {mask_secret(credential)}"


def _token_view(username: str, record: TokenRecord) -> dict[str, object]:
    return {
        "username": username,
        "access_token": mask_secret(record.access_token),
        "token_expiry": _format_expiry(record.token_expiry),
        "has_refresh_token": record.refresh_token is not None,
    }


@webhook_auth_app.command("set")
def webhook_auth_set(
    ctx: typer.Context,
    username: str = typer.Argument(help="Tenant username."),
    auth_type: WebhookAuthType = typer.Option(
        ..., "--type", "-t", case_sensitive=False, help="Auth type: none, basic, bearer, oauth2."
    ),
    auth_username: Optional[str] = typer.Option(
        None, "--username", help="Username (basic)."
    ),
    auth_password: Optional[str] = typer.Option(
        None, "--password", help="Password (basic)."
    ),
    bearer_token: Optional[str] = typer.Option(
        None, "--token", help="Static token (bearer)."
    ),
    client_id: Optional[str] = typer.Option(
        None, "--client-id", help="Client ID (oauth2)."
    ),
    client_secret: Optional[str] = typer.Option(
        None, "--client-secret", help="Client secret (oauth2)."
    ),
    token_url: Optional[str] = typer.Option(
        None, "--token-url", help="Token endpoint URL (oauth2)."
    ),
    scope: Optional[str] = typer.Option(
        None, "--scope", help="Requested scope (oauth2, optional)."
    ),
) -> None:
    """Replace a tenant's webhook auth policy.

    Fields required by the chosen type are validated before anything is
    written. Any cached OAuth2 token is cleared.

    Example::

        wagate webhook-auth set alice --type basic --username svc --password pw
    """
    config, store = load_gateway(ctx)
    resolver = create_default_resolver(_build_broker(store, config))
    settings = WebhookAuthSettings(
        auth_type=auth_type,
        auth_username=auth_username,
        auth_password=auth_password,
        auth_bearer_token=bearer_token,
        oauth2_client_id=client_id,
        oauth2_client_secret=client_secret,
        oauth2_token_url=token_url,
        oauth2_scope=scope,
    )

    with exit_on_error():
        tenant = store.require_username(username)
        configure_webhook_auth(store, resolver, tenant.id, settings)

    success(f"Webhook auth for '{username}' set to {auth_type.value}.")
    if auth_type == WebhookAuthType.OAUTH2:
        suggest(f"Obtain a token: wagate webhook-auth client-credentials {username}")


@webhook_auth_app.command("show")
def webhook_auth_show(
    ctx: typer.Context,
    username: str = typer.Argument(help="Tenant username."),
) -> None:
    """Show a tenant's webhook auth policy with secrets masked."""
    _, store = load_gateway(ctx)
    with exit_on_error():
        tenant = store.require_username(username)
    view = describe_webhook_auth(tenant)
    view["oauth2_token_expiry"] = _format_expiry(tenant.webhook_oauth2_token_expiry)
    print_record(view)


@webhook_auth_app.command("exchange-code")
def webhook_auth_exchange_code(
    ctx: typer.Context,
    username: str = typer.Argument(help="Tenant username."),
    code: str = typer.Argument(help="Authorization code issued by the provider."),
    redirect_uri: Optional[str] = typer.Option(
        None, "--redirect-uri", help="Redirect URI used in the authorization request."
    ),
) -> None:
    """Exchange an OAuth2 authorization code for tokens and store them."""
    config, store = load_gateway(ctx)
    broker = _build_broker(store, config)
    with exit_on_error():
        tenant = store.require_username(username)
        record = asyncio.run(
            broker.acquire_with_authorization_code(tenant, code, redirect_uri=redirect_uri)
        )
    success(f"OAuth2 token stored for '{username}'.")
    print_record(_token_view(username, record))


@webhook_auth_app.command("client-credentials")
def webhook_auth_client_credentials(
    ctx: typer.Context,
    username: str = typer.Argument(help="Tenant username."),
    scope: Optional[str] = typer.Option(
        None, "--scope", help="Scope to request (defaults to the configured scope)."
    ),
) -> None:
    """Obtain an OAuth2 token with the client-credentials grant and store it."""
    config, store = load_gateway(ctx)
    broker = _build_broker(store, config)
    with exit_on_error():
        tenant = store.require_username(username)
        record = asyncio.run(broker.acquire_with_client_credentials(tenant, scope=scope))
    success(f"OAuth2 token stored for '{username}'.")
    print_record(_token_view(username, record))


@webhook_auth_app.command("token")
def webhook_auth_token(
    ctx: typer.Context,
    username: str = typer.Argument(help="Tenant username."),
) -> None:
    """Resolve the tenant's OAuth2 token as a webhook delivery would.

    A cached token is reused, an expired one refreshed when possible. The
    result reports which of these happened.
    """
    config, store = load_gateway(ctx)
    broker = _build_broker(store, config)
    with exit_on_error():
        tenant = store.require_username(username)
    if tenant.webhook_auth_type != WebhookAuthType.OAUTH2:
        info(f"Tenant '{username}' does not use oauth2 webhook auth.")
        return

    result = asyncio.run(broker.obtain_token(tenant))
    if result.error:
        warning(result.error)
    print_record(
        {
            "username": username,
            "status": result.status.value,
            "access_token": mask_secret(result.token),
        }
    )


@webhook_auth_app.command("headers")
def webhook_auth_headers(
    ctx: typer.Context,
    username: str = typer.Argument(help="Tenant username."),
) -> None:
    """Print the auth headers the tenant's next webhook call would carry."""
    config, store = load_gateway(ctx)
    resolver = create_default_resolver(_build_broker(store, config))
    with exit_on_error():
        tenant = store.require_username(username)
    headers = asyncio.run(resolver.resolve(tenant))
    if not headers:
        info(f"No auth headers for '{username}'.")
        return
    print_record({name: _mask_header(value) for name, value in headers.items()})

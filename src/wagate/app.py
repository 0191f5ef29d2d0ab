"""Typer application and CLI entry point for the ``wagate`` operator tool.

The root app registers the ``tenant`` and ``webhook-auth`` sub-command
groups. :func:`main` is the console-script entry point declared in
``pyproject.toml``: it installs signal handlers, invokes the Typer app,
maps :class:`~wagate.exceptions.GatewayError` to its exit code, and writes
a crash log for anything unexpected.

See Also:
    :mod:`wagate.config`: Gateway configuration resolution.
    :mod:`wagate.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer
from rich.logging import RichHandler

from wagate import __version__
from wagate.commands.tenant import tenant_app
from wagate.commands.webhook_auth import webhook_auth_app
from wagate.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="wagate",
    help="Manage tenants and webhook authentication for the messaging gateway.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.add_typer(tenant_app, name="tenant", help="Tenant management.")
app.add_typer(webhook_auth_app, name="webhook-auth", help="Webhook authentication.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"wagate {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Attach a Rich log handler to the ``wagate`` logger when verbose."""
    from wagate.output import get_output

    logger = logging.getLogger("wagate")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    if verbose:
        handler = RichHandler(
            console=get_output().stderr_console,
            show_path=False,
            rich_tracebacks=False,
        )
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.NOTSET)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    store_path: Optional[str] = typer.Option(
        None, "--store", help="Path to the tenant store file."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~wagate.output.OutputManager` and stores
    shared options in ``ctx.obj`` for the sub-commands.
    """
    from wagate.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["store_path"] = store_path
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback under the data directory and return its path."""
    from wagate.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``wagate`` console script.

    :class:`~wagate.exceptions.GatewayError` exits with the error's
    ``exit_code``. Any other exception writes a crash log and exits with
    :data:`~wagate.exit_codes.EXIT_GENERIC_FAILURE`.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from wagate.exceptions import GatewayError
        from wagate.output import error

        if isinstance(exc, GatewayError):
            error(str(exc))
            sys.exit(exc.exit_code)

        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)

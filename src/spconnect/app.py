"""Typer application and CLI entry point for spconnect.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``connect``, ``credential``, ``token-cache``,
``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It invokes the Typer app and maps errors to exit codes.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`spconnect.config`: Global configuration and resiliency defaults.
    :mod:`spconnect.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import sys
import traceback
from datetime import datetime

import typer

from spconnect import __version__
from spconnect.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="spconnect",
    help="Connect to SharePoint sites with any supported authentication mode.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from spconnect.commands.config import config_app  # noqa: E402
from spconnect.commands.connect import connect_command  # noqa: E402
from spconnect.commands.credential import credential_app  # noqa: E402
from spconnect.commands.token_cache import token_cache_app  # noqa: E402

app.command("connect")(connect_command)
app.add_typer(credential_app, name="credential", help="Stored credential lookup.")
app.add_typer(token_cache_app, name="token-cache", help="Azure AD token cache management.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"spconnect {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Send library log records to stderr; DEBUG when verbose, warnings otherwise."""
    from rich.console import Console
    from rich.logging import RichHandler

    logger = logging.getLogger("spconnect")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not logger.handlers:
        # Console(stderr=True) looks up sys.stderr on every write
        logger.addHandler(
            RichHandler(console=Console(stderr=True), show_time=False, show_path=False)
        )


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
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmations."
    ),
    no_input: bool = typer.Option(
        False, "--no-input", help="Disable interactive prompts and browser logins."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~spconnect.output.OutputManager` and
    logging from CLI flags, and stores shared options in the Typer context
    so that sub-commands can read them via ``ctx.obj``.
    """
    from spconnect.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(
        OutputManager(format=fmt, no_color=no_color, quiet=quiet)
    )
    _configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["force"] = force
    ctx.obj["no_input"] = no_input


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from spconnect.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``spconnect`` console script.

    Unhandled :class:`~spconnect.exceptions.SpconnectError` instances
    cause a clean exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)
    except Exception as exc:
        from spconnect.exceptions import SpconnectError
        from spconnect.output import error

        if isinstance(exc, SpconnectError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)

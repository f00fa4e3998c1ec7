"""Typer application factory and CLI entry point for authgate.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``init``, ``login``, ``session``, ``health``,
``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, registers commands, and
invokes the Typer app. :class:`~authgate.exceptions.AuthGateError` exits
with the error's own exit code; anything else is written to a crash log
under the data directory.

See Also:
    :mod:`authgate.config`: Profile and global configuration resolution.
    :mod:`authgate.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from authgate import __version__
from authgate.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="authgate",
    help="Sign in through an external identity provider and manage the resulting session.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"authgate {__version__}")
        raise typer.Exit()


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
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="Profile name to use."
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
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Identity provider request timeout in seconds."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~authgate.output.OutputManager` and the
    ``authgate`` logger from CLI flags, and stores shared options in the
    Typer context so sub-commands can read them via ``ctx.obj``.
    """
    from authgate.output import OutputFormat, OutputManager, configure_logging, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)
    configure_logging(verbose, no_color=no_color)

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["timeout"] = timeout
    ctx.obj["verbose"] = verbose


def _register_commands() -> None:
    from authgate.commands.config import config_app
    from authgate.commands.health import health_command
    from authgate.commands.init import init_command
    from authgate.commands.login import login_app
    from authgate.commands.session import session_app

    app.command("init")(init_command)
    app.add_typer(login_app, name="login", help="Sign in with a password, one-time code, or OAuth.")
    app.add_typer(session_app, name="session", help="Inspect or clear the stored session.")
    app.command("health")(health_command)
    app.add_typer(config_app, name="config", help="Configuration and profile management.")


_register_commands()


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from authgate.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``authgate`` console script.

    Unhandled :class:`~authgate.exceptions.AuthGateError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
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
        from authgate.exceptions import AuthGateError
        from authgate.output import error

        if isinstance(exc, AuthGateError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)

"""Typer application and CLI entry point for specnav.

Registers the built-in sub-commands (``index``, ``lookup``, ``impl``,
``spec``, ``config``) on the root application. The :func:`main` function is
the console-script entry point declared in ``pyproject.toml``; unhandled
exceptions are written to a crash log under the data directory.

See Also:
    :mod:`specnav.config`: Configuration resolution.
    :mod:`specnav.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
from rich.logging import RichHandler

from specnav import __version__
from specnav.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="specnav",
    help="Navigate between OpenAPI specs and the code that implements them.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"specnav {__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool, console: Any = None) -> None:
    """Route library logging to stderr through Rich.

    ``--verbose`` shows the engine's debug events; otherwise only warnings
    and errors are printed.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(console=console, show_time=False, show_path=False, markup=False)
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)


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
    root: Optional[str] = typer.Option(
        None, "--root", "-r", help="Project root (default: $SPECNAV_ROOT or the current directory)."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    no_store: bool = typer.Option(
        False, "--no-store", help="Do not read or write the persistent index store."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~specnav.output.OutputManager` and
    logging from CLI flags, and stores shared options in ``ctx.obj``.
    """
    from specnav.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    setup_logging(verbose, output.stderr_console)

    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    ctx.obj["format"] = None if fmt == OutputFormat.AUTO else fmt.value
    ctx.obj["no_store"] = no_store
    ctx.obj["verbose"] = verbose


def _register_commands() -> None:
    from specnav.commands.config import config_app
    from specnav.commands.index import index_command
    from specnav.commands.lookup import lookup_command
    from specnav.commands.navigate import impl_command, spec_command

    app.command("index")(index_command)
    app.command("lookup")(lookup_command)
    app.command("impl")(impl_command)
    app.command("spec")(spec_command)
    app.add_typer(config_app, name="config", help="Configuration management.")


_register_commands()


def _setup_signal_handlers() -> None:
    """Exit with 130 on Ctrl-C instead of printing a traceback."""

    def _on_interrupt(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nInterrupted.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _on_interrupt)


def _write_crash_log(exc: Exception) -> Path:
    """Save the traceback of *exc* under the data directory and return the file."""
    from specnav.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    header = f"specnav {__version__}\nargv: {' '.join(sys.argv)}\n\n"
    body = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    log_path.write_text(header + body, encoding="utf-8")
    return log_path


def main() -> None:
    """Console-script entry point.

    A :class:`~specnav.exceptions.SpecnavError` escaping a command is
    printed and turned into its ``exit_code``; anything else is written to a
    crash log and exits with :data:`~specnav.exit_codes.EXIT_GENERIC_FAILURE`.
    """
    from specnav.exceptions import SpecnavError
    from specnav.output import error

    _setup_signal_handlers()
    try:
        app(standalone_mode=True)
    except SpecnavError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted.\n")
        sys.exit(130)
    except Exception as exc:
        log_path = _write_crash_log(exc)
        error(f"Unexpected error ({type(exc).__name__}: {exc}). Details: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)

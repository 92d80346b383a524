"""Console output for the specnav CLI.

Results and diagnostics never share a stream:

* **stdout** carries results only -- index summaries, lookup records and
  navigation targets. Editor integrations read it, so nothing else may be
  written there.
* **stderr** carries status lines, warnings, errors and hints.

Three result formats are supported. ``json`` is for programs, ``plain`` is
line-oriented text for pipes (navigation targets are printed as
``file:line: name``, the shape editors' quickfix lists parse), and ``rich``
renders tables on an interactive terminal. ``auto`` picks ``rich`` on a
colour-capable TTY and ``plain`` otherwise. ``NO_COLOR``, ``TERM=dumb`` and
``--no-color`` all disable colour.

The root callback in :mod:`specnav.app` builds one :class:`OutputManager`
and installs it with :func:`set_output`; commands call the module-level
helpers.
"""

from __future__ import annotations

import json
import os
import sys
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table


class OutputFormat(str, Enum):
    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


@dataclass(frozen=True)
class Location:
    """A navigation target: a position in a file and what is found there.

    Attributes:
        file: Project-relative path (absolute when outside the project).
        line: 1-based line number.
        name: What sits at the position (a symbol, or a spec node path).
        detail: Secondary text such as the symbol kind.
    """

    file: str
    line: int
    name: str
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_plain(self) -> str:
        text = f"{self.file}:{self.line}: {self.name}"
        return f"{text} ({self.detail})" if self.detail else text


# level -> (label, label style, text style, suppressed by --quiet)
_LEVELS: dict[str, tuple[str, Optional[str], Optional[str], bool]] = {
    "info": ("", None, None, True),
    "success": ("", None, "green", True),
    "hint": ("->", "dim", "dim", True),
    "warning": ("Warning:", "yellow", None, False),
    "error": ("Error:", "bold red", None, False),
}


class OutputManager:
    """Format results for stdout and diagnostics for stderr.

    Args:
        format: Requested result format; ``AUTO`` is resolved here.
        no_color: Force colour off in addition to ``NO_COLOR``/``TERM=dumb``.
        quiet: Drop informational diagnostics. Warnings and errors remain.
        verbose: Show :meth:`debug` messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format != OutputFormat.AUTO:
            self._format = format
        elif _is_tty() and not self._no_color:
            self._format = OutputFormat.RICH
        else:
            self._format = OutputFormat.PLAIN

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=self._format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        """Console bound to stderr; the CLI attaches its log handler to it."""
        return self._stderr

    # ------------------------------------------------------------------ #
    # Results (stdout)
    # ------------------------------------------------------------------ #

    def format_data(self, data: Any) -> None:
        """Print a summary mapping (or list) in the active format.

        Nested mappings are flattened to dotted keys in plain and rich
        output (``store.enabled``); JSON keeps the nesting.
        """
        if self._format == OutputFormat.JSON:
            self._write(json.dumps(data, indent=2, ensure_ascii=False, default=str))
            return

        if not isinstance(data, dict):
            for item in data if isinstance(data, list) else [data]:
                if isinstance(item, dict):
                    self._write("\t".join(str(v) for v in item.values()))
                else:
                    self._write(str(item))
            return

        pairs = list(_flatten(data))
        if self._format == OutputFormat.PLAIN:
            for key, value in pairs:
                self._write(f"{key}\t{value}")
        else:
            table = Table(show_header=False, box=None, pad_edge=False)
            table.add_column(style="bold cyan")
            table.add_column()
            for key, value in pairs:
                table.add_row(key, str(value))
            self._stdout.print(table)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows: objects keyed by header (JSON), TSV with a header line (plain), or a table."""
        if self._format == OutputFormat.JSON:
            self._write(json.dumps([dict(zip(headers, row)) for row in rows], indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self._write("\t".join(row))
        else:
            table = Table(title=title, header_style="bold cyan")
            for header in headers:
                table.add_column(header)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    def print_locations(self, locations: Iterable[Location], title: Optional[str] = None) -> None:
        """Print navigation targets, one per line in plain mode."""
        locations = list(locations)
        if self._format == OutputFormat.JSON:
            self._write(json.dumps([loc.to_dict() for loc in locations], indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            for loc in locations:
                self._write(loc.to_plain())
        else:
            table = Table(title=title, header_style="bold cyan")
            table.add_column("Location", style="cyan", no_wrap=True)
            table.add_column("Name")
            table.add_column("Detail", style="dim")
            for loc in locations:
                table.add_row(f"{loc.file}:{loc.line}", loc.name, loc.detail)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        self._diagnostic("info", message)

    def success(self, message: str) -> None:
        self._diagnostic("success", message)

    def suggest(self, message: str) -> None:
        """A next step for the user, e.g. a command to run."""
        self._diagnostic("hint", message)

    def warning(self, message: str) -> None:
        self._diagnostic("warning", message)

    def error(self, message: str) -> None:
        self._diagnostic("error", message)

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit(f"[debug] {message}", f"[dim]\\[debug] {message}[/dim]")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _diagnostic(self, level: str, message: str) -> None:
        label, label_style, text_style, quietable = _LEVELS[level]
        if quietable and self._quiet:
            return
        text = f"[{text_style}]{escape(message)}[/]" if text_style else escape(message)
        if label:
            self._emit(f"{label} {message}", f"[{label_style}]{label}[/] {text}")
        else:
            self._emit(message, text)

    def _emit(self, plain: str, markup: str) -> None:
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup)

    @staticmethod
    def _write(text: str) -> None:
        print(text, file=sys.stdout, flush=True)


def _flatten(data: dict[str, Any], prefix: str = "") -> Iterator[tuple[str, Any]]:
    for key, value in data.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict) and value:
            yield from _flatten(value, f"{name}.")
        elif isinstance(value, list):
            yield name, ", ".join(str(item) for item in value)
        else:
            yield name, value


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set to anything (even empty) or ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global instance and helpers
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """The installed manager, or a default one created on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def format_data(data: Any) -> None:
    get_output().format_data(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def print_locations(locations: Iterable[Location], title: Optional[str] = None) -> None:
    get_output().print_locations(locations, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)

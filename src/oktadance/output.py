"""Terminal output for the ``oktadance`` CLI.

Results -- the ``sid`` line, a session token, a session snapshot -- are the
only thing written to stdout, so ``eval "$(oktadance login)"`` and pipes
see nothing else. Factor menus, status lines, warnings, errors, and
``--trace`` dumps all go to stderr.

Colour is dropped when ``--no-color`` is given, ``NO_COLOR`` is set to any
value, or ``TERM=dumb``. In ``AUTO`` mode snapshots are syntax highlighted
only when stdout is a terminal.

One :class:`Terminal` is installed by :func:`~oktadance.app.main_callback`
via :func:`set_terminal`; MFA prompts reach it through :func:`get_terminal`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Iterator, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.text import Text


class OutputMode(str, Enum):
    """How structured results are rendered on stdout."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class Terminal:
    """Stdout for results, stderr for everything a person reads.

    Args:
        mode: Rendering of structured results. ``AUTO`` picks ``RICH`` on an
            interactive, colour-capable stdout and ``PLAIN`` otherwise.
        no_color: Disable colour on both streams.
        quiet: Drop info and success lines. Warnings, errors, and trace
            dumps are always shown.
        verbose: Show debug lines.
    """

    def __init__(
        self,
        mode: OutputMode = OutputMode.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self.no_color = no_color or color_disabled_by_env()
        self.quiet = quiet
        self.verbose = verbose
        if mode == OutputMode.AUTO:
            rich_ok = stdout_is_terminal() and not self.no_color
            mode = OutputMode.RICH if rich_ok else OutputMode.PLAIN
        self.mode = mode
        self.out = Console(
            file=sys.stdout,
            no_color=self.no_color,
            force_terminal=mode == OutputMode.RICH,
            highlight=False,
        )
        self.err = Console(file=sys.stderr, no_color=self.no_color, stderr=True, highlight=False)

    # --- results (stdout) ---

    def result(self, text: str) -> None:
        """Write one result line to stdout."""
        print(text, file=sys.stdout, flush=True)

    def document(self, data: Any) -> None:
        """Write a JSON-compatible result (e.g. a session snapshot) to stdout."""
        if self.mode == OutputMode.PLAIN:
            for line in _plain_lines(data):
                self.result(line)
            return
        rendered = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self.mode == OutputMode.JSON:
            self.result(rendered)
        else:
            self.out.print(Syntax(rendered, "json", theme="monokai", word_wrap=True))

    # --- status (stderr) ---

    def status(
        self,
        message: str,
        style: str = "",
        label: Optional[str] = None,
        always: bool = False,
    ) -> None:
        """Write a status line to stderr; skipped under ``--quiet`` unless *always*."""
        if self.quiet and not always:
            return
        line = f"{label}: {message}" if label else message
        if self.no_color:
            print(line, file=sys.stderr, flush=True)
        else:
            self.err.print(Text(line, style=style))

    def info(self, message: str) -> None:
        self.status(message)

    def success(self, message: str) -> None:
        self.status(message, style="green")

    def warning(self, message: str) -> None:
        self.status(message, style="yellow", label="Warning", always=True)

    def error(self, message: str) -> None:
        self.status(message, style="bold red", label="Error", always=True)

    def debug(self, message: str) -> None:
        if self.verbose:
            self.status(f"[debug] {message}", style="dim", always=True)

    def trace(self, operation: str, text: str) -> None:
        """Diagnostic sink for ``--trace``: one raw HTTP dump per call."""
        print(f"--- {operation}\n{text.rstrip()}\n", file=sys.stderr, flush=True)


def _plain_lines(data: Any) -> Iterator[str]:
    """Tab-separated ``key<TAB>value`` lines; nested values stay JSON."""
    if not isinstance(data, dict):
        yield str(data)
        return
    for key, value in data.items():
        if value is None:
            value = ""
        elif isinstance(value, (dict, list)):
            value = json.dumps(value, default=str)
        yield f"{key}\t{value}"


def stdout_is_terminal() -> bool:
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty())


def color_disabled_by_env() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


_terminal: Optional[Terminal] = None


def get_terminal() -> Terminal:
    """Return the installed :class:`Terminal`, creating a default one on first use."""
    global _terminal
    if _terminal is None:
        _terminal = Terminal()
    return _terminal


def set_terminal(terminal: Terminal) -> None:
    global _terminal
    _terminal = terminal


def reset_terminal() -> None:
    """Forget the installed :class:`Terminal`. Used by tests."""
    global _terminal
    _terminal = None

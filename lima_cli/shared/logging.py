"""Rich-based logging helpers shared across CLI tools."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme
from rich.traceback import install

install(show_locals=False)

_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "debug": "dim",
    }
)

# stdout carries tables and transaction text; log chatter goes to stderr.
# Highlighting is off so account names like "Assets:US-Checking" render without
# injected ANSI sequences.
_stdout_console = Console(theme=_THEME, highlight=False)
_stderr_console = Console(stderr=True, theme=_THEME, highlight=False)
_verbose_console = Console(stderr=True, theme=_THEME, highlight=False)

LIBRARY_LOGGER_NAME = "lima_cli"


@dataclass(slots=True)
class Logger:
    """Lightweight logger facade backed by Rich consoles."""

    verbose: bool = False

    @property
    def console(self) -> Console:
        return _stdout_console

    def info(self, message: str) -> None:
        _stderr_console.print(message, style="info", markup=False)

    def success(self, message: str) -> None:
        _stderr_console.print(message, style="success", markup=False)

    def warning(self, message: str) -> None:
        _stderr_console.print(message, style="warning", markup=False)

    def error(self, message: str) -> None:
        _stderr_console.print(message, style="error", markup=False)

    def debug(self, message: str) -> None:
        if self.verbose:
            _verbose_console.print(message, style="debug", markup=False)


def get_logger(verbose: bool = False) -> Logger:
    """Return a configured Logger instance."""
    return Logger(verbose=verbose)


def configure_library_logging(verbose: bool = False) -> logging.Logger:
    """Send records from ``logging.getLogger(__name__)`` in lima_cli modules to stderr.

    Library modules log through the standard ``logging`` tree; the CLI attaches a
    single Rich handler at the package root. Warnings always show, debug chatter
    (include traversal, cache misses, saves) only with ``verbose``.
    """
    library_logger = logging.getLogger(LIBRARY_LOGGER_NAME)
    library_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(handler, RichHandler) for handler in library_logger.handlers):
        handler = RichHandler(
            console=_verbose_console,
            show_time=False,
            show_path=False,
            markup=False,
        )
        library_logger.addHandler(handler)
    return library_logger

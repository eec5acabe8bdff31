"""Shared utilities for CLI commands."""

from __future__ import annotations

import logging
import sys
import traceback
from typing import TYPE_CHECKING

from specctra_tools.exceptions import SpecctraToolsError

if TYPE_CHECKING:
    from rich.console import Console

__all__ = ["configure_logging", "format_error", "print_error", "get_error_console"]

_error_console: Console | None = None


def get_error_console() -> Console:
    """Get or create the Rich console for error output (stderr)."""
    global _error_console
    if _error_console is None:
        from rich.console import Console

        _error_console = Console(stderr=True, force_terminal=None)
    return _error_console


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route library log records to stderr at a level set by -v/-q."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def print_error(e: Exception, verbose: bool = False) -> None:
    """
    Print an exception to stderr.

    Args:
        e: The exception to print
        verbose: If True, print the full stack trace instead
    """
    if verbose:
        print(traceback.format_exc(), file=sys.stderr)
        return

    console = get_error_console()
    if console.is_terminal:
        console.print(f"[bold red]Error:[/bold red] {e}", highlight=False)
    else:
        print(format_error(e), file=sys.stderr)


def format_error(e: Exception) -> str:
    """Plain-text form of an exception for non-TTY output."""
    if isinstance(e, SpecctraToolsError):
        return f"Error: {e}"
    return f"Error: {type(e).__name__}: {e}"

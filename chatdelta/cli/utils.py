"""Shared CLI utilities.

Provides error handling and message display for all CLI commands.
"""

import functools
from typing import Callable, TypeVar

import structlog
import typer

from chatdelta.utils.exceptions import ChatDeltaError, OperationCancelledError

logger = structlog.get_logger()

# Type variable for decorator
F = TypeVar("F", bound=Callable)


def handle_errors(func: F) -> F:
    """Decorator for consistent error handling.

    Fatal errors print a single ``Error: <message>`` line to stderr and
    exit with code 1.

    Args:
        func: Function to wrap.

    Returns:
        Wrapped function with error handling.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except ChatDeltaError as e:
            logger.error("command_failed", error_kind=e.kind.value, error=str(e))
            display_error(f"Error: {e}")
            raise typer.Exit(code=1)
        except KeyboardInterrupt:
            display_error(f"Error: {OperationCancelledError()}")
            raise typer.Exit(code=1)
        except Exception as e:
            logger.exception("command_failed")
            display_error(f"Error: {e}")
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


def display_success(message: str) -> None:
    """Display a success message on stderr."""
    typer.secho(message, fg=typer.colors.GREEN, err=True)


def display_warning(message: str) -> None:
    """Display a warning message on stderr."""
    typer.secho(message, fg=typer.colors.YELLOW, err=True)


def display_error(message: str) -> None:
    """Display an error message on stderr."""
    typer.secho(message, fg=typer.colors.RED, err=True)


def display_info(message: str) -> None:
    """Display a progress message on stderr."""
    typer.secho(message, fg=typer.colors.CYAN, err=True)


class Console:
    """Status output honoring --quiet and --verbose.

    Rendered results go to stdout through ``typer.echo``; everything
    printed here goes to stderr.
    """

    def __init__(self, quiet: bool = False, verbose: bool = False):
        self.quiet = quiet
        self.verbose = verbose

    def info(self, message: str) -> None:
        if not self.quiet:
            display_info(message)

    def detail(self, message: str) -> None:
        """Shown only with --verbose."""
        if self.verbose and not self.quiet:
            display_success(message)

    def success(self, message: str) -> None:
        if not self.quiet:
            display_success(message)

    def warn(self, message: str) -> None:
        if not self.quiet:
            display_warning(message)

    def failure(self, message: str) -> None:
        if not self.quiet:
            display_error(message)


def plural(count: int, word: str) -> str:
    """``plural(3, "response")`` -> ``"3 responses"``"""
    return f"{count} {word}{'' if count == 1 else 's'}"

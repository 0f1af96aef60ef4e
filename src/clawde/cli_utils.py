"""Shared CLI utilities for clawde.

This module contains exit codes, the console singleton, message helpers
and logging setup shared by the CLI commands.
"""

import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

# Exit codes following Unix conventions
EXIT_SUCCESS: int = 0
EXIT_ERROR: int = 1  # General error (file not found, unreadable file, etc.)
EXIT_CONFIG_ERROR: int = 2  # Configuration/usage error
EXIT_SESSION_ERROR: int = 3  # Wrapped command could not be started
EXIT_SIGINT: int = 130  # 128 + SIGINT (2) - Interrupted by Ctrl+C

# TTY detection for Rich markup
# When stdout is piped, Rich automatically strips ANSI codes
_is_tty = sys.stdout.isatty()

# Rich console for output
console = Console(force_terminal=_is_tty, no_color=not _is_tty)

# Module logger
logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _error(message: str) -> None:
    """Display error message with red styling.

    Args:
        message: Error message to display.

    """
    console.print(f"[red]Error:[/red] {message}")


def _info(message: str) -> None:
    """Display info message with blue styling."""
    console.print(f"[blue]Info:[/blue] {message}")


def _success(message: str) -> None:
    """Display success message with green styling."""
    console.print(f"[green]✓[/green] {message}")


def _warning(message: str) -> None:
    """Display warning message with yellow styling.

    Args:
        message: Warning message to display.

    """
    console.print(f"[yellow]Warning:[/yellow] {message}")


def _resolve_level(verbose: bool, quiet: bool, level: str | None, default: int) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.ERROR
    if level is not None:
        return _LEVELS[level.lower()]
    return default


def _setup_logging(
    verbose: bool,
    quiet: bool,
    log_file: Path | None = None,
    level: str | None = None,
) -> None:
    """Configure logging based on verbosity flags.

    Args:
        verbose: If True, set DEBUG level.
        quiet: If True, set ERROR level.
        log_file: Write plain-text logs to this file instead of the console.
        level: Configured level name (debug, info, warning, error), used
            when neither flag is given.

    Note:
        verbose and quiet are mutually exclusive. If both are True,
        verbose takes precedence.

        Without a configured level, console logging defaults to WARNING
        and file logging to INFO.

    """
    resolved = _resolve_level(verbose, quiet, level, logging.INFO if log_file else logging.WARNING)

    # Clear any existing handlers to avoid duplicates
    logging.root.handlers.clear()

    handler: logging.Handler
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    else:
        handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    handler.setLevel(resolved)

    logging.root.setLevel(resolved)
    logging.root.addHandler(handler)


def _silence_logging() -> None:
    """Drop all log output (interactive sessions without a log file)."""
    logging.root.handlers.clear()
    logging.root.addHandler(logging.NullHandler())
    logging.root.setLevel(logging.CRITICAL + 1)


def _validate_directory(path: str) -> Path:
    """Validate and resolve a directory argument.

    Args:
        path: Path to a directory.

    Returns:
        Resolved absolute Path.

    Raises:
        typer.Exit: If path doesn't exist or isn't a directory.

    """
    resolved = Path(path).resolve()

    if not resolved.exists():
        _error(f"Directory not found: {path}")
        raise typer.Exit(code=EXIT_ERROR)

    if not resolved.is_dir():
        _error(f"Path must be a directory, got file: {path}")
        raise typer.Exit(code=EXIT_ERROR)

    return resolved

"""Turns fsd-migrate exceptions into console messages and exit codes."""

from __future__ import annotations

import functools
import logging
import os
import traceback

import typer

from fsd_migrate.errors import (
    BackupNotFoundError,
    FsdError,
    OperationCancelledError,
    PhaseError,
    ProjectNotFoundError,
    TransformerNotFoundError,
)
from fsd_migrate.ui import console

logger = logging.getLogger("fsd_migrate.error_handler")

# Follow-up suggestion printed under the error, first matching type wins
HINTS: list[tuple[type[FsdError], str]] = [
    (BackupNotFoundError, "Run 'fsd-migrate backup list' to see available backups."),
    (
        TransformerNotFoundError,
        "Install a transformer package for this stack, or publish one under the "
        "'fsd_migrate.transformers' entry point group.",
    ),
    (PhaseError, "Run 'fsd-migrate backup restore <id>' to return to the pre-migration state."),
    (ProjectNotFoundError, "Pass the project root as the first argument."),
]


def _debug_mode() -> bool:
    """FSD_DEBUG=1 adds error context and tracebacks."""
    return os.environ.get("FSD_DEBUG", "").lower() in ("1", "true", "yes")


def _hint_for(error: FsdError) -> str | None:
    for error_type, hint in HINTS:
        if isinstance(error, error_type):
            return hint
    return None


def _render(error: FsdError) -> None:
    if isinstance(error, OperationCancelledError):
        console.print(f"\n[warning]{error}[/warning]")
        return

    console.print(f"\n[error]Error:[/error] {error}")
    if _debug_mode():
        for key, value in error.context.items():
            if value:
                console.print(f"  [dim]{key}:[/dim] {value}")

    hint = _hint_for(error)
    if hint:
        console.print(f"[dim]{hint}[/dim]")


def _print_traceback() -> None:
    if _debug_mode():
        console.print(f"\n[dim]{traceback.format_exc()}[/dim]")


def handle_errors(func):
    """Wrap a command so FsdError and stray exceptions end in a clean exit.

    FsdError and ValueError exit with 1, Ctrl-C with 130. Anything else is
    reported as unexpected and also exits with 1.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except FsdError as e:
            logger.debug("Command failed", exc_info=True)
            _render(e)
            _print_traceback()
            raise typer.Exit(e.exit_code)
        except ValueError as e:
            console.print(f"\n[error]Error:[/error] {e}")
            _print_traceback()
            raise typer.Exit(1)
        except KeyboardInterrupt:
            console.print("\n[dim]Interrupted.[/dim]")
            raise typer.Exit(130)
        except (typer.Exit, typer.Abort, SystemExit):
            raise
        except Exception as e:
            console.print(f"\n[error]Unexpected error:[/error] {e}")
            _print_traceback()
            if not _debug_mode():
                console.print("[dim]Set FSD_DEBUG=1 for full traceback.[/dim]")
            raise typer.Exit(1)

    return wrapper

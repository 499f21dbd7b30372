"""Custom exception hierarchy for fsd-migrate.

All fsd-migrate exceptions derive from FsdError. Each exception carries
an optional ``context`` dict with structured metadata (project path,
backup id, phase name, etc.) that the CLI error handler can render.

Exception hierarchy::

    FsdError
    ├── ProjectNotFoundError
    ├── BackupError
    │   └── BackupNotFoundError
    ├── TransformerNotFoundError
    ├── PhaseError
    ├── MigrationValidationError
    ├── OperationCancelledError
    └── ConfigError
"""
from __future__ import annotations

from typing import Optional


class FsdError(Exception):
    """Base class for all fsd-migrate exceptions.

    Args:
        message: Human-readable error description.
        context: Optional dict of structured metadata.
    """

    exit_code: int = 1

    def __init__(self, message: str, context: Optional[dict] = None):
        self.context = context or {}
        super().__init__(message)


class ProjectNotFoundError(FsdError):
    """Raised when the project path is missing or is not a directory."""

    def __init__(self, project_path: str):
        super().__init__(
            f"Not a project directory: {project_path}",
            context={"project": project_path},
        )


# ── Backup Errors ──────────────────────────────────────────────────

class BackupError(FsdError):
    """Raised when creating, restoring or deleting a snapshot fails."""

    def __init__(self, message: str, backup_id: str = "", project_path: str = ""):
        super().__init__(
            message,
            context={"backup": backup_id, "project": project_path},
        )


class BackupNotFoundError(BackupError):
    """Raised when a backup id has no snapshot directory or metadata."""

    def __init__(self, backup_id: str, project_path: str = ""):
        super().__init__(
            f"Backup not found: {backup_id}",
            backup_id=backup_id,
            project_path=project_path,
        )
        self.backup_id = backup_id


# ── Migration Errors ───────────────────────────────────────────────

class TransformerNotFoundError(FsdError):
    """Raised when no registered transformer matches a project type."""

    def __init__(self, project_type: str, available: Optional[list[str]] = None):
        available_str = f". Registered: {', '.join(available)}" if available else ""
        super().__init__(
            f"No transformer available for project type: {project_type}{available_str}",
            context={"project_type": project_type},
        )
        self.project_type = project_type


class PhaseError(FsdError):
    """Raised when a transformer hook fails. ``phase`` names the failed phase."""

    def __init__(self, phase: str, message: str, project_type: str = ""):
        super().__init__(
            f"Migration failed in phase '{phase}': {message}",
            context={"phase": phase, "project_type": project_type},
        )
        self.phase = phase


class MigrationValidationError(FsdError):
    """Raised when post-migration validation reports blocking issues."""

    def __init__(self, issues: list[str]):
        super().__init__(
            "Migration validation failed: " + "; ".join(issues),
            context={"issues": issues},
        )
        self.issues = issues


class OperationCancelledError(FsdError):
    """Raised when the caller declines a confirmation."""
    pass


class ConfigError(FsdError):
    """Raised when configuration is invalid."""
    pass

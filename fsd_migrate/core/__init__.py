"""Service layer for fsd-migrate.

All services take plain option bags and return typed dataclasses. Services
never import from fsd_migrate.ui, fsd_migrate.cli, or typer. Consumer
layers (CLI, host tools) handle presentation and prompting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from fsd_migrate.analyzers.models import AnalysisResult
    from fsd_migrate.core.config_service import ResolvedConfig


# ── Option Bags ────────────────────────────────────────────────────

@dataclass
class MigratorOptions:
    """Options for a single migration run."""

    dry_run: bool = False
    auto_backup: bool = True
    confirm_steps: bool = True
    verbose: bool = False

    @classmethod
    def from_config(cls, config: ResolvedConfig) -> MigratorOptions:
        return cls(
            dry_run=config.get_bool("migration.dry_run", False),
            auto_backup=config.get_bool("migration.auto_backup", True),
            confirm_steps=config.get_bool("migration.confirm_steps", True),
            verbose=config.get_bool("migration.verbose", False),
        )

    def to_dict(self) -> dict:
        return {
            "dryRun": self.dry_run,
            "autoBackup": self.auto_backup,
            "confirmSteps": self.confirm_steps,
            "verbose": self.verbose,
        }


@dataclass
class BackupOptions:
    """Options used to create a snapshot. Persisted as the snapshot's ``config``."""

    include_node_modules: bool = False
    include_git: bool = False
    description: str = "Pre-migration backup"

    @classmethod
    def from_config(cls, config: ResolvedConfig) -> BackupOptions:
        return cls(
            include_node_modules=config.get_bool("backup.include_node_modules", False),
            include_git=config.get_bool("backup.include_git", False),
            description=config.get("backup.description", "Pre-migration backup"),
        )

    @classmethod
    def from_dict(cls, d: dict) -> BackupOptions:
        return cls(
            include_node_modules=d.get("includeNodeModules", False),
            include_git=d.get("includeGit", False),
            description=d.get("description", "Pre-migration backup"),
        )

    def to_dict(self) -> dict:
        return {
            "includeNodeModules": self.include_node_modules,
            "includeGit": self.include_git,
            "description": self.description,
        }


@dataclass
class RestoreOptions:
    """Options for restoring a snapshot over the project tree."""

    confirm_overwrite: bool = True
    create_current_backup: bool = True


@dataclass
class CleanupOptions:
    """Retention policy: ``max_age`` in days, ``max_count`` snapshots kept."""

    max_age: int = 30
    max_count: int = 10

    @classmethod
    def from_config(cls, config: ResolvedConfig) -> CleanupOptions:
        return cls(
            max_age=config.get_int("cleanup.max_age", 30),
            max_count=config.get_int("cleanup.max_count", 10),
        )


# ── Results ────────────────────────────────────────────────────────

@dataclass
class ValidationResult:
    """Outcome of the post-migration sanity checks."""

    valid: bool = True
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def raise_for_issues(self) -> None:
        """Raise MigrationValidationError if any blocking issue was found."""
        if not self.valid:
            from fsd_migrate.errors import MigrationValidationError

            raise MigrationValidationError(self.issues)

    def to_dict(self) -> dict:
        return {"valid": self.valid, "issues": self.issues, "warnings": self.warnings}


@dataclass
class MigrationOutcome:
    """Result of ``Migrator.migrate()``."""

    success: bool
    state: str
    backup_id: Optional[str] = None
    migration_log: list[dict[str, Any]] = field(default_factory=list)
    analysis: Optional[AnalysisResult] = None
    reason: Optional[str] = None  # "cancelled", "phase_failed", "validation_failed"
    error: Optional[str] = None
    phase: Optional[str] = None
    validation: Optional[ValidationResult] = None
    rolled_back: bool = False
    instructions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "state": self.state,
            "backupId": self.backup_id,
            "reason": self.reason,
            "error": self.error,
            "phase": self.phase,
            "rolledBack": self.rolled_back,
            "validation": self.validation.to_dict() if self.validation else None,
            "migrationLog": self.migration_log,
            "analysis": self.analysis.to_dict() if self.analysis else None,
        }


@dataclass
class MigrationReport:
    """A migration report as exported by ``Migrator.export_migration_report``."""

    data: dict
    output_path: Optional[Path] = None
    written: bool = False

"""Migration orchestrator.

Runs one migration of one project:

    analyze -> confirm -> back up -> six transformer phases -> validate

with an optional rollback to the snapshot when a phase or the validation
fails. Every step is appended to ``migration_log`` and can be exported as
a JSON or YAML report.

The Migrator never prompts. Confirmation is delegated to callbacks
supplied by the caller; without a callback the migration proceeds and a
failure is left as-is (no rollback).
"""

from __future__ import annotations

import enum
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from fsd_migrate.analyzers.models import AnalysisResult
from fsd_migrate.analyzers.project_analyzer import ProjectAnalyzer
from fsd_migrate.core import (
    BackupOptions,
    MigrationOutcome,
    MigrationReport,
    MigratorOptions,
    RestoreOptions,
    ValidationResult,
)
from fsd_migrate.core.backup_service import BackupStore, iso_timestamp
from fsd_migrate.core.transformers import (
    PHASE_TITLES,
    PHASES,
    PhaseContext,
    TransformerRegistry,
    get_hook,
)
from fsd_migrate.errors import FsdError, PhaseError

logger = logging.getLogger("fsd_migrate.migrator")

DRY_RUN_BACKUP_ID = "dry-run-backup"

# Checked after a migration; missing files are warnings only
EXPECTED_FILES = ["package.json", "src/main.js"]

REPORT_FORMATS = ("json", "yaml")


class MigrationState(str, enum.Enum):
    PENDING = "pending"
    ANALYZING = "analyzing"
    CANCELLED = "cancelled"
    CONFIRMED = "confirmed"
    BACKING_UP = "backing-up"
    EXECUTING_PHASE = "executing-phase"
    VALIDATING = "validating"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled-back"


class Migrator:
    """Drives a single migration run for one project."""

    def __init__(
        self,
        project_path: Path,
        options: Optional[MigratorOptions] = None,
        *,
        analyzer: Optional[ProjectAnalyzer] = None,
        backup_store: Optional[BackupStore] = None,
        registry: Optional[TransformerRegistry] = None,
        backup_options: Optional[BackupOptions] = None,
        confirm_migration: Optional[Callable[[AnalysisResult], bool]] = None,
        confirm_rollback: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self.project_path = Path(project_path).resolve()
        self.options = options or MigratorOptions()
        self.analyzer = analyzer or ProjectAnalyzer()
        self.backup_store = backup_store or BackupStore(self.project_path)
        self.registry = registry or TransformerRegistry()
        self.backup_options = backup_options or BackupOptions()
        self.confirm_migration = confirm_migration
        self.confirm_rollback = confirm_rollback

        self.migration_log: list[dict[str, Any]] = []
        self.analysis: Optional[AnalysisResult] = None
        self.state = MigrationState.PENDING
        self.current_phase: Optional[str] = None

    @classmethod
    def from_config(cls, project_path: Path, **kwargs: Any) -> Migrator:
        """Build a Migrator whose options come from the layered config."""
        from fsd_migrate.core.config_service import get_config_service

        config = get_config_service(project_path).resolve()
        kwargs.setdefault("options", MigratorOptions.from_config(config))
        kwargs.setdefault("backup_options", BackupOptions.from_config(config))
        kwargs.setdefault(
            "analyzer",
            ProjectAnalyzer(target_framework=config.get("migration.target_framework", "vue")),
        )
        return cls(project_path, **kwargs)

    # ── Transformers ──

    def register_transformer(self, project_type: str, transformer: Any) -> None:
        """Register a transformer for a project type."""
        self.registry.register(project_type, transformer)

    def get_transformer(self, project_type: str) -> Optional[Any]:
        return self.registry.get(project_type)

    # ── Full run ──

    def migrate(self) -> MigrationOutcome:
        """Run the complete migration.

        Returns:
            A MigrationOutcome. Cancellation, phase failures and validation
            failures are reported here rather than raised.

        Raises:
            ProjectNotFoundError: If the project directory does not exist.
            TransformerNotFoundError: If no transformer matches the project
                type. Raised before any backup or file change.
            BackupError: If the pre-migration snapshot cannot be created.
        """
        self._set_state(MigrationState.ANALYZING)
        analysis = self.analyzer.analyze(self.project_path)
        self.analysis = analysis
        self.log_step(
            "analysis_completed",
            projectType=analysis.project_type,
            complexity=analysis.migration_complexity,
            complexityScore=analysis.complexity_score,
        )

        try:
            transformer = self.registry.resolve(analysis.project_type)
        except FsdError as e:
            self._set_state(MigrationState.FAILED)
            self.log_step("transformer_missing", projectType=analysis.project_type, error=str(e))
            raise

        if not self._confirm(analysis):
            self._set_state(MigrationState.CANCELLED)
            self.log_step("migration_cancelled")
            return self._outcome(False, reason="cancelled")
        self._set_state(MigrationState.CONFIRMED)

        backup_id = None
        if self.options.auto_backup:
            self._set_state(MigrationState.BACKING_UP)
            try:
                backup_id = self.create_backup()
            except FsdError as e:
                self._set_state(MigrationState.FAILED)
                self.log_step("backup_failed", error=str(e))
                raise

        try:
            self.execute_migration(analysis, transformer=transformer)
        except PhaseError as e:
            self._set_state(MigrationState.FAILED)
            logger.error("Migration failed in phase %s: %s", e.phase, e)
            rolled_back = self._offer_rollback(backup_id)
            return self._outcome(
                False,
                backup_id=backup_id,
                reason="phase_failed",
                error=str(e),
                phase=e.phase,
                rolled_back=rolled_back,
            )

        self._set_state(MigrationState.VALIDATING)
        validation = self.validate_migration()
        if not validation.valid:
            self._set_state(MigrationState.FAILED)
            rolled_back = self._offer_rollback(backup_id)
            return self._outcome(
                False,
                backup_id=backup_id,
                reason="validation_failed",
                error="; ".join(validation.issues),
                validation=validation,
                rolled_back=rolled_back,
            )

        self._set_state(MigrationState.COMPLETED)
        self.log_step("migration_completed", backupId=backup_id)
        return self._outcome(
            True,
            backup_id=backup_id,
            validation=validation,
            instructions=self.post_migration_instructions(analysis),
        )

    def _confirm(self, analysis: AnalysisResult) -> bool:
        if self.options.dry_run:
            self.log_step("dry_run", message="Dry run mode - no changes will be made")
            return True
        if not self.options.confirm_steps or self.confirm_migration is None:
            return True
        return bool(self.confirm_migration(analysis))

    def _outcome(self, success: bool, **kwargs: Any) -> MigrationOutcome:
        return MigrationOutcome(
            success=success,
            state=self.state.value,
            migration_log=self.migration_log,
            analysis=self.analysis,
            **kwargs,
        )

    def _set_state(self, state: MigrationState) -> None:
        logger.debug("Migration state: %s -> %s", self.state.value, state.value)
        self.state = state

    # ── Backup / rollback ──

    def create_backup(self) -> str:
        """Snapshot the project before migrating. Dry runs return a placeholder id."""
        if self.options.dry_run:
            self.log_step("backup_created", backupId=DRY_RUN_BACKUP_ID, dryRun=True)
            return DRY_RUN_BACKUP_ID

        backup_id = self.backup_store.create_backup(self.backup_options)
        self.log_step("backup_created", backupId=backup_id)
        return backup_id

    def _offer_rollback(self, backup_id: Optional[str]) -> bool:
        if not backup_id:
            return False
        if self.confirm_rollback is None or not self.confirm_rollback(backup_id):
            self.log_step("rollback_declined", backupId=backup_id)
            return False
        return self.rollback(backup_id)

    def rollback(self, backup_id: str) -> bool:
        """Restore the project from a snapshot.

        Returns:
            True on success (or in dry-run mode), False if the restore failed.
        """
        logger.info("Rolling back to backup: %s", backup_id)
        if self.options.dry_run:
            self.log_step("rollback_skipped", backupId=backup_id, dryRun=True)
            return True

        try:
            self.backup_store.restore_backup(
                backup_id,
                RestoreOptions(confirm_overwrite=False, create_current_backup=True),
            )
        except FsdError as e:
            logger.error("Rollback failed: %s", e)
            self.log_step("rollback_failed", backupId=backup_id, error=str(e))
            return False

        self._set_state(MigrationState.ROLLED_BACK)
        self.log_step("rollback_completed", backupId=backup_id)
        return True

    # ── Phases ──

    def execute_migration(self, analysis: AnalysisResult, transformer: Any = None) -> None:
        """Run all six phases in order against the project's transformer.

        Raises:
            TransformerNotFoundError: Before any phase runs, if no
                transformer matches ``analysis.project_type``.
            PhaseError: On the first failing phase; later phases are not run.
        """
        if transformer is None:
            transformer = self.registry.resolve(analysis.project_type)

        self.log_step("migration_started", projectType=analysis.project_type)
        for number, phase in enumerate(PHASES, start=1):
            logger.info("Phase %d: %s", number, PHASE_TITLES[phase])
            self.execute_phase(phase, transformer, analysis)
        self.current_phase = None

    def execute_phase(self, phase: str, transformer: Any, analysis: AnalysisResult) -> bool:
        """Run one phase hook.

        Returns:
            True if the hook ran, False if the transformer doesn't implement it.

        Raises:
            PhaseError: If the hook raised.
        """
        self._set_state(MigrationState.EXECUTING_PHASE)
        self.current_phase = phase

        hook = get_hook(transformer, phase)
        if hook is None:
            logger.info("Skipping %s (not implemented)", phase)
            self.log_step("phase_skipped", phase=phase)
            return False

        context = PhaseContext(
            analysis=analysis,
            dry_run=self.options.dry_run,
            verbose=self.options.verbose,
            project_path=self.project_path,
            logger=self._phase_logger(phase),
        )
        try:
            hook(analysis, context)
        except Exception as e:
            self.log_step("phase_failed", phase=phase, error=str(e))
            raise PhaseError(phase, str(e), project_type=analysis.project_type) from e

        self.log_step("phase_completed", phase=phase)
        return True

    def _phase_logger(self, phase: str) -> Callable[..., None]:
        def log(message: str, level: str = "info") -> None:
            self.log_step(level, phase=phase, message=message)

        return log

    # ── Validation ──

    def validate_migration(self) -> ValidationResult:
        """Cheap post-migration checks: package.json parses, expected files exist.

        Does not install dependencies, build, or run tests.
        """
        validation = ValidationResult()

        package_path = self.project_path / "package.json"
        if package_path.exists():
            try:
                json.loads(package_path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                validation.valid = False
                validation.issues.append("Invalid package.json after migration")

        for name in EXPECTED_FILES:
            if not (self.project_path / name).exists():
                validation.warnings.append(f"Missing expected file: {name}")

        if validation.valid:
            logger.info("Migration validation passed")
        else:
            logger.error("Migration validation failed: %s", "; ".join(validation.issues))
        for warning in validation.warnings:
            logger.warning(warning)

        self.log_step(
            "validation_completed",
            valid=validation.valid,
            issues=validation.issues,
            warnings=validation.warnings,
        )
        return validation

    # ── Reporting ──

    def post_migration_instructions(self, analysis: AnalysisResult) -> list[str]:
        """Follow-up steps for the user after a successful migration."""
        package_manager = analysis.package_manager or "npm"
        lines = [
            f"Install dependencies: {package_manager} install",
            f"Run the development server: {package_manager} run dev",
            "Test your application: check that all features work, run your test suite, verify the build",
        ]
        lines.extend(f"Review: {issue}" for issue in analysis.potential_issues)
        lines.extend([
            "Update your CI/CD configuration if needed",
            "Update documentation",
            "Consider removing the backup once everything is working",
        ])
        return lines

    def log_step(self, step_type: str, **data: Any) -> dict[str, Any]:
        """Append ``{timestamp, type, **data}`` to the migration log."""
        entry = {"timestamp": iso_timestamp(datetime.now(timezone.utc)), "type": step_type, **data}
        self.migration_log.append(entry)
        level = logging.INFO if self.options.verbose else logging.DEBUG
        logger.log(level, "%s: %s", step_type, json.dumps(data, default=str))
        return entry

    def get_migration_log(self) -> list[dict[str, Any]]:
        return self.migration_log

    def build_report(self) -> dict:
        return {
            "timestamp": iso_timestamp(datetime.now(timezone.utc)),
            "projectPath": str(self.project_path),
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "migrationLog": self.migration_log,
            "options": self.options.to_dict(),
        }

    def export_migration_report(self, output_path: Path, format: str = "json") -> MigrationReport:
        """Write the analysis, log and options to a report file.

        In dry-run mode nothing is written; the report is only returned.

        Raises:
            ValueError: If format is not 'json' or 'yaml'.
        """
        if format not in REPORT_FORMATS:
            raise ValueError(f"Unknown report format '{format}'. Use: {', '.join(REPORT_FORMATS)}")

        output_path = Path(output_path)
        data = self.build_report()
        if self.options.dry_run:
            logger.info("Dry run - migration report not written")
            return MigrationReport(data=data, output_path=output_path, written=False)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        if format == "json":
            output_path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
        else:
            with open(output_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        logger.info("Migration report saved: %s", output_path)
        return MigrationReport(data=data, output_path=output_path, written=True)

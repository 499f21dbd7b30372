"""Project migration command."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from fsd_migrate.analyzers.models import AnalysisResult
from fsd_migrate.core import MigrationOutcome
from fsd_migrate.error_handler import handle_errors
from fsd_migrate.ui import bullet_list, console, icon, is_json, print_json_output, section_divider

# Log entry types shown in the step table
_STEP_ICONS = {
    "phase_completed": "complete",
    "phase_skipped": "skipped",
    "phase_failed": "error",
}


@handle_errors
def migrate(
    path: Path = typer.Argument(Path("."), help="Path to project directory"),
    dry_run: Optional[bool] = typer.Option(None, "--dry-run/--apply", help="Preview without changing files"),
    no_backup: bool = typer.Option(False, "--no-backup", help="Skip the pre-migration snapshot"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
    report: Optional[Path] = typer.Option(None, "--report", "-r", help="Write a migration report to this file"),
    report_format: str = typer.Option("json", "--format", "-f", help="Report format: json or yaml"),
) -> None:
    """Migrate a project onto the target stack."""
    from fsd_migrate.core.migration_service import REPORT_FORMATS, Migrator

    # Checked up front so a typo doesn't surface after files were changed
    if report is not None and report_format not in REPORT_FORMATS:
        raise ValueError(f"Unknown report format '{report_format}'. Use: {', '.join(REPORT_FORMATS)}")

    migrator = Migrator.from_config(
        path,
        confirm_migration=None if yes else _confirm_migration,
        confirm_rollback=_confirm_rollback,
    )
    if dry_run is not None:
        migrator.options.dry_run = dry_run
    if no_backup:
        migrator.options.auto_backup = False
    if yes:
        migrator.options.confirm_steps = False

    loaded = migrator.registry.load_plugins()
    if migrator.options.verbose:
        from fsd_migrate.plugins import list_transformer_plugins

        console.print(f"[dim]Loaded {loaded} transformer plugin(s)[/dim]")
        for plugin in list_transformer_plugins():
            if not plugin.loaded:
                console.print(f"[dim]  {icon('warning')} {plugin.name} ({plugin.module}): {plugin.error}[/dim]")

    if migrator.options.dry_run:
        console.print("[dim]Dry run mode - no changes will be made[/dim]\n")

    outcome = migrator.migrate()

    if report is not None:
        exported = migrator.export_migration_report(report, format=report_format)
        if exported.written:
            console.print(f"[green]Migration report saved: {report}[/green]")
        else:
            print_json_output(exported.data)

    if is_json():
        print_json_output(outcome.to_dict())
    else:
        _display_outcome(outcome)

    if not outcome.success:
        raise typer.Exit(1)


def _confirm_migration(analysis: AnalysisResult) -> bool:
    from fsd_migrate.commands.analyze_cmd import display_analysis

    if is_json():
        print_json_output(analysis.summary())
    else:
        display_analysis(analysis)
    return typer.confirm(
        f"Proceed with {analysis.migration_complexity} complexity migration?",
        default=analysis.migration_complexity == "low",
    )


def _confirm_rollback(backup_id: str) -> bool:
    return typer.confirm(f"Would you like to roll back to backup {backup_id}?", default=True)


def _display_outcome(outcome: MigrationOutcome) -> None:
    phase_entries = [e for e in outcome.migration_log if e["type"] in _STEP_ICONS]
    if phase_entries:
        table = Table(title="Migration Phases", show_header=True, border_style="cyan")
        table.add_column("Phase", style="cyan")
        table.add_column("Status", justify="center")
        for entry in phase_entries:
            table.add_row(entry.get("phase", ""), icon(_STEP_ICONS[entry["type"]]))
        console.print(table)

    if outcome.validation and outcome.validation.warnings:
        console.print(f"\n{icon('warning')} [yellow]Validation warnings:[/yellow]")
        bullet_list(outcome.validation.warnings)

    if outcome.success:
        console.print(f"\n{icon('complete')} [bold green]Migration completed successfully![/bold green]")
        if outcome.backup_id:
            console.print(f"[dim]Backup: {outcome.backup_id}[/dim]")
        section_divider("Post-Migration Instructions")
        for number, line in enumerate(outcome.instructions, start=1):
            console.print(f"  {number}. {line}")
        return

    if outcome.reason == "cancelled":
        console.print("[yellow]Migration cancelled by user.[/yellow]")
        return

    console.print(f"\n{icon('error')} [bold red]Migration failed[/bold red]")
    if outcome.phase:
        console.print(f"  Phase: {outcome.phase}")
    if outcome.error:
        console.print(f"  Error: {outcome.error}")
    if outcome.rolled_back:
        console.print(f"[green]Rolled back to {outcome.backup_id}[/green]")
    elif outcome.backup_id:
        console.print(
            f"[dim]Project left as-is. Restore with: fsd-migrate backup restore {outcome.backup_id}[/dim]"
        )

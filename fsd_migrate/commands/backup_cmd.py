"""Backup management commands."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from fsd_migrate.core import BackupOptions, CleanupOptions, RestoreOptions
from fsd_migrate.core.backup_service import BackupMetadata, BackupStore, format_size
from fsd_migrate.error_handler import handle_errors
from fsd_migrate.ui import console, icon, is_json, print_json_output, relative_time, success_panel

app = typer.Typer(no_args_is_help=True)

PathArg = typer.Argument(Path("."), help="Path to project directory")


@app.command("create")
@handle_errors
def create(
    path: Path = PathArg,
    description: str = typer.Option(None, "--description", "-d", help="Backup description"),
    include_node_modules: Optional[bool] = typer.Option(
        None, "--include-node-modules/--no-node-modules", help="Copy node_modules too"
    ),
    include_git: Optional[bool] = typer.Option(None, "--include-git/--no-git", help="Copy .git too"),
) -> None:
    """Create a snapshot of the project."""
    from fsd_migrate.core.config_service import get_config_service

    options = BackupOptions.from_config(get_config_service(path).resolve())
    if description is not None:
        options.description = description
    if include_node_modules is not None:
        options.include_node_modules = include_node_modules
    if include_git is not None:
        options.include_git = include_git

    store = BackupStore(path)
    with console.status("[bold cyan]Creating backup...[/bold cyan]"):
        backup_id = store.create_backup(options)

    info = store.get_backup_info(backup_id)
    success_panel(
        "Backup created",
        f"{backup_id}\nFiles: {info.file_count}\nSize: {format_size(info.total_size)}",
    )


@app.command("list")
@handle_errors
def list_backups(path: Path = PathArg) -> None:
    """List snapshots, newest first."""
    store = BackupStore(path)
    backups = sorted(store.list_backups(), key=lambda b: b.created_at, reverse=True)

    if is_json():
        print_json_output([b.to_dict() for b in backups])
        return
    if not backups:
        console.print("[dim]No backups found.[/dim]")
        return

    table = Table(title="Available Backups", show_header=True, border_style="cyan")
    table.add_column("ID", style="cyan")
    table.add_column("Description")
    table.add_column("Created")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")
    for backup in backups:
        table.add_row(
            backup.id,
            backup.description,
            relative_time(backup.created_at),
            str(backup.file_count),
            format_size(backup.total_size),
        )
    console.print(table)


@app.command("info")
@handle_errors
def info(
    backup_id: str = typer.Argument(..., help="Backup id"),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Path to project directory"),
    show_files: bool = typer.Option(False, "--files", help="List every backed-up file"),
) -> None:
    """Show the metadata of one snapshot."""
    metadata = BackupStore(path).get_backup_info(backup_id)
    if is_json():
        print_json_output(metadata.to_dict())
        return

    console.print(f"[bold cyan]{metadata.id}[/bold cyan]")
    console.print(f"  Description: {metadata.description}")
    console.print(f"  Created: {metadata.timestamp}")
    console.print(f"  Files: {metadata.file_count}")
    console.print(f"  Size: {format_size(metadata.total_size)}")
    console.print(
        f"  Options: node_modules={metadata.config.include_node_modules}, git={metadata.config.include_git}"
    )
    if show_files:
        for name in metadata.files:
            console.print(f"    {name}")


@app.command("restore")
@handle_errors
def restore(
    backup_id: str = typer.Argument(..., help="Backup id"),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Path to project directory"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask before overwriting"),
    no_current_backup: bool = typer.Option(
        False, "--no-current-backup", help="Skip snapshotting the current state first"
    ),
) -> None:
    """Replace the project with the contents of a snapshot."""
    store = BackupStore(path)
    options = RestoreOptions(confirm_overwrite=not yes, create_current_backup=not no_current_backup)
    metadata = store.restore_backup(backup_id, options, confirm=_confirm_overwrite)
    success_panel("Backup restored", f"Restored {metadata.file_count} files from {backup_id}")


def _confirm_overwrite(metadata: BackupMetadata) -> bool:
    return typer.confirm(
        f"Replace the current project with backup {metadata.id} ({metadata.file_count} files)?",
        default=False,
    )


@app.command("delete")
@handle_errors
def delete(
    backup_id: str = typer.Argument(..., help="Backup id"),
    path: Path = typer.Option(Path("."), "--path", "-p", help="Path to project directory"),
) -> None:
    """Delete one snapshot."""
    BackupStore(path).delete_backup(backup_id)
    console.print(f"{icon('complete')} Deleted {backup_id}")


@app.command("cleanup")
@handle_errors
def cleanup(
    path: Path = PathArg,
    max_age: Optional[int] = typer.Option(None, "--max-age", help="Delete backups older than this many days"),
    max_count: Optional[int] = typer.Option(None, "--max-count", help="Keep at most this many backups"),
) -> None:
    """Delete old snapshots by age and count."""
    from fsd_migrate.core.config_service import get_config_service

    options = CleanupOptions.from_config(get_config_service(path).resolve())
    if max_age is not None:
        options.max_age = max_age
    if max_count is not None:
        options.max_count = max_count

    deleted = BackupStore(path).cleanup_old_backups(options)
    if deleted:
        console.print(f"Cleaned up [bold]{deleted}[/bold] old backups")
    else:
        console.print("[dim]No backups to clean up.[/dim]")

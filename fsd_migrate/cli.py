#!/usr/bin/env python3
"""
fsd-migrate: analyze an existing web project, snapshot it, and migrate it
onto the target stack with rollback on failure.
"""
import logging

import typer
from rich.logging import RichHandler

from fsd_migrate import __version__
from fsd_migrate.ui import console, set_json_mode, set_plain_mode

app = typer.Typer(
    name="fsd-migrate",
    help="Analyze, back up, and migrate existing web projects.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

from fsd_migrate.commands import analyze_cmd, backup_cmd, config_cmd, migrate_cmd

app.command("analyze", rich_help_panel="Migration")(analyze_cmd.analyze)
app.command("migrate", rich_help_panel="Migration")(migrate_cmd.migrate)
app.add_typer(backup_cmd.app, name="backup", help="Create, list, restore and prune backups", rich_help_panel="Backups")
app.add_typer(config_cmd.app, name="config", help="Show and change configuration", rich_help_panel="Settings")


def _version_callback(value: bool):
    if value:
        console.print(f"fsd-migrate {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show log output"),
    plain: bool = typer.Option(False, "--plain", help="Plain text output (no colors)"),
    json_output: bool = typer.Option(False, "--json", help="JSON output where supported"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
):
    """Analyze, back up, and migrate existing web projects."""
    if plain:
        set_plain_mode(True)
    if json_output:
        set_json_mode(True)
    if verbose:
        pkg_logger = logging.getLogger("fsd_migrate")
        if not any(isinstance(h, RichHandler) for h in pkg_logger.handlers):
            pkg_logger.addHandler(RichHandler(console=console, show_path=False))
        pkg_logger.setLevel(logging.INFO)


if __name__ == "__main__":
    app()

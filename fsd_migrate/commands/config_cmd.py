"""Configuration commands."""
from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel
from rich.table import Table

from fsd_migrate.error_handler import handle_errors
from fsd_migrate.ui import console, is_json, print_json_output, success_panel

app = typer.Typer(no_args_is_help=True)

PathOpt = typer.Option(Path("."), "--path", "-p", help="Project directory")


def _flatten(data: dict, prefix: str = "") -> list[tuple[str, object]]:
    rows: list[tuple[str, object]] = []
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            rows.extend(_flatten(value, f"{dotted}."))
        else:
            rows.append((dotted, value))
    return rows


@app.command()
@handle_errors
def show(path: Path = PathOpt) -> None:
    """Display the resolved configuration (all layers merged)."""
    from fsd_migrate.core.config_service import get_config_service

    info = get_config_service(path).show()
    if is_json():
        print_json_output(info)
        return

    sources = info["sources"]
    console.print(Panel(
        f"Global:  {sources['global_config'] or '[dim]not found[/dim]'}\n"
        f"Project: {sources['project_config'] or '[dim]not found[/dim]'}\n"
        f"Env:     {', '.join(sources['env']) or '[dim]none[/dim]'}",
        title="Config Sources",
        border_style="cyan",
    ))

    table = Table(title="Resolved Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in _flatten(info["resolved"]):
        table.add_row(key, str(value))
    console.print(table)


@app.command("set")
@handle_errors
def set_value(
    key: str = typer.Argument(..., help="Config key in dotted notation (e.g. cleanup.max_count)"),
    value: str = typer.Argument(..., help="Value to set"),
) -> None:
    """Set a value in the global config file."""
    from fsd_migrate.core.config_service import get_config_service, is_known_key, parse_value

    if not is_known_key(key):
        raise ValueError(f"Unknown config key '{key}'")

    parsed = parse_value(key, value)
    get_config_service().set_global(key, parsed)
    console.print(f"[green]Set[/green] {key} = {parsed}")


@app.command()
@handle_errors
def init(path: Path = PathOpt) -> None:
    """Create a .fsd.toml project config with the defaults."""
    from fsd_migrate.core.config_service import get_config_service

    try:
        created = get_config_service(path).init_project_config()
    except FileExistsError as e:
        raise ValueError(str(e)) from None
    success_panel("Project config created", str(created))

"""Console, theme and small rendering helpers shared by the fsd-migrate commands."""

import json
from datetime import datetime, timezone

from rich.console import Console
from rich.panel import Panel
from rich.theme import Theme

# Set once by the root callback, read by every command
_plain_mode: bool = False
_json_mode: bool = False

FSD_THEME = Theme({
    "success": "bold green",
    "warning": "yellow",
    "error": "bold red",
    "complexity.low": "green",
    "complexity.medium": "yellow",
    "complexity.high": "red",
})

console = Console(theme=FSD_THEME)

ICONS = {
    "complete": "[green]✔[/green]",
    "skipped": "[dim]−[/dim]",
    "error": "[red]✘[/red]",
    "warning": "[yellow]⚠[/yellow]",
    "bullet": "[cyan]•[/cyan]",
}

PLAIN_ICONS = {
    "complete": "[OK]",
    "skipped": "[--]",
    "error": "[!!]",
    "warning": "[!]",
    "bullet": "-",
}


def set_plain_mode(enabled: bool = True) -> None:
    """Drop colors and unicode icons (for logs and dumb terminals)."""
    global _plain_mode
    _plain_mode = enabled
    console.no_color = enabled


def set_json_mode(enabled: bool = True) -> None:
    """Make list/info/analyze/migrate print machine-readable JSON instead of tables."""
    global _json_mode
    _json_mode = enabled


def is_json() -> bool:
    return _json_mode


def print_json_output(data: dict | list) -> None:
    print(json.dumps(data, indent=2, default=str))


def icon(name: str) -> str:
    return (PLAIN_ICONS if _plain_mode else ICONS).get(name, "")


def complexity_label(complexity: str) -> str:
    """``low`` -> ``Low``, colored by level unless in plain mode."""
    label = complexity.capitalize() if complexity else "Unknown"
    if _plain_mode or complexity not in ("low", "medium", "high"):
        return label
    return f"[complexity.{complexity}]{label}[/complexity.{complexity}]"


def relative_time(timestamp: datetime, now: datetime | None = None) -> str:
    """Age of a backup for listings, e.g. ``3 hours ago``."""
    seconds = ((now or datetime.now(timezone.utc)) - timestamp).total_seconds()
    for unit, size in (("day", 86400), ("hour", 3600)):
        count = int(seconds // size)
        if count > 0:
            return f"{count} {unit}{'s' if count > 1 else ''} ago"
    minutes = max(int(seconds // 60), 0)
    return f"{minutes} minute{'' if minutes == 1 else 's'} ago"


def success_panel(title: str, body: str = "") -> None:
    """Boxed confirmation after a backup operation; a single line in plain mode."""
    if _json_mode:
        return
    if _plain_mode:
        console.print(f"OK: {title}" + (f"\n  {body}" if body else ""))
        return
    console.print(Panel(body, title=f"[success]{title}[/success]", border_style="green"))


def section_divider(text: str) -> None:
    if _json_mode:
        return
    console.print(f"\n-- {text} --" if _plain_mode else f"\n[dim]── {text} ──[/dim]")


def bullet_list(items: list[str]) -> None:
    for item in items:
        console.print(f"    {icon('bullet')} {item}")

"""Project analysis command."""
from __future__ import annotations

from pathlib import Path

import typer
from rich.panel import Panel
from rich.table import Table

from fsd_migrate.analyzers.models import AnalysisResult
from fsd_migrate.error_handler import handle_errors
from fsd_migrate.ui import bullet_list, complexity_label, console, icon, is_json, print_json_output


@handle_errors
def analyze(
    path: Path = typer.Argument(Path("."), help="Path to project directory"),
    json_output: bool = typer.Option(False, "--json", help="Print the full analysis as JSON"),
) -> None:
    """Analyze a project's stack and migration complexity."""
    from fsd_migrate.analyzers.project_analyzer import ProjectAnalyzer
    from fsd_migrate.core.config_service import get_config_service

    config = get_config_service(path).resolve()
    analyzer = ProjectAnalyzer(target_framework=config.get("migration.target_framework", "vue"))

    with console.status("[bold cyan]Analyzing project structure...[/bold cyan]"):
        analysis = analyzer.analyze(path)

    if json_output or is_json():
        print_json_output(analysis.to_dict())
        return
    display_analysis(analysis)


def display_analysis(analysis: AnalysisResult) -> None:
    """Render an AnalysisResult as panels and lists."""
    framework = analysis.framework or "Unknown"
    if analysis.framework_version:
        framework += f" {analysis.framework_version}"

    info = [
        f"[bold]Name:[/bold] {analysis.project_name or 'Unknown'}",
        f"[bold]Type:[/bold] {analysis.project_type}",
        f"[bold]Framework:[/bold] {framework}",
    ]
    if analysis.ui_library:
        info.append(f"[bold]UI Library:[/bold] {analysis.ui_library}")
    if analysis.backend:
        info.append(f"[bold]Backend:[/bold] {analysis.backend}")
    if analysis.build_tool:
        info.append(f"[bold]Build Tool:[/bold] {analysis.build_tool}")
    if analysis.package_manager:
        info.append(f"[bold]Package Manager:[/bold] {analysis.package_manager}")

    console.print()
    console.print(Panel("\n".join(info), title="Project Analysis", border_style="cyan"))

    strategy = analysis.migration_strategy
    table = Table(title="Migration Assessment", show_header=False, expand=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Complexity", complexity_label(analysis.migration_complexity))
    table.add_row("Score", str(analysis.complexity_score))
    table.add_row("Approach", strategy.approach)
    table.add_row("Estimated Time", strategy.estimated_time)
    console.print(table)

    if analysis.complexity_factors:
        console.print("\n  [bold]Complexity Factors:[/bold]")
        bullet_list(analysis.complexity_factors)

    if analysis.recommended_modules:
        console.print("\n[bold cyan]Recommended Modules:[/bold cyan]")
        for module in analysis.recommended_modules:
            console.print(f"  {icon('complete')} {module}")

    if analysis.potential_issues:
        console.print(f"\n{icon('warning')} [yellow]Potential Issues:[/yellow]")
        bullet_list(analysis.potential_issues)

    if strategy.risks:
        console.print("\n[red]Migration Risks:[/red]")
        bullet_list(strategy.risks)

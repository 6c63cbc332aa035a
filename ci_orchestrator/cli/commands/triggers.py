"""CLI — Trigger inspection commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(help="Inspect project triggers.")
console = Console()


@app.command("check")
def check(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
) -> None:
    """Evaluate every project's trigger once and show its decision."""
    from ci_orchestrator.config import Settings, build_projects
    from ci_orchestrator.exceptions import CIOrchestratorError
    from pydantic import ValidationError

    try:
        integrators = build_projects(Settings.load(config_file=config))
    except (ValidationError, CIOrchestratorError) as exc:
        console.print(f"[red]Invalid configuration: {exc}[/red]")
        raise typer.Exit(1)

    table = Table(title="Trigger Decisions")
    table.add_column("Project", style="cyan")
    table.add_column("Trigger")
    table.add_column("Decision", style="green")
    table.add_column("Next build")

    for integrator in integrators:
        condition = integrator.trigger.should_run_integration()
        next_build = integrator.trigger.next_build
        table.add_row(
            integrator.project.name,
            integrator.trigger.description,
            condition.config_name,
            next_build.isoformat(sep=" ", timespec="seconds") if next_build else "-",
        )
    console.print(table)

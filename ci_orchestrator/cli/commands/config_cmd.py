"""CLI — Configuration commands."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from ci_orchestrator.exceptions import CIOrchestratorError

if TYPE_CHECKING:
    from ci_orchestrator.config import Settings

app = typer.Typer(help="Validate and display configuration.")
console = Console()

ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
]


def _load(config: Path | None) -> "Settings":
    from ci_orchestrator.config import Settings

    if config is not None and not config.exists():
        console.print(f"[red]Config file not found: {config}[/red]")
        raise typer.Exit(1)
    try:
        return Settings.load(config_file=config)
    except ValidationError as exc:
        console.print(f"[red]Invalid configuration ({exc.error_count()} error(s)):[/red]")
        for error in exc.errors(include_url=False):
            location = ".".join(str(p) for p in error["loc"])
            console.print(f"  [red]{location}[/red]: {error['msg']}")
        raise typer.Exit(1)
    except CIOrchestratorError as exc:
        console.print(f"[red]Invalid configuration: {exc.message}[/red]")
        raise typer.Exit(1)


@app.command("validate")
def validate(config: ConfigOption = None) -> None:
    """Load the configuration and report any errors."""
    settings = _load(config)

    table = Table(title="Projects")
    table.add_column("Name", style="cyan")
    table.add_column("Triggers")
    table.add_column("Tasks")
    table.add_column("Source control")
    for project in settings.projects:
        table.add_row(
            project.name,
            str(len(project.triggers)),
            str(len(project.tasks)),
            project.source_control.type,
        )
    console.print(table)
    console.print("[green]Configuration is valid.[/green]")


@app.command("show")
def show(config: ConfigOption = None) -> None:
    """Print the effective configuration as JSON."""
    settings = _load(config)
    console.print(Syntax(settings.model_dump_json(indent=2), "json"))

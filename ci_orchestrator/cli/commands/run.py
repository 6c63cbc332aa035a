"""CLI — Run the integration server in the foreground."""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from ci_orchestrator.scheduler import IntegrationServer

console = Console()


def run(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    log_level: Annotated[
        str | None, typer.Option(help="Override the configured log level.")
    ] = None,
) -> None:
    """Start polling every configured project until interrupted."""
    from ci_orchestrator.config import Settings, build_projects
    from ci_orchestrator.exceptions import CIOrchestratorError
    from ci_orchestrator.logging import configure_logging
    from pydantic import ValidationError

    try:
        settings = Settings.load(config_file=config)
    except (ValidationError, CIOrchestratorError) as exc:
        console.print(f"[red]Invalid configuration: {exc}[/red]")
        raise typer.Exit(1)

    configure_logging(
        level=log_level or settings.logging.level,
        format=settings.logging.format,
        log_file=settings.logging.log_file,
    )

    integrators = build_projects(settings)
    if not integrators:
        console.print("[yellow]No projects configured.[/yellow]")
        raise typer.Exit(1)

    server = IntegrationServer(
        integrators,
        max_concurrent_integrations=settings.scheduler.max_concurrent_integrations,
    )
    console.print(f"[bold green]Starting ci-orchestrator with {len(integrators)} project(s)[/bold green]")
    asyncio.run(_serve(server))
    console.print("Stopped.")


async def _serve(server: IntegrationServer) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass

    await server.start()
    try:
        await stop.wait()
    finally:
        await server.stop()

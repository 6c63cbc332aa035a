"""ci-orchestrator CLI — Entry point.

Usage:
    ci-orchestrator run [--config FILE]
    ci-orchestrator triggers check [--config FILE]
    ci-orchestrator config validate [--config FILE]
    ci-orchestrator config show [--config FILE]
"""

from __future__ import annotations

import typer

from ci_orchestrator.cli.commands import config_cmd, run, triggers

app = typer.Typer(
    name="ci-orchestrator",
    help="ci-orchestrator — trigger-driven continuous integration server.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

app.command("run")(run.run)
app.add_typer(triggers.app, name="triggers")
app.add_typer(config_cmd.app, name="config")


@app.callback()
def main_callback() -> None:
    pass


if __name__ == "__main__":
    app()

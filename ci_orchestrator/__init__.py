"""ci-orchestrator — decision-and-orchestration core of a CI server.

Decides *when* a project should build (triggers) and *drives* the build
once triggered (integration runner).

Package structure
-----------------
ci_orchestrator/
  models.py          — BuildCondition, IntegrationResult, Modification, ...
  clock.py           — injectable clock provider
  triggers/          — schedule, interval, multiple and filter triggers
  quiet_period.py    — waits for modification bursts to settle
  result_manager.py  — current / last integration result lifecycle
  sourcecontrol.py   — source-control collaborator boundary
  project.py         — the integration runner target, tasks and publishers
  runner.py          — IntegrationRunner — the pipeline orchestrator
  scheduler.py       — per-project trigger polling and dispatch
  tasks.py           — shell-command build tasks
  config.py          — pydantic-settings configuration and project wiring
  logging.py         — structlog configuration
  cli/               — typer command line
"""

__version__ = "0.1.0"

"""ci-orchestrator — Server configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. System config: /etc/ci-orchestrator/config.yaml
    3. User config:   ~/.ci-orchestrator/config.yaml
    4. An explicit ``--config`` file
    5. Environment variables prefixed with CI_ORCHESTRATOR_

Example::

    scheduler:
      poll_interval_seconds: 5
      max_concurrent_integrations: 2
    projects:
      - name: nightly
        working_directory: ~/ci/nightly/work
        artifact_directory: ~/ci/nightly/artifacts
        source_control: {type: filesystem, repository_root: ~/src/app}
        triggers:
          - {type: schedule, time: "23:30", buildCondition: ForceBuild}
        tasks:
          - command: [make, test]

``build_projects`` turns a loaded Settings into ready-to-start
ProjectIntegrator objects.
"""

from __future__ import annotations

import functools
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ci_orchestrator.clock import Clock, SystemClock
from ci_orchestrator.exceptions import ConfigurationError
from ci_orchestrator.project import JsonLogPublisher, Project, Publisher
from ci_orchestrator.quiet_period import DefaultQuietPeriod
from ci_orchestrator.result_manager import DefaultLabeller, IntegrationResultManager
from ci_orchestrator.runner import IntegrationRunner
from ci_orchestrator.scheduler import ProjectIntegrator
from ci_orchestrator.sourcecontrol import (
    FileSystemSourceControl,
    NullSourceControl,
    SourceControl,
)
from ci_orchestrator.tasks import CommandTask
from ci_orchestrator.triggers import MultipleTrigger, Trigger, build_trigger
from ci_orchestrator.triggers.config import parse_trigger_config


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

# YAML 1.1 integers without the base-60 form, so ``time: 23:30`` stays "23:30".
_YAML_INT = re.compile(
    r"""^(?:[-+]?0b[0-1_]+
    |[-+]?0[0-7_]+
    |[-+]?(?:0|[1-9][0-9_]*)
    |[-+]?0x[0-9a-fA-F_]+)$""",
    re.X,
)


@functools.lru_cache(maxsize=1)
def _yaml_loader() -> type:
    """SafeLoader that keeps unquoted ``HH:mm`` / ``HH:mm:ss`` values as strings."""
    import yaml

    class ConfigLoader(yaml.SafeLoader):
        pass

    int_tag = "tag:yaml.org,2002:int"
    ConfigLoader.yaml_implicit_resolvers = {
        first: [(tag, regexp) for tag, regexp in resolvers if tag != int_tag]
        for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
    }
    ConfigLoader.add_implicit_resolver(int_tag, _YAML_INT, list("-+0123456789"))
    return ConfigLoader


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class SchedulerConfig(BaseModel):
    poll_interval_seconds: float = Field(default=1.0, gt=0)
    max_concurrent_integrations: int | None = Field(
        default=None,
        ge=1,
        description="Upper bound on pipelines running at once across projects. None = unbounded.",
    )


class QuietPeriodConfig(BaseModel):
    modification_delay_seconds: float = Field(
        default=0.0,
        ge=0,
        description="Modifications newer than this are considered still in progress. 0 disables.",
    )
    max_wait_seconds: float = Field(default=600.0, gt=0)


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["console", "json"] = "console"
    log_file: Path | None = None


class SourceControlConfig(BaseModel):
    type: Literal["null", "filesystem"] = "null"
    repository_root: Path | None = None
    auto_get_source: bool = False
    ignore_missing_root: bool = False

    @model_validator(mode="after")
    def _root_required(self) -> "SourceControlConfig":
        if self.type == "filesystem" and self.repository_root is None:
            raise ValueError("filesystem source control requires repository_root")
        return self


class TaskConfig(BaseModel):
    command: list[str] = Field(min_length=1)
    timeout_seconds: float = Field(default=600.0, gt=0)
    env: dict[str, str] = Field(default_factory=dict)


class ProjectConfig(BaseModel):
    name: str = Field(min_length=1)
    working_directory: Path
    artifact_directory: Path
    publish_exceptions: bool = True
    label_prefix: str = ""
    source_control: SourceControlConfig = Field(default_factory=SourceControlConfig)
    triggers: list[dict[str, Any]] = Field(default_factory=list)
    prebuild: list[TaskConfig] = Field(default_factory=list)
    tasks: list[TaskConfig] = Field(default_factory=list)
    json_log: bool = True
    quiet_period: QuietPeriodConfig | None = None

    @field_validator("working_directory", "artifact_directory", mode="after")
    @classmethod
    def _expand(cls, v: Path) -> Path:
        return v.expanduser()

    @field_validator("triggers", mode="after")
    @classmethod
    def _check_triggers(cls, v: list[dict[str, Any]]) -> list[dict[str, Any]]:
        for entry in v:
            try:
                parse_trigger_config(entry)
            except ConfigurationError as exc:
                raise ValueError(exc.message) from exc
        return v


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CI_ORCHESTRATOR_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    quiet_period: QuietPeriodConfig = Field(default_factory=QuietPeriodConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    projects: list[ProjectConfig] = Field(default_factory=list)

    @field_validator("projects", mode="after")
    @classmethod
    def _unique_names(cls, v: list[ProjectConfig]) -> list[ProjectConfig]:
        names = [p.name for p in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate project names: {', '.join(duplicates)}")
        return v

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, object] = {}

        candidates = [
            Path("/etc/ci-orchestrator/config.yaml"),
            Path.home() / ".ci-orchestrator" / "config.yaml",
        ]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml

                with path.open() as f:
                    loaded = yaml.load(f, Loader=_yaml_loader()) or {}
                    data.update(loaded)

        return cls(**data)


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_source_control(config: SourceControlConfig) -> SourceControl:
    if config.type == "filesystem":
        assert config.repository_root is not None
        return FileSystemSourceControl(
            config.repository_root,
            auto_get_source=config.auto_get_source,
            ignore_missing_root=config.ignore_missing_root,
        )
    return NullSourceControl()


def build_project_trigger(config: ProjectConfig, clock: Clock) -> Trigger:
    """A single trigger is used as-is; several are combined with Or."""
    triggers = [build_trigger(entry, clock) for entry in config.triggers]
    if len(triggers) == 1:
        return triggers[0]
    return MultipleTrigger(triggers)


def build_projects(settings: Settings, clock: Clock | None = None) -> list[ProjectIntegrator]:
    clock = clock or SystemClock()
    integrators: list[ProjectIntegrator] = []

    for config in settings.projects:
        publishers: list[Publisher] = [JsonLogPublisher()] if config.json_log else []
        project = Project(
            name=config.name,
            working_directory=config.working_directory,
            artifact_directory=config.artifact_directory,
            source_control=build_source_control(config.source_control),
            tasks=[_command_task(t) for t in config.tasks],
            prebuild_tasks=[_command_task(t) for t in config.prebuild],
            publishers=publishers,
            publish_exceptions=config.publish_exceptions,
        )
        quiet = config.quiet_period or settings.quiet_period
        runner = IntegrationRunner(
            result_manager=IntegrationResultManager(
                project, clock, DefaultLabeller(prefix=config.label_prefix)
            ),
            target=project,
            quiet_period=DefaultQuietPeriod(
                clock,
                modification_delay_seconds=quiet.modification_delay_seconds,
                max_wait_seconds=quiet.max_wait_seconds,
            ),
        )
        integrators.append(
            ProjectIntegrator(
                project,
                build_project_trigger(config, clock),
                runner,
                poll_interval_seconds=settings.scheduler.poll_interval_seconds,
                clock=clock,
            )
        )
    return integrators


def _command_task(config: TaskConfig) -> CommandTask:
    return CommandTask(config.command, timeout_seconds=config.timeout_seconds, env=config.env)

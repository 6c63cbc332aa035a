"""Project — the target an IntegrationRunner drives.

IntegrationRunnerTarget is the boundary the runner depends on; Project is
the concrete implementation wired from configuration.  Build steps and
publishers are external collaborators reached through the BuildTask and
Publisher ABCs.

Project.run semantics:
  - tasks run in order; the first task that marks the result FAILURE stops
    the remaining ones
  - a task that raises aborts the build; the runner captures the exception
  - if no task set a status, the build is a SUCCESS

Project.publish_results runs every publisher; one failing publisher is
logged and does not stop the others.
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

from ci_orchestrator.exceptions import PublishError
from ci_orchestrator.logging import get_logger
from ci_orchestrator.models import (
    ActivityCell,
    IntegrationResult,
    IntegrationStatus,
    ProjectActivity,
)
from ci_orchestrator.sourcecontrol import NullSourceControl, SourceControl

log = get_logger(__name__)


# ---------------------------------------------------------------------------
# Collaborator boundaries
# ---------------------------------------------------------------------------


class BuildTask(ABC):
    """One build step (compiler, test runner, ...)."""

    @abstractmethod
    async def run(self, result: IntegrationResult) -> None:
        """Execute the step; set ``result.status`` to FAILURE on failure."""


class Publisher(ABC):
    @abstractmethod
    async def publish(self, result: IntegrationResult) -> None:
        """Publish a finished integration result."""


class IntegrationRunnerTarget(ABC):
    """What the IntegrationRunner needs from a project."""

    name: str
    working_directory: Path
    artifact_directory: Path
    source_control: SourceControl
    publish_exceptions: bool

    @property
    @abstractmethod
    def activity(self) -> ProjectActivity: ...

    @activity.setter
    @abstractmethod
    def activity(self, value: ProjectActivity) -> None: ...

    @abstractmethod
    async def prebuild(self, result: IntegrationResult) -> None: ...

    @abstractmethod
    async def run(self, result: IntegrationResult) -> None: ...

    @abstractmethod
    async def publish_results(self, result: IntegrationResult) -> None: ...


# ---------------------------------------------------------------------------
# Project
# ---------------------------------------------------------------------------


class Project(IntegrationRunnerTarget):
    def __init__(
        self,
        name: str,
        working_directory: Path | str,
        artifact_directory: Path | str,
        source_control: SourceControl | None = None,
        tasks: Sequence[BuildTask] = (),
        prebuild_tasks: Sequence[BuildTask] = (),
        publishers: Sequence[Publisher] = (),
        publish_exceptions: bool = True,
    ) -> None:
        self.name = name
        self.working_directory = Path(working_directory).expanduser()
        self.artifact_directory = Path(artifact_directory).expanduser()
        self.source_control = source_control or NullSourceControl()
        self.tasks: list[BuildTask] = list(tasks)
        self.prebuild_tasks: list[BuildTask] = list(prebuild_tasks)
        self.publishers: list[Publisher] = list(publishers)
        self.publish_exceptions = publish_exceptions
        self._activity = ActivityCell()

    @property
    def activity(self) -> ProjectActivity:
        return self._activity.get()

    @activity.setter
    def activity(self, value: ProjectActivity) -> None:
        self._activity.set(value)

    async def prebuild(self, result: IntegrationResult) -> None:
        for task in self.prebuild_tasks:
            await task.run(result)

    async def run(self, result: IntegrationResult) -> None:
        for task in self.tasks:
            await task.run(result)
            if result.failed:
                log.info("build_task_failed", project=self.name, task=type(task).__name__)
                break
        if result.status == IntegrationStatus.UNKNOWN:
            result.status = IntegrationStatus.SUCCESS

    async def publish_results(self, result: IntegrationResult) -> None:
        for publisher in self.publishers:
            try:
                await publisher.publish(result)
            except Exception as exc:
                log.error(
                    "publisher_failed",
                    project=self.name,
                    publisher=type(publisher).__name__,
                    error=str(exc),
                )

    def __repr__(self) -> str:
        return f"Project({self.name!r})"


# ---------------------------------------------------------------------------
# Built-in publisher
# ---------------------------------------------------------------------------


class JsonLogPublisher(Publisher):
    """Writes ``result.to_dict()`` into the artifact directory.

    File name: ``log<yyyyMMddHHmmss>.json``, with ``Lbuild.<label>`` before
    the extension for successful builds.
    """

    def __init__(self, log_directory: Path | str | None = None) -> None:
        self.log_directory = Path(log_directory).expanduser() if log_directory else None

    def log_file_name(self, result: IntegrationResult) -> str:
        stamp = (result.start_time or result.clock.now()).strftime("%Y%m%d%H%M%S")
        if result.succeeded:
            return f"log{stamp}Lbuild.{result.label}.json"
        return f"log{stamp}.json"

    async def publish(self, result: IntegrationResult) -> None:
        directory = self.log_directory or result.artifact_directory
        path = directory / self.log_file_name(result)
        payload = json.dumps(result.to_dict(), indent=2)
        try:
            await asyncio.to_thread(_write_text, path, payload)
        except OSError as exc:
            raise PublishError(
                f"Cannot write build log {path}: {exc}", context={"path": str(path)}
            ) from exc
        log.debug("build_log_written", path=str(path))


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")

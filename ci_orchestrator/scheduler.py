"""Trigger polling and integration dispatch.

ProjectIntegrator  — one asyncio task per project.  Each tick it takes a
                     pending force-build request or asks the project's
                     trigger for a BuildCondition, runs the integration when
                     the answer is not NO_BUILD, and re-arms the trigger.
IntegrationServer  — owns all integrators, bounds how many pipelines run at
                     once across projects, and reports status to monitors.

Calls for a single project are strictly sequential: the trigger and the
runner of one project are never used concurrently.  Different projects run
in parallel, each on its own task, and share nothing mutable except the
concurrency semaphore.

Stopping an integrator waits for an integration in progress to finish;
builds are never cancelled mid-pipeline.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Sequence
from typing import Any

from ci_orchestrator.clock import Clock, SystemClock
from ci_orchestrator.logging import clear_integration_context, get_logger
from ci_orchestrator.models import BuildCondition, IntegrationRequest, IntegrationResult
from ci_orchestrator.project import IntegrationRunnerTarget
from ci_orchestrator.runner import IntegrationRunner
from ci_orchestrator.triggers.base import Trigger

log = get_logger(__name__)


class ProjectIntegrator:
    """Polls one project's trigger and drives its IntegrationRunner.

    Usage::

        integrator = ProjectIntegrator(project, trigger, runner, poll_interval_seconds=5)
        await integrator.start()
        integrator.force_build("alice")
        await integrator.stop()
    """

    def __init__(
        self,
        project: IntegrationRunnerTarget,
        trigger: Trigger,
        runner: IntegrationRunner,
        poll_interval_seconds: float = 1.0,
        semaphore: asyncio.Semaphore | None = None,
        clock: Clock | None = None,
    ) -> None:
        if poll_interval_seconds <= 0:
            raise ValueError(f"poll_interval_seconds must be positive, got {poll_interval_seconds}")
        self.project = project
        self.trigger = trigger
        self.runner = runner
        self.poll_interval_seconds = poll_interval_seconds
        self.semaphore = semaphore
        self._clock = clock or SystemClock()
        self.last_result: IntegrationResult | None = None

        self._force_requests: deque[IntegrationRequest] = deque()
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._wake = asyncio.Event()

    # ---------------------------------------------------------------------------
    # Lifecycle
    # ---------------------------------------------------------------------------

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name=f"integrator_{self.project.name}")
        log.info("integrator_started", project=self.project.name, trigger=self.trigger.description)

    async def stop(self) -> None:
        self._stop_event.set()
        self._wake.set()
        if self._task is not None:
            await self._task
        self._task = None
        log.info("integrator_stopped", project=self.project.name)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ---------------------------------------------------------------------------
    # Requests
    # ---------------------------------------------------------------------------

    def force_build(self, source: str = "user") -> None:
        """Queue a FORCE_BUILD integration, run on the next tick."""
        self._force_requests.append(
            IntegrationRequest(
                BuildCondition.FORCE_BUILD,
                f"force build by {source}",
                requested_at=self._clock.now(),
            )
        )
        self._wake.set()
        log.info("force_build_requested", project=self.project.name, source=source)

    async def run_once(self) -> IntegrationResult | None:
        """Evaluate once and integrate if needed.  Returns the result, if any."""
        if self._force_requests:
            request = self._force_requests.popleft()
            from_trigger = False
        else:
            request = self._poll_trigger()
            from_trigger = True
        if request is None:
            return None

        if self.semaphore is not None:
            async with self.semaphore:
                result = await self.runner.integrate(request)
        else:
            result = await self.runner.integrate(request)
        clear_integration_context()

        self.last_result = result
        if from_trigger:
            self.trigger.integration_completed()
        return result

    # ---------------------------------------------------------------------------
    # Internal
    # ---------------------------------------------------------------------------

    def _poll_trigger(self) -> IntegrationRequest | None:
        try:
            condition = self.trigger.should_run_integration()
        except Exception as exc:
            log.error(
                "trigger_evaluation_failed",
                project=self.project.name,
                trigger=self.trigger.description,
                error=str(exc),
            )
            return None
        if condition == BuildCondition.NO_BUILD:
            return None
        return IntegrationRequest(
            condition, self.trigger.description, requested_at=self._clock.now()
        )

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception as exc:
                log.error("integration_dispatch_failed", project=self.project.name, error=str(exc))
            if self._stop_event.is_set():
                return
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.poll_interval_seconds)
            except asyncio.TimeoutError:
                pass
            self._wake.clear()


class IntegrationServer:
    """Starts, stops and monitors the integrators of all projects."""

    def __init__(
        self,
        integrators: Sequence[ProjectIntegrator],
        max_concurrent_integrations: int | None = None,
    ) -> None:
        self._integrators: dict[str, ProjectIntegrator] = {}
        for integrator in integrators:
            if integrator.project.name in self._integrators:
                raise ValueError(f"Duplicate project name: {integrator.project.name}")
            self._integrators[integrator.project.name] = integrator

        if max_concurrent_integrations is not None:
            semaphore = asyncio.Semaphore(max_concurrent_integrations)
            for integrator in self._integrators.values():
                integrator.semaphore = semaphore
        self._started = False

    @property
    def integrators(self) -> list[ProjectIntegrator]:
        return list(self._integrators.values())

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        for integrator in self._integrators.values():
            await integrator.start()
        log.info("integration_server_started", projects=len(self._integrators))

    async def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        await asyncio.gather(
            *(i.stop() for i in self._integrators.values()),
            return_exceptions=True,
        )
        log.info("integration_server_stopped")

    def force_build(self, project_name: str, source: str = "user") -> None:
        integrator = self._integrators.get(project_name)
        if integrator is None:
            raise KeyError(f"Project not found: {project_name}")
        integrator.force_build(source)

    def status(self) -> list[dict[str, Any]]:
        """Snapshot of every project, safe to call while pipelines run."""
        rows: list[dict[str, Any]] = []
        for name, integrator in self._integrators.items():
            last = integrator.last_result
            next_build = integrator.trigger.next_build
            rows.append(
                {
                    "project": name,
                    "activity": integrator.project.activity.value,
                    "last_status": last.status.value if last else None,
                    "last_label": last.label if last else None,
                    "next_build": next_build.isoformat() if next_build else None,
                }
            )
        return rows

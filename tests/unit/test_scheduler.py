"""Unit tests — scheduler.py (ProjectIntegrator, IntegrationServer)."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from ci_orchestrator.models import (
    BuildCondition,
    IntegrationResult,
    IntegrationStatus,
    ProjectActivity,
)
from ci_orchestrator.project import Project
from ci_orchestrator.runner import IntegrationRunner
from ci_orchestrator.scheduler import IntegrationServer, ProjectIntegrator
from ci_orchestrator.triggers import Trigger


def _trigger(*conditions: BuildCondition) -> MagicMock:
    trigger = MagicMock(spec=Trigger)
    if conditions:
        trigger.should_run_integration.side_effect = list(conditions)
    else:
        trigger.should_run_integration.return_value = BuildCondition.NO_BUILD
    trigger.description = "StubTrigger"
    trigger.next_build = None
    return trigger


def _runner(project: Project, status: IntegrationStatus = IntegrationStatus.SUCCESS) -> MagicMock:
    runner = MagicMock(spec=IntegrationRunner)

    async def integrate(request) -> IntegrationResult:
        result = IntegrationResult(
            project_name=project.name,
            working_directory=project.working_directory,
            artifact_directory=project.artifact_directory,
            build_condition=request.build_condition,
            label="1",
            request=request,
        )
        result.status = status
        return result

    runner.integrate = AsyncMock(side_effect=integrate)
    return runner


def _project(tmp_path: Path, name: str = "web") -> Project:
    return Project(name, tmp_path / name / "work", tmp_path / name / "artifacts")


@pytest.mark.unit
class TestProjectIntegratorRunOnce:
    async def test_no_build_does_not_integrate(self, project) -> None:
        trigger = _trigger(BuildCondition.NO_BUILD)
        runner = _runner(project)
        integrator = ProjectIntegrator(project, trigger, runner)

        assert await integrator.run_once() is None
        runner.integrate.assert_not_awaited()
        trigger.integration_completed.assert_not_called()

    async def test_fired_trigger_integrates_then_completes(self, project) -> None:
        trigger = _trigger(BuildCondition.IF_MODIFICATION_EXISTS)
        runner = _runner(project)
        integrator = ProjectIntegrator(project, trigger, runner)

        result = await integrator.run_once()

        request = runner.integrate.await_args.args[0]
        assert request.build_condition == BuildCondition.IF_MODIFICATION_EXISTS
        assert request.source == "StubTrigger"
        trigger.integration_completed.assert_called_once()
        assert integrator.last_result is result

    async def test_force_build_takes_precedence(self, project) -> None:
        trigger = _trigger(BuildCondition.IF_MODIFICATION_EXISTS)
        runner = _runner(project)
        integrator = ProjectIntegrator(project, trigger, runner)

        integrator.force_build("alice")
        await integrator.run_once()

        request = runner.integrate.await_args.args[0]
        assert request.build_condition == BuildCondition.FORCE_BUILD
        assert "alice" in request.source
        trigger.should_run_integration.assert_not_called()
        trigger.integration_completed.assert_not_called()

    async def test_trigger_error_is_logged_and_skipped(self, project) -> None:
        trigger = _trigger()
        trigger.should_run_integration.side_effect = RuntimeError("clock skew")
        runner = _runner(project)
        integrator = ProjectIntegrator(project, trigger, runner)

        assert await integrator.run_once() is None
        runner.integrate.assert_not_awaited()

    def test_poll_interval_must_be_positive(self, project) -> None:
        with pytest.raises(ValueError, match="positive"):
            ProjectIntegrator(project, _trigger(), _runner(project), poll_interval_seconds=0)


@pytest.mark.unit
class TestProjectIntegratorLoop:
    async def test_start_and_stop(self, project) -> None:
        integrator = ProjectIntegrator(project, _trigger(), _runner(project), poll_interval_seconds=0.01)
        assert not integrator.is_running
        await integrator.start()
        assert integrator.is_running
        await integrator.stop()
        assert not integrator.is_running

    async def test_polls_until_trigger_fires(self, project) -> None:
        trigger = _trigger(
            BuildCondition.NO_BUILD,
            BuildCondition.NO_BUILD,
            BuildCondition.FORCE_BUILD,
            *([BuildCondition.NO_BUILD] * 100),
        )
        runner = _runner(project)
        integrator = ProjectIntegrator(project, trigger, runner, poll_interval_seconds=0.01)

        await integrator.start()
        for _ in range(100):
            if runner.integrate.await_count:
                break
            await asyncio.sleep(0.01)
        await integrator.stop()

        assert runner.integrate.await_count == 1
        trigger.integration_completed.assert_called_once()

    async def test_force_build_wakes_loop(self, project) -> None:
        runner = _runner(project)
        integrator = ProjectIntegrator(project, _trigger(), runner, poll_interval_seconds=60)

        await integrator.start()
        await asyncio.sleep(0.01)
        integrator.force_build()
        for _ in range(100):
            if runner.integrate.await_count:
                break
            await asyncio.sleep(0.01)
        await integrator.stop()

        runner.integrate.assert_awaited_once()

    async def test_runner_error_keeps_loop_alive(self, project) -> None:
        trigger = _trigger(*([BuildCondition.FORCE_BUILD] * 200))
        runner = MagicMock(spec=IntegrationRunner)
        runner.integrate = AsyncMock(side_effect=RuntimeError("result store broken"))
        integrator = ProjectIntegrator(project, trigger, runner, poll_interval_seconds=0.01)

        await integrator.start()
        for _ in range(100):
            if runner.integrate.await_count >= 2:
                break
            await asyncio.sleep(0.01)
        assert integrator.is_running
        await integrator.stop()

        assert runner.integrate.await_count >= 2


@pytest.mark.unit
class TestIntegrationServer:
    def test_duplicate_project_names_rejected(self, tmp_path: Path) -> None:
        a, b = _project(tmp_path), _project(tmp_path)
        with pytest.raises(ValueError, match="Duplicate"):
            IntegrationServer(
                [ProjectIntegrator(a, _trigger(), _runner(a)), ProjectIntegrator(b, _trigger(), _runner(b))]
            )

    def test_shared_semaphore(self, tmp_path: Path) -> None:
        a, b = _project(tmp_path, "a"), _project(tmp_path, "b")
        integrators = [ProjectIntegrator(a, _trigger(), _runner(a)), ProjectIntegrator(b, _trigger(), _runner(b))]
        IntegrationServer(integrators, max_concurrent_integrations=1)
        assert integrators[0].semaphore is not None
        assert integrators[0].semaphore is integrators[1].semaphore

    async def test_start_stop_all(self, tmp_path: Path) -> None:
        a, b = _project(tmp_path, "a"), _project(tmp_path, "b")
        integrators = [
            ProjectIntegrator(a, _trigger(), _runner(a), poll_interval_seconds=0.01),
            ProjectIntegrator(b, _trigger(), _runner(b), poll_interval_seconds=0.01),
        ]
        server = IntegrationServer(integrators)

        await server.start()
        assert all(i.is_running for i in integrators)
        await server.stop()
        assert not any(i.is_running for i in integrators)

    async def test_concurrency_bound(self, tmp_path: Path) -> None:
        running = 0
        peak = 0

        def slow_runner(project: Project) -> MagicMock:
            runner = _runner(project)
            inner = runner.integrate.side_effect

            async def integrate(request):
                nonlocal running, peak
                running += 1
                peak = max(peak, running)
                await asyncio.sleep(0.02)
                running -= 1
                return await inner(request)

            runner.integrate = AsyncMock(side_effect=integrate)
            return runner

        projects = [_project(tmp_path, name) for name in ("a", "b", "c")]
        integrators = [ProjectIntegrator(p, _trigger(), slow_runner(p)) for p in projects]
        IntegrationServer(integrators, max_concurrent_integrations=1)
        for integrator in integrators:
            integrator.force_build()

        await asyncio.gather(*(i.run_once() for i in integrators))

        assert peak == 1
        assert all(i.last_result is not None for i in integrators)

    async def test_force_build_by_name(self, tmp_path: Path) -> None:
        a = _project(tmp_path, "a")
        runner = _runner(a)
        integrator = ProjectIntegrator(a, _trigger(), runner)
        server = IntegrationServer([integrator])

        server.force_build("a", "bob")
        await integrator.run_once()

        assert runner.integrate.await_args.args[0].build_condition == BuildCondition.FORCE_BUILD
        with pytest.raises(KeyError):
            server.force_build("missing")

    async def test_status(self, tmp_path: Path) -> None:
        a = _project(tmp_path, "a")
        integrator = ProjectIntegrator(a, _trigger(BuildCondition.FORCE_BUILD), _runner(a))
        server = IntegrationServer([integrator])

        [before] = server.status()
        assert before == {
            "project": "a",
            "activity": ProjectActivity.SLEEPING.value,
            "last_status": None,
            "last_label": None,
            "next_build": None,
        }

        await integrator.run_once()
        [after] = server.status()
        assert after["last_status"] == "success"
        assert after["last_label"] == "1"

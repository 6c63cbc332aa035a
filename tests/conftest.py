"""Shared pytest fixtures for the ci-orchestrator test suite."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from ci_orchestrator.clock import Clock
from ci_orchestrator.config import Settings, override_settings
from ci_orchestrator.models import BuildCondition, IntegrationRequest, IntegrationResult
from ci_orchestrator.project import Project


class ManualClock(Clock):
    """Clock that only moves when a test moves it."""

    def __init__(self, current: datetime) -> None:
        self.current = current

    def now(self) -> datetime:
        return self.current

    def set(self, moment: datetime) -> None:
        self.current = moment

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> ManualClock:
    # 2004-12-01 was a Wednesday.
    return ManualClock(datetime(2004, 12, 1, 12, 0, 0))


@pytest.fixture
def advancing_sleep(clock: ManualClock):
    """An async sleep that moves the manual clock instead of waiting."""
    calls: list[float] = []

    async def sleep(seconds: float) -> None:
        calls.append(seconds)
        clock.advance(seconds=seconds)

    sleep.calls = calls  # type: ignore[attr-defined]
    return sleep


# ---------------------------------------------------------------------------
# Projects and results
# ---------------------------------------------------------------------------


@pytest.fixture
def project(tmp_path: Path) -> Project:
    return Project(
        name="web",
        working_directory=tmp_path / "work",
        artifact_directory=tmp_path / "artifacts",
    )


@pytest.fixture
def make_result(tmp_path: Path, clock: ManualClock):
    def _make(
        condition: BuildCondition = BuildCondition.IF_MODIFICATION_EXISTS,
        start_time: datetime | None = None,
        label: str = "1",
    ) -> IntegrationResult:
        return IntegrationResult(
            project_name="web",
            working_directory=tmp_path / "work",
            artifact_directory=tmp_path / "artifacts",
            build_condition=condition,
            label=label,
            request=IntegrationRequest(condition, "test"),
            start_time=start_time,
            clock=clock,
        )

    return _make


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    settings = Settings(
        logging={"level": "debug", "format": "console"},
        projects=[
            {
                "name": "web",
                "working_directory": str(tmp_path / "work"),
                "artifact_directory": str(tmp_path / "artifacts"),
                "triggers": [{"type": "interval", "seconds": 30}],
                "tasks": [{"command": ["true"]}],
            }
        ],
    )
    override_settings(settings)
    return settings

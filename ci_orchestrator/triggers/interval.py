"""IntervalTrigger — fires every N seconds after the previous integration.

Configuration::

    seconds          float — interval between integrations (default 60)
    initial_seconds  float — delay before the very first integration (default 0)
    build_condition  IfModificationExists (default) | ForceBuild | NoBuild

Unlike ScheduleTrigger, the next due time is measured from the moment the
integration *completed*, so long builds push later integrations back.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from ci_orchestrator.clock import Clock
from ci_orchestrator.exceptions import ConfigurationError
from ci_orchestrator.models import BuildCondition
from ci_orchestrator.triggers.base import Trigger


class IntervalTrigger(Trigger):
    def __init__(
        self,
        clock: Clock,
        seconds: float = 60.0,
        build_condition: BuildCondition | str = BuildCondition.IF_MODIFICATION_EXISTS,
        initial_seconds: float = 0.0,
    ) -> None:
        if seconds <= 0:
            raise ConfigurationError(
                f"seconds must be positive, got {seconds}", context={"seconds": seconds}
            )
        if initial_seconds < 0:
            raise ConfigurationError(
                f"initial_seconds must not be negative, got {initial_seconds}",
                context={"initial_seconds": initial_seconds},
            )
        self._clock = clock
        self.seconds = float(seconds)
        self.initial_seconds = float(initial_seconds)
        self.build_condition = BuildCondition.parse(build_condition)
        self._next_build: datetime | None = None

    @property
    def next_build(self) -> datetime | None:
        return self._next_build

    @property
    def description(self) -> str:
        return f"IntervalTrigger({self.seconds:g}s)"

    def should_run_integration(self) -> BuildCondition:
        now = self._clock.now()
        if self._next_build is None:
            self._next_build = now + timedelta(seconds=self.initial_seconds)
        if now < self._next_build:
            return BuildCondition.NO_BUILD
        return self.build_condition

    def integration_completed(self) -> None:
        self._next_build = self._clock.now() + timedelta(seconds=self.seconds)

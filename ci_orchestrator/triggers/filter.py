"""FilterTrigger — suppresses an inner trigger during a time window.

Configuration::

    trigger          inner trigger (required)
    start_time       "HH:mm[:ss]" — window start (required)
    end_time         "HH:mm[:ss]" — window end (required, may be before
                     start_time for windows that wrap midnight)
    week_days        days the window applies to (default all seven)
    build_condition  condition returned instead of the inner one while the
                     window is active (default NoBuild)

Outside the window the inner trigger's decision passes through unchanged.
Inside it, a firing inner trigger is answered with ``build_condition``; the
inner trigger stays un-completed and fires again once the window closes.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from ci_orchestrator.clock import Clock
from ci_orchestrator.models import ALL_WEEK_DAYS, BuildCondition, WeekDay
from ci_orchestrator.triggers.base import Trigger, parse_time_of_day


class FilterTrigger(Trigger):
    def __init__(
        self,
        clock: Clock,
        trigger: Trigger,
        start_time: str,
        end_time: str,
        week_days: Iterable[WeekDay | str] | None = None,
        build_condition: BuildCondition | str = BuildCondition.NO_BUILD,
    ) -> None:
        self._clock = clock
        self.inner_trigger = trigger
        self.start_time = parse_time_of_day(start_time)
        self.end_time = parse_time_of_day(end_time)
        self.week_days: tuple[WeekDay, ...] = (
            ALL_WEEK_DAYS if week_days is None else tuple(WeekDay.parse(d) for d in week_days)
        )
        self.build_condition = BuildCondition.parse(build_condition)

    @property
    def description(self) -> str:
        return f"FilterTrigger({self.inner_trigger.description})"

    @property
    def next_build(self) -> datetime | None:
        return self.inner_trigger.next_build

    def should_run_integration(self) -> BuildCondition:
        condition = self.inner_trigger.should_run_integration()
        if condition == BuildCondition.NO_BUILD:
            return condition
        if self._in_filter_range(self._clock.now()):
            return self.build_condition
        return condition

    def integration_completed(self) -> None:
        self.inner_trigger.integration_completed()

    def _in_filter_range(self, now: datetime) -> bool:
        if WeekDay.of(now) not in self.week_days:
            return False
        current = now.time()
        if self.start_time <= self.end_time:
            return self.start_time <= current <= self.end_time
        return current >= self.start_time or current <= self.end_time

"""ScheduleTrigger — fires once a day at a configured time of day.

Configuration::

    time            "HH:mm" or "HH:mm:ss" (required)
    build_condition IfModificationExists (default) | ForceBuild | NoBuild
    week_days       allowed days, default all seven

The due time is computed lazily on the first evaluation as "today at
``time``".  If that moment has already passed the trigger fires straight
away; ``integration_completed()`` then rolls the due time forward by
exactly one day, independent of how late the integration finished.

The rollover does not skip disallowed week days.  When the next day is
not allowed, the due time stays in the past and the trigger fires at the
first evaluation of the next allowed day (00:00 with a fast poller), not
at ``time`` on that day.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, time as time_of_day_type, timedelta

from ci_orchestrator.clock import Clock
from ci_orchestrator.logging import get_logger
from ci_orchestrator.models import ALL_WEEK_DAYS, BuildCondition, WeekDay
from ci_orchestrator.triggers.base import Trigger, parse_time_of_day

log = get_logger(__name__)


class ScheduleTrigger(Trigger):
    """Daily time-of-day trigger restricted to a set of week days."""

    def __init__(
        self,
        clock: Clock,
        time: str,
        build_condition: BuildCondition | str = BuildCondition.IF_MODIFICATION_EXISTS,
        week_days: Iterable[WeekDay | str] | None = None,
    ) -> None:
        self._clock = clock
        self._time_of_day = parse_time_of_day(time)
        self._time_text = str(time).strip()
        self.build_condition = BuildCondition.parse(build_condition)
        self._week_days: tuple[WeekDay, ...] = (
            ALL_WEEK_DAYS if week_days is None else tuple(WeekDay.parse(d) for d in week_days)
        )
        self._next_build: datetime | None = None

    # ---------------------------------------------------------------------------
    # Configuration
    # ---------------------------------------------------------------------------

    @property
    def time(self) -> str:
        """The configured time of day, as written in the configuration."""
        return self._time_text

    @time.setter
    def time(self, value: str) -> None:
        self._time_of_day = parse_time_of_day(value)
        self._time_text = str(value).strip()
        self._next_build = None

    @property
    def time_of_day(self) -> time_of_day_type:
        return self._time_of_day

    @property
    def week_days(self) -> tuple[WeekDay, ...]:
        return self._week_days

    @week_days.setter
    def week_days(self, days: Iterable[WeekDay | str]) -> None:
        self._week_days = tuple(WeekDay.parse(d) for d in days)

    @property
    def description(self) -> str:
        return f"ScheduleTrigger({self._time_text})"

    # ---------------------------------------------------------------------------
    # Trigger implementation
    # ---------------------------------------------------------------------------

    @property
    def next_build(self) -> datetime | None:
        return self._next_build

    def should_run_integration(self) -> BuildCondition:
        now = self._clock.now()
        if self._next_build is None:
            self._next_build = self._due_on(now)
        if WeekDay.of(now) not in self._week_days:
            return BuildCondition.NO_BUILD
        if now < self._next_build:
            return BuildCondition.NO_BUILD
        return self.build_condition

    def integration_completed(self) -> None:
        if self._next_build is None:
            self._next_build = self._due_on(self._clock.now())
        self._next_build += timedelta(days=1)
        log.debug("schedule_trigger_rearmed", next_build=self._next_build.isoformat())

    def _due_on(self, moment: datetime) -> datetime:
        return datetime.combine(moment.date(), self._time_of_day)

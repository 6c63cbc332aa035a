"""Integration data models.

Key classes
-----------
BuildCondition      — why an integration should run (ordered: NO_BUILD <
                      IF_MODIFICATION_EXISTS < FORCE_BUILD)
IntegrationStatus   — outcome of one integration attempt
ProjectActivity     — coarse liveness state of a project pipeline
WeekDay             — configured week-day names
IntegrationRequest  — immutable input to one pipeline run
Modification        — one change reported by a source-control provider
IntegrationResult   — mutable record of one integration attempt
ActivityCell        — lock-protected holder for the current ProjectActivity
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any

from ci_orchestrator.clock import Clock, SystemClock
from ci_orchestrator.exceptions import ConfigurationError, InvalidWeekDayError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class BuildCondition(IntEnum):
    """Reason class for running an integration.

    Higher value wins when several triggers are combined.
    """

    NO_BUILD = 0
    IF_MODIFICATION_EXISTS = 1
    FORCE_BUILD = 2

    @property
    def config_name(self) -> str:
        """Name used in configuration files (``ForceBuild``)."""
        return _CONDITION_NAMES[self]

    @classmethod
    def parse(cls, value: str | BuildCondition) -> BuildCondition:
        """Accept ``ForceBuild``, ``FORCE_BUILD`` or ``forcebuild``."""
        if isinstance(value, BuildCondition):
            return value
        key = str(value).strip().replace("_", "").lower()
        for member, name in _CONDITION_NAMES.items():
            if name.lower() == key:
                return member
        raise ConfigurationError(
            f"Invalid build condition '{value}'",
            context={"value": value, "allowed": list(_CONDITION_NAMES.values())},
        )


_CONDITION_NAMES = {
    BuildCondition.NO_BUILD: "NoBuild",
    BuildCondition.IF_MODIFICATION_EXISTS: "IfModificationExists",
    BuildCondition.FORCE_BUILD: "ForceBuild",
}


class IntegrationStatus(str, Enum):
    UNKNOWN = "unknown"
    SUCCESS = "success"
    FAILURE = "failure"
    EXCEPTION = "exception"
    CANCELLED = "cancelled"


class ProjectActivity(str, Enum):
    SLEEPING = "sleeping"
    CHECKING_MODIFICATIONS = "checking_modifications"
    BUILDING = "building"


class WeekDay(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def parse(cls, value: str | WeekDay) -> WeekDay:
        if isinstance(value, WeekDay):
            return value
        key = str(value).strip().lower()
        for day in cls:
            if day.value.lower() == key or day.name.lower() == key:
                return day
        raise InvalidWeekDayError(str(value))

    @classmethod
    def of(cls, moment: datetime) -> WeekDay:
        """Return the week day of *moment* (``datetime.weekday()`` is Monday=0)."""
        return ALL_WEEK_DAYS[moment.weekday()]


ALL_WEEK_DAYS: tuple[WeekDay, ...] = tuple(WeekDay)


# ---------------------------------------------------------------------------
# Request / modification values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IntegrationRequest:
    """What asked for an integration and with which condition."""

    build_condition: BuildCondition
    source: str
    requested_at: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"{self.source} triggered a build ({self.build_condition.config_name})"


@dataclass(frozen=True)
class Modification:
    """One change seen by a source-control provider."""

    type: str
    file_name: str
    folder_name: str
    modified_time: datetime
    user_name: str = ""
    change_number: str = ""
    comment: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "file_name": self.file_name,
            "folder_name": self.folder_name,
            "modified_time": self.modified_time.isoformat(),
            "user_name": self.user_name,
            "change_number": self.change_number,
            "comment": self.comment,
        }


# ---------------------------------------------------------------------------
# IntegrationResult
# ---------------------------------------------------------------------------


@dataclass
class IntegrationResult:
    """Mutable record of one integration attempt.

    Owned by the IntegrationRunner for the duration of one ``integrate``
    call.  Assigning ``exception_result`` switches the status to
    ``EXCEPTION``.
    """

    project_name: str
    working_directory: Path
    artifact_directory: Path
    build_condition: BuildCondition = BuildCondition.IF_MODIFICATION_EXISTS
    label: str = ""
    request: IntegrationRequest | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    modifications: list[Modification] = field(default_factory=list)
    status: IntegrationStatus = IntegrationStatus.UNKNOWN
    is_initial: bool = False
    clock: Clock = field(default_factory=SystemClock, repr=False, compare=False)
    _exception_result: BaseException | None = field(default=None, init=False, repr=False)

    @classmethod
    def initial(
        cls,
        project_name: str,
        working_directory: Path,
        artifact_directory: Path,
        clock: Clock | None = None,
    ) -> IntegrationResult:
        """Sentinel "no integration yet" result.

        Its start time is ``datetime.min`` so the first modification window
        covers the whole history of the repository.
        """
        return cls(
            project_name=project_name,
            working_directory=working_directory,
            artifact_directory=artifact_directory,
            start_time=datetime.min,
            end_time=datetime.min,
            is_initial=True,
            clock=clock or SystemClock(),
        )

    # ---------------------------------------------------------------------------
    # Business logic
    # ---------------------------------------------------------------------------

    @property
    def exception_result(self) -> BaseException | None:
        return self._exception_result

    @exception_result.setter
    def exception_result(self, exc: BaseException | None) -> None:
        self._exception_result = exc
        if exc is not None:
            self.status = IntegrationStatus.EXCEPTION

    @property
    def succeeded(self) -> bool:
        return self.status == IntegrationStatus.SUCCESS

    @property
    def failed(self) -> bool:
        return self.status == IntegrationStatus.FAILURE

    @property
    def has_modifications(self) -> bool:
        return len(self.modifications) > 0

    @property
    def last_modification_date(self) -> datetime | None:
        if not self.modifications:
            return None
        return max(m.modified_time for m in self.modifications)

    @property
    def total_integration_time(self) -> timedelta | None:
        if self.start_time is None or self.end_time is None:
            return None
        return self.end_time - self.start_time

    def mark_start_time(self) -> None:
        self.start_time = self.clock.now()

    def mark_end_time(self) -> None:
        self.end_time = self.clock.now()

    def should_run_build(self) -> bool:
        """Decide from the modifications found *now*, not from the trigger."""
        if self.build_condition == BuildCondition.FORCE_BUILD:
            return True
        if self.build_condition == BuildCondition.IF_MODIFICATION_EXISTS:
            return self.has_modifications
        return False

    def to_dict(self) -> dict[str, Any]:
        return {
            "project": self.project_name,
            "label": self.label,
            "build_condition": self.build_condition.config_name,
            "status": self.status.value,
            "request": str(self.request) if self.request else None,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "working_directory": str(self.working_directory),
            "artifact_directory": str(self.artifact_directory),
            "modifications": [m.to_dict() for m in self.modifications],
            "exception": repr(self.exception_result) if self.exception_result else None,
        }


# ---------------------------------------------------------------------------
# ActivityCell
# ---------------------------------------------------------------------------


class ActivityCell:
    """Holds the current ProjectActivity.

    Monitors read the value from other threads while a pipeline runs, so
    every update replaces the whole value under a lock.
    """

    def __init__(self, initial: ProjectActivity = ProjectActivity.SLEEPING) -> None:
        self._value = initial
        self._lock = threading.Lock()

    def get(self) -> ProjectActivity:
        with self._lock:
            return self._value

    def set(self, activity: ProjectActivity) -> None:
        with self._lock:
            self._value = activity

"""Trigger — abstract base class for all integration triggers.

A trigger is polled by the project scheduler.  It answers one question per
evaluation — "should an integration run now, and with which condition?" —
and is told when the resulting integration has completed.

Contract
--------
- ``should_run_integration()`` — pure function of the injected clock and
  internal state; returns ``BuildCondition.NO_BUILD`` when nothing is due
- ``integration_completed()``  — advances internal state after a run
- ``next_build``               — informational; the moment the trigger
  expects to fire next (``None`` until known)

A trigger never exposes whether it has "fired".  Callers observe that only
through the returned BuildCondition and must call ``integration_completed()``
to re-arm it.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime, time

from ci_orchestrator.exceptions import InvalidTimeError
from ci_orchestrator.models import BuildCondition

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


class Trigger(ABC):
    """Abstract base for all triggers."""

    @abstractmethod
    def should_run_integration(self) -> BuildCondition:
        """Return the condition to integrate with, or NO_BUILD."""

    @abstractmethod
    def integration_completed(self) -> None:
        """Re-arm the trigger after the integration it requested has run."""

    @property
    def next_build(self) -> datetime | None:
        return None

    @property
    def description(self) -> str:
        return type(self).__name__


def parse_time_of_day(value: str) -> time:
    """Parse ``HH:mm`` or ``HH:mm:ss``; raise InvalidTimeError otherwise."""
    match = _TIME_RE.match(str(value).strip())
    if match is None:
        raise InvalidTimeError(str(value))
    hour, minute, second = (int(g) if g is not None else 0 for g in match.groups())
    try:
        return time(hour, minute, second)
    except ValueError as exc:
        raise InvalidTimeError(str(value)) from exc

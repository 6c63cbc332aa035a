"""Clock provider.

Triggers, the quiet period and integration results read time through a
``Clock`` passed in at construction, never through ``datetime.now()``
directly, so evaluation is a pure function of injected time plus state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime


class Clock(ABC):
    """Supplies the current local time."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current local (naive) time."""


class SystemClock(Clock):
    """Wall clock.  Stateless, so one instance can be shared by all projects."""

    def now(self) -> datetime:
        return datetime.now()

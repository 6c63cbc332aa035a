"""Quiet period — lets bursts of commits settle before building.

QuietPeriod         — ABC consumed by the IntegrationRunner
NullQuietPeriod     — a single poll, no waiting
DefaultQuietPeriod  — re-polls until no modification is younger than
                      ``modification_delay_seconds``, bounded by
                      ``max_wait_seconds``

While waiting, DefaultQuietPeriod moves ``to_result.start_time`` forward to
the end of the window it last polled, so the next integration's window
begins exactly where this one ended.  Hitting ``max_wait_seconds`` is not an
error: the modifications observed so far are returned.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Awaitable, Callable

from ci_orchestrator.clock import Clock
from ci_orchestrator.logging import get_logger
from ci_orchestrator.models import IntegrationResult, Modification
from ci_orchestrator.sourcecontrol import SourceControl

log = get_logger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class QuietPeriod(ABC):
    @abstractmethod
    async def get_modifications(
        self,
        source_control: SourceControl,
        from_result: IntegrationResult,
        to_result: IntegrationResult,
    ) -> list[Modification]:
        """Return the settled modification set between two results."""


class NullQuietPeriod(QuietPeriod):
    async def get_modifications(
        self,
        source_control: SourceControl,
        from_result: IntegrationResult,
        to_result: IntegrationResult,
    ) -> list[Modification]:
        return await source_control.get_modifications(from_result, to_result)


class DefaultQuietPeriod(QuietPeriod):
    """Waits until the repository has been quiet for the configured delay."""

    def __init__(
        self,
        clock: Clock,
        modification_delay_seconds: float = 0.0,
        max_wait_seconds: float = 600.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._clock = clock
        self.modification_delay_seconds = float(modification_delay_seconds)
        self.max_wait_seconds = float(max_wait_seconds)
        self._sleep = sleep

    async def get_modifications(
        self,
        source_control: SourceControl,
        from_result: IntegrationResult,
        to_result: IntegrationResult,
    ) -> list[Modification]:
        modifications = await source_control.get_modifications(from_result, to_result)
        if self.modification_delay_seconds <= 0:
            return modifications

        delay = timedelta(seconds=self.modification_delay_seconds)
        deadline = self._clock.now() + timedelta(seconds=self.max_wait_seconds)
        window_end = to_result.start_time or self._clock.now()

        while self._modifications_in_quiet_period(modifications, window_end, delay):
            now = self._clock.now()
            if now >= deadline:
                log.warning(
                    "quiet_period_timeout",
                    project=to_result.project_name,
                    modifications=len(modifications),
                    max_wait_seconds=self.max_wait_seconds,
                )
                return modifications

            latest = max(m.modified_time for m in modifications)
            resume_at = min(latest + delay, deadline)
            wait = max(0.0, (resume_at - now).total_seconds())
            log.info(
                "quiet_period_waiting",
                project=to_result.project_name,
                seconds=wait,
                last_modification=latest.isoformat(),
            )
            await self._sleep(wait)

            window_end = self._clock.now()
            to_result.start_time = window_end
            modifications = await source_control.get_modifications(from_result, to_result)

        return modifications

    @staticmethod
    def _modifications_in_quiet_period(
        modifications: list[Modification], window_end: datetime, delay: timedelta
    ) -> bool:
        threshold = window_end - delay
        return any(m.modified_time > threshold for m in modifications)

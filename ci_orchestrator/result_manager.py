"""Integration result lifecycle for one project.

The manager owns the *current* (in progress) result and the *last*
finalized one.  Exactly one integration may be in progress: starting a new
integration while an unpublished one is still current discards the latter,
which is what happens when a run ends with status UNKNOWN (nothing built)
or EXCEPTION with exception publishing disabled.

Usage::

    manager = IntegrationResultManager(project, clock)
    result = manager.start_new_integration(request)
    previous = manager.last_integration_result
    ...
    manager.finish_integration()
"""

from __future__ import annotations

from ci_orchestrator.clock import Clock, SystemClock
from ci_orchestrator.exceptions import NoIntegrationInProgressError
from ci_orchestrator.logging import get_logger
from ci_orchestrator.models import IntegrationRequest, IntegrationResult
from ci_orchestrator.project import IntegrationRunnerTarget

log = get_logger(__name__)


class DefaultLabeller:
    """``prefix`` + build number; the number moves on only after a success."""

    def __init__(self, prefix: str = "", initial_build_number: int = 1) -> None:
        self.prefix = prefix
        self.initial_build_number = initial_build_number

    def generate(self, last_result: IntegrationResult) -> str:
        if last_result.is_initial or not last_result.label:
            return f"{self.prefix}{self.initial_build_number}"
        number = self._build_number(last_result.label)
        if last_result.succeeded:
            number += 1
        return f"{self.prefix}{number}"

    def _build_number(self, label: str) -> int:
        suffix = label[len(self.prefix):] if label.startswith(self.prefix) else label
        try:
            return int(suffix)
        except ValueError:
            return self.initial_build_number


class IntegrationResultManager:
    def __init__(
        self,
        project: IntegrationRunnerTarget,
        clock: Clock | None = None,
        labeller: DefaultLabeller | None = None,
    ) -> None:
        self._project = project
        self._clock = clock or SystemClock()
        self._labeller = labeller or DefaultLabeller()
        self._current: IntegrationResult | None = None
        self._last: IntegrationResult | None = None

    @property
    def last_integration_result(self) -> IntegrationResult:
        """Last finalized result, or the initial sentinel."""
        if self._last is None:
            self._last = IntegrationResult.initial(
                self._project.name,
                self._project.working_directory,
                self._project.artifact_directory,
                clock=self._clock,
            )
        return self._last

    @property
    def current_integration(self) -> IntegrationResult | None:
        return self._current

    def start_new_integration(self, request: IntegrationRequest) -> IntegrationResult:
        if self._current is not None:
            log.debug(
                "unfinished_integration_discarded",
                project=self._project.name,
                label=self._current.label,
                status=self._current.status.value,
            )
        self._current = IntegrationResult(
            project_name=self._project.name,
            working_directory=self._project.working_directory,
            artifact_directory=self._project.artifact_directory,
            build_condition=request.build_condition,
            label=self._labeller.generate(self.last_integration_result),
            request=request,
            clock=self._clock,
        )
        return self._current

    def finish_integration(self) -> None:
        """Commit the current result as the last one."""
        if self._current is None:
            raise NoIntegrationInProgressError(self._project.name)
        self._last = self._current
        self._current = None
        log.debug(
            "integration_finished",
            project=self._project.name,
            label=self._last.label,
            status=self._last.status.value,
        )

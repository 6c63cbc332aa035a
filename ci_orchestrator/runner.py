"""IntegrationRunner — drives one integration attempt end-to-end.

Pipeline for ``integrate(request)``:
  1. Start a new result with the result manager and fetch the last one
     (failures here propagate: there is no result to record them on)
  2. Mark the start time
  3. Guarded region — any exception is logged and stored on the result
     (status EXCEPTION), never re-raised:
     a. Create the working and artifact directories
     b. activity = CHECKING_MODIFICATIONS; ask the quiet period for the
        settled modifications between the last and the new result
     c. ``result.should_run_build()`` decides, not the trigger's condition,
        since modifications may have changed since the trigger fired
     d. activity = BUILDING; prebuild, get source, run the build
  4. Mark the end time
  5. Post-build, only when ``should_publish_result``:
     label source control (errors logged and discarded), publish, and
     finalize with the result manager
  6. activity = SLEEPING, whatever happened
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from ci_orchestrator.exceptions import LabelSourceControlError
from ci_orchestrator.logging import bind_integration_context, get_logger
from ci_orchestrator.models import (
    IntegrationRequest,
    IntegrationResult,
    IntegrationStatus,
    Modification,
    ProjectActivity,
)
from ci_orchestrator.project import IntegrationRunnerTarget
from ci_orchestrator.quiet_period import QuietPeriod
from ci_orchestrator.result_manager import IntegrationResultManager

log = get_logger(__name__)


class IntegrationRunner:
    """Executes one integration for a single project.

    Usage::

        runner = IntegrationRunner(
            result_manager=IntegrationResultManager(project, clock),
            target=project,
            quiet_period=DefaultQuietPeriod(clock, modification_delay_seconds=30),
        )
        result = await runner.integrate(request)
    """

    def __init__(
        self,
        result_manager: IntegrationResultManager,
        target: IntegrationRunnerTarget,
        quiet_period: QuietPeriod,
    ) -> None:
        self.target = target
        self._result_manager = result_manager
        self._quiet_period = quiet_period

    async def integrate(self, request: IntegrationRequest) -> IntegrationResult:
        result = self._result_manager.start_new_integration(request)
        last_result = self._result_manager.last_integration_result
        bind_integration_context(project=self.target.name, label=result.label)

        result.mark_start_time()
        try:
            await self._create_directory(result.working_directory)
            await self._create_directory(result.artifact_directory)
            result.modifications = await self._get_modifications(last_result, result)
            if result.should_run_build():
                log.info("build_started", request=str(request))
                self.target.activity = ProjectActivity.BUILDING
                await self.target.prebuild(result)
                await self.target.source_control.get_source(result)
                await self.target.run(result)
                log.info("build_complete", status=result.status.value)
        except Exception as exc:
            log.error("integration_exception", error=str(exc), exc_info=True)
            result.exception_result = exc
        result.mark_end_time()

        await self._post_build(result)
        return result

    def should_publish_result(self, result: IntegrationResult) -> bool:
        if result.status == IntegrationStatus.EXCEPTION:
            return self.target.publish_exceptions
        return result.status != IntegrationStatus.UNKNOWN

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    async def _get_modifications(
        self, from_result: IntegrationResult, to_result: IntegrationResult
    ) -> list[Modification]:
        self.target.activity = ProjectActivity.CHECKING_MODIFICATIONS
        return await self._quiet_period.get_modifications(
            self.target.source_control, from_result, to_result
        )

    async def _post_build(self, result: IntegrationResult) -> None:
        try:
            if self.should_publish_result(result):
                await self._label_source_control(result)
                try:
                    await self.target.publish_results(result)
                except Exception as exc:
                    log.error("publish_results_failed", error=str(exc))
                self._result_manager.finish_integration()
            log.info(
                "integration_complete",
                status=result.status.value,
                end_time=result.end_time.isoformat() if result.end_time else None,
            )
        finally:
            self.target.activity = ProjectActivity.SLEEPING

    async def _label_source_control(self, result: IntegrationResult) -> None:
        try:
            await self.target.source_control.label_source_control(result)
        except Exception as exc:
            error = LabelSourceControlError(self.target.name, exc)
            log.error("label_source_control_failed", error=str(error))

    @staticmethod
    async def _create_directory(directory: Path) -> None:
        await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)

"""CommandTask — runs an external build command as a BuildTask.

The command runs in the result's working directory with ``shell=False``.
A non-zero exit code marks the result FAILURE; a timeout or a missing
executable raises BuildTaskError, which the runner records as EXCEPTION.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Mapping, Sequence

from ci_orchestrator.exceptions import BuildTaskError
from ci_orchestrator.logging import get_logger
from ci_orchestrator.models import IntegrationResult, IntegrationStatus
from ci_orchestrator.project import BuildTask

log = get_logger(__name__)


class CommandTask(BuildTask):
    def __init__(
        self,
        command: Sequence[str],
        timeout_seconds: float = 600.0,
        env: Mapping[str, str] | None = None,
    ) -> None:
        if not command:
            raise ValueError("CommandTask requires a non-empty command")
        self.command = list(command)
        self.timeout_seconds = timeout_seconds
        self.env = dict(env or {})

    async def run(self, result: IntegrationResult) -> None:
        env = os.environ.copy()
        env.update(self.env)
        env["CI_PROJECT"] = result.project_name
        env["CI_LABEL"] = result.label

        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=result.working_directory,
                env=env,
            )
        except OSError as exc:
            raise BuildTaskError(
                f"Cannot start command {self.command[0]!r}: {exc}",
                context={"command": self.command},
            ) from exc

        try:
            output, _ = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.communicate()
            raise BuildTaskError(
                f"Command timed out after {self.timeout_seconds}s: {' '.join(self.command)}",
                context={"command": self.command, "timeout_seconds": self.timeout_seconds},
            )

        text = output.decode(errors="replace") if output else ""
        log.debug("command_output", command=self.command, output=text[-4000:])
        if proc.returncode != 0:
            log.info("command_failed", command=self.command, return_code=proc.returncode)
            result.status = IntegrationStatus.FAILURE

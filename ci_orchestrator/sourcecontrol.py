"""Source-control providers.

The pipeline reaches source control only through the SourceControl ABC:

    get_modifications(from_result, to_result)  — changes in the window
                                                 (from.start_time, to.start_time]
    get_source(result)                         — fetch into the working directory
    label_source_control(result)               — tag a published build

NullSourceControl       — never reports changes (force builds only)
FileSystemSourceControl — treats a local directory tree as the repository,
                          using file modification times as change history
"""

from __future__ import annotations

import asyncio
import os
import shutil
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

from ci_orchestrator.exceptions import SourceControlError
from ci_orchestrator.logging import get_logger
from ci_orchestrator.models import IntegrationResult, Modification

log = get_logger(__name__)


class SourceControl(ABC):
    """Abstract base for all source-control providers."""

    @abstractmethod
    async def get_modifications(
        self, from_result: IntegrationResult, to_result: IntegrationResult
    ) -> list[Modification]:
        """Return changes made after *from_result* started, up to *to_result*."""

    async def get_source(self, result: IntegrationResult) -> None:
        """Bring the working directory up to date.  Default: nothing to fetch."""

    async def label_source_control(self, result: IntegrationResult) -> None:
        """Tag the repository with ``result.label``.  Default: not supported."""


class NullSourceControl(SourceControl):
    async def get_modifications(
        self, from_result: IntegrationResult, to_result: IntegrationResult
    ) -> list[Modification]:
        return []


class FileSystemSourceControl(SourceControl):
    """A plain directory as repository.

    Every file whose mtime falls in ``(from.start_time, to.start_time]`` is a
    modification.  Files are reported in directory walk order.
    """

    def __init__(
        self,
        repository_root: Path | str,
        auto_get_source: bool = False,
        ignore_missing_root: bool = False,
    ) -> None:
        self.repository_root = Path(repository_root).expanduser()
        self.auto_get_source = auto_get_source
        self.ignore_missing_root = ignore_missing_root

    async def get_modifications(
        self, from_result: IntegrationResult, to_result: IntegrationResult
    ) -> list[Modification]:
        since = from_result.start_time or datetime.min
        until = to_result.start_time or datetime.max
        return await asyncio.to_thread(self._scan, since, until)

    async def get_source(self, result: IntegrationResult) -> None:
        if not self.auto_get_source:
            return
        await asyncio.to_thread(
            shutil.copytree, self.repository_root, result.working_directory, dirs_exist_ok=True
        )
        log.debug(
            "source_copied",
            source=str(self.repository_root),
            destination=str(result.working_directory),
        )

    def _scan(self, since: datetime, until: datetime) -> list[Modification]:
        if not self.repository_root.is_dir():
            if self.ignore_missing_root:
                return []
            raise SourceControlError(
                f"Repository root does not exist: {self.repository_root}",
                context={"repository_root": str(self.repository_root)},
            )

        modifications: list[Modification] = []
        for dirpath, dirnames, filenames in os.walk(self.repository_root):
            dirnames.sort()
            for filename in sorted(filenames):
                path = Path(dirpath) / filename
                try:
                    modified = datetime.fromtimestamp(path.stat().st_mtime)
                except OSError as exc:
                    log.warning("source_stat_failed", path=str(path), error=str(exc))
                    continue
                if since < modified <= until:
                    modifications.append(
                        Modification(
                            type="changed",
                            file_name=filename,
                            folder_name=str(Path(dirpath).relative_to(self.repository_root)),
                            modified_time=modified,
                        )
                    )
        return modifications

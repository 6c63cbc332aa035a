"""Unit tests — sourcecontrol.py."""

from __future__ import annotations

import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from ci_orchestrator.exceptions import SourceControlError
from ci_orchestrator.sourcecontrol import FileSystemSourceControl, NullSourceControl


def _touch(path: Path, when: datetime) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("x")
    stamp = when.timestamp()
    os.utime(path, (stamp, stamp))


@pytest.mark.unit
class TestNullSourceControl:
    async def test_never_reports_changes(self, make_result) -> None:
        sc = NullSourceControl()
        assert await sc.get_modifications(make_result(), make_result()) == []
        await sc.get_source(make_result())
        await sc.label_source_control(make_result())


@pytest.mark.unit
class TestFileSystemSourceControl:
    async def test_reports_files_in_window(self, tmp_path: Path, make_result) -> None:
        repo = tmp_path / "repo"
        base = datetime(2004, 12, 1, 12, 0)
        _touch(repo / "old.txt", base - timedelta(hours=2))
        _touch(repo / "src" / "new.py", base - timedelta(minutes=5))
        _touch(repo / "future.txt", base + timedelta(hours=1))

        sc = FileSystemSourceControl(repo)
        mods = await sc.get_modifications(
            make_result(start_time=base - timedelta(hours=1)), make_result(start_time=base)
        )

        assert [(m.folder_name, m.file_name) for m in mods] == [("src", "new.py")]
        assert mods[0].modified_time == base - timedelta(minutes=5)

    async def test_initial_window_covers_everything(self, tmp_path: Path, make_result) -> None:
        repo = tmp_path / "repo"
        base = datetime(2004, 12, 1, 12, 0)
        _touch(repo / "b.txt", base - timedelta(days=300))
        _touch(repo / "a.txt", base - timedelta(days=1))

        sc = FileSystemSourceControl(repo)
        mods = await sc.get_modifications(
            make_result(start_time=datetime.min), make_result(start_time=base)
        )
        assert [m.file_name for m in mods] == ["a.txt", "b.txt"]

    async def test_missing_root_raises(self, tmp_path: Path, make_result) -> None:
        sc = FileSystemSourceControl(tmp_path / "missing")
        with pytest.raises(SourceControlError, match="does not exist"):
            await sc.get_modifications(make_result(), make_result())

    async def test_missing_root_ignored(self, tmp_path: Path, make_result) -> None:
        sc = FileSystemSourceControl(tmp_path / "missing", ignore_missing_root=True)
        assert await sc.get_modifications(make_result(), make_result()) == []

    async def test_get_source_copies_tree(self, tmp_path: Path, make_result) -> None:
        repo = tmp_path / "repo"
        _touch(repo / "pkg" / "mod.py", datetime(2004, 1, 1))
        result = make_result()

        await FileSystemSourceControl(repo, auto_get_source=True).get_source(result)

        assert (result.working_directory / "pkg" / "mod.py").read_text() == "x"

    async def test_get_source_disabled_by_default(self, tmp_path: Path, make_result) -> None:
        repo = tmp_path / "repo"
        _touch(repo / "mod.py", datetime(2004, 1, 1))
        result = make_result()

        await FileSystemSourceControl(repo).get_source(result)

        assert not result.working_directory.exists()

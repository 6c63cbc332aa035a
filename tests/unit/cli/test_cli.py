"""Unit tests — CLI commands."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
import yaml
from typer.testing import CliRunner

from ci_orchestrator.cli.main import app

runner = CliRunner()


def _write_config(tmp_path: Path, projects: list[dict]) -> Path:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.safe_dump({"projects": projects}))
    return config_file


def _project(tmp_path: Path, name: str = "web", **overrides) -> dict:
    data = {
        "name": name,
        "working_directory": str(tmp_path / name / "work"),
        "artifact_directory": str(tmp_path / name / "artifacts"),
    }
    data.update(overrides)
    return data


@pytest.mark.unit
class TestMainCli:
    def test_help(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "run" in result.output
        assert "triggers" in result.output
        assert "config" in result.output


@pytest.mark.unit
class TestConfigCommands:
    def test_validate_ok(self, tmp_path: Path) -> None:
        config_file = _write_config(
            tmp_path, [_project(tmp_path, triggers=[{"type": "interval", "seconds": 60}])]
        )
        result = runner.invoke(app, ["config", "validate", "--config", str(config_file)])
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output
        assert "web" in result.output

    def test_validate_reports_errors(self, tmp_path: Path) -> None:
        config_file = _write_config(
            tmp_path, [_project(tmp_path, triggers=[{"type": "schedule", "time": "noon"}])]
        )
        result = runner.invoke(app, ["config", "validate", "--config", str(config_file)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_validate_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["config", "validate", "-c", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_show(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, [_project(tmp_path)])
        result = runner.invoke(app, ["config", "show", "--config", str(config_file)])
        assert result.exit_code == 0
        assert "poll_interval_seconds" in result.output


@pytest.mark.unit
class TestTriggersCheck:
    def test_check_table(self, tmp_path: Path) -> None:
        config_file = _write_config(
            tmp_path,
            [
                _project(tmp_path, "nightly", triggers=[{"type": "interval", "seconds": 60, "buildCondition": "ForceBuild"}]),
                _project(tmp_path, "manual"),
            ],
        )
        result = runner.invoke(app, ["triggers", "check", "--config", str(config_file)])
        assert result.exit_code == 0
        assert "nightly" in result.output
        assert "ForceBuild" in result.output
        assert "NoBuild" in result.output

    def test_check_invalid_config(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, [_project(tmp_path, triggers=[{"type": "cron"}])])
        result = runner.invoke(app, ["triggers", "check", "--config", str(config_file)])
        assert result.exit_code == 1


@pytest.mark.unit
class TestRunCommand:
    def test_run_starts_server(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, [_project(tmp_path)])
        with patch("ci_orchestrator.cli.commands.run._serve", new_callable=AsyncMock) as serve, \
             patch("ci_orchestrator.logging.configure_logging") as configure:
            result = runner.invoke(app, ["run", "--config", str(config_file), "--log-level", "debug"])

        assert result.exit_code == 0
        serve.assert_awaited_once()
        server = serve.await_args.args[0]
        assert [i.project.name for i in server.integrators] == ["web"]
        assert configure.call_args.kwargs["level"] == "debug"

    def test_run_without_projects(self, tmp_path: Path) -> None:
        config_file = _write_config(tmp_path, [])
        with patch("ci_orchestrator.logging.configure_logging"):
            result = runner.invoke(app, ["run", "--config", str(config_file)])
        assert result.exit_code == 1
        assert "No projects configured" in result.output

"""Tests for the CLI interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from storyforge.cli import main


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "novel"
    root.mkdir()
    return root


@pytest.fixture
def imported_workspace(workspace: Path, bible_file: Path) -> Path:
    """A workspace with the sample bible imported."""
    runner = CliRunner()
    result = runner.invoke(main, ["init", "--path", str(workspace)])
    assert result.exit_code == 0, f"Init failed: {result.output}"
    result = runner.invoke(main, ["import", str(bible_file), "--path", str(workspace)])
    assert result.exit_code == 0, f"Import failed: {result.output}"
    return workspace


class TestCLIInit:
    def test_init_creates_storyforge_dir(self, runner: CliRunner, workspace: Path):
        result = runner.invoke(main, ["init", "--path", str(workspace)])
        assert result.exit_code == 0
        assert "Initializing" in result.output
        assert (workspace / ".storyforge" / "config.json").exists()
        assert (workspace / ".storyforge" / "story.db").exists()

    def test_init_nonexistent_path(self, runner: CliRunner):
        result = runner.invoke(main, ["init", "--path", "/nonexistent/path"])
        assert result.exit_code != 0


class TestCLIImport:
    def test_import_sets_default_project(self, imported_workspace: Path):
        config = json.loads((imported_workspace / ".storyforge" / "config.json").read_text())
        assert config["default_project"] == "p1"

    def test_import_reports_count(self, runner: CliRunner, workspace: Path, bible_file: Path):
        runner.invoke(main, ["init", "--path", str(workspace)])
        result = runner.invoke(main, ["import", str(bible_file), "--path", str(workspace)])
        assert result.exit_code == 0
        assert "9 elements" in result.output

    def test_import_invalid_bible(self, runner: CliRunner, workspace: Path, tmp_path: Path):
        runner.invoke(main, ["init", "--path", str(workspace)])
        bad = tmp_path / "bad.json"
        bad.write_text("[]")
        result = runner.invoke(main, ["import", str(bad), "--path", str(workspace)])
        assert result.exit_code == 1

    def test_import_without_init(self, runner: CliRunner, workspace: Path, bible_file: Path):
        result = runner.invoke(main, ["import", str(bible_file), "--path", str(workspace)])
        assert result.exit_code == 1
        assert "init" in result.output


class TestCLIStatus:
    def test_status(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(main, ["status", "--path", str(imported_workspace)])
        assert result.exit_code == 0
        assert "p1" in result.output

    def test_status_empty_store(self, runner: CliRunner, workspace: Path):
        runner.invoke(main, ["init", "--path", str(workspace)])
        result = runner.invoke(main, ["status", "--path", str(workspace)])
        assert result.exit_code == 0
        assert "No projects" in result.output


class TestCLIContext:
    def test_context_text(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(
            main, ["context", "-c", "c3", "--path", str(imported_workspace)]
        )
        assert result.exit_code == 0, result.output
        assert "# Story Context: The Lantern Road" in result.output
        assert "Pell" in result.output

    def test_context_json(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(
            main,
            ["context", "p1", "--max-elements", "3", "--format", "json",
             "--path", str(imported_workspace)],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert set(data) == {
            "project", "characters", "settings", "plot_points", "recent_content",
        }
        total = sum(len(data[g]) for g in ("characters", "settings", "plot_points",
                                           "recent_content"))
        assert total == 3

    def test_context_summary(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(
            main,
            ["context", "--task", "plot", "--format", "summary",
             "--path", str(imported_workspace)],
        )
        assert result.exit_code == 0, result.output
        assert "Task: plot" in result.output
        assert "Ranking:" in result.output

    def test_context_unknown_project(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(
            main, ["context", "ghost", "--path", str(imported_workspace)]
        )
        assert result.exit_code == 1
        assert "ghost" in result.output

    def test_context_negative_max(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(
            main, ["context", "p1", "-m", "-2", "--path", str(imported_workspace)]
        )
        assert result.exit_code == 1
        assert "Invalid selection request" in result.output

    def test_score(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(
            main, ["score", "p1", "-s", "s2", "--path", str(imported_workspace)]
        )
        assert result.exit_code == 0, result.output
        assert "Relevance Ranking" in result.output
        assert "s2" in result.output


class TestCLITouch:
    def test_touch(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(
            main, ["touch", "p1", "s2", "--path", str(imported_workspace)]
        )
        assert result.exit_code == 0
        assert "Marked 1" in result.output

    def test_touch_unknown_element(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(
            main, ["touch", "p1", "zzz", "--path", str(imported_workspace)]
        )
        assert result.exit_code == 0
        assert "No matching elements" in result.output


class TestCLIExport:
    def test_export(self, runner: CliRunner, imported_workspace: Path, tmp_path: Path):
        out = tmp_path / "export.json"
        result = runner.invoke(
            main, ["export", "p1", str(out), "--path", str(imported_workspace)]
        )
        assert result.exit_code == 0
        assert json.loads(out.read_text())["project"]["title"] == "The Lantern Road"

    def test_export_unknown_project(
        self, runner: CliRunner, imported_workspace: Path, tmp_path: Path
    ):
        result = runner.invoke(
            main,
            ["export", "ghost", str(tmp_path / "x.json"), "--path", str(imported_workspace)],
        )
        assert result.exit_code == 1


class TestCLIConfig:
    def test_config_show(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(
            main, ["config", "show", "--path", str(imported_workspace)]
        )
        assert result.exit_code == 0
        assert "context" in result.output

    def test_config_get(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(
            main,
            ["config", "get", "context.recent_window_days", "--path", str(imported_workspace)],
        )
        assert result.exit_code == 0
        assert "7.0" in result.output

    def test_config_set(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(
            main,
            ["config", "set", "context.max_elements", "4", "--path", str(imported_workspace)],
        )
        assert result.exit_code == 0
        assert "Set" in result.output

        result = runner.invoke(
            main,
            ["context", "--format", "json", "--path", str(imported_workspace)],
        )
        data = json.loads(result.output)
        assert sum(len(v) for k, v in data.items() if k != "project") == 4

    def test_config_get_unknown_key(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(
            main, ["config", "get", "context.nope", "--path", str(imported_workspace)]
        )
        assert result.exit_code == 1
        assert "Unknown config key" in result.output

    def test_config_set_invalid_value(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(
            main,
            ["config", "set", "context.max_workers", "0", "--path", str(imported_workspace)],
        )
        assert result.exit_code == 1
        assert "Invalid value" in result.output

    def test_config_set_unknown_key(self, runner: CliRunner, imported_workspace: Path):
        result = runner.invoke(
            main, ["config", "set", "llm.provider", "x", "--path", str(imported_workspace)]
        )
        assert result.exit_code == 1


class TestCLIMisc:
    def test_policy(self, runner: CliRunner):
        result = runner.invoke(main, ["policy"])
        assert result.exit_code == 0
        assert "directMentionBonus = 10" in result.output

    def test_version(self, runner: CliRunner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

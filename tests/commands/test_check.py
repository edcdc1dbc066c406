"""Tests for the check CLI command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from rulectl.cli import cli


@pytest.mark.usefixtures("_isolated_project")
class TestCheckCommand:
    def test_check_clean(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["check"])
        assert result.exit_code == 0
        assert "OK" in result.output
        assert "7 rules, no issues found." in result.output

    def test_check_json_output(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "check"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["ok"] is True
        assert data["data"]["count"] == 0
        assert data["data"]["rule_count"] == 7

    def test_check_reports_cycles(self, cli_runner: CliRunner, project_root: Path) -> None:
        (project_root / "rules" / "loop.yaml").write_text("a:\n  value: b\nb:\n  value: a\n", encoding="utf-8")
        result = cli_runner.invoke(cli, ["check"])
        assert result.exit_code == 0
        assert "cycle" in result.output
        assert "Cyclic reference: a -> b -> a" in result.output
        assert "1 issues in 9 rules" in result.output

    def test_check_resolution_failure(self, cli_runner: CliRunner, project_root: Path) -> None:
        (project_root / "rules" / "broken.yaml").write_text("x:\n  sum: not a list\n", encoding="utf-8")
        result = cli_runner.invoke(cli, ["--json", "check"])
        assert result.exit_code == 1
        assert result.stdout == ""
        error = json.loads(result.stderr)["error"]
        assert error["code"] == "INVALID_RULE"
        assert "'sum' expects a list" in error["message"]

    def test_rules_flag(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        other = tmp_path / "other.yaml"
        other.write_text("only:\n  value: 1\n", encoding="utf-8")
        result = cli_runner.invoke(cli, ["--json", "-r", str(other), "check"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["data"]["rule_count"] == 1

    def test_verbose_shows_telemetry(self, cli_runner: CliRunner, project_root: Path) -> None:
        (project_root / "rules" / "loop.yaml").write_text("a:\n  value: b\nb:\n  value: a\n", encoding="utf-8")
        result = cli_runner.invoke(cli, ["-v", "check"])
        assert result.exit_code == 0
        assert "CheckService.check" in result.stdout

"""Shared pytest fixtures for rulectl tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from rulectl.config.settings import RulectlSettings
from rulectl.infrastructure.workspace import Workspace
from rulectl.services.telemetry import disable_telemetry

PAYROLL_RULES = """\
salary:
  value: true

salary . gross:
  title: Gross salary
  question: What is the gross monthly salary?
  unit: €

salary . rate:
  value: 0.2

salary . contributions:
  product:
    - gross
    - rate

salary . net:
  unit: €
  sum:
    - gross
    - product:
        - contributions
        - -1

apprentice:
  question: Is the employee an apprentice?

apprentice . exemption:
  applicable if: apprentice
  value: true
  renders not applicable: salary . contributions
"""


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Keep the caller's RULECTL_* variables and telemetry state out of tests."""
    monkeypatch.delenv("RULECTL_CONFIG", raising=False)
    yield
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Temporary project with the payroll rule set under ``rules/``.

    This is the single source of truth for the sample rule set. The
    workspace fixtures build on it.
    """
    rules_dir = tmp_path / "rules"
    rules_dir.mkdir()
    (rules_dir / "payroll.yaml").write_text(PAYROLL_RULES, encoding="utf-8")
    return tmp_path


@pytest.fixture
def workspace(project_root: Path) -> Workspace:
    """Workspace over the payroll rule set, with default settings."""
    return Workspace(RulectlSettings.from_cli(project_root=project_root))


@pytest.fixture
def _isolated_project(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to the temp project so the CLI picks up ``rules/``.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command
    test classes.
    """
    monkeypatch.chdir(project_root)

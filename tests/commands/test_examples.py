"""Tests for the --examples flag on CLI commands."""

from __future__ import annotations

import click
import pytest
from click.testing import CliRunner

from rulectl.cli import cli
from rulectl.commands._base import COMMAND_EXAMPLES, examples_for

# (CLI args, expected keywords in output)
EXAMPLES_COMMANDS: list[tuple[list[str], list[str]]] = [
    (["evaluate", "--examples"], ["--situation", "--explain"]),
    (["check", "--examples"], ["rulectl check"]),
    (["rules", "--examples"], ["rulectl rules list"]),
    (["rules", "list", "--examples"], ["--prefix"]),
    (["rules", "show", "--examples"], ["rulectl rules show"]),
    (["graph", "--examples"], ["rulectl graph cycles"]),
    (["graph", "deps", "--examples"], ["--depth 2"]),
    (["graph", "dependents", "--examples"], ["--all"]),
    (["graph", "cycles", "--examples"], ["rulectl graph cycles"]),
]


@pytest.mark.parametrize(
    "args,expected_keywords",
    EXAMPLES_COMMANDS,
    ids=["_".join(a for a in args if a != "--examples") for args, _ in EXAMPLES_COMMANDS],
)
def test_examples(cli_runner: CliRunner, args: list[str], expected_keywords: list[str]) -> None:
    result = cli_runner.invoke(cli, args)
    assert result.exit_code == 0
    assert "Examples for" in result.output
    for kw in expected_keywords:
        assert kw in result.output


def test_examples_listed_in_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["evaluate", "--help"])
    assert "Show usage examples." in result.output


def _leaf_paths(group: click.Group, prefix: str = "") -> set[str]:
    paths: set[str] = set()
    for name, command in group.commands.items():
        path = f"{prefix}{name}"
        if isinstance(command, click.Group):
            paths |= _leaf_paths(command, f"{path} ")
        else:
            paths.add(path)
    return paths


def test_catalogue_matches_registered_commands() -> None:
    assert set(COMMAND_EXAMPLES) == _leaf_paths(cli)


def test_group_lists_first_example_of_each_subcommand() -> None:
    assert examples_for("graph") == (
        'rulectl graph deps "salary . net"',
        'rulectl graph dependents "salary . gross"',
        "rulectl graph cycles",
    )


def test_examples_are_indented(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["check", "--examples"])
    assert "\n  rulectl --json check\n" in result.output


def test_unknown_path_has_no_examples() -> None:
    assert examples_for("nope") == ()

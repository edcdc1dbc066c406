"""Tests for rule and situation file loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from rulectl.domain.errors import DuplicateDefinition, InvalidRuleDefinition
from rulectl.infrastructure.loader import (
    find_rule_files,
    load_rule_file,
    load_rules,
    load_situation,
    parse_assignment,
    parse_scalar,
)


class TestFindRuleFiles:
    def test_directory_is_scanned_recursively(self, tmp_path: Path) -> None:
        (tmp_path / "b.yaml").write_text("b: {}\n")
        (tmp_path / "nested").mkdir()
        (tmp_path / "nested" / "a.yml").write_text("a: {}\n")
        (tmp_path / "notes.txt").write_text("ignored")
        assert find_rule_files(tmp_path) == [tmp_path / "b.yaml", tmp_path / "nested" / "a.yml"]

    def test_single_file(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yaml"
        path.write_text("a: {}\n")
        assert find_rule_files(path) == [path]

    def test_missing_source(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidRuleDefinition, match="not found"):
            find_rule_files(tmp_path / "absent")


class TestLoadRuleFile:
    def test_names_are_normalized(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yaml"
        path.write_text("salary  .  net:\n  value: 3\nsalary:\n")
        assert load_rule_file(path) == {"salary . net": {"value": 3}, "salary": None}

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_rule_file(path) == {}

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(InvalidRuleDefinition, match="mapping of rules"):
            load_rule_file(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("a: [unclosed\n")
        with pytest.raises(InvalidRuleDefinition, match="Invalid YAML"):
            load_rule_file(path)

    def test_keys_colliding_after_normalization(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yaml"
        path.write_text("a . b: 1\na  . b: 2\n")
        with pytest.raises(DuplicateDefinition):
            load_rule_file(path)


class TestLoadRules:
    def test_merges_files(self, tmp_path: Path) -> None:
        (tmp_path / "a.yaml").write_text("a:\n  value: 1\n")
        (tmp_path / "b.yaml").write_text("b:\n  value: 2\n")
        assert load_rules([tmp_path]) == {"a": {"value": 1}, "b": {"value": 2}}

    def test_same_name_in_two_files(self, tmp_path: Path) -> None:
        (tmp_path / "a.yaml").write_text("shared:\n  value: 1\n")
        (tmp_path / "b.yaml").write_text("shared:\n  value: 2\n")
        with pytest.raises(DuplicateDefinition, match="already defined"):
            load_rules([tmp_path])


class TestSituationFiles:
    def test_load_situation(self, tmp_path: Path) -> None:
        path = tmp_path / "alice.yaml"
        path.write_text("salary  . gross: 3000\napprentice: false\n")
        assert load_situation(path) == {"salary . gross": 3000, "apprentice": False}

    def test_situation_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "alice.yaml"
        path.write_text("3000\n")
        with pytest.raises(InvalidRuleDefinition):
            load_situation(path)


class TestAssignments:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [("3000", 3000), ("0.2", 0.2), ("true", True), ("salary . gross", "salary . gross"), ("'x'", "'x'")],
    )
    def test_parse_scalar(self, text: str, expected: object) -> None:
        assert parse_scalar(text) == expected

    def test_parse_assignment(self) -> None:
        assert parse_assignment("salary  . gross = 3000") == ("salary . gross", 3000)

    def test_value_may_contain_equals(self) -> None:
        assert parse_assignment("note='a=b'") == ("note", "'a=b'")

    @pytest.mark.parametrize("text", ["no-equals", "=3"])
    def test_invalid_assignment(self, text: str) -> None:
        with pytest.raises(ValueError, match="NAME=VALUE"):
            parse_assignment(text)

"""Rule and situation files — YAML in, plain mappings out.

A rule file is a YAML mapping of ``{dotted name: rule body}``. A directory
contributes every ``*.yaml`` / ``*.yml`` file below it, in sorted order.
The same dotted name in two files is a duplicate definition.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from rulectl.domain.errors import DuplicateDefinition, InvalidRuleDefinition
from rulectl.domain.names import normalize_name

logger = logging.getLogger(__name__)

RULE_FILE_SUFFIXES = (".yaml", ".yml")


def _read_yaml(path: Path) -> Any:
    try:
        return YAML(typ="safe").load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeError) as exc:
        msg = f"Cannot read {path}: {exc}"
        raise InvalidRuleDefinition(msg, path=str(path)) from exc
    except YAMLError as exc:
        msg = f"Invalid YAML in {path}: {exc}"
        raise InvalidRuleDefinition(msg, path=str(path)) from exc


def find_rule_files(source: Path) -> list[Path]:
    """Rule files at *source*: the file itself, or every rule file below a directory."""
    if source.is_dir():
        return sorted(
            path for path in source.rglob("*") if path.is_file() and path.suffix in RULE_FILE_SUFFIXES
        )
    if source.is_file():
        return [source]
    msg = f"Rule source not found: {source}"
    raise InvalidRuleDefinition(msg, path=str(source))


def load_rule_file(path: Path) -> dict[str, Any]:
    """Load one rule file as ``{normalized dotted name: body}``.

    Raises:
        InvalidRuleDefinition: if the file is unreadable or not a mapping.
        DuplicateDefinition: if two keys normalize to the same name.
    """
    data = _read_yaml(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"{path} must contain a mapping of rules, got {type(data).__name__}"
        raise InvalidRuleDefinition(msg, path=str(path))

    rules: dict[str, Any] = {}
    for key, body in data.items():
        name = normalize_name(str(key))
        if name in rules:
            msg = f"The reference '{name}' is already defined"
            raise DuplicateDefinition(msg, dotted_name=name, path=str(path))
        rules[name] = body
    return rules


def load_rules(sources: Iterable[Path]) -> dict[str, Any]:
    """Merge every rule file found under *sources* into one mapping.

    Raises:
        DuplicateDefinition: if two files define the same dotted name.
    """
    rules: dict[str, Any] = {}
    origins: dict[str, Path] = {}
    for source in sources:
        for path in find_rule_files(source):
            for name, body in load_rule_file(path).items():
                if name in rules:
                    msg = f"The reference '{name}' is already defined (in {origins[name]} and {path})"
                    raise DuplicateDefinition(msg, dotted_name=name, path=str(path))
                rules[name] = body
                origins[name] = path
            logger.debug("Loaded rule file %s", path)
    return rules


def load_situation(path: Path) -> dict[str, Any]:
    """Load a situation file: a YAML mapping of ``{dotted name: value}``."""
    data = _read_yaml(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"{path} must contain a mapping of situation values"
        raise InvalidRuleDefinition(msg, path=str(path))
    return {normalize_name(str(key)): value for key, value in data.items()}


def parse_scalar(text: str) -> Any:
    """Read a command-line value: booleans and numbers are typed, other text is kept.

    Kept text is parsed later as an expression, so ``'quoted'`` stays a
    string constant and bare words are rule references.
    """
    try:
        value = YAML(typ="safe").load(text)
    except YAMLError:
        return text
    if isinstance(value, (bool, int, float)):
        return value
    return text


def parse_assignment(assignment: str) -> tuple[str, Any]:
    """Split ``NAME=VALUE`` into a dotted name and a scalar.

    Raises:
        ValueError: if there is no ``=`` or the name is empty.
    """
    name, sep, value = assignment.partition("=")
    if not sep or not name.strip():
        msg = f"Expected NAME=VALUE, got {assignment!r}"
        raise ValueError(msg)
    return normalize_name(name), parse_scalar(value.strip())

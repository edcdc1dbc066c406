"""Locating the rulectl project a command runs in.

A project is the directory holding ``rulectl.toml``. Rule paths and the
local plugin directory resolve against it. Without a config file the
project is the starting directory and its rules live under ``rules/``.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import click

CONFIG_FILENAME = "rulectl.toml"
CONFIG_ENV_VAR = "RULECTL_CONFIG"

DEFAULT_RULE_PATHS: tuple[str, ...] = ("rules",)
DEFAULT_PLUGIN_DIR = ".rulectl/plugins"


@dataclass(frozen=True)
class ProjectLocation:
    """Where a project lives and which config file describes it."""

    root: Path
    config_path: Path | None = None

    def resolve(self, path: str | Path) -> Path:
        """Resolve *path* against :attr:`root` unless absolute."""
        p = Path(path).expanduser()
        return p if p.is_absolute() else self.root / p

    def rule_sources(self, paths: Iterable[str] = DEFAULT_RULE_PATHS) -> list[Path]:
        return [self.resolve(path) for path in paths]


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for rulectl.toml.

    RULECTL_CONFIG, when set, wins over the walk-up. A dangling value
    means no config at all.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def locate_project(*, config_path: str | Path | None = None, start: Path | None = None) -> ProjectLocation:
    """Pick the config file and project root for one invocation.

    An explicit *start* is the root. Otherwise the root is the directory
    holding the config file, or the CWD when there is none.

    Raises:
        click.ClickException: if an explicit *config_path* does not exist.
    """
    if config_path:
        toml_path: Path | None = Path(config_path)
        if not toml_path.is_file():
            msg = f"Config file not found: {config_path}"
            raise click.ClickException(msg)
    else:
        toml_path = find_config(start)

    if start is not None:
        root = start
    elif toml_path is not None:
        root = toml_path.parent
    else:
        root = Path.cwd()
    return ProjectLocation(root=root, config_path=toml_path)

"""RulectlSettings — one frozen object for CLI flags, env vars and rulectl.toml.

Sources, highest priority first:

1. keyword arguments (the root CLI flags);
2. ``RULECTL_*`` environment variables, ``__`` between nested keys
   (``RULECTL_ENGINE__DATE=2024-01-01``);
3. the ``rulectl.toml`` in use (``--config`` or found by walking up);
4. the defaults of the section models in :mod:`rulectl.config.models`.

Relative paths in the file resolve against the directory holding it.
"""

from __future__ import annotations

import tomllib
from contextvars import ContextVar
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, TomlConfigSettingsSource

from rulectl.config.discovery import ProjectLocation, locate_project
from rulectl.config.models import EngineConfig, PluginsConfig, RulesConfig

# The config file chosen by from_cli, read while the settings are built.
_active_toml: ContextVar[Path | None] = ContextVar("_active_toml", default=None)


class RulectlTomlSource(TomlConfigSettingsSource):
    """pydantic-settings' TOML source, with parse errors reported as CLI errors."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        try:
            super().__init__(settings_cls, toml_file=toml_path)
        except tomllib.TOMLDecodeError as exc:
            msg = f"Invalid TOML in {toml_path}: {exc}"
            raise click.ClickException(msg) from exc


class RulectlSettings(BaseSettings):
    """Everything a command needs to know about its invocation.

    Built once per CLI call and stored on the
    :class:`~rulectl.commands._context.AppContext`.

    Attributes:
        project_root: Directory relative paths resolve against (parent of
            ``rulectl.toml``, or CWD if no config was found).
        config_path: The config file in use, if any.
        rule_paths: Rule files or directories given with ``--rules``;
            they replace ``[rules] paths`` when non-empty.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "RULECTL_",
        "env_nested_delimiter": "__",
    }

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # Root CLI flags
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False
    rule_paths: tuple[str, ...] = ()

    # rulectl.toml tables
    rules: RulesConfig = Field(default_factory=RulesConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
    situation: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, env_settings, RulectlTomlSource(settings_cls, _active_toml.get()))

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **cli_flags: Any,
    ) -> RulectlSettings:
        """Build settings for one CLI invocation.

        An explicit *config_path* must exist. Without one, ``rulectl.toml``
        is searched for from *project_root* (or the CWD) upwards.

        Raises:
            click.ClickException: if the config file is missing or is not
                valid TOML.
        """
        location = locate_project(config_path=config_path, start=project_root)
        token = _active_toml.set(location.config_path)
        try:
            return cls(project_root=location.root, config_path=location.config_path, **cli_flags)
        finally:
            _active_toml.reset(token)

    @property
    def location(self) -> ProjectLocation:
        return ProjectLocation(root=self.project_root, config_path=self.config_path)

    def resolve_path(self, path: str | Path) -> Path:
        """Resolve *path* against :attr:`project_root` unless absolute."""
        return self.location.resolve(path)

    @property
    def rule_sources(self) -> list[Path]:
        """Rule files and directories to load, resolved."""
        return self.location.rule_sources(self.rule_paths or self.rules.paths)

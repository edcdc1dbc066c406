"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults live here, rulectl.toml only holds overrides.
An empty rulectl.toml loads every ``*.yaml`` file under ``rules/``.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, Field, field_validator

from rulectl.config.discovery import DEFAULT_PLUGIN_DIR, DEFAULT_RULE_PATHS
from rulectl.domain.dates import to_calendar_date


class RulesConfig(BaseModel):
    """[rules] section."""

    model_config = {"frozen": True}

    paths: list[str] = Field(default_factory=lambda: list(DEFAULT_RULE_PATHS))


class EngineConfig(BaseModel):
    """[engine] section."""

    model_config = {"frozen": True}

    parent_missing_bonus: float = Field(default=0.5, ge=0, lt=1)
    missing_weight: float = Field(default=1.0, gt=0)
    date: dt.date | None = None

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Any:
        if isinstance(value, str):
            return to_calendar_date(value)
        return value


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    local_dir: str = DEFAULT_PLUGIN_DIR


class RulectlConfig(BaseModel):
    """Root configuration composing all sections of rulectl.toml."""

    model_config = {"frozen": True}

    rules: RulesConfig = Field(default_factory=RulesConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
    situation: dict[str, Any] = Field(default_factory=dict)

"""Workspace — the single dependency injected into every service.

Owns the plugin manager, the resolved rule set, and the dependency graph,
each built on first access so ``--help`` never touches rule files. A
failed resolution is not cached: the next access retries.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from typing import TYPE_CHECKING, Any

from rulectl.engine.engine import Engine
from rulectl.engine.evaluation import DEFAULT_EVALUATORS, build_evaluators
from rulectl.engine.parse import CHAINABLE_KEYS, MECHANISMS, build_mechanisms
from rulectl.engine.resolver import RULE_FIELDS, ResolvedRules, resolve_rules
from rulectl.infrastructure.graph import RuleGraph
from rulectl.infrastructure.loader import load_rules

if TYPE_CHECKING:
    from rulectl.config.settings import RulectlSettings
    from rulectl.engine.context import Evaluator
    from rulectl.engine.parse import MechanismParser
    from rulectl.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


class Workspace:
    """A rule set on disk plus everything needed to evaluate it."""

    def __init__(self, settings: RulectlSettings) -> None:
        self._settings = settings
        self._plugins: PluginManager | None = None
        self._mechanisms: dict[str, MechanismParser] | None = None
        self._evaluators: dict[str, Evaluator] | None = None
        self._resolved: ResolvedRules | None = None
        self._graph: RuleGraph | None = None

    @property
    def settings(self) -> RulectlSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Plugins
    # ------------------------------------------------------------------

    @property
    def plugins(self) -> PluginManager:
        """The plugin manager (discovered lazily on first access).

        Built-in plugins are always registered; entry-point and local
        plugins only when ``[plugins] enabled`` is true.
        """
        if self._plugins is None:
            from rulectl.plugins.builtins.rounding import RoundingPlugin
            from rulectl.plugins.manager import PluginManager

            pm = PluginManager()
            pm.register_plugin(RoundingPlugin(), name="rounding-builtin")
            config = self._settings.plugins
            if config.enabled:
                pm.discover_and_load(local_dir=self._settings.resolve_path(config.local_dir))
            self._plugins = pm
        return self._plugins

    @property
    def mechanisms(self) -> dict[str, MechanismParser]:
        """Core mechanism parsers plus plugin contributions."""
        if self._mechanisms is None:
            reserved = {*MECHANISMS, *CHAINABLE_KEYS, *RULE_FIELDS}
            self._mechanisms = build_mechanisms(self.plugins.collect_mechanisms(reserved))
        return self._mechanisms

    @property
    def evaluators(self) -> dict[str, Evaluator]:
        """Core evaluators plus plugin contributions."""
        if self._evaluators is None:
            self._evaluators = build_evaluators(self.plugins.collect_evaluators(DEFAULT_EVALUATORS))
        return self._evaluators

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    @property
    def resolved(self) -> ResolvedRules:
        """Load and resolve every rule source (once).

        Raises:
            ResolutionError: if loading or resolution fails.
        """
        if self._resolved is None:
            sources = self._settings.rule_sources
            raw_rules = load_rules(sources)
            self._resolved = resolve_rules(raw_rules, mechanisms=self.mechanisms)
            logger.debug("Resolved %d rules from %d sources", len(self._resolved.registry), len(sources))
            self.plugins.dispatch("post_resolve", rule_count=len(self._resolved.registry))
        return self._resolved

    @property
    def graph(self) -> RuleGraph:
        """The dependency graph (built lazily from the resolved rules)."""
        if self._graph is None:
            resolved = self.resolved
            self._graph = RuleGraph(resolved.registry, resolved.replacements)
        return self._graph

    def engine(
        self,
        situation: Mapping[str, Any] | None = None,
        *,
        on: date | str | None = None,
    ) -> Engine:
        """A fresh engine over the resolved rules.

        The configured ``[situation]`` table is the base; *situation*
        overrides it key by key. *on* overrides ``[engine] date``.
        """
        config = self._settings.engine
        engine = Engine(
            self.resolved,
            evaluators=self.evaluators,
            parent_missing_bonus=config.parent_missing_bonus,
            missing_weight=config.missing_weight,
            date=on if on is not None else config.date,
        )
        merged = {**self._settings.situation, **(situation or {})}
        if merged:
            engine.set_situation(merged)
        return engine

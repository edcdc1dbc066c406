"""Pluggy hook specifications for rulectl setup extensions and lifecycle events.

Two setup-time hooks let plugins extend the expression language (new
mechanism keys and the evaluators for their node kinds). Two lifecycle
hooks report finished resolution passes and evaluations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    from rulectl.engine.context import Evaluator
    from rulectl.engine.parse import MechanismParser

PROJECT_NAME = "rulectl"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class RulectlHookSpec:
    """Hook specifications for the rulectl plugin system."""

    @hookspec
    def register_mechanisms(self) -> dict[str, MechanismParser] | None:
        """Return ``mechanism key -> parser`` mappings for new rule fields."""

    @hookspec
    def register_evaluators(self) -> dict[str, Evaluator] | None:
        """Return ``node kind -> evaluator`` mappings for new node kinds."""

    @hookspec
    def post_resolve(self, rule_count: int) -> None:
        """Called after a resolution pass succeeds."""

    @hookspec
    def post_evaluate(
        self,
        expression: str,
        value: Any,
        missing_variables: dict[str, float],
    ) -> None:
        """Called after each evaluated expression."""

"""Engine — resolved rules plus a situation, ready to evaluate.

Usage::

    resolved = resolve_rules(load_rules(paths))
    engine = Engine(resolved)
    engine.set_situation({"salary . gross": 3000})
    result = engine.evaluate("salary . net")

A new situation starts a new :class:`EvaluationContext`, so cached results
never outlive the inputs they were computed from.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any

from rulectl.domain.dates import to_calendar_date
from rulectl.domain.names import normalize_name
from rulectl.engine.context import (
    DEFAULT_MISSING_WEIGHT,
    DEFAULT_PARENT_MISSING_BONUS,
    EvaluationContext,
    Evaluator,
)
from rulectl.engine.evaluation import build_evaluators
from rulectl.engine.missing import rank_missing
from rulectl.engine.nodes import EvaluatedNode, Node
from rulectl.engine.parse import ParseContext, parse
from rulectl.engine.resolver import ResolvedRules, link_references

logger = logging.getLogger(__name__)


class Engine:
    """Evaluate expressions against a resolved rule set and a situation."""

    def __init__(
        self,
        resolved: ResolvedRules,
        *,
        evaluators: Mapping[str, Evaluator] | None = None,
        parent_missing_bonus: float = DEFAULT_PARENT_MISSING_BONUS,
        missing_weight: float = DEFAULT_MISSING_WEIGHT,
        date: date | str | None = None,
    ) -> None:
        if not 0 <= parent_missing_bonus < 1:
            msg = f"parent_missing_bonus must be in [0, 1), got {parent_missing_bonus}"
            raise ValueError(msg)
        self.resolved = resolved
        self.evaluators = evaluators if evaluators is not None else build_evaluators()
        self.parent_missing_bonus = parent_missing_bonus
        self.missing_weight = missing_weight
        self.date = to_calendar_date(date) if date is not None else None
        self._situation: dict[str, Node] = {}
        self.context = self._new_context()

    def _new_context(self) -> EvaluationContext:
        context = EvaluationContext(
            registry=self.resolved.registry,
            evaluators=self.evaluators,
            replacements=self.resolved.replacements,
            situation=self._situation,
            parent_missing_bonus=self.parent_missing_bonus,
            missing_weight=self.missing_weight,
        )
        if self.date is not None:
            context.evaluation_date = self.date
        return context

    def _parse_context(self, dotted_name: str = "") -> ParseContext:
        return ParseContext(
            registry=self.resolved.registry,
            dotted_name=dotted_name,
            mechanisms=self.resolved.mechanisms,
        )

    def parse(self, raw: Any, dotted_name: str = "") -> Node:
        """Parse *raw* as written inside rule *dotted_name*, checking references.

        Raises:
            UnknownReference: if the expression names an unknown rule.
            InvalidRuleDefinition: if the expression is malformed.
        """
        context = self._parse_context(dotted_name)
        node = parse(raw, context)
        link_references(context)
        return node

    def set_situation(self, situation: Mapping[str, Any]) -> Engine:
        """Replace the situation and start a fresh evaluation context.

        Each value is parsed as written inside the rule it sets.

        Raises:
            UnknownReference: if a name or a referenced rule is unknown.
            InvalidRuleDefinition: if a value tries to define a rule.
        """
        parsed: dict[str, Node] = {}
        for name, raw in situation.items():
            dotted_name = self.resolved.registry.disambiguate("", normalize_name(name))
            parsed[dotted_name] = self.parse(raw, dotted_name)
        self._situation = parsed
        self.context = self._new_context()
        logger.debug("Situation set (%d values)", len(parsed))
        return self

    @property
    def situation(self) -> Mapping[str, Node]:
        return dict(self._situation)

    def evaluate(self, expression: Any) -> EvaluatedNode:
        """Parse *expression* at top level and evaluate it."""
        return self.context.evaluate_node(self.parse(expression))

    def evaluate_rule(self, name: str) -> EvaluatedNode:
        """Evaluate the rule named *name* (no replacement applies)."""
        rule = self.resolved.registry.get(normalize_name(name))
        return self.context.evaluate_node(rule)

    def next_questions(self, *evaluations: EvaluatedNode) -> list[str]:
        """Missing inputs of *evaluations*, most needed first."""
        ranked = rank_missing(evaluation.missing_variables for evaluation in evaluations)
        return [name for name, _ in ranked]

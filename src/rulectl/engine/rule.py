"""Rule evaluation — the evaluator registered for ``rule`` nodes.

Per rule and per context:

1. a cached evaluation is returned as is;
2. the rule is marked in progress for the whole call;
3. the parent is evaluated first, unless this rule's parent evaluation is
   already running further up (a re-entrant frame treats its parent as
   non-constraining);
4. the own value is evaluated unless the parent is not applicable;
5. the result is stored once and returned.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rulectl.engine.missing import bonus, merge_missing
from rulectl.engine.nodes import EvaluatedNode, RuleDefinition

if TYPE_CHECKING:
    from rulectl.engine.context import EvaluationContext

logger = logging.getLogger(__name__)


def evaluate_rule(ctx: EvaluationContext, rule: RuleDefinition) -> EvaluatedNode:
    """Evaluate *rule* in *ctx*, memoized by dotted name.

    Raises:
        CyclicReference: if the rule's value depends on itself.
    """
    name = rule.dotted_name
    cached = ctx.cache.get(name)
    if cached is not None:
        return cached

    with ctx.evaluating(name):
        parent: EvaluatedNode | None = None
        if rule.parent is not None and not ctx.is_guarded(name):
            with ctx.guarding_parent(name):
                parent = ctx.evaluate_node(rule.parent)
            # A re-entrant frame may have finished this rule meanwhile.
            cached = ctx.cache.get(name)
            if cached is not None:
                return cached

        own: EvaluatedNode | None = None
        if parent is None or parent.value is not False:
            own = ctx.evaluate_node(rule.value)
            cached = ctx.cache.get(name)
            if cached is not None:
                return cached

        explanation: dict[str, EvaluatedNode] = {}
        if parent is not None:
            explanation["parent"] = parent
        if own is not None:
            explanation["value"] = own

        result = EvaluatedNode(
            kind=rule.kind,
            value=own.value if own is not None else False,
            missing_variables=merge_missing(
                own.missing_variables if own is not None else None,
                bonus(parent.missing_variables if parent is not None else None, ctx.parent_missing_bonus),
            ),
            unit=own.unit if own is not None else None,
            temporal_value=own.temporal_value if own is not None else None,
            explanation=explanation,
            dotted_name=name,
            title=rule.title,
        )

    ctx.cache[name] = result
    logger.debug("Evaluated %s = %r", name, result.value)
    return result

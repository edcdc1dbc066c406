"""Evaluators for references, situation lookups, and value mechanisms.

Value conventions: ``False`` means not applicable, ``None`` means unknown.
Operands holding a timeline are combined pointwise; the scalar value of
such a node is its value at the context's evaluation date.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from rulectl.domain.errors import EvaluationError
from rulectl.domain.temporal import (
    Temporal,
    concat_temporals,
    map_temporal,
    narrow_temporal_value,
    period_average,
    pure,
    value_at,
)
from rulectl.engine.missing import merge_missing
from rulectl.engine.nodes import (
    ConditionNode,
    ConstantNode,
    DuringNode,
    EvaluatedNode,
    ListMechanismNode,
    PeriodAverageNode,
    ReferenceNode,
    SituationNode,
    UnitNode,
)

if TYPE_CHECKING:
    from rulectl.engine.context import EvaluationContext

Combine = Callable[[Sequence[Any]], Any]


def timeline(evaluation: EvaluatedNode) -> Temporal[Any]:
    """The timeline of *evaluation*, constant when it has none."""
    if evaluation.temporal_value is not None:
        return evaluation.temporal_value
    return pure(evaluation.value)


def _combine(combine: Combine, operands: Sequence[EvaluatedNode]) -> tuple[Any, Temporal[Any] | None]:
    value = combine([operand.value for operand in operands])
    if all(operand.temporal_value is None for operand in operands):
        return value, None
    temporal = map_temporal(combine, concat_temporals(timeline(operand) for operand in operands))
    return value, temporal


# ---------------------------------------------------------------------------
# Leaves and references
# ---------------------------------------------------------------------------


def evaluate_constant(ctx: EvaluationContext, node: ConstantNode) -> EvaluatedNode:
    return EvaluatedNode(kind=node.kind, value=node.value, unit=node.unit)


def evaluate_reference(ctx: EvaluationContext, node: ReferenceNode) -> EvaluatedNode:
    """Evaluate the referenced rule, applying replacements scoped to the site.

    Each applicable declaration is conditioned on its declaring rule: a
    not-applicable declaring rule skips the declaration, an unknown one
    makes the reference unknown, any other value applies it.
    """
    registry = ctx.registry
    target = node.dotted_name or registry.disambiguate(node.context_name, node.name)

    for decl in ctx.replacements.applicable(target, node.context_name):
        condition = ctx.evaluate_node(registry.get(decl.definition_rule))
        if condition.value is False:
            continue
        if condition.value is None:
            return EvaluatedNode(
                kind=node.kind,
                value=None,
                missing_variables=condition.missing_variables,
                explanation={"condition": condition},
                dotted_name=target,
            )
        if decl.substitute is None:
            return EvaluatedNode(
                kind=node.kind,
                value=False,
                explanation={"rendered not applicable by": condition},
                dotted_name=target,
            )
        substitute = ctx.evaluate_node(decl.substitute)
        return EvaluatedNode(
            kind=node.kind,
            value=substitute.value,
            missing_variables=merge_missing(condition.missing_variables, substitute.missing_variables),
            unit=substitute.unit,
            temporal_value=substitute.temporal_value,
            explanation={"replaced by": substitute, "condition": condition},
            dotted_name=target,
        )

    return ctx.evaluate_node(registry.get(target))


def evaluate_situation(ctx: EvaluationContext, node: SituationNode) -> EvaluatedNode:
    """Situation value if supplied, else the formula, else a missing input."""
    supplied = ctx.situation.get(node.dotted_name)
    if supplied is not None:
        evaluation = ctx.evaluate_node(supplied)
        return EvaluatedNode(
            kind=node.kind,
            value=evaluation.value,
            missing_variables=evaluation.missing_variables,
            unit=evaluation.unit,
            temporal_value=evaluation.temporal_value,
            explanation={"situation": evaluation},
        )
    if node.fallback is not None:
        return ctx.evaluate_node(node.fallback)
    return EvaluatedNode(
        kind=node.kind,
        value=None,
        missing_variables={node.dotted_name: ctx.missing_weight},
    )


# ---------------------------------------------------------------------------
# List mechanisms
# ---------------------------------------------------------------------------


def _sum(values: Sequence[Any]) -> Any:
    if any(value is None for value in values):
        return None
    applicable = [value for value in values if value is not False]
    if not applicable:
        return False
    return sum(applicable)


def _product(values: Sequence[Any]) -> Any:
    if any(value is False for value in values):
        return False
    if any(value is None for value in values):
        return None
    result = 1
    for value in values:
        result *= value
    return result


def _extremum(pick: Callable[[Sequence[Any]], Any]) -> Combine:
    def combine(values: Sequence[Any]) -> Any:
        if any(value is None for value in values):
            return None
        applicable = [value for value in values if value is not False]
        if not applicable:
            return False
        return pick(applicable)

    return combine


def _truth(value: Any) -> bool | None:
    if value is None:
        return None
    return bool(value)


def _all_of(values: Sequence[Any]) -> bool | None:
    truths = [_truth(value) for value in values]
    if False in truths:
        return False
    if None in truths:
        return None
    return True


def _any_of(values: Sequence[Any]) -> bool | None:
    truths = [_truth(value) for value in values]
    if True in truths:
        return True
    if None in truths:
        return None
    return False


LIST_COMBINERS: dict[str, Combine] = {
    "sum": _sum,
    "product": _product,
    "min of": _extremum(min),
    "max of": _extremum(max),
    "all of": _all_of,
    "any of": _any_of,
}

_BOOLEAN_MECHANISMS = frozenset({"all of", "any of"})


def evaluate_list(ctx: EvaluationContext, node: ListMechanismNode) -> EvaluatedNode:
    operands = [ctx.evaluate_node(operand) for operand in node.operands]
    try:
        value, temporal = _combine(LIST_COMBINERS[node.mechanism], operands)
    except TypeError as exc:
        msg = f"Cannot compute '{node.mechanism}' of {[operand.value for operand in operands]!r}"
        raise EvaluationError(msg, mechanism=node.mechanism) from exc

    # A settled boolean no longer needs the operands still unknown.
    if node.mechanism in _BOOLEAN_MECHANISMS and value is not None:
        missing: dict[str, float] = {}
    else:
        missing = merge_missing(*(operand.missing_variables for operand in operands))

    units = {operand.unit for operand in operands if operand.unit}
    return EvaluatedNode(
        kind=node.kind,
        value=value,
        missing_variables=missing,
        unit=units.pop() if len(units) == 1 else None,
        temporal_value=temporal,
        explanation={"operands": operands},
    )


# ---------------------------------------------------------------------------
# Chainable mechanisms
# ---------------------------------------------------------------------------


def _condition_holds(mechanism: str, condition: Any) -> bool | None:
    truth = _truth(condition)
    if truth is None:
        return None
    return truth if mechanism == "applicable if" else not truth


def evaluate_condition(ctx: EvaluationContext, node: ConditionNode) -> EvaluatedNode:
    """``applicable if`` / ``not applicable if``.

    A failing condition makes the value not applicable without evaluating
    it; an unknown condition makes it unknown.
    """
    condition = ctx.evaluate_node(node.condition)
    holds = _condition_holds(node.mechanism, condition.value)

    if holds is False and condition.temporal_value is None:
        return EvaluatedNode(
            kind=node.kind,
            value=False,
            missing_variables=condition.missing_variables,
            explanation={"condition": condition},
        )

    value = ctx.evaluate_node(node.value)

    def combine(pair: Sequence[Any]) -> Any:
        state = _condition_holds(node.mechanism, pair[0])
        if state is None:
            return None
        return pair[1] if state else False

    result, temporal = _combine(combine, [condition, value])
    return EvaluatedNode(
        kind=node.kind,
        value=result,
        missing_variables=merge_missing(condition.missing_variables, value.missing_variables),
        unit=value.unit,
        temporal_value=temporal,
        explanation={"condition": condition, "value": value},
    )


def evaluate_unit(ctx: EvaluationContext, node: UnitNode) -> EvaluatedNode:
    value = ctx.evaluate_node(node.value)
    return EvaluatedNode(
        kind=node.kind,
        value=value.value,
        missing_variables=value.missing_variables,
        unit=node.unit,
        temporal_value=value.temporal_value,
        explanation={"value": value},
    )


# ---------------------------------------------------------------------------
# Temporal mechanisms
# ---------------------------------------------------------------------------


def evaluate_during(ctx: EvaluationContext, node: DuringNode) -> EvaluatedNode:
    """The value during the node's period, not applicable elsewhere."""
    value = ctx.evaluate_node(node.value)
    temporal = narrow_temporal_value(node.period, timeline(value))
    return EvaluatedNode(
        kind=node.kind,
        value=value_at(temporal, ctx.evaluation_date),
        missing_variables=value.missing_variables,
        unit=value.unit,
        temporal_value=temporal,
        explanation={"value": value},
    )


def evaluate_period_average(ctx: EvaluationContext, node: PeriodAverageNode) -> EvaluatedNode:
    value = ctx.evaluate_node(node.value)
    try:
        average = period_average(timeline(value))
    except TypeError as exc:
        msg = f"Cannot average non-numeric values {[seg.value for seg in timeline(value)]!r}"
        raise EvaluationError(msg, mechanism=node.kind) from exc
    return EvaluatedNode(
        kind=node.kind,
        value=average,
        missing_variables=value.missing_variables,
        unit=value.unit,
        explanation={"value": value},
    )

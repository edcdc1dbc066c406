"""Built-in ``round`` mechanism.

::

    net salary:
      round:
        value: gross salary
        decimals: 2

``decimals`` defaults to 0. Not-applicable and unknown values pass
through unchanged; timelines are rounded segment by segment.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from rulectl.domain.errors import InvalidRuleDefinition
from rulectl.domain.temporal import map_temporal
from rulectl.engine.nodes import EvaluatedNode, Node
from rulectl.engine.parse import parse
from rulectl.plugins.hookspecs import hookimpl

if TYPE_CHECKING:
    from rulectl.engine.context import EvaluationContext
    from rulectl.engine.parse import ParseContext


@dataclass(frozen=True)
class RoundNode(Node):
    kind: ClassVar[str] = "round"

    value: Node
    decimals: int = 0

    def children(self) -> Iterator[Node]:
        yield self.value


def parse_round(raw: Any, context: ParseContext) -> Node:
    if not isinstance(raw, Mapping):
        return RoundNode(parse(raw, context))
    if "value" not in raw:
        msg = f"'round' expects a value in {context.describe()}"
        raise InvalidRuleDefinition(msg, context=context.dotted_name)
    decimals = raw.get("decimals", 0)
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        msg = f"'round' expects integer decimals in {context.describe()}"
        raise InvalidRuleDefinition(msg, context=context.dotted_name)
    return RoundNode(parse(raw["value"], context), decimals)


def _round(value: Any, decimals: int) -> Any:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    return round(value, decimals)


def evaluate_round(ctx: EvaluationContext, node: RoundNode) -> EvaluatedNode:
    value = ctx.evaluate_node(node.value)
    temporal = value.temporal_value
    return EvaluatedNode(
        kind=node.kind,
        value=_round(value.value, node.decimals),
        missing_variables=value.missing_variables,
        unit=value.unit,
        temporal_value=(
            map_temporal(lambda item: _round(item, node.decimals), temporal) if temporal is not None else None
        ),
        explanation={"value": value},
    )


class RoundingPlugin:
    """Contributes the ``round`` mechanism and its evaluator."""

    @hookimpl
    def register_mechanisms(self) -> dict[str, Any]:
        return {"round": parse_round}

    @hookimpl
    def register_evaluators(self) -> dict[str, Any]:
        return {"round": evaluate_round}

"""AST nodes and evaluated nodes.

Every node carries a ``kind`` discriminant; the evaluation context
dispatches on it through an injected ``kind -> evaluator`` mapping.

Nodes are immutable. Evaluations (:class:`EvaluatedNode`) are pure data:
a value, its missing variables, and an explanation made of further
evaluations. Rendering them is the output layer's job.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from rulectl.domain.temporal import Period, Temporal, temporal_to_dicts


class Node:
    """Base class for every AST node."""

    kind: ClassVar[str] = "node"

    def children(self) -> Iterator[Node]:
        """Yield the direct sub-expressions of this node."""
        return iter(())


@dataclass(frozen=True)
class ConstantNode(Node):
    kind: ClassVar[str] = "constant"

    value: Any
    unit: str | None = None


@dataclass(frozen=True)
class ReferenceNode(Node):
    """A name written inside rule *context_name*.

    *dotted_name* is set when the reference is already absolute (parent
    links); otherwise the name is disambiguated against the registry.
    """

    kind: ClassVar[str] = "reference"

    name: str
    context_name: str = ""
    dotted_name: str | None = None


@dataclass(frozen=True)
class SituationNode(Node):
    """Situation lookup for *dotted_name*, falling back to the rule's formula."""

    kind: ClassVar[str] = "situation"

    dotted_name: str
    fallback: Node | None = None

    def children(self) -> Iterator[Node]:
        if self.fallback is not None:
            yield self.fallback


@dataclass(frozen=True)
class ListMechanismNode(Node):
    """``sum``, ``product``, ``min of``, ``max of``, ``all of``, ``any of``."""

    mechanism: str
    operands: tuple[Node, ...]

    @property
    def kind(self) -> str:  # type: ignore[override]
        return self.mechanism

    def children(self) -> Iterator[Node]:
        yield from self.operands


@dataclass(frozen=True)
class ConditionNode(Node):
    """``applicable if`` / ``not applicable if`` wrapped around a value."""

    mechanism: str
    condition: Node
    value: Node

    @property
    def kind(self) -> str:  # type: ignore[override]
        return self.mechanism

    def children(self) -> Iterator[Node]:
        yield self.condition
        yield self.value


@dataclass(frozen=True)
class UnitNode(Node):
    kind: ClassVar[str] = "unit"

    unit: str
    value: Node

    def children(self) -> Iterator[Node]:
        yield self.value


@dataclass(frozen=True)
class DuringNode(Node):
    """A value that only holds during *period*."""

    kind: ClassVar[str] = "during"

    period: Period
    value: Node

    def children(self) -> Iterator[Node]:
        yield self.value


@dataclass(frozen=True)
class PeriodAverageNode(Node):
    kind: ClassVar[str] = "period average"

    value: Node

    def children(self) -> Iterator[Node]:
        yield self.value


@dataclass(frozen=True)
class ReplacementDecl:
    """A scoped override attached to the rule that declares it.

    ``substitute is None`` renders the target not applicable; otherwise the
    target's value is replaced by the substitute. *target* is filled in by the
    replacement index once every rule is registered.
    """

    target_ref: str
    definition_rule: str
    substitute: Node | None = None
    scope_includes: frozenset[str] = frozenset()
    scope_excludes: frozenset[str] = frozenset()
    target: str | None = None

    @property
    def is_non_applicability(self) -> bool:
        return self.substitute is None


@dataclass(frozen=True)
class RuleDefinition(Node):
    """A registered rule. Immutable once registered."""

    kind: ClassVar[str] = "rule"

    dotted_name: str
    title: str
    value: Node
    parent: Node | None = None
    replacements: tuple[ReplacementDecl, ...] = ()
    suggestions: Mapping[str, Node] = field(default_factory=dict)
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)
    is_nested: bool = False
    description: str | None = None
    question: str | None = None
    unit: str | None = None

    def children(self) -> Iterator[Node]:
        if self.parent is not None:
            yield self.parent
        yield self.value
        for decl in self.replacements:
            if decl.substitute is not None:
                yield decl.substitute


# ---------------------------------------------------------------------------
# Evaluation output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class EvaluatedNode:
    """Result of evaluating a node.

    Attributes:
        kind: Kind of the evaluated node.
        value: The value, ``False`` when not applicable, ``None`` when unknown.
        missing_variables: Inputs needed to settle the value, with weights.
        unit: Unit of the value, if any.
        temporal_value: Timeline of the value, for date-bounded values.
        explanation: Sub-evaluations that produced the value.
        dotted_name: Rule name for rule and reference evaluations.
        title: Rule title for rule evaluations.
    """

    kind: str
    value: Any
    missing_variables: Mapping[str, float] = field(default_factory=dict)
    unit: str | None = None
    temporal_value: Temporal[Any] | None = None
    explanation: Mapping[str, Any] = field(default_factory=dict)
    dotted_name: str | None = None
    title: str | None = None

    @property
    def is_applicable(self) -> bool | None:
        """``False`` when not applicable, ``None`` when unknown."""
        if self.value is False:
            return False
        if self.value is None:
            return None
        return True

    def to_dict(self, *, explanation: bool = True) -> dict[str, Any]:
        """Serialize to plain data (JSON-compatible)."""
        data: dict[str, Any] = {"kind": self.kind, "value": self.value}
        if self.dotted_name is not None:
            data["dotted_name"] = self.dotted_name
        if self.title is not None:
            data["title"] = self.title
        if self.unit is not None:
            data["unit"] = self.unit
        if self.missing_variables:
            data["missing_variables"] = dict(self.missing_variables)
        if self.temporal_value is not None:
            data["temporal_value"] = temporal_to_dicts(self.temporal_value)
        if explanation and self.explanation:
            data["explanation"] = {
                key: _explanation_to_data(sub) for key, sub in self.explanation.items()
            }
        return data


def _explanation_to_data(item: Any) -> Any:
    if isinstance(item, EvaluatedNode):
        return item.to_dict()
    if isinstance(item, (list, tuple)):
        return [_explanation_to_data(sub) for sub in item]
    return item


def walk(node: Node) -> Iterator[Node]:
    """Depth-first iteration over *node* and its sub-expressions.

    Does not follow references into other rules.
    """
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(current.children())))

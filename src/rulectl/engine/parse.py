"""Expression parsing — raw rule values to AST nodes.

Raw values come straight from YAML:

- numbers and booleans become constants, ``'quoted'`` strings become string
  constants, and any other string is a reference to a rule;
- a mapping with a ``name`` key is an inline rule definition, resolved in
  the current namespace;
- any other mapping is a mechanism (``sum``, ``during``...), optionally
  wrapped by chainable mechanisms (``applicable if``, ``unit``...).

Parsing never evaluates anything. Its only side effect is registering inline
rules and recording references for the post-resolution link check.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from rulectl.domain.dates import to_calendar_date
from rulectl.domain.errors import InvalidRuleDefinition
from rulectl.domain.names import normalize_name
from rulectl.domain.temporal import PERIOD_KEYWORDS, parse_period
from rulectl.engine.nodes import (
    ConditionNode,
    ConstantNode,
    DuringNode,
    ListMechanismNode,
    Node,
    PeriodAverageNode,
    ReferenceNode,
    SituationNode,
    UnitNode,
)
from rulectl.engine.registry import RuleRegistry

MechanismParser = Callable[[Any, "ParseContext"], Node]

_NUMBER_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")


@dataclass(frozen=True)
class ParseContext:
    """Where a raw value is being parsed.

    Attributes:
        registry: Registry receiving inline rule definitions.
        dotted_name: Enclosing rule, or ``""`` at top level.
        mechanisms: Mechanism parsers by key.
        references: Every reference parsed so far (shared by nested contexts).
    """

    registry: RuleRegistry
    dotted_name: str = ""
    mechanisms: Mapping[str, MechanismParser] = field(default_factory=lambda: MECHANISMS)
    references: list[ReferenceNode] = field(default_factory=list)

    def within(self, dotted_name: str) -> ParseContext:
        """A context for the namespace of rule *dotted_name*."""
        return replace(self, dotted_name=dotted_name)

    def reference(self, name: str, *, dotted_name: str | None = None) -> ReferenceNode:
        """Create a reference written in this context and record it."""
        node = ReferenceNode(name=name, context_name=self.dotted_name, dotted_name=dotted_name)
        self.references.append(node)
        return node

    def describe(self) -> str:
        return f"'{self.dotted_name}'" if self.dotted_name else "top level"


def parse(raw: Any, context: ParseContext) -> Node:
    """Turn a raw value into an AST node."""
    if isinstance(raw, Node):
        return raw
    if isinstance(raw, bool):
        return ConstantNode(raw)
    if isinstance(raw, (int, float)):
        return ConstantNode(raw)
    if isinstance(raw, str):
        return _parse_string(raw, context)
    if isinstance(raw, Mapping):
        if "name" in raw:
            from rulectl.engine.resolver import resolve_rule

            return resolve_rule(raw, context)
        return parse_value(raw, context)
    msg = f"Cannot parse {raw!r} in {context.describe()}"
    raise InvalidRuleDefinition(msg, context=context.dotted_name)


def _parse_string(raw: str, context: ParseContext) -> Node:
    text = raw.strip()
    if not text:
        msg = f"Empty expression in {context.describe()}"
        raise InvalidRuleDefinition(msg, context=context.dotted_name)
    if len(text) >= 2 and text[0] == text[-1] == "'":
        return ConstantNode(text[1:-1])
    if _NUMBER_PATTERN.match(text):
        return ConstantNode(float(text) if "." in text else int(text))
    return context.reference(normalize_name(text))


# ---------------------------------------------------------------------------
# Mechanisms
# ---------------------------------------------------------------------------

# Outermost first: ``applicable if`` wraps ``not applicable if`` wraps ``unit``.
CHAINABLE_KEYS: tuple[str, ...] = ("applicable if", "not applicable if", "unit")


def parse_value(
    raw: Mapping[str, Any],
    context: ParseContext,
    *,
    situation_name: str | None = None,
) -> Node:
    """Parse a mechanism mapping, applying chainable mechanisms around it.

    With *situation_name*, the value is wrapped in a situation lookup for
    that rule, and an empty mapping is allowed (the rule is an input).
    """
    remaining = dict(raw)
    chain = [(key, remaining.pop(key)) for key in CHAINABLE_KEYS if key in remaining]

    node = _parse_single_mechanism(remaining, context)
    if situation_name is not None:
        node = SituationNode(situation_name, node)
    elif node is None:
        msg = f"Expected a mechanism in {context.describe()}, got {sorted(raw)}"
        raise InvalidRuleDefinition(msg, context=context.dotted_name)

    for key, argument in reversed(chain):
        if key == "unit":
            node = UnitNode(str(argument), node)
        else:
            node = ConditionNode(key, parse(argument, context), node)
    return node


def _parse_single_mechanism(raw: Mapping[str, Any], context: ParseContext) -> Node | None:
    if not raw:
        return None
    if len(raw) > 1:
        msg = f"Several mechanisms in {context.describe()}: {', '.join(sorted(raw))}"
        raise InvalidRuleDefinition(msg, context=context.dotted_name)
    [(key, argument)] = raw.items()
    parser = context.mechanisms.get(key)
    if parser is None:
        msg = f"Unknown mechanism '{key}' in {context.describe()}"
        raise InvalidRuleDefinition(msg, context=context.dotted_name, mechanism=key)
    return parser(argument, context)


def _parse_list_mechanism(mechanism: str) -> MechanismParser:
    def parser(raw: Any, context: ParseContext) -> Node:
        if not isinstance(raw, list):
            msg = f"'{mechanism}' expects a list in {context.describe()}"
            raise InvalidRuleDefinition(msg, context=context.dotted_name)
        return ListMechanismNode(mechanism, tuple(parse(item, context) for item in raw))

    return parser


def _parse_during(raw: Any, context: ParseContext) -> Node:
    if not isinstance(raw, Mapping) or "value" not in raw:
        msg = f"'during' expects a period keyword and a value in {context.describe()}"
        raise InvalidRuleDefinition(msg, context=context.dotted_name)
    keywords = [key for key in raw if key != "value"]
    if len(keywords) != 1:
        msg = f"'during' expects exactly one period keyword in {context.describe()} (one of: {', '.join(PERIOD_KEYWORDS)})"
        raise InvalidRuleDefinition(msg, context=context.dotted_name)
    keyword = keywords[0]
    try:
        day = to_calendar_date(raw[keyword])
    except ValueError as exc:
        raise InvalidRuleDefinition(str(exc), context=context.dotted_name) from exc
    return DuringNode(parse_period(str(keyword), day), parse(raw["value"], context))


MECHANISMS: dict[str, MechanismParser] = {
    "value": parse,
    "sum": _parse_list_mechanism("sum"),
    "product": _parse_list_mechanism("product"),
    "min of": _parse_list_mechanism("min of"),
    "max of": _parse_list_mechanism("max of"),
    "all of": _parse_list_mechanism("all of"),
    "any of": _parse_list_mechanism("any of"),
    "during": _parse_during,
    "period average": lambda raw, context: PeriodAverageNode(parse(raw, context)),
}


def build_mechanisms(*extra: Mapping[str, MechanismParser]) -> dict[str, MechanismParser]:
    """Core mechanisms plus *extra* ones.

    Raises:
        ValueError: if an extra mechanism reuses a core or chainable key.
    """
    mechanisms = dict(MECHANISMS)
    for mapping in extra:
        for key, parser in mapping.items():
            if key in MECHANISMS or key in CHAINABLE_KEYS:
                msg = f"Mechanism '{key}' is built in and cannot be overridden"
                raise ValueError(msg)
            mechanisms[key] = parser
    return mechanisms


def mechanism_keys(mechanisms: Mapping[str, MechanismParser]) -> tuple[str, ...]:
    """Rule fields that make up a rule's value expression."""
    return (*CHAINABLE_KEYS, *mechanisms)

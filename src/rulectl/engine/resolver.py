"""Namespace and reference resolution.

:func:`resolve_rule` turns one raw rule mapping into an immutable
:class:`~rulectl.engine.nodes.RuleDefinition` and registers it.
:func:`resolve_rules` runs a whole resolution pass: every rule, then the
reference link check, then the replacement index. Any failure aborts the pass.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from rulectl.domain.errors import DuplicateDefinition, InvalidRuleDefinition
from rulectl.domain.names import capitalise0, join_name, name_leaf, parent_name
from rulectl.engine.nodes import ReferenceNode, RuleDefinition
from rulectl.engine.parse import (
    MechanismParser,
    ParseContext,
    build_mechanisms,
    mechanism_keys,
    parse,
    parse_value,
)
from rulectl.engine.registry import RuleRegistry
from rulectl.engine.replacement import (
    ReplacementResolver,
    parse_non_applicability,
    parse_replacements,
)

logger = logging.getLogger(__name__)

# Rule fields that are not mechanisms.
RULE_FIELDS: tuple[str, ...] = (
    "name",
    "title",
    "description",
    "question",
    "formula",
    "suggestions",
    "replaces",
    "renders not applicable",
)


@dataclass(frozen=True)
class ResolvedRules:
    """Output of a resolution pass: frozen registry and replacement index."""

    registry: RuleRegistry
    replacements: ReplacementResolver
    mechanisms: Mapping[str, MechanismParser]


def _optional_str(raw: Mapping[str, Any], key: str) -> str | None:
    value = raw.get(key)
    return str(value) if value is not None else None


def _value_fields(raw: Mapping[str, Any], mechanisms: Mapping[str, MechanismParser]) -> dict[str, Any]:
    """Mechanism fields of a raw rule, with ``formula`` in the ``value`` slot."""
    fields = {key: raw[key] for key in mechanism_keys(mechanisms) if key in raw}
    if "formula" in raw:
        fields["value"] = raw["formula"]
    return fields


def resolve_rule(raw: Mapping[str, Any], context: ParseContext) -> ReferenceNode:
    """Resolve and register the rule *raw* defined inside *context*.

    Returns a reference to the new rule.

    Raises:
        DuplicateDefinition: if the dotted name is already registered.
        InvalidRuleDefinition: if the rule body is malformed, or if the
            resolution pass is over (situation values and expressions
            cannot define rules).
    """
    if context.registry.frozen:
        msg = f"Inline rule definitions are not allowed in {context.describe()}"
        raise InvalidRuleDefinition(msg, context=context.dotted_name)

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        msg = f"Rule without a name in {context.describe()}"
        raise InvalidRuleDefinition(msg, context=context.dotted_name)

    dotted_name = join_name(context.dotted_name, name)
    if dotted_name in context.registry:
        msg = f"The reference '{dotted_name}' is already defined"
        raise DuplicateDefinition(msg, dotted_name=dotted_name)

    known = {*RULE_FIELDS, *mechanism_keys(context.mechanisms)}
    unknown = sorted(str(key) for key in raw if key not in known)
    if unknown:
        msg = f"Unknown field(s) in rule '{dotted_name}': {', '.join(unknown)}"
        raise InvalidRuleDefinition(msg, dotted_name=dotted_name, fields=unknown)

    rule_context = context.within(dotted_name)
    value = parse_value(_value_fields(raw, context.mechanisms), rule_context, situation_name=dotted_name)

    parent = parent_name(dotted_name)
    parent_node = context.reference(parent, dotted_name=parent) if parent else None

    title = name_leaf(dotted_name)
    if context.dotted_name:
        title = f"{name_leaf(context.dotted_name)} ({title})"

    suggestions = raw.get("suggestions") or {}
    if not isinstance(suggestions, Mapping):
        msg = f"'suggestions' expects a mapping in '{dotted_name}'"
        raise InvalidRuleDefinition(msg, context=dotted_name)

    rule = RuleDefinition(
        dotted_name=dotted_name,
        title=capitalise0(str(raw.get("title") or title)),
        value=value,
        parent=parent_node,
        replacements=(
            *parse_non_applicability(raw.get("renders not applicable"), rule_context),
            *parse_replacements(raw.get("replaces"), rule_context),
        ),
        suggestions={str(key): parse(item, rule_context) for key, item in suggestions.items()},
        raw=dict(raw),
        is_nested=bool(context.dotted_name),
        description=_optional_str(raw, "description"),
        question=_optional_str(raw, "question"),
        unit=_optional_str(raw, "unit"),
    )
    context.registry.register(rule)
    return context.reference(dotted_name, dotted_name=dotted_name)


def link_references(context: ParseContext) -> None:
    """Check that every reference recorded in *context* resolves.

    Raises:
        UnknownReference: for the first reference that does not resolve.
    """
    registry = context.registry
    for node in context.references:
        if node.dotted_name is not None:
            registry.get(node.dotted_name)
        else:
            registry.disambiguate(node.context_name, node.name)


def resolve_rules(
    raw_rules: Mapping[str, Any],
    *,
    mechanisms: Mapping[str, MechanismParser] | None = None,
) -> ResolvedRules:
    """Run a resolution pass over ``{dotted name: rule body}``.

    A ``None`` body declares an input rule with no formula.

    Raises:
        ResolutionError: on the first malformed, duplicate, or dangling rule.
    """
    registry = RuleRegistry()
    context = ParseContext(registry=registry, mechanisms=mechanisms or build_mechanisms())

    for name, body in raw_rules.items():
        if body is None:
            body = {}
        if not isinstance(body, Mapping):
            msg = f"Rule '{name}' must be a mapping, got {type(body).__name__}"
            raise InvalidRuleDefinition(msg, dotted_name=str(name))
        resolve_rule({**body, "name": str(name)}, context)

    registry.freeze()
    link_references(context)
    replacements = ReplacementResolver.from_registry(registry)
    logger.debug(
        "Resolved %d rules (%d references, %d replacements)",
        len(registry),
        len(context.references),
        len(replacements),
    )
    return ResolvedRules(registry=registry, replacements=replacements, mechanisms=context.mechanisms)

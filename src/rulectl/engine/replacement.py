"""Replacement and non-applicability declarations.

A rule may declare, for other rules:

- ``renders not applicable`` — the target becomes not applicable;
- ``replaces`` — the target's value is replaced by a substitute (the
  declaring rule itself unless ``by`` is given).

Both accept ``in`` / ``except in`` scopes restricting where (in which rules)
references to the target are affected. The :class:`ReplacementResolver`
only filters and orders declarations; evaluating the declaring rule and the
substitute is the engine's job.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from rulectl.domain.errors import InvalidRuleDefinition
from rulectl.domain.names import is_within, matches_any, normalize_name
from rulectl.engine.nodes import ReplacementDecl

if TYPE_CHECKING:
    from rulectl.engine.parse import ParseContext
    from rulectl.engine.registry import RuleRegistry

logger = logging.getLogger(__name__)


def _as_list(raw: Any) -> list[Any]:
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    return [raw]


def _scope(raw: Any, context: ParseContext, key: str) -> frozenset[str]:
    names = _as_list(raw)
    if not all(isinstance(name, str) and name.strip() for name in names):
        msg = f"'{key}' expects rule names in {context.describe()}"
        raise InvalidRuleDefinition(msg, context=context.dotted_name)
    return frozenset(normalize_name(name) for name in names)


def _target(item: Any, context: ParseContext, key: str) -> str:
    target = item.get("rule") if isinstance(item, Mapping) else item
    if not isinstance(target, str) or not target.strip():
        msg = f"'{key}' expects a rule name in {context.describe()}"
        raise InvalidRuleDefinition(msg, context=context.dotted_name)
    return normalize_name(target)


def parse_non_applicability(raw: Any, context: ParseContext) -> list[ReplacementDecl]:
    """Parse a ``renders not applicable`` field of the rule in *context*."""
    decls: list[ReplacementDecl] = []
    for item in _as_list(raw):
        scopes = item if isinstance(item, Mapping) else {}
        decls.append(
            ReplacementDecl(
                target_ref=_target(item, context, "renders not applicable"),
                definition_rule=context.dotted_name,
                scope_includes=_scope(scopes.get("in"), context, "in"),
                scope_excludes=_scope(scopes.get("except in"), context, "except in"),
            )
        )
    return decls


def parse_replacements(raw: Any, context: ParseContext) -> list[ReplacementDecl]:
    """Parse a ``replaces`` field of the rule in *context*."""
    from rulectl.engine.parse import parse

    decls: list[ReplacementDecl] = []
    for item in _as_list(raw):
        scopes = item if isinstance(item, Mapping) else {}
        if scopes.get("by") is not None:
            substitute = parse(scopes["by"], context)
        else:
            substitute = context.reference(context.dotted_name, dotted_name=context.dotted_name)
        decls.append(
            ReplacementDecl(
                target_ref=_target(item, context, "replaces"),
                definition_rule=context.dotted_name,
                substitute=substitute,
                scope_includes=_scope(scopes.get("in"), context, "in"),
                scope_excludes=_scope(scopes.get("except in"), context, "except in"),
            )
        )
    return decls


def applies_at(decl: ReplacementDecl, site: str) -> bool:
    """Whether *decl* affects references written in rule *site*.

    A declaration never applies inside its own declaring rule, so that rule
    can still read the value it replaces.
    """
    if decl.definition_rule and is_within(site, decl.definition_rule):
        return False
    if decl.scope_includes and not matches_any(site, decl.scope_includes):
        return False
    return not matches_any(site, decl.scope_excludes)


class ReplacementResolver:
    """Index of declarations by target rule."""

    def __init__(self, declarations: Iterable[ReplacementDecl] = ()) -> None:
        self._by_target: dict[str, list[ReplacementDecl]] = {}
        for decl in declarations:
            target = decl.target or decl.target_ref
            self._by_target.setdefault(target, []).append(decl)

    @classmethod
    def from_registry(cls, registry: RuleRegistry) -> ReplacementResolver:
        """Index every declaration in *registry*, resolving names.

        Raises:
            UnknownReference: if a target or scope name does not resolve.
        """
        declarations: list[ReplacementDecl] = []
        for rule in registry.rules():
            for decl in rule.replacements:
                context = decl.definition_rule
                declarations.append(
                    replace(
                        decl,
                        target=registry.disambiguate(context, decl.target_ref),
                        scope_includes=frozenset(
                            registry.disambiguate(context, name) for name in decl.scope_includes
                        ),
                        scope_excludes=frozenset(
                            registry.disambiguate(context, name) for name in decl.scope_excludes
                        ),
                    )
                )
        logger.debug("Indexed %d replacement declarations", len(declarations))
        return cls(declarations)

    def declarations_for(self, target: str) -> list[ReplacementDecl]:
        """Every declaration targeting *target*, in declaration order."""
        return list(self._by_target.get(target, []))

    def applicable(self, target: str, site: str) -> list[ReplacementDecl]:
        """Declarations affecting *target* when referenced from *site*.

        Non-applicability declarations come first, then substitutions.
        Declaration order is kept within each group.
        """
        candidates = [decl for decl in self._by_target.get(target, []) if applies_at(decl, site)]
        return sorted(candidates, key=lambda decl: not decl.is_non_applicability)

    def targets(self) -> list[str]:
        return list(self._by_target)

    def __iter__(self) -> Iterator[ReplacementDecl]:
        for decls in self._by_target.values():
            yield from decls

    def __len__(self) -> int:
        return sum(len(decls) for decls in self._by_target.values())

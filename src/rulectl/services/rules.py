"""RuleService — browse the resolved rule set."""

from __future__ import annotations

from typing import Any

from rulectl.domain.errors import RulectlError
from rulectl.domain.names import is_within, normalize_name, parent_name
from rulectl.engine.nodes import ConditionNode, Node, RuleDefinition, SituationNode, UnitNode
from rulectl.services.base import BaseService
from rulectl.services.result import ServiceResult
from rulectl.services.telemetry import traced


def is_input(rule: RuleDefinition) -> bool:
    """Whether *rule* has no formula and must come from the situation."""
    node: Node = rule.value
    while isinstance(node, (ConditionNode, UnitNode)):
        node = node.value
    return isinstance(node, SituationNode) and node.fallback is None


def _summary(rule: RuleDefinition) -> dict[str, Any]:
    return {
        "dotted_name": rule.dotted_name,
        "title": rule.title,
        "parent": parent_name(rule.dotted_name),
        "unit": rule.unit,
        "input": is_input(rule),
    }


class RuleService(BaseService):
    """Lists and describes rules."""

    @traced
    def list_rules(self, *, prefix: str | None = None) -> ServiceResult:
        """List rules, optionally only those within the *prefix* namespace."""
        op = "list_rules"
        try:
            registry = self._workspace.resolved.registry
        except RulectlError as exc:
            return ServiceResult.failure(op, exc)

        wanted = normalize_name(prefix) if prefix else ""
        items = [_summary(rule) for rule in registry.rules() if is_within(rule.dotted_name, wanted)]
        items.sort(key=lambda item: item["dotted_name"])
        return ServiceResult(ok=True, op=op, data={"count": len(items), "items": items})

    @traced
    def show(self, name: str) -> ServiceResult:
        """Describe one rule: metadata, overrides, and direct neighbours."""
        op = "show_rule"
        try:
            resolved = self._workspace.resolved
            rule = resolved.registry.get(normalize_name(name))
            rule_graph = self._workspace.graph
        except RulectlError as exc:
            return ServiceResult.failure(op, exc)

        declared = [
            {
                "target": decl.target or decl.target_ref,
                "kind": "renders not applicable" if decl.is_non_applicability else "replaces",
                "in": sorted(decl.scope_includes),
                "except in": sorted(decl.scope_excludes),
            }
            for decl in rule.replacements
        ]
        overridden_by = [
            {
                "rule": decl.definition_rule,
                "kind": "renders not applicable" if decl.is_non_applicability else "replaces",
            }
            for decl in resolved.replacements.declarations_for(rule.dotted_name)
        ]

        data = {
            **_summary(rule),
            "description": rule.description,
            "question": rule.question,
            "nested": rule.is_nested,
            "suggestions": sorted(rule.suggestions),
            "declares": declared,
            "overridden_by": overridden_by,
            "dependencies": sorted(rule_graph.dependencies(rule.dotted_name, 1)),
            "dependents": sorted(rule_graph.dependents(rule.dotted_name, 1)),
            "raw": dict(rule.raw),
        }
        return ServiceResult(ok=True, op=op, data=data)

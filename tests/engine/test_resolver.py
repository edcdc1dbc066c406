"""Tests for namespace resolution and the rule registry."""

from __future__ import annotations

import pytest

from rulectl.domain.errors import (
    DuplicateDefinition,
    InvalidRuleDefinition,
    RegistryFrozen,
    UnknownReference,
)
from rulectl.engine.nodes import ConstantNode, ReferenceNode, RuleDefinition, SituationNode
from rulectl.engine.parse import build_mechanisms
from rulectl.engine.registry import RuleRegistry
from rulectl.engine.resolver import resolve_rules


def _rule(name: str) -> RuleDefinition:
    return RuleDefinition(dotted_name=name, title=name, value=ConstantNode(1))


class TestRegistry:
    def test_duplicate_registration(self) -> None:
        registry = RuleRegistry()
        registry.register(_rule("a"))
        with pytest.raises(DuplicateDefinition):
            registry.register(_rule("a"))

    def test_frozen(self) -> None:
        registry = RuleRegistry()
        registry.freeze()
        with pytest.raises(RegistryFrozen):
            registry.register(_rule("a"))

    def test_unknown_rule(self) -> None:
        with pytest.raises(UnknownReference, match="Unknown rule 'x'"):
            RuleRegistry().get("x")

    def test_disambiguate_innermost_first(self) -> None:
        registry = RuleRegistry()
        for name in ("x", "a . x", "a . b"):
            registry.register(_rule(name))
        assert registry.disambiguate("a . b", "x") == "a . x"
        assert registry.disambiguate("", "x") == "x"

    def test_disambiguate_unknown(self) -> None:
        registry = RuleRegistry()
        with pytest.raises(UnknownReference, match="in 'a'"):
            registry.disambiguate("a", "missing")

    def test_container_protocol(self) -> None:
        registry = RuleRegistry()
        registry.register(_rule("a"))
        registry.register(_rule("b"))
        assert "a" in registry
        assert list(registry) == ["a", "b"]
        assert len(registry) == 2


class TestResolveRules:
    def test_input_rule(self) -> None:
        resolved = resolve_rules({"income": None})
        rule = resolved.registry.get("income")
        assert rule.value == SituationNode("income", None)
        assert rule.title == "Income"

    def test_formula_alias(self) -> None:
        resolved = resolve_rules({"a": {"formula": 3}})
        value = resolved.registry.get("a").value
        assert value == SituationNode("a", ConstantNode(3))

    def test_parent_link(self) -> None:
        resolved = resolve_rules({"a": None, "a . b": {"value": 1}})
        rule = resolved.registry.get("a . b")
        assert rule.parent == ReferenceNode(name="a", context_name="", dotted_name="a")
        assert rule.is_nested is False

    def test_metadata(self) -> None:
        resolved = resolve_rules(
            {
                "a": {
                    "title": "the answer",
                    "description": "Explains things.",
                    "question": "What is it?",
                    "unit": "days",
                    "suggestions": {"usual": 42},
                }
            }
        )
        rule = resolved.registry.get("a")
        assert rule.title == "The answer"
        assert rule.description == "Explains things."
        assert rule.question == "What is it?"
        assert rule.unit == "days"
        assert rule.suggestions == {"usual": ConstantNode(42)}

    def test_inline_rule(self) -> None:
        resolved = resolve_rules({"a": {"sum": [{"name": "b", "value": 2}, 1]}})
        inline = resolved.registry.get("a . b")
        assert inline.is_nested is True
        assert inline.title == "A (b)"

    def test_same_name_twice_is_a_duplicate(self) -> None:
        with pytest.raises(DuplicateDefinition):
            resolve_rules({"a": {"value": {"name": "b", "value": 1}}, "a . b": {"value": 2}})

    def test_dangling_reference(self) -> None:
        with pytest.raises(UnknownReference, match="nowhere"):
            resolve_rules({"a": {"value": "nowhere"}})

    def test_body_must_be_mapping(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="must be a mapping"):
            resolve_rules({"a": [1, 2]})

    def test_unknown_field(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="Unknown field") as exc_info:
            resolve_rules({"a": {"sums": [1, 2]}})
        assert exc_info.value.detail["fields"] == ["sums"]

    def test_unknown_field_in_nested_rule(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="'a . b'"):
            resolve_rules({"a": {"value": {"name": "b", "valeu": 1}}})

    def test_plugin_mechanism_is_a_known_field(self) -> None:
        mechanisms = build_mechanisms({"round": lambda raw, context: ConstantNode(raw)})
        resolved = resolve_rules({"a": {"round": 2}}, mechanisms=mechanisms)
        assert "a" in resolved.registry

    def test_suggestions_must_be_mapping(self) -> None:
        with pytest.raises(InvalidRuleDefinition, match="suggestions"):
            resolve_rules({"a": {"suggestions": [1]}})

    def test_registry_is_frozen(self) -> None:
        resolved = resolve_rules({"a": None})
        assert resolved.registry.frozen

    def test_replacement_index(self) -> None:
        resolved = resolve_rules(
            {
                "bonus": {"value": 100},
                "promo": {"value": True, "replaces": {"rule": "bonus", "by": 200}},
            }
        )
        [decl] = resolved.replacements.declarations_for("bonus")
        assert decl.definition_rule == "promo"
        assert decl.substitute == ConstantNode(200)

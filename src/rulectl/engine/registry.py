"""RuleRegistry — dotted name to immutable rule definition.

Populated once by the resolver, then frozen. The evaluation cache lives
elsewhere (:class:`~rulectl.engine.context.EvaluationContext`) so
construction-time and evaluation-time state never share a store.
"""

from __future__ import annotations

from collections.abc import Iterator

from rulectl.domain.errors import DuplicateDefinition, RegistryFrozen, UnknownReference
from rulectl.domain.names import candidate_names
from rulectl.engine.nodes import RuleDefinition


class RuleRegistry:
    """Arena of rule definitions indexed by dotted name."""

    def __init__(self) -> None:
        self._rules: dict[str, RuleDefinition] = {}
        self._resolved: dict[tuple[str, str], str] = {}
        self._frozen = False

    def register(self, rule: RuleDefinition) -> None:
        """Add *rule*.

        Raises:
            DuplicateDefinition: if the dotted name is already registered.
            RegistryFrozen: if the resolution pass is over.
        """
        if self._frozen:
            msg = f"Cannot register '{rule.dotted_name}': registry is frozen"
            raise RegistryFrozen(msg)
        if rule.dotted_name in self._rules:
            msg = f"The reference '{rule.dotted_name}' is already defined"
            raise DuplicateDefinition(msg, dotted_name=rule.dotted_name)
        self._rules[rule.dotted_name] = rule

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, dotted_name: str) -> RuleDefinition:
        """Return the rule named *dotted_name*.

        Raises:
            UnknownReference: if no such rule exists.
        """
        try:
            return self._rules[dotted_name]
        except KeyError:
            msg = f"Unknown rule '{dotted_name}'"
            raise UnknownReference(msg, dotted_name=dotted_name) from None

    def disambiguate(self, context_name: str, name: str) -> str:
        """Resolve *name* written inside *context_name* to a registered dotted name.

        The innermost enclosing namespace wins.

        Raises:
            UnknownReference: if no candidate is registered.
        """
        key = (context_name, name)
        cached = self._resolved.get(key)
        if cached is not None:
            return cached
        for candidate in candidate_names(context_name, name):
            if candidate in self._rules:
                if self._frozen:
                    self._resolved[key] = candidate
                return candidate
        where = f" in '{context_name}'" if context_name else ""
        msg = f"Unknown reference '{name}'{where}"
        raise UnknownReference(msg, name=name, context=context_name)

    def names(self) -> list[str]:
        """Registered names, in registration order."""
        return list(self._rules)

    def rules(self) -> list[RuleDefinition]:
        return list(self._rules.values())

    def __contains__(self, dotted_name: object) -> bool:
        return dotted_name in self._rules

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

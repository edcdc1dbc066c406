"""EvaluationContext — all mutable state of one evaluation run.

A context owns the result cache, the stack of rules in progress, and the
parent guard. It reads the frozen registry and dispatches on node kind
through the evaluator mapping it was built with. A new situation means a
new context.

Contexts are not thread-safe; concurrent runs use separate contexts.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from rulectl.domain.errors import CyclicReference, UnknownNodeKind

if TYPE_CHECKING:
    from rulectl.engine.nodes import EvaluatedNode, Node
    from rulectl.engine.registry import RuleRegistry
    from rulectl.engine.replacement import ReplacementResolver

Evaluator = Callable[["EvaluationContext", "Node"], "EvaluatedNode"]

DEFAULT_PARENT_MISSING_BONUS = 0.5
DEFAULT_MISSING_WEIGHT = 1.0


@dataclass
class _Frame:
    """A rule in progress, with the parent-guard depth it was entered at."""

    dotted_name: str
    guard_depth: int


@dataclass
class EvaluationContext:
    """Per-run evaluation state.

    Attributes:
        registry: Frozen rule registry.
        evaluators: ``kind -> evaluator`` dispatch table.
        replacements: Replacement index for reference evaluation.
        situation: Parsed input values by dotted name.
        evaluation_date: Day at which date-bounded values are read.
        parent_missing_bonus: Weight factor for missing variables inherited
            from a parent rule whose applicability is unknown.
        missing_weight: Weight of an input that the situation lacks.
        cache: Evaluated rules by dotted name (write-once).
    """

    registry: RuleRegistry
    evaluators: Mapping[str, Evaluator]
    replacements: ReplacementResolver
    situation: Mapping[str, Node] = field(default_factory=dict)
    evaluation_date: date = field(default_factory=date.today)
    parent_missing_bonus: float = DEFAULT_PARENT_MISSING_BONUS
    missing_weight: float = DEFAULT_MISSING_WEIGHT
    cache: dict[str, EvaluatedNode] = field(default_factory=dict)
    _frames: list[_Frame] = field(default_factory=list, repr=False)
    _parent_guard: list[str] = field(default_factory=list, repr=False)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def evaluate_node(self, node: Node) -> EvaluatedNode:
        """Evaluate *node* with the evaluator registered for its kind."""
        evaluator = self.evaluators.get(node.kind)
        if evaluator is None:
            msg = f"No evaluator registered for node kind '{node.kind}'"
            raise UnknownNodeKind(msg)
        return evaluator(self, node)

    # ------------------------------------------------------------------
    # Rules in progress
    # ------------------------------------------------------------------

    @property
    def rule_stack(self) -> list[str]:
        """Dotted names of the rules in progress, outermost first."""
        return [frame.dotted_name for frame in self._frames]

    @property
    def current_rule(self) -> str:
        return self._frames[-1].dotted_name if self._frames else ""

    @contextmanager
    def evaluating(self, dotted_name: str) -> Iterator[None]:
        """Mark *dotted_name* as in progress for the duration of the block.

        Re-entering a rule is only allowed through a parent evaluation
        started after the rule was entered (the parent guard grew since).

        Raises:
            CyclicReference: if *dotted_name* references itself otherwise.
        """
        depth = len(self._parent_guard)
        for frame in reversed(self._frames):
            if frame.dotted_name == dotted_name:
                if frame.guard_depth >= depth:
                    cycle = [*self.rule_stack[self.rule_stack.index(dotted_name) :], dotted_name]
                    msg = f"Cyclic reference: {' -> '.join(cycle)}"
                    raise CyclicReference(msg, cycle=cycle)
                break
        self._frames.append(_Frame(dotted_name, depth))
        try:
            yield
        finally:
            self._frames.pop()

    # ------------------------------------------------------------------
    # Parent guard
    # ------------------------------------------------------------------

    def is_guarded(self, dotted_name: str) -> bool:
        """Whether the parent of *dotted_name* is already being evaluated."""
        return dotted_name in self._parent_guard

    @contextmanager
    def guarding_parent(self, dotted_name: str) -> Iterator[None]:
        """Mark the parent evaluation of *dotted_name* as in progress."""
        self._parent_guard.append(dotted_name)
        try:
            yield
        finally:
            self._parent_guard.pop()

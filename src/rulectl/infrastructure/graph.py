"""RuleGraph — lazy-built NetworkX graph of rule dependencies.

Nodes are dotted names. An edge ``a -> b`` means rule *a* needs rule *b*,
with an ``edge_type`` attribute:

- ``reference`` — *a*'s value names *b*;
- ``parent`` — *b* is *a*'s parent rule;
- ``replaces`` / ``renders not applicable`` — *a* declares an override of *b*.

Built from a frozen registry, never mutated afterwards.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import networkx as nx

from rulectl.engine.nodes import ReferenceNode, walk

if TYPE_CHECKING:
    from rulectl.engine.registry import RuleRegistry
    from rulectl.engine.replacement import ReplacementResolver

type _Graph = nx.DiGraph

REFERENCE = "reference"
PARENT = "parent"
REPLACES = "replaces"
NOT_APPLICABLE = "renders not applicable"


class RuleGraph:
    """Lazy-loading dependency graph over a resolved rule set."""

    def __init__(self, registry: RuleRegistry, replacements: ReplacementResolver) -> None:
        self._registry = registry
        self._replacements = replacements
        self._graph: _Graph | None = None

    @property
    def graph(self) -> _Graph:
        """Return the graph, building it on first access."""
        if self._graph is None:
            self._graph = self._build()
        return self._graph

    def _target(self, node: ReferenceNode) -> str:
        return node.dotted_name or self._registry.disambiguate(node.context_name, node.name)

    @staticmethod
    def _add_edge(g: _Graph, source: str, target: str, edge_type: str) -> None:
        # A value reference is never downgraded by a parent or override edge.
        if g.has_edge(source, target) and g.edges[source, target]["edge_type"] == REFERENCE:
            return
        g.add_edge(source, target, edge_type=edge_type)

    def _build(self) -> _Graph:
        g: _Graph = nx.DiGraph()
        for rule in self._registry.rules():
            g.add_node(rule.dotted_name, title=rule.title, nested=rule.is_nested)

        for rule in self._registry.rules():
            if isinstance(rule.parent, ReferenceNode):
                self._add_edge(g, rule.dotted_name, self._target(rule.parent), PARENT)
            for node in walk(rule.value):
                if isinstance(node, ReferenceNode):
                    self._add_edge(g, rule.dotted_name, self._target(node), REFERENCE)

        for decl in self._replacements:
            edge_type = NOT_APPLICABLE if decl.is_non_applicability else REPLACES
            target = decl.target or decl.target_ref
            self._add_edge(g, decl.definition_rule, target, edge_type)
            if decl.substitute is not None:
                for node in walk(decl.substitute):
                    if isinstance(node, ReferenceNode) and self._target(node) != decl.definition_rule:
                        self._add_edge(g, decl.definition_rule, self._target(node), edge_type)
        return g

    def reference_graph(self) -> _Graph:
        """Subgraph view of value references only."""
        return nx.subgraph_view(
            self.graph,
            filter_edge=lambda a, b: self.graph.edges[a, b]["edge_type"] == REFERENCE,
        )

    def reference_cycles(self) -> list[list[str]]:
        """Value-reference cycles, each starting from its smallest name."""
        cycles = []
        for cycle in nx.simple_cycles(self.reference_graph()):
            start = cycle.index(min(cycle))
            cycles.append(cycle[start:] + cycle[:start])
        return sorted(cycles)

    def dependencies(self, dotted_name: str, depth: int | None = None) -> dict[str, int]:
        """Rules *dotted_name* needs, with their distance in hops."""
        distances = nx.single_source_shortest_path_length(self.graph, dotted_name, cutoff=depth)
        distances.pop(dotted_name, None)
        return dict(distances)

    def dependents(self, dotted_name: str, depth: int | None = None) -> dict[str, int]:
        """Rules that need *dotted_name*, with their distance in hops."""
        distances = nx.single_source_shortest_path_length(
            self.graph.reverse(copy=False), dotted_name, cutoff=depth
        )
        distances.pop(dotted_name, None)
        return dict(distances)

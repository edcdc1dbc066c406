"""GraphService — dependency queries over the rule graph.

Read-only NetworkX traversals on the lazily built
:class:`~rulectl.infrastructure.graph.RuleGraph`.
"""

from __future__ import annotations

from typing import Any

from rulectl.domain.errors import RulectlError
from rulectl.domain.names import normalize_name
from rulectl.services.base import BaseService
from rulectl.services.result import ServiceResult
from rulectl.services.telemetry import traced


class GraphService(BaseService):
    """Handles dependency queries."""

    def _neighbourhood(self, op: str, name: str, depth: int | None, *, reverse: bool) -> ServiceResult:
        try:
            dotted_name = self._workspace.resolved.registry.get(normalize_name(name)).dotted_name
            rule_graph = self._workspace.graph
        except RulectlError as exc:
            return ServiceResult.failure(op, exc)

        if depth is not None:
            depth = max(1, depth)
        lookup = rule_graph.dependents if reverse else rule_graph.dependencies
        distances = lookup(dotted_name, depth)

        g = rule_graph.graph
        items: list[dict[str, Any]] = []
        for other, distance in sorted(distances.items(), key=lambda item: (item[1], item[0])):
            edge = (other, dotted_name) if reverse else (dotted_name, other)
            items.append(
                {
                    "dotted_name": other,
                    "title": g.nodes[other].get("title", ""),
                    "depth": distance,
                    "edge_type": g.edges[edge]["edge_type"] if g.has_edge(*edge) else None,
                }
            )
        return ServiceResult(
            ok=True,
            op=op,
            data={"dotted_name": dotted_name, "count": len(items), "items": items},
        )

    @traced
    def dependencies(self, name: str, *, depth: int | None = 1) -> ServiceResult:
        """Rules that *name* needs, up to *depth* hops (None = unbounded)."""
        return self._neighbourhood("dependencies", name, depth, reverse=False)

    @traced
    def dependents(self, name: str, *, depth: int | None = 1) -> ServiceResult:
        """Rules that need *name*, up to *depth* hops (None = unbounded)."""
        return self._neighbourhood("dependents", name, depth, reverse=True)

    @traced
    def cycles(self) -> ServiceResult:
        """Value-reference cycles in the rule set."""
        op = "cycles"
        try:
            cycles = self._workspace.graph.reference_cycles()
        except RulectlError as exc:
            return ServiceResult.failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"count": len(cycles), "items": cycles})

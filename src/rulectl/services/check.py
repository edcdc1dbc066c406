"""CheckService — static checks over the workspace rules.

A rule set that fails to resolve is reported as an error result. A rule
set that resolves is checked for:

- ``cycle`` — rules whose values reference each other in a loop;
- ``empty_scope`` — a replacement whose ``in`` scopes are all excluded by
  its ``except in`` scopes, so it can never apply.
"""

from __future__ import annotations

from typing import Any

from rulectl.domain.errors import RulectlError
from rulectl.domain.names import is_within
from rulectl.engine.nodes import ReplacementDecl
from rulectl.services.base import BaseService
from rulectl.services.result import ServiceResult
from rulectl.services.telemetry import trace_span, traced


def _never_applies(decl: ReplacementDecl) -> bool:
    if not decl.scope_includes:
        return False
    return all(
        any(is_within(include, exclude) for exclude in decl.scope_excludes)
        for include in decl.scope_includes
    )


class CheckService(BaseService):
    """Resolves the workspace and reports structural issues."""

    @traced
    def check(self) -> ServiceResult:
        op = "check"
        try:
            resolved = self._workspace.resolved
            graph = self._workspace.graph
        except RulectlError as exc:
            return ServiceResult.failure(op, exc)

        issues: list[dict[str, Any]] = []
        with trace_span("cycles") as span:
            cycles = graph.reference_cycles()
            if span:
                span.annotate("cycles", len(cycles))
        for cycle in cycles:
            issues.append(
                {
                    "kind": "cycle",
                    "rules": cycle,
                    "message": f"Cyclic reference: {' -> '.join([*cycle, cycle[0]])}",
                }
            )

        for decl in resolved.replacements:
            if decl.scope_excludes and _never_applies(decl):
                issues.append(
                    {
                        "kind": "empty_scope",
                        "rules": [decl.definition_rule, decl.target or decl.target_ref],
                        "message": (
                            f"'{decl.definition_rule}' never applies to "
                            f"'{decl.target or decl.target_ref}': every 'in' scope is excluded"
                        ),
                    }
                )

        registry = resolved.registry
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "rule_count": len(registry),
                "replacement_count": len(resolved.replacements),
                "count": len(issues),
                "issues": issues,
            },
        )

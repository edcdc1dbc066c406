"""EvaluateService — evaluate expressions against the workspace rules."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from typing import Any

from rulectl.domain.errors import RulectlError
from rulectl.engine.missing import merge_missing, rank_missing
from rulectl.services.base import BaseService
from rulectl.services.result import ServiceError, ServiceResult
from rulectl.services.telemetry import trace_span, traced


class EvaluateService(BaseService):
    """Runs one evaluation context per call."""

    @traced
    def evaluate(
        self,
        expressions: Sequence[str],
        *,
        situation: Mapping[str, Any] | None = None,
        on: date | str | None = None,
        explain: bool = False,
    ) -> ServiceResult:
        """Evaluate each expression in one shared context.

        Inputs the situation lacks never fail the call: they are reported
        in ``missing_variables`` and ranked in ``next_questions``.

        Args:
            expressions: Rule names or expressions, parsed at top level.
            situation: Extra input values layered over ``[situation]``.
            on: Evaluation date (defaults to ``[engine] date``, then today).
            explain: Include each evaluation's explanation tree.
        """
        op = "evaluate"
        warnings: list[str] = []
        try:
            with trace_span("resolve") as span:
                engine = self._workspace.engine(situation, on=on)
                if span:
                    span.annotate("rules", len(engine.resolved.registry))

            items: list[dict[str, Any]] = []
            missing: list[Mapping[str, float]] = []
            with trace_span("evaluate") as span:
                for expression in expressions:
                    evaluation = engine.evaluate(expression)
                    items.append({"expression": expression, **evaluation.to_dict(explanation=explain)})
                    missing.append(evaluation.missing_variables)
                    self._dispatch_event(
                        "post_evaluate",
                        {
                            "expression": expression,
                            "value": evaluation.value,
                            "missing_variables": dict(evaluation.missing_variables),
                        },
                        warnings,
                    )
                if span:
                    span.annotate("cached_rules", len(engine.context.cache))
        except RulectlError as exc:
            return ServiceResult.failure(op, exc, warnings=warnings)
        except ValueError as exc:
            return ServiceResult(
                ok=False,
                op=op,
                error=ServiceError(code="INVALID_INPUT", message=str(exc)),
                warnings=warnings,
            )

        return ServiceResult(
            ok=True,
            op=op,
            data={
                "date": engine.context.evaluation_date.isoformat(),
                "count": len(items),
                "items": items,
                "missing_variables": merge_missing(*missing),
                "next_questions": [name for name, _ in rank_missing(missing)],
            },
            warnings=warnings,
        )

"""The ``kind -> evaluator`` dispatch table.

Built once at startup and handed to every
:class:`~rulectl.engine.context.EvaluationContext`. Plugins may add node
kinds; core kinds are fixed.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from rulectl.engine import mechanisms
from rulectl.engine.context import Evaluator
from rulectl.engine.rule import evaluate_rule

DEFAULT_EVALUATORS: dict[str, Any] = {
    "constant": mechanisms.evaluate_constant,
    "reference": mechanisms.evaluate_reference,
    "situation": mechanisms.evaluate_situation,
    "rule": evaluate_rule,
    **{key: mechanisms.evaluate_list for key in mechanisms.LIST_COMBINERS},
    "applicable if": mechanisms.evaluate_condition,
    "not applicable if": mechanisms.evaluate_condition,
    "unit": mechanisms.evaluate_unit,
    "during": mechanisms.evaluate_during,
    "period average": mechanisms.evaluate_period_average,
}


def build_evaluators(*extra: Mapping[str, Evaluator]) -> dict[str, Evaluator]:
    """Core evaluators plus *extra* ones.

    Raises:
        ValueError: if an extra evaluator reuses a core node kind.
    """
    evaluators: dict[str, Evaluator] = dict(DEFAULT_EVALUATORS)
    for mapping in extra:
        for kind, evaluator in mapping.items():
            if kind in DEFAULT_EVALUATORS:
                msg = f"Evaluator for '{kind}' is built in and cannot be overridden"
                raise ValueError(msg)
            evaluators[kind] = evaluator
    return evaluators

"""Rule engine: parsing, resolution, and evaluation.

Depends on :mod:`rulectl.domain` only. The public entry points are
:func:`resolve_rules` and :class:`Engine`.
"""

from rulectl.engine.context import EvaluationContext
from rulectl.engine.engine import Engine
from rulectl.engine.evaluation import build_evaluators
from rulectl.engine.nodes import EvaluatedNode, RuleDefinition
from rulectl.engine.parse import build_mechanisms
from rulectl.engine.resolver import ResolvedRules, resolve_rules

__all__ = [
    "Engine",
    "EvaluatedNode",
    "EvaluationContext",
    "ResolvedRules",
    "RuleDefinition",
    "build_evaluators",
    "build_mechanisms",
    "resolve_rules",
]

"""Error hierarchy shared by the resolver, the engine, and the services.

Two families:

- :class:`RulectlError` — user-reachable failures (bad rule files, unknown
  names, reference cycles). Services convert them into a failed
  ``ServiceResult`` using :attr:`RulectlError.code`.
- :class:`InternalError` — defects. They are never converted and always
  propagate.

INVARIANT: missing inputs are not errors. They surface as
``missing_variables`` on an evaluation.
"""

from __future__ import annotations

from typing import Any


class RulectlError(Exception):
    """Base class for user-reachable rulectl failures."""

    code = "RULECTL_ERROR"

    def __init__(self, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


# --- Resolution-time failures (fatal to the resolution pass) ---


class ResolutionError(RulectlError):
    code = "RESOLUTION_ERROR"


class DuplicateDefinition(ResolutionError):
    code = "DUPLICATE_DEFINITION"


class UnknownReference(ResolutionError):
    code = "UNKNOWN_REFERENCE"


class InvalidRuleDefinition(ResolutionError):
    code = "INVALID_RULE"


class InvalidKeyword(ResolutionError, ValueError):
    code = "INVALID_KEYWORD"


# --- Evaluation-time failures ---


class EvaluationError(RulectlError):
    code = "EVALUATION_ERROR"


class CyclicReference(EvaluationError):
    code = "CYCLIC_REFERENCE"


# --- Defects ---


class InternalError(RuntimeError):
    """An invariant of rulectl itself was violated."""


class TemporalInvariantError(InternalError):
    """Two timelines could not be merged (misaligned or unclassifiable bounds)."""


class UnknownNodeKind(InternalError):
    """No evaluator is registered for a node kind."""


class RegistryFrozen(InternalError):
    """A rule was registered after the resolution pass completed."""

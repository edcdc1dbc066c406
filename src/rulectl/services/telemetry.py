"""Telemetry for service calls: Span, @traced, trace_span.

Off unless ``--verbose`` turns it on, in which case every ``@traced``
service method becomes the root of a span tree. Stages inside it open child
spans with :func:`trace_span` and annotate them with counts (rules
resolved, cycles found...). The finished tree lands in
``ServiceResult.meta["telemetry"]``, where the human renderer prints it.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from rulectl.services.result import ServiceResult

_enabled: ContextVar[bool] = ContextVar("_telemetry_enabled", default=False)
_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)

log = structlog.get_logger("rulectl.telemetry")


@dataclass
class Span:
    """One timed stage of a service call."""

    name: str
    parent: Span | None = None
    children: list[Span] = field(default_factory=list)
    annotations: dict[str, Any] = field(default_factory=dict)
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None
    ok: bool | None = None

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    def end(self) -> None:
        self.end_time = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def child(self, name: str, **annotations: Any) -> Span:
        span = Span(name=name, parent=self, annotations=dict(annotations))
        self.children.append(span)
        return span

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.ok is not None:
            data["ok"] = self.ok
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        if self.children:
            data["children"] = [span.to_dict() for span in self.children]
        return data


@contextmanager
def trace_span(name: str, **annotations: Any) -> Generator[Span | None]:
    """Time a stage as a child of the active span.

    Keyword arguments become initial annotations. Yields None when
    telemetry is off or no ``@traced`` call is running, so callers guard
    their ``annotate`` calls with ``if span is not None``.
    """
    parent = get_current_span()
    if parent is None:
        yield None
        return

    span = parent.child(name, **annotations)
    token = _current_span.set(span)
    try:
        yield span
    finally:
        span.end()
        _current_span.reset(token)


def _finish(span: Span, token: Token[Span | None], *, ok: bool) -> None:
    span.end()
    span.ok = ok
    _current_span.reset(token)
    log.debug(
        "span.complete",
        span_name=span.name,
        duration_ms=round(span.duration_ms, 2),
        ok=ok,
        children=len(span.children),
    )


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Make *func* the root span of its call and attach the tree to its result.

    Results are frozen, so a ``ServiceResult`` is copied with the span tree
    merged into its existing meta. Other return values pass through.
    """

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _enabled.get():
            return func(*args, **kwargs)

        span = Span(name=func.__qualname__)
        token = _current_span.set(span)
        try:
            result = func(*args, **kwargs)
        except Exception:
            _finish(span, token, ok=False)
            raise

        if not isinstance(result, ServiceResult):
            _finish(span, token, ok=True)
            return result
        _finish(span, token, ok=result.ok)
        meta = {**(result.meta or {}), "telemetry": span.to_dict()}
        return result.model_copy(update={"meta": meta})  # type: ignore[return-value]

    return wrapper


def enable_telemetry() -> None:
    """Turn telemetry on for the current context (``--verbose``)."""
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)


def get_current_span() -> Span | None:
    """The innermost running span, or None when telemetry is off."""
    if not _enabled.get():
        return None
    return _current_span.get()

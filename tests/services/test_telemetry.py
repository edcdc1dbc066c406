"""Tests for service telemetry: spans, trace_span and @traced."""

from __future__ import annotations

import time
from collections.abc import Generator

import pytest

from rulectl.infrastructure.workspace import Workspace
from rulectl.services.check import CheckService
from rulectl.services.evaluate import EvaluateService
from rulectl.services.result import ServiceError, ServiceResult
from rulectl.services.telemetry import (
    Span,
    _current_span,
    disable_telemetry,
    enable_telemetry,
    get_current_span,
    trace_span,
    traced,
)


@pytest.fixture(autouse=True)
def _reset_telemetry_state() -> Generator[None]:
    yield
    disable_telemetry()
    _current_span.set(None)


@pytest.fixture
def root() -> Generator[Span]:
    """An enabled telemetry context with an active root span."""
    enable_telemetry()
    span = Span(name="root")
    token = _current_span.set(span)
    yield span
    _current_span.reset(token)


@traced
def _passing() -> ServiceResult:
    with trace_span("resolve", rules=3):
        pass
    with trace_span("evaluate") as span:
        with trace_span("rule"):
            pass
        if span is not None:
            span.annotate("cached_rules", 2)
    return ServiceResult(ok=True, op="evaluate", meta={"source": "test"})


@traced
def _failing() -> ServiceResult:
    return ServiceResult(ok=False, op="check", error=ServiceError(code="INVALID_RULE", message="bad"))


# ── Span ─────────────────────────────────────────────────────────────


class TestSpan:
    def test_duration_is_zero_until_ended(self) -> None:
        span = Span(name="resolve")
        assert span.duration_ms == 0.0
        time.sleep(0.002)
        span.end()
        assert span.duration_ms > 0

    def test_to_dict_omits_empty_fields(self) -> None:
        span = Span(name="resolve")
        span.end()
        assert set(span.to_dict()) == {"name", "duration_ms"}

    def test_child_carries_initial_annotations(self) -> None:
        parent = Span(name="check")
        child = parent.child("cycles", cycles=0)
        assert child.parent is parent
        assert parent.to_dict()["children"][0]["annotations"] == {"cycles": 0}

    def test_ok_is_serialized_once_set(self) -> None:
        span = Span(name="check")
        span.ok = False
        assert span.to_dict()["ok"] is False


# ── trace_span ───────────────────────────────────────────────────────


class TestTraceSpan:
    def test_yields_none_when_disabled(self) -> None:
        with trace_span("resolve") as span:
            assert span is None

    def test_yields_none_without_root(self) -> None:
        enable_telemetry()
        with trace_span("resolve") as span:
            assert span is None

    def test_nests_under_active_span(self, root: Span) -> None:
        with trace_span("evaluate"), trace_span("rule", rule="salary . net") as inner:
            assert get_current_span() is inner
        assert get_current_span() is root
        (evaluate,) = root.children
        assert evaluate.end_time is not None
        assert evaluate.children[0].annotations == {"rule": "salary . net"}

    def test_ends_span_on_error(self, root: Span) -> None:
        with pytest.raises(RuntimeError), trace_span("resolve"):
            raise RuntimeError
        assert root.children[0].end_time is not None
        assert get_current_span() is root


# ── @traced ──────────────────────────────────────────────────────────


class TestTraced:
    def test_noop_when_disabled(self) -> None:
        assert _passing().meta == {"source": "test"}

    def test_span_tree_merged_into_meta(self) -> None:
        enable_telemetry()
        meta = _passing().meta
        assert meta is not None
        assert meta["source"] == "test"
        tree = meta["telemetry"]
        assert tree["name"] == "_passing"
        assert tree["ok"] is True
        assert [child["name"] for child in tree["children"]] == ["resolve", "evaluate"]
        assert tree["children"][0]["annotations"] == {"rules": 3}
        assert tree["children"][1]["annotations"] == {"cached_rules": 2}
        assert tree["children"][1]["children"][0]["name"] == "rule"

    def test_failed_result_marked(self) -> None:
        enable_telemetry()
        result = _failing()
        assert result.meta is not None
        assert result.meta["telemetry"]["ok"] is False

    def test_other_return_values_pass_through(self) -> None:
        @traced
        def names() -> list[str]:
            return ["salary"]

        enable_telemetry()
        assert names() == ["salary"]

    def test_exception_restores_context(self) -> None:
        @traced
        def boom() -> ServiceResult:
            msg = "boom"
            raise ValueError(msg)

        enable_telemetry()
        with pytest.raises(ValueError, match="boom"):
            boom()
        assert get_current_span() is None


# ── Services ─────────────────────────────────────────────────────────


class TestTracedServices:
    def test_evaluate_spans(self, workspace: Workspace) -> None:
        enable_telemetry()
        result = EvaluateService(workspace).evaluate(["salary . net"], situation={"salary . gross": 10})
        assert result.ok
        assert result.meta is not None
        tel = result.meta["telemetry"]
        assert tel["name"] == "EvaluateService.evaluate"
        assert [child["name"] for child in tel["children"]] == ["resolve", "evaluate"]
        assert tel["children"][0]["annotations"] == {"rules": 7}

    def test_check_spans(self, workspace: Workspace) -> None:
        enable_telemetry()
        result = CheckService(workspace).check()
        assert result.meta is not None
        cycles = result.meta["telemetry"]["children"][0]
        assert cycles["name"] == "cycles"
        assert cycles["annotations"] == {"cycles": 0}

    def test_failure_still_gets_telemetry(self, workspace: Workspace) -> None:
        enable_telemetry()
        result = EvaluateService(workspace).evaluate(["salary . bonus"])
        assert not result.ok
        assert result.meta is not None
        assert result.meta["telemetry"]["ok"] is False

    def test_disabled_leaves_meta_empty(self, workspace: Workspace) -> None:
        assert CheckService(workspace).check().meta is None

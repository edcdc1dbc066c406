"""Tests for ServiceResult and ServiceError."""

import json

import pydantic
import pytest

from rulectl.domain.errors import CyclicReference, UnknownReference
from rulectl.services.result import ServiceError, ServiceResult


class TestServiceResult:
    def test_success_construction(self) -> None:
        result = ServiceResult(ok=True, op="evaluate", data={"count": 1})
        assert result.ok is True
        assert result.op == "evaluate"
        assert result.data == {"count": 1}
        assert result.warnings == []
        assert result.error is None
        assert result.meta is None

    def test_error_construction(self) -> None:
        error = ServiceError(code="E001", message="Not found")
        result = ServiceResult(ok=False, op="show_rule", error=error)
        assert result.ok is False
        assert result.error is not None
        assert result.error.code == "E001"

    def test_json_serialization(self) -> None:
        result = ServiceResult(ok=True, op="check", data={"issues": []}, meta={"duration_ms": 42})
        parsed = json.loads(result.model_dump_json())
        assert parsed["ok"] is True
        assert parsed["data"]["issues"] == []
        assert parsed["meta"]["duration_ms"] == 42

    def test_frozen(self) -> None:
        result = ServiceResult(ok=True, op="test")
        with pytest.raises(pydantic.ValidationError):
            result.ok = False  # type: ignore[misc]

    def test_failure_from_exception(self) -> None:
        exc = UnknownReference("Unknown rule 'a . b'", name="a . b")
        result = ServiceResult.failure("evaluate", exc, warnings=["hook failed"])
        assert result.ok is False
        assert result.error == ServiceError(
            code="UNKNOWN_REFERENCE", message="Unknown rule 'a . b'", detail={"name": "a . b"}
        )
        assert result.warnings == ["hook failed"]


class TestServiceError:
    def test_default_detail(self) -> None:
        assert ServiceError(code="E001", message="bad").detail == {}

    def test_from_exception_uses_class_code(self) -> None:
        error = ServiceError.from_exception(CyclicReference("loop", cycle=["a", "b", "a"]))
        assert error.code == "CYCLIC_REFERENCE"
        assert error.detail["cycle"] == ["a", "b", "a"]

"""Tests for the format_result dispatcher and OutputSettings."""

import json

import pydantic
import pytest

from rulectl.output.formatters import OutputSettings, format_result
from rulectl.services.result import ServiceError, ServiceResult


def _ok(op: str = "test", **data: object) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=dict(data))


def _err(op: str = "test", msg: str = "fail") -> ServiceResult:
    return ServiceResult(ok=False, op=op, error=ServiceError(code="ERR", message=msg))


class TestOutputSettings:
    def test_defaults(self) -> None:
        s = OutputSettings()
        assert s.json_output is False
        assert s.quiet is False
        assert s.verbose is False
        assert s.explain is False

    def test_frozen(self) -> None:
        s = OutputSettings(json_output=True)
        with pytest.raises(pydantic.ValidationError):
            s.json_output = False  # type: ignore[misc]


class TestFormatResultJSON:
    def test_json_mode_returns_valid_json(self) -> None:
        output = format_result(_ok("check", count=0), settings=OutputSettings(json_output=True))
        data = json.loads(output)
        assert data["ok"] is True
        assert data["op"] == "check"
        assert data["data"]["count"] == 0

    def test_json_mode_error(self) -> None:
        data = json.loads(format_result(_err("evaluate", "Bad"), json_output=True))
        assert data["ok"] is False
        assert data["error"]["message"] == "Bad"

    def test_settings_overrides_kwarg(self) -> None:
        output = format_result(_ok("test", key="val"), settings=OutputSettings(), json_output=True)
        assert not output.startswith("{")

    def test_json_wins_over_quiet(self) -> None:
        output = format_result(_ok("test"), settings=OutputSettings(json_output=True, quiet=True))
        assert json.loads(output)["op"] == "test"


class TestFormatResultHuman:
    def test_generic_success(self) -> None:
        output = format_result(_ok("custom", key="val"))
        assert "OK" in output
        assert "key: val" in output

    def test_error(self) -> None:
        output = format_result(_err("evaluate", "Unknown rule 'x'"))
        assert "ERROR" in output
        assert "Unknown rule 'x'" in output

    def test_quiet_success(self) -> None:
        assert format_result(_ok("custom"), settings=OutputSettings(quiet=True)) == "OK: custom"

    def test_quiet_error(self) -> None:
        output = format_result(_err("evaluate", "boom"), settings=OutputSettings(quiet=True))
        assert output == "ERROR: evaluate — boom"

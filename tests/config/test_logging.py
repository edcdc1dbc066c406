"""Tests for structlog configuration."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator

import pytest
import structlog

from rulectl.config.logging import QUIET_LOGGERS, configure_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore root logger state after each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    rulectl_logger = logging.getLogger("rulectl")
    rulectl_level = rulectl_logger.level
    quiet_levels = {name: logging.getLogger(name).level for name in QUIET_LOGGERS}
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    rulectl_logger.setLevel(rulectl_level)
    for name, level in quiet_levels.items():
        logging.getLogger(name).setLevel(level)


class TestConfigureLogging:
    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True, log_json=False)
        assert logging.getLogger("rulectl").level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING

    def test_non_verbose_sets_warning(self) -> None:
        configure_logging(verbose=False, log_json=False)
        assert logging.getLogger("rulectl").level == logging.WARNING

    def test_json_mode_output(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        structlog.get_logger("rulectl.test").warning("json test", answer=42)
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "json test"
        assert parsed["answer"] == 42
        assert parsed["level"] == "warning"
        assert parsed["logger"] == "rulectl.test"
        assert "timestamp" in parsed

    def test_stdlib_rulectl_logger_gets_structured_fields(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        logging.getLogger("rulectl.infrastructure.workspace").debug("Resolved %d rules", 7)
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "Resolved 7 rules"
        assert parsed["level"] == "debug"
        assert parsed["logger"] == "rulectl.infrastructure.workspace"

    def test_debug_hidden_without_verbose(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=False, log_json=True)
        logging.getLogger("rulectl.plugins.manager").debug("Registered plugin: rounding")
        assert capfd.readouterr().err == ""

    def test_third_party_debug_is_suppressed(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        logging.getLogger("pluggy").debug("hook noise")
        assert capfd.readouterr().err == ""

    @pytest.mark.parametrize("name", ["networkx", "ruamel.yaml", "pluggy"])
    def test_driven_libraries_stay_at_warning(self, name: str, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        logging.getLogger(name).info("library chatter")
        logging.getLogger(name).warning("library warning")
        lines = capfd.readouterr().err.strip().splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["library warning"]

    def test_structlog_positional_args(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        structlog.get_logger("rulectl.test").debug("Loaded %d rule files", 3)
        assert json.loads(capfd.readouterr().err.strip())["event"] == "Loaded 3 rule files"

    def test_telemetry_spans_logged_when_verbose(self, capfd: pytest.CaptureFixture[str]) -> None:
        from rulectl.services.result import ServiceResult
        from rulectl.services.telemetry import enable_telemetry, traced

        @traced
        def op() -> ServiceResult:
            return ServiceResult(ok=True, op="check")

        configure_logging(verbose=True, log_json=True)
        enable_telemetry()
        op()
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "span.complete"
        assert parsed["ok"] is True
        assert parsed["logger"] == "rulectl.telemetry"

    def test_idempotent_calls(self) -> None:
        """Multiple configure_logging calls don't stack handlers."""
        configure_logging(verbose=True, log_json=False)
        configure_logging(verbose=True, log_json=True)
        assert len(logging.getLogger().handlers) == 1

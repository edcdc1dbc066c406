"""Tests for BaseService and service inheritance."""

from __future__ import annotations

from typing import Any

import pytest

from rulectl.infrastructure.workspace import Workspace
from rulectl.plugins.hookspecs import hookimpl
from rulectl.services.base import BaseService
from rulectl.services.check import CheckService
from rulectl.services.evaluate import EvaluateService
from rulectl.services.graph import GraphService
from rulectl.services.rules import RuleService

ALL_SERVICES = [EvaluateService, CheckService, GraphService, RuleService]


class _Recorder:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    @hookimpl
    def post_evaluate(self, expression: str, value: Any, missing_variables: dict[str, float]) -> None:
        self.calls.append({"expression": expression, "value": value})


class _Broken:
    @hookimpl
    def post_evaluate(self, expression: str, value: Any, missing_variables: dict[str, float]) -> None:
        raise RuntimeError("plugin bug")


class TestServiceInheritance:
    @pytest.mark.parametrize("service_cls", ALL_SERVICES, ids=lambda c: c.__name__)
    def test_inherits_base_service(self, service_cls: type) -> None:
        assert issubclass(service_cls, BaseService)

    @pytest.mark.parametrize("service_cls", ALL_SERVICES, ids=lambda c: c.__name__)
    def test_workspace_injection(self, service_cls: type, workspace: Workspace) -> None:
        assert service_cls(workspace)._workspace is workspace


class TestDispatchEvent:
    def test_plugins_receive_events(self, workspace: Workspace) -> None:
        recorder = _Recorder()
        workspace.plugins.register_plugin(recorder)
        warnings: list[str] = []
        BaseService(workspace)._dispatch_event(
            "post_evaluate", {"expression": "x", "value": 1, "missing_variables": {}}, warnings
        )
        assert recorder.calls == [{"expression": "x", "value": 1}]
        assert warnings == []

    def test_plugin_failure_becomes_warning(self, workspace: Workspace) -> None:
        workspace.plugins.register_plugin(_Broken())
        result = EvaluateService(workspace).evaluate(["salary . rate"])
        assert result.ok
        assert result.data["items"][0]["value"] == 0.2
        assert result.warnings == ["Event dispatch failed for post_evaluate"]

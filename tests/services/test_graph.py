"""Tests for GraphService dependency queries."""

from __future__ import annotations

from pathlib import Path

from rulectl.config.settings import RulectlSettings
from rulectl.infrastructure.workspace import Workspace
from rulectl.services.graph import GraphService


class TestDependencies:
    def test_direct(self, workspace: Workspace) -> None:
        result = GraphService(workspace).dependencies("salary . net")
        assert result.ok
        assert result.op == "dependencies"
        assert result.data["dotted_name"] == "salary . net"
        assert [(i["dotted_name"], i["edge_type"]) for i in result.data["items"]] == [
            ("salary", "parent"),
            ("salary . contributions", "reference"),
            ("salary . gross", "reference"),
        ]

    def test_unbounded(self, workspace: Workspace) -> None:
        result = GraphService(workspace).dependencies("salary . net", depth=None)
        items = {i["dotted_name"]: i for i in result.data["items"]}
        assert items["salary . rate"]["depth"] == 2
        assert items["salary . rate"]["edge_type"] is None
        assert result.data["count"] == 4

    def test_titles(self, workspace: Workspace) -> None:
        result = GraphService(workspace).dependencies("salary . net")
        titles = {i["dotted_name"]: i["title"] for i in result.data["items"]}
        assert titles["salary . gross"] == "Gross salary"

    def test_name_is_normalized(self, workspace: Workspace) -> None:
        assert GraphService(workspace).dependencies("salary  .   net").data["dotted_name"] == "salary . net"

    def test_unknown_rule(self, workspace: Workspace) -> None:
        result = GraphService(workspace).dependencies("salary . bonus")
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "UNKNOWN_REFERENCE"


class TestDependents:
    def test_direct(self, workspace: Workspace) -> None:
        result = GraphService(workspace).dependents("salary . contributions")
        assert result.op == "dependents"
        assert [(i["dotted_name"], i["edge_type"]) for i in result.data["items"]] == [
            ("apprentice . exemption", "renders not applicable"),
            ("salary . net", "reference"),
        ]

    def test_leaf_has_no_dependents(self, workspace: Workspace) -> None:
        assert GraphService(workspace).dependents("salary . net").data["count"] == 0


class TestCycles:
    def test_none(self, workspace: Workspace) -> None:
        result = GraphService(workspace).cycles()
        assert result.ok
        assert result.data == {"count": 0, "items": []}

    def test_found(self, tmp_path: Path) -> None:
        rules = tmp_path / "rules"
        rules.mkdir()
        (rules / "loop.yaml").write_text("b:\n  value: a\na:\n  value: b\n", encoding="utf-8")
        ws = Workspace(RulectlSettings.from_cli(project_root=tmp_path))
        assert GraphService(ws).cycles().data["items"] == [["a", "b"]]

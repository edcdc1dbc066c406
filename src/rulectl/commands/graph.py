"""Command group: rule dependency graph."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from rulectl.commands._base import RuleGroup
from rulectl.services.graph import GraphService

if TYPE_CHECKING:
    from rulectl.commands._context import AppContext


def _depth(depth: int, unbounded: bool) -> int | None:
    return None if unbounded else depth


@click.group(cls=RuleGroup)
@click.pass_obj
def graph(app: AppContext) -> None:
    """Traverse the rule dependency graph."""


@graph.command()
@click.argument("name")
@click.option("--depth", default=1, type=click.IntRange(min=1), help="Maximum hops from the rule.")
@click.option("--all", "unbounded", is_flag=True, help="Follow dependencies transitively.")
@click.pass_obj
def deps(app: AppContext, name: str, depth: int, unbounded: bool) -> None:
    """Rules that NAME depends on."""
    app.emit(GraphService(app.workspace).dependencies(name, depth=_depth(depth, unbounded)))


@graph.command()
@click.argument("name")
@click.option("--depth", default=1, type=click.IntRange(min=1), help="Maximum hops from the rule.")
@click.option("--all", "unbounded", is_flag=True, help="Follow dependents transitively.")
@click.pass_obj
def dependents(app: AppContext, name: str, depth: int, unbounded: bool) -> None:
    """Rules that depend on NAME."""
    app.emit(GraphService(app.workspace).dependents(name, depth=_depth(depth, unbounded)))


@graph.command()
@click.pass_obj
def cycles(app: AppContext) -> None:
    """Detect value-reference cycles."""
    app.emit(GraphService(app.workspace).cycles())

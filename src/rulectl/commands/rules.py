"""Command group: browse the loaded rule set."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from rulectl.commands._base import RuleGroup
from rulectl.services.rules import RuleService

if TYPE_CHECKING:
    from rulectl.commands._context import AppContext


@click.group(cls=RuleGroup)
@click.pass_obj
def rules(app: AppContext) -> None:
    """List and inspect rules."""


@rules.command("list")
@click.option("--prefix", default=None, help="Only rules within this namespace.")
@click.pass_obj
def list_cmd(app: AppContext, prefix: str | None) -> None:
    """List rules, sorted by dotted name."""
    app.emit(RuleService(app.workspace).list_rules(prefix=prefix))


@rules.command()
@click.argument("name")
@click.pass_obj
def show(app: AppContext, name: str) -> None:
    """Show one rule with its replacements and dependencies."""
    app.emit(RuleService(app.workspace).show(name))

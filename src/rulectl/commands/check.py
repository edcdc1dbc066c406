"""Command: rule set integrity checking."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from rulectl.commands._base import RuleCommand

if TYPE_CHECKING:
    from rulectl.commands._context import AppContext


@click.command(cls=RuleCommand)
@click.pass_obj
def check(app: AppContext) -> None:
    """Load and resolve every rule, then report structural issues."""
    from rulectl.services.check import CheckService

    app.emit(CheckService(app.workspace).check())

"""Subcommand modules for rulectl.

register_commands() uses deferred imports to keep ``rulectl --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register command groups and standalone commands on the root CLI group."""
    # --- Groups ---
    from rulectl.commands.graph import graph
    from rulectl.commands.rules import rules

    cli.add_command(rules)
    cli.add_command(graph)

    # --- Standalone commands ---
    from rulectl.commands.check import check
    from rulectl.commands.evaluate import evaluate

    cli.add_command(evaluate)
    cli.add_command(check)

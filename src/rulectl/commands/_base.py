"""Click base classes backed by rulectl's usage catalogue.

Every rulectl command has its examples in :data:`COMMAND_EXAMPLES`, keyed
by the command path below the root (``"graph deps"``). RuleCommand and
RuleGroup expose them through an eager ``--examples`` flag, which keeps
``--help`` short. A group lists the first example of each subcommand.
"""

from __future__ import annotations

import click

COMMAND_EXAMPLES: dict[str, tuple[str, ...]] = {
    "evaluate": (
        'rulectl evaluate "salary . net"',
        'rulectl evaluate "salary . net" -s "salary . gross=3000"',
        'rulectl evaluate "salary . net" --situation alice.yaml --date 2024-07-01',
        'rulectl evaluate "salary . net" "salary . contributions" --explain',
        'rulectl --json evaluate "salary . net"',
    ),
    "check": (
        "rulectl check",
        "rulectl -r ./rules check",
        "rulectl --json check",
    ),
    "rules list": (
        "rulectl rules list",
        'rulectl rules list --prefix "salary . contributions"',
        "rulectl -q rules list",
    ),
    "rules show": (
        'rulectl rules show "salary . net"',
        'rulectl --json rules show "salary . gross"',
    ),
    "graph deps": (
        'rulectl graph deps "salary . net"',
        'rulectl graph deps "salary . net" --depth 2',
        'rulectl --json graph deps "salary . net" --all',
    ),
    "graph dependents": (
        'rulectl graph dependents "salary . gross"',
        'rulectl graph dependents "salary . gross" --all',
    ),
    "graph cycles": (
        "rulectl graph cycles",
        "rulectl --json graph cycles",
    ),
}


def catalogue_key(ctx: click.Context) -> str:
    """Command path of *ctx* without the root program name."""
    return " ".join(ctx.command_path.split()[1:])


def examples_for(key: str) -> tuple[str, ...]:
    """Examples of the command at *key*, or of every subcommand below it."""
    if key in COMMAND_EXAMPLES:
        return COMMAND_EXAMPLES[key]
    prefix = f"{key} "
    return tuple(lines[0] for name, lines in COMMAND_EXAMPLES.items() if name.startswith(prefix))


def _show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    if not value:
        return
    click.echo(f"Examples for '{ctx.command_path}':\n")
    for line in examples_for(catalogue_key(ctx)):
        click.echo(f"  {line}")
    ctx.exit(0)


_EXAMPLES_OPTION = click.Option(
    ["--examples"],
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=_show_examples,
    help="Show usage examples.",
)


def _with_examples_option(ctx: click.Context, params: list[click.Parameter]) -> list[click.Parameter]:
    if not examples_for(catalogue_key(ctx)):
        return params
    return [*params, _EXAMPLES_OPTION]


class RuleCommand(click.Command):
    """Click Command with ``--examples`` from the catalogue."""

    def get_params(self, ctx: click.Context) -> list[click.Parameter]:
        return _with_examples_option(ctx, super().get_params(ctx))


class RuleGroup(click.Group):
    """Click Group with ``--examples`` from the catalogue.

    ``command_class = RuleCommand`` gives every subcommand the flag
    without an explicit ``cls=``.
    """

    command_class = RuleCommand

    def get_params(self, ctx: click.Context) -> list[click.Parameter]:
        return _with_examples_option(ctx, super().get_params(ctx))

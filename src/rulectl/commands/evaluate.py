"""Command: evaluate rules and expressions."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from rulectl.commands._base import RuleCommand

if TYPE_CHECKING:
    from rulectl.commands._context import AppContext


def _parse_date(_ctx: click.Context, _param: click.Parameter, value: str | None) -> Any:
    if value is None:
        return None
    from rulectl.domain.dates import to_calendar_date

    try:
        return to_calendar_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def _parse_assignments(_ctx: click.Context, _param: click.Parameter, value: tuple[str, ...]) -> dict[str, Any]:
    from rulectl.infrastructure.loader import parse_assignment

    situation: dict[str, Any] = {}
    for assignment in value:
        try:
            name, parsed = parse_assignment(assignment)
        except ValueError as exc:
            raise click.BadParameter(str(exc)) from exc
        situation[name] = parsed
    return situation


@click.command(cls=RuleCommand)
@click.argument("expressions", nargs=-1, required=True)
@click.option(
    "-s",
    "--set",
    "assignments",
    multiple=True,
    callback=_parse_assignments,
    metavar="NAME=VALUE",
    help="Situation value (repeatable).",
)
@click.option(
    "--situation",
    "situation_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file of situation values.",
)
@click.option("--date", "on", callback=_parse_date, help="Evaluation date (YYYY-MM-DD, DD/MM/YYYY...).")
@click.option("--explain", is_flag=True, help="Show the explanation tree of each result.")
@click.pass_obj
def evaluate(
    app: AppContext,
    expressions: tuple[str, ...],
    assignments: dict[str, Any],
    situation_file: Path | None,
    on: Any,
    explain: bool,
) -> None:
    """Evaluate rule names or expressions against a situation."""
    from rulectl.domain.errors import RulectlError
    from rulectl.infrastructure.loader import load_situation
    from rulectl.services.evaluate import EvaluateService
    from rulectl.services.result import ServiceResult

    situation: dict[str, Any] = {}
    if situation_file is not None:
        try:
            situation.update(load_situation(situation_file))
        except RulectlError as exc:
            app.emit(ServiceResult.failure("evaluate", exc))
            return
    situation.update(assignments)

    svc = EvaluateService(app.workspace)
    app.emit(svc.evaluate(list(expressions), situation=situation, on=on, explain=explain), explain=explain)

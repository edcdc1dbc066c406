"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO). Renderers are
dispatched by ``result.op`` in :func:`render_result`; unknown ops fall
through to a generic key-value renderer.

Explanations arrive as plain dicts (``EvaluatedNode.to_dict()``); the
engine knows nothing about how they are shown.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from rulectl.output.console import create_console, format_value, get_output, style_for_value

if TYPE_CHECKING:
    from rich.console import Console

    from rulectl.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False, explain: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose, explain=explain)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} — {msg}"

    items = result.data.get("items")
    if result.op == "evaluate" and isinstance(items, list):
        return "\n".join(format_value(item.get("value"), item.get("unit")) for item in items)
    if items and isinstance(items, list):
        names = [_extract_name(item) for item in items]
        return "\n".join(name for name in names if name)

    return f"OK: {result.op}"


def build_explanation_tree(evaluation: dict[str, Any], *, label: str | None = None) -> Tree:
    """Build a Rich Tree from a serialized evaluation and its explanation."""
    tree = Tree(_node_label(evaluation, label))
    _add_explanation(tree, evaluation)
    return tree


# ── Helpers ───────────────────────────────────────────────────────────


def _extract_name(item: Any) -> str:
    if isinstance(item, dict):
        return str(item.get("dotted_name") or "")
    if isinstance(item, list):
        return " -> ".join(str(part) for part in item)
    return ""


def _status_line(console: Console, result: ServiceResult) -> None:
    label = Text("OK", style="rule.ok")
    op = Text(f"  {result.op}", style="rule.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="rule.key")
    if key == "dotted_name":
        v = Text(str(value), style="rule.name")
    elif key == "title":
        v = Text(str(value), style="rule.title")
    elif isinstance(value, (dict, list)):
        v = Text(_json.dumps(value, separators=(",", ":"), default=str))
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _value_text(value: Any, unit: str | None = None) -> Text:
    return Text(format_value(value, unit), style=style_for_value(value))


def _missing_text(missing: dict[str, float]) -> str:
    ranked = sorted(missing.items(), key=lambda item: (-item[1], item[0]))
    return ", ".join(f"{name} ({weight:g})" for name, weight in ranked)


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including the telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))
    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(console: Console, span_data: dict[str, Any], indent: int = 4) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = f"{prefix}[{style}]{duration:>8.2f}ms[/{style}]  {name}"
    annotations = span_data.get("annotations") or {}
    if annotations:
        line += f"  ({', '.join(f'{k}={v}' for k, v in annotations.items())})"
    if span_data.get("ok") is False:
        line += "  [red]failed[/red]"
    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


# ── Explanation tree ──────────────────────────────────────────────────


def _node_label(evaluation: dict[str, Any], label: str | None) -> Text:
    text = Text()
    if label:
        text.append(f"{label}: ", style="rule.key")
    name = evaluation.get("title") or evaluation.get("dotted_name")
    if name:
        text.append(str(name), style="rule.title")
        if evaluation.get("dotted_name") and evaluation.get("dotted_name") != name:
            text.append(f" ({evaluation['dotted_name']})", style="rule.key")
    else:
        text.append(str(evaluation.get("kind", "?")))
    text.append(" = ")
    text.append_text(_value_text(evaluation.get("value"), evaluation.get("unit")))
    missing = evaluation.get("missing_variables")
    if missing and evaluation.get("kind") == "situation":
        text.append(f"  missing: {_missing_text(missing)}", style="rule.warning")
    return text


def _add_explanation(tree: Tree, evaluation: dict[str, Any]) -> None:
    for key, sub in (evaluation.get("explanation") or {}).items():
        if isinstance(sub, dict):
            branch = tree.add(_node_label(sub, key))
            _add_explanation(branch, sub)
        elif isinstance(sub, list):
            branch = tree.add(Text(key, style="rule.key"))
            for item in sub:
                if isinstance(item, dict):
                    _add_explanation(branch.add(_node_label(item, None)), item)
                else:
                    branch.add(str(item))
        else:
            tree.add(Text(f"{key}: {sub}"))


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="rule.error")
    op = Text(f"  {result.op}", style="rule.op")
    sep = Text(" — ")
    console.print(label, op, sep, msg)

    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Evaluation renderer ───────────────────────────────────────────────


def _render_evaluate(
    result: ServiceResult,
    console: Console,
    *,
    verbose: bool = False,
    explain: bool = False,
) -> None:
    """Render evaluated expressions, then what is still missing."""
    d = result.data
    items = d.get("items", [])

    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Expression", style="rule.name")
    table.add_column("Value", justify="right")
    table.add_column("Missing", style="rule.warning")
    for item in items:
        table.add_row(
            str(item.get("expression", "")),
            _value_text(item.get("value"), item.get("unit")),
            str(len(item.get("missing_variables") or {}) or ""),
        )
    console.print(table)

    if explain:
        for item in items:
            console.print()
            console.print(build_explanation_tree(item))

    questions = d.get("next_questions", [])
    if questions:
        console.print()
        console.print(Text("Missing inputs, most needed first:", style="rule.warning"))
        missing = d.get("missing_variables", {})
        for name in questions:
            console.print(f"  {name} [rule.weight]({missing.get(name, 0):g})[/rule.weight]")

    if verbose:
        console.print(f"\n[rule.key]evaluated on {d.get('date', '?')}[/rule.key]")
        _render_meta(console, result)


# ── Rule renderers ────────────────────────────────────────────────────


def _render_rule_table(
    result: ServiceResult,
    console: Console,
    *,
    verbose: bool = False,
    explain: bool = False,
) -> None:
    items = result.data.get("items", [])
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Name", style="rule.name", no_wrap=True)
    table.add_column("Title", style="rule.title")
    table.add_column("Unit")
    table.add_column("Input")
    for item in items:
        table.add_row(
            str(item.get("dotted_name", "")),
            str(item.get("title", "")),
            str(item.get("unit") or ""),
            "yes" if item.get("input") else "",
        )
    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} rules")
    if verbose:
        _render_meta(console, result)


def _render_rule(
    result: ServiceResult,
    console: Console,
    *,
    verbose: bool = False,
    explain: bool = False,
) -> None:
    """Render one rule as a panel."""
    d = result.data
    lines: list[str] = []
    for key in ("parent", "unit", "question", "description"):
        if d.get(key):
            lines.append(f"{key}: {d[key]}")
    if d.get("input"):
        lines.append("input: yes")
    if d.get("dependencies"):
        lines.append(f"depends on: {', '.join(d['dependencies'])}")
    if d.get("dependents"):
        lines.append(f"used by: {', '.join(d['dependents'])}")
    for decl in d.get("declares", []):
        scope = ""
        if decl.get("in"):
            scope += f" in {', '.join(decl['in'])}"
        if decl.get("except in"):
            scope += f" except in {', '.join(decl['except in'])}"
        lines.append(f"{decl['kind']}: {decl['target']}{scope}")
    for decl in d.get("overridden_by", []):
        lines.append(f"overridden by: {decl['rule']} ({decl['kind']})")
    if d.get("suggestions"):
        lines.append(f"suggestions: {', '.join(d['suggestions'])}")

    title = f"{d.get('dotted_name', '?')} — {d.get('title', '')}"
    console.print(Panel("\n".join(lines) or "(no details)", title=title, border_style="dim", expand=False))
    if verbose:
        _render_meta(console, result)


# ── Graph renderers ───────────────────────────────────────────────────


def _render_neighbours(
    result: ServiceResult,
    console: Console,
    *,
    verbose: bool = False,
    explain: bool = False,
) -> None:
    items = result.data.get("items", [])
    console.print(Text(f"{result.op} of {result.data.get('dotted_name', '?')}", style="rule.op"))
    if not items:
        console.print("  (none)")
        return
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Name", style="rule.name", no_wrap=True)
    table.add_column("Title", style="rule.title")
    table.add_column("Depth", justify="right")
    table.add_column("Edge")
    for item in items:
        table.add_row(
            str(item.get("dotted_name", "")),
            str(item.get("title", "")),
            str(item.get("depth", "")),
            str(item.get("edge_type") or ""),
        )
    console.print(table)
    if verbose:
        _render_meta(console, result)


def _render_cycles(
    result: ServiceResult,
    console: Console,
    *,
    verbose: bool = False,
    explain: bool = False,
) -> None:
    cycles = result.data.get("items", [])
    if not cycles:
        console.print("[rule.ok]OK[/rule.ok]  No reference cycles.")
        return
    for cycle in cycles:
        console.print(f"  [rule.error]cycle[/rule.error]: {' -> '.join([*cycle, cycle[0]])}")
    console.print(f"\n{len(cycles)} cycles")


# ── Check renderer ────────────────────────────────────────────────────


def _render_check(
    result: ServiceResult,
    console: Console,
    *,
    verbose: bool = False,
    explain: bool = False,
) -> None:
    """Render check results grouped by issue kind."""
    d = result.data
    issues = d.get("issues", [])
    if not issues:
        console.print(f"[rule.ok]OK[/rule.ok]  {d.get('rule_count', 0)} rules, no issues found.")
        return

    by_kind: dict[str, list[dict[str, Any]]] = {}
    for issue in issues:
        by_kind.setdefault(str(issue.get("kind", "unknown")), []).append(issue)

    for kind, kind_issues in by_kind.items():
        console.print(f"\n[bold]{kind}[/bold]")
        for issue in kind_issues:
            console.print(f"  [rule.warning]warning[/rule.warning]: {issue.get('message', '')}")

    console.print(f"\n{len(issues)} issues in {d.get('rule_count', 0)} rules")
    if verbose:
        _render_meta(console, result)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(
    result: ServiceResult,
    console: Console,
    *,
    verbose: bool = False,
    explain: bool = False,
) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    "evaluate": _render_evaluate,
    "list_rules": _render_rule_table,
    "show_rule": _render_rule,
    "dependencies": _render_neighbours,
    "dependents": _render_neighbours,
    "cycles": _render_cycles,
    "check": _render_check,
}

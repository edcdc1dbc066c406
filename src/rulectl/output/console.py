"""Rich Console factory and theme for rulectl output.

Consoles render to a StringIO buffer, preserving the
``format_result() -> str`` contract. In non-TTY environments (tests,
pipes) Rich disables color codes on its own.
"""

from __future__ import annotations

from io import StringIO
from typing import Any

from rich.console import Console
from rich.theme import Theme

RULECTL_THEME = Theme(
    {
        "rule.ok": "bold green",
        "rule.error": "bold red",
        "rule.warning": "bold yellow",
        "rule.op": "bold cyan",
        "rule.key": "dim",
        "rule.name": "bold blue",
        "rule.title": "bold",
        "rule.value": "green",
        "rule.not_applicable": "dim",
        "rule.unknown": "yellow",
        "rule.weight": "magenta",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=RULECTL_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_value(value: Any) -> str:
    """Rich style for an evaluated value: not applicable, unknown, or known."""
    if value is False:
        return "rule.not_applicable"
    if value is None:
        return "rule.unknown"
    return "rule.value"


def format_value(value: Any, unit: str | None = None) -> str:
    """Human-readable evaluated value."""
    if value is False:
        return "not applicable"
    if value is None:
        return "unknown"
    if value is True:
        return "yes"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value} {unit}" if unit else str(value)

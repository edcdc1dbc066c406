"""Dotted rule names — pure string helpers.

A dotted name is a rule identifier whose segments are joined by
:data:`SEPARATOR` (``"contract . salary . gross"``). Stripping the last
segment yields the parent rule.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

SEPARATOR = " . "

# A separator is a dot surrounded by whitespace, so "rate 2.5" stays one segment.
_SEPARATOR_PATTERN = re.compile(r"\s+\.\s+")


def split_name(dotted_name: str) -> list[str]:
    """Split *dotted_name* into its stripped, non-empty segments."""
    return [part.strip() for part in _SEPARATOR_PATTERN.split(dotted_name) if part.strip()]


def join_name(*parts: str | None) -> str:
    """Join name fragments, skipping empty ones.

    ``join_name("", "a . b", "c")`` returns ``"a . b . c"``.
    """
    segments: list[str] = []
    for part in parts:
        if part:
            segments.extend(split_name(part))
    return SEPARATOR.join(segments)


def normalize_name(name: str) -> str:
    """Canonical spacing around separators (``"a  .  b"`` -> ``"a . b"``)."""
    return join_name(name)


def name_leaf(dotted_name: str) -> str:
    """Return the last segment of *dotted_name*."""
    segments = split_name(dotted_name)
    return segments[-1] if segments else ""


def rule_parents(dotted_name: str) -> list[str]:
    """Return every ancestor of *dotted_name*, closest first.

    ``rule_parents("a . b . c")`` returns ``["a . b", "a"]``.
    """
    segments = split_name(dotted_name)
    return [SEPARATOR.join(segments[:i]) for i in range(len(segments) - 1, 0, -1)]


def parent_name(dotted_name: str) -> str | None:
    """Return the immediate parent of *dotted_name*, or None at top level."""
    parents = rule_parents(dotted_name)
    return parents[0] if parents else None


def is_within(dotted_name: str, prefix: str) -> bool:
    """Whether *dotted_name* equals *prefix* or lives in its namespace.

    Matching is segment-aware: ``"ab"`` is not within ``"a"``.
    """
    if not prefix:
        return True
    return dotted_name == prefix or dotted_name.startswith(prefix + SEPARATOR)


def candidate_names(context_name: str, partial_name: str) -> list[str]:
    """Candidate dotted names for *partial_name* written inside *context_name*.

    Innermost namespace first: inside ``"a . b"`` the name ``"x"`` is tried
    as ``"a . b . x"``, ``"a . x"``, then ``"x"``.
    """
    partial = normalize_name(partial_name)
    scopes = [context_name, *rule_parents(context_name)] if context_name else []
    return [join_name(scope, partial) for scope in scopes] + [partial]


def capitalise0(text: str) -> str:
    """Upper-case the first character only."""
    return text[:1].upper() + text[1:]


def matches_any(dotted_name: str, prefixes: Iterable[str]) -> bool:
    """Whether *dotted_name* lives within at least one of *prefixes*."""
    return any(is_within(dotted_name, prefix) for prefix in prefixes)

"""Missing-variable bookkeeping.

Missing variables map an input's dotted name to a weight. Larger weights
mean the input matters more for settling the evaluation.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping


def merge_missing(*missing: Mapping[str, float] | None) -> dict[str, float]:
    """Merge missing-variable mappings, adding the weights of shared names."""
    merged: dict[str, float] = {}
    for mapping in missing:
        if not mapping:
            continue
        for name, weight in mapping.items():
            merged[name] = merged.get(name, 0.0) + weight
    return merged


def bonus(missing: Mapping[str, float] | None, factor: float) -> dict[str, float]:
    """Discount weights inherited from a parent whose applicability is uncertain."""
    return {name: weight * factor for name, weight in (missing or {}).items()}


def rank_missing(evaluations: Iterable[Mapping[str, float]]) -> list[tuple[str, float]]:
    """Order missing variables by total weight, heaviest first, then by name."""
    merged = merge_missing(*evaluations)
    return sorted(merged.items(), key=lambda item: (-item[1], item[0]))

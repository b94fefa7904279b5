# alignkit/validation/helpers.py
"""Shared helpers for the validation rules."""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from alignkit.types import Component


def levenshtein_distance(s1: str, s2: str) -> int:
    """
    Calculate Levenshtein edit distance between two strings.

    Used for typo detection in component references.
    """
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row: List[int] = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        current_row: List[int] = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def suggest_typos(name: str, candidates: Iterable[str], max_dist: int = 2) -> List[str]:
    """
    Suggest similar component ids using Levenshtein distance.

    Returns up to 3 suggestions with distance <= max_dist, sorted by distance
    then id. The name itself is never suggested.
    """
    suggestions: List[Tuple[int, str]] = []
    for candidate in set(candidates):
        if candidate == name:
            continue
        dist = levenshtein_distance(name.lower(), candidate.lower())
        if dist <= max_dist:
            suggestions.append((dist, candidate))

    suggestions.sort(key=lambda x: (x[0], x[1]))
    return [s[1] for s in suggestions[:3]]


def component_location(component: Component, registry_location: Optional[str]) -> Optional[str]:
    """Where to point the reader: the component file, else the registry."""
    if component.source_path:
        return component.source_path
    return registry_location if component.in_registry else None


def did_you_mean(suggestions: List[str]) -> str:
    return f"; did you mean: {', '.join(suggestions)}?" if suggestions else ""

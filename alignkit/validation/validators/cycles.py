# alignkit/validation/validators/cycles.py
"""
Cycle rule.

Three-color depth-first search over the dense node index, restricted to
edges that already passed the existence and hierarchy rules. The traversal
keeps its own stack, so graph depth is not bounded by the interpreter's
recursion limit.

Each distinct cycle found is reported once, rotated so its smallest identity
comes first, as a closed path [A, B, ..., A]. A self-reference is the
cycle [A, A].
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set, Tuple

from alignkit.graph import ComponentGraph, DenseIndex, Edge
from alignkit.types import Identity
from alignkit.validation.helpers import component_location
from alignkit.validator import ErrorKind, ValidationResult

logger = logging.getLogger(__name__)

WHITE, GRAY, BLACK = 0, 1, 2


def _canonical_rotation(cycle: List[int]) -> Tuple[int, ...]:
    """Rotate a cycle (without its closing node) to start at its smallest position."""
    start = cycle.index(min(cycle))
    return tuple(cycle[start:] + cycle[:start])


def find_cycles(index: DenseIndex) -> List[List[Identity]]:
    """Return every cycle closed by a back-edge, as closed identity paths.

    Roots are visited in position order and successors in ascending order,
    so the result is deterministic for a given index.
    """
    color = [WHITE] * len(index)
    seen: Set[Tuple[int, ...]] = set()
    cycles: List[Tuple[int, ...]] = []

    for root in range(len(index)):
        if color[root] != WHITE:
            continue

        # Stack frames: (node, next successor offset). `path` mirrors the gray nodes.
        stack: List[List[int]] = [[root, 0]]
        path: List[int] = [root]
        color[root] = GRAY

        while stack:
            frame = stack[-1]
            node, offset = frame
            successors = index.adjacency[node]

            if offset >= len(successors):
                color[node] = BLACK
                stack.pop()
                path.pop()
                continue

            frame[1] = offset + 1
            successor = successors[offset]

            if color[successor] == WHITE:
                color[successor] = GRAY
                stack.append([successor, 0])
                path.append(successor)
            elif color[successor] == GRAY:
                cycle = _canonical_rotation(path[path.index(successor):])
                if cycle not in seen:
                    seen.add(cycle)
                    cycles.append(cycle)

    cycles.sort()
    return [
        [index.identities[position] for position in cycle] + [index.identities[cycle[0]]]
        for cycle in cycles
    ]


def validate_cycles(
    graph: ComponentGraph, edges: Iterable[Edge], registry_location: Optional[str] = None
) -> ValidationResult:
    """Report reference cycles among the given (already validated) edges."""
    result = ValidationResult()

    index = graph.dense_index(edges)
    for cycle in find_cycles(index):
        subject = cycle[0]
        component = graph.get(subject)
        length = len(cycle) - 1
        message = (
            f"{subject.kind} references itself"
            if length == 1
            else f"reference cycle through {length} components"
        )
        result.add_error(
            ErrorKind.CYCLE,
            subject,
            message,
            "Remove one reference in the cycle so dependencies form a hierarchy",
            location=component_location(component, registry_location) if component else None,
            detail=tuple(str(identity) for identity in cycle),
        )

    logger.debug("Cycle check: %d cycles over %d nodes", len(result), len(index))
    return result

"""Build the "used by" view of a component graph."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from alignkit.graph import ComponentGraph, Edge
from alignkit.types import ComponentKind, Identity

logger = logging.getLogger(__name__)

ReverseIndex = Dict[Identity, Tuple[Identity, ...]]


def build_reverse_index(graph: ComponentGraph, edges: Optional[Iterable[Edge]] = None) -> ReverseIndex:
    """Invert an edge set into identity -> referrers.

    Every node gets an entry (empty when nothing references it). Keys and
    referrer tuples are in sort_key order, so two builds over the same graph
    compare and serialize identically.

    Args:
        graph: Graph whose nodes key the index
        edges: Edges to invert (defaults to every graph edge). Edges whose
            target is not a node are skipped.
    """
    used_by: Dict[Identity, List[Identity]] = {identity: [] for identity in graph.identities()}
    for source, target in (graph.edges() if edges is None else edges):
        referrers = used_by.get(target)
        if referrers is not None and source not in referrers:
            referrers.append(source)

    index: ReverseIndex = {
        identity: tuple(sorted(referrers, key=lambda referrer: referrer.sort_key()))
        for identity, referrers in used_by.items()
    }
    logger.debug(
        "Built reverse index: %d nodes, %d referenced",
        len(index), sum(1 for referrers in index.values() if referrers),
    )
    return index


def group_by_kind(identities: Iterable[Identity]) -> Dict[ComponentKind, List[str]]:
    """Group identities by kind (hierarchy order), ids sorted within each kind."""
    grouped: Dict[ComponentKind, List[str]] = {}
    for identity in sorted(identities, key=lambda identity: identity.sort_key()):
        grouped.setdefault(identity.kind, []).append(identity.id)
    return grouped

"""
graph.py - In-memory component graph.

Nodes are Components keyed by Identity; edges are declared references
(referrer -> target). The graph is forward-only: "used by" views are derived
separately by alignkit.reverse_index.

Edges may point at identities that are not nodes (a reference to a component
that was never discovered). The existence rule reports those; traversals only
follow edges whose endpoints are both nodes.

Usage:
    from alignkit.graph import ComponentGraph, build_graph

    graph = build_graph(registry, scan.components)
    for source, target in graph.edges():
        ...
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from alignkit.registry import Registry
from alignkit.types import Component, Identity

logger = logging.getLogger(__name__)

Edge = Tuple[Identity, Identity]


def _edge_key(edge: Edge) -> Tuple[Tuple[int, str], Tuple[int, str]]:
    return (edge[0].sort_key(), edge[1].sort_key())


@dataclass
class DenseIndex:
    """Nodes numbered 0..n-1 in sort_key order, with integer adjacency lists.

    Attributes:
        identities: Position -> identity
        positions: Identity -> position
        adjacency: Position -> sorted successor positions
    """
    identities: List[Identity]
    positions: Dict[Identity, int]
    adjacency: List[List[int]]

    def __len__(self) -> int:
        return len(self.identities)


class ComponentGraph:
    """Directed graph of components and the references between them."""

    def __init__(self):
        self._nodes: Dict[Identity, Component] = {}
        self._edges: Dict[Identity, List[Identity]] = {}
        self._edge_set: Set[Edge] = set()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_node(self, component: Component) -> Component:
        """Add a component, merging it into an existing node with the same identity.

        Returns:
            The node stored in the graph.
        """
        identity = component.identity
        existing = self._nodes.get(identity)
        if existing is None:
            self._nodes[identity] = component
            return component
        existing.merge(component)
        return existing

    def add_edge(self, source: Identity, target: Identity) -> bool:
        """Add a reference edge. Returns False if the edge was already present."""
        if self.has_edge(source, target):
            return False
        self._edge_set.add((source, target))
        self._edges.setdefault(source, []).append(target)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __contains__(self, identity: object) -> bool:
        return identity in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, identity: Identity) -> Optional[Component]:
        return self._nodes.get(identity)

    def nodes(self) -> List[Component]:
        """All nodes in sort_key order."""
        return [self._nodes[identity] for identity in self.identities()]

    def identities(self) -> List[Identity]:
        return sorted(self._nodes, key=lambda identity: identity.sort_key())

    def edges(self) -> List[Edge]:
        """All edges in (source, target) sort_key order."""
        return sorted(self._edge_set, key=_edge_key)

    def has_edge(self, source: Identity, target: Identity) -> bool:
        return (source, target) in self._edge_set

    def dependencies(self, identity: Identity) -> List[Identity]:
        """Direct reference targets of identity, in sort_key order."""
        return sorted(self._edges.get(identity, []), key=lambda target: target.sort_key())

    def dense_index(self, edges: Optional[Iterable[Edge]] = None) -> DenseIndex:
        """Number the nodes and build integer adjacency lists.

        Args:
            edges: Edge subset to index (defaults to every edge). Edges with an
                endpoint that is not a node are dropped.
        """
        identities = self.identities()
        positions = {identity: position for position, identity in enumerate(identities)}
        adjacency: List[List[int]] = [[] for _ in identities]
        for source, target in sorted(set(self.edges() if edges is None else edges), key=_edge_key):
            if source in positions and target in positions:
                adjacency[positions[source]].append(positions[target])
        return DenseIndex(identities, positions, adjacency)

    def transitive_dependencies(
        self, identity: Identity, edges: Optional[Iterable[Edge]] = None
    ) -> List[Identity]:
        """Every node reachable from identity (excluding itself unless on a cycle)."""
        index = self.dense_index(edges)
        start = index.positions.get(identity)
        if start is None:
            return []

        seen: Set[int] = set()
        queue = deque(index.adjacency[start])
        while queue:
            position = queue.popleft()
            if position in seen:
                continue
            seen.add(position)
            queue.extend(index.adjacency[position])
        return [index.identities[position] for position in sorted(seen)]


def build_graph(registry: Registry, components: Iterable[Component]) -> ComponentGraph:
    """Assemble the graph from registry entries and discovered component files.

    Registry entries become nodes with in_registry set; discovered files merge
    into them (or become nodes of their own). Every declared reference of a
    discovered file becomes an edge.
    """
    graph = ComponentGraph()

    for identity in registry.identities():
        entry = registry.entries[identity]
        graph.add_node(Component(
            identity.kind,
            identity.id,
            in_registry=True,
            registry_refs=dict(entry.dependencies),
        ))

    for component in components:
        graph.add_node(component)

    for node in graph.nodes():
        for ref in node.declared_refs:
            graph.add_edge(node.identity, ref.target)

    logger.debug("Assembled graph: %d nodes, %d edges", len(graph), len(graph.edges()))
    return graph

# alignkit/validation/validators/hierarchy.py
"""
Hierarchy rule.

References flow down (or sideways for the composing tiers) through the
fixed level order mcp=0 < command=1 < skill=2 < agent=3 < workflow=4:

    mcp       -> nothing
    command   -> mcp
    skill     -> skill, command, mcp
    agent     -> agent, skill, command, mcp
    workflow  -> agent, skill, command, mcp
"""

from __future__ import annotations

from typing import List, Optional

from alignkit.graph import ComponentGraph, Edge
from alignkit.types import ALLOWED_REFERENCES, ComponentKind
from alignkit.validation.helpers import component_location
from alignkit.validation.validators.existence import reference_exists
from alignkit.validator import ErrorKind, ValidationResult


def is_allowed(source: ComponentKind, target: ComponentKind) -> bool:
    return target in ALLOWED_REFERENCES[source]


def _allowed_text(kind: ComponentKind) -> str:
    allowed = sorted(ALLOWED_REFERENCES[kind], key=lambda k: k.level, reverse=True)
    return ", ".join(k.plural for k in allowed) if allowed else "nothing"


def validate_hierarchy(graph: ComponentGraph, registry_location: Optional[str] = None) -> ValidationResult:
    """Report each edge whose direction is not allowed by the reference table."""
    result = ValidationResult()

    for source, target in graph.edges():
        if is_allowed(source.kind, target.kind):
            continue
        component = graph.get(source)
        location = component_location(component, registry_location) if component else None
        result.add_error(
            ErrorKind.HIERARCHY,
            source,
            f"{source.kind} (level {source.level}) may not reference {target.kind} "
            f"'{target.id}' (level {target.level})",
            f"Remove the reference; a {source.kind} may reference: {_allowed_text(source.kind)}",
            location=location,
            detail=(target.kind.value,),
        )

    return result


def validated_edges(graph: ComponentGraph) -> List[Edge]:
    """Edges that pass both the existence and the hierarchy rule, sorted."""
    return [
        (source, target)
        for source, target in graph.edges()
        if reference_exists(graph, target) and is_allowed(source.kind, target.kind)
    ]

# alignkit/validation/validators/drift.py
"""
Declaration drift.

A registry entry may repeat a component's dependencies:

    agents:
      tester:
        skills: [methodology/writing-plans]
        commands: [/dev:test]

When it does and the component file exists, the two lists should agree.
Differences are warnings: the frontmatter is what the graph is built from.
"""

from __future__ import annotations

from typing import List, Optional

from alignkit.graph import ComponentGraph
from alignkit.types import Component, ComponentKind
from alignkit.validation.helpers import component_location
from alignkit.validator import ErrorKind, ValidationResult


def _compare(component: Component, kind: ComponentKind) -> tuple:
    expected = list(component.registry_refs.get(kind, ()))
    actual = [ref.target_id for ref in component.declared_refs if ref.target_kind is kind]
    missing = sorted(set(expected) - set(actual))
    extra = sorted(set(actual) - set(expected))
    return missing, extra


def validate_declaration_drift(graph: ComponentGraph, registry_location: Optional[str] = None) -> ValidationResult:
    """Warn where a registry entry's dependency lists disagree with the file."""
    result = ValidationResult()

    for component in graph.nodes():
        if not (component.in_registry and component.on_disk and component.registry_refs):
            continue

        for kind in ComponentKind:
            missing, extra = _compare(component, kind)
            if not missing and not extra:
                continue

            detail: List[str] = []
            if missing:
                detail.append(f"missing in file: {', '.join(missing)}")
            if extra:
                detail.append(f"not in registry: {', '.join(extra)}")

            result.add_warning(
                ErrorKind.DECLARATION_DRIFT,
                component.identity,
                f"'{kind.plural}' in the registry entry do not match the file",
                f"Make the registry entry's '{kind.plural}' list match {component.source_path}",
                location=component_location(component, registry_location),
                detail=tuple(detail),
            )

    return result

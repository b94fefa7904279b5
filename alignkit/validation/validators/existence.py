# alignkit/validation/validators/existence.py
"""
Existence rule.

Validates that every reference points at a discovered component, and that
the registry and the component tree agree (bijection):

- Every reference target exists as a node (registry or disk)
- Every registry entry resolves to its conventional file
- Every component file is declared in the registry

Identities and references that fail the format rule are left to that rule;
no file location can be derived from them.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from alignkit.graph import ComponentGraph
from alignkit.paths import resolve
from alignkit.types import ComponentKind, Identity, component_path, is_canonical_id
from alignkit.validation.helpers import component_location, did_you_mean, suggest_typos
from alignkit.validator import ErrorKind, ValidationResult


def reference_exists(graph: ComponentGraph, target: Identity) -> bool:
    """True if target is a canonical identity present in the graph."""
    return is_canonical_id(target.kind, target.id) and target in graph


def _ids_of_kind(graph: ComponentGraph, kind: ComponentKind, *, in_registry: Optional[bool] = None) -> List[str]:
    return [
        node.id for node in graph.nodes()
        if node.kind is kind and (in_registry is None or node.in_registry == in_registry)
    ]


def validate_references(graph: ComponentGraph, registry_location: Optional[str] = None) -> ValidationResult:
    """Report each declared reference whose target is not a discovered component."""
    result = ValidationResult()

    for component in graph.nodes():
        for ref in component.declared_refs:
            if not is_canonical_id(ref.target_kind, ref.target_id) or ref.target in graph:
                continue

            suggestions = suggest_typos(ref.target_id, _ids_of_kind(graph, ref.target_kind))
            fix_action = (
                f"Create the {ref.target_kind} '{ref.target_id}' and declare it in the registry, "
                f"or remove it from '{ref.target_kind.plural}'"
            )
            if suggestions:
                fix_action = f"Change the reference to one of: {', '.join(suggestions)}, or " + fix_action[0].lower() + fix_action[1:]

            result.add_error(
                ErrorKind.MISSING_REFERENCE,
                component.identity,
                f"references {ref.target_kind} '{ref.target_id}' which is not in the registry "
                f"or on disk{did_you_mean(suggestions)}",
                fix_action,
                location=component_location(component, registry_location),
                detail=tuple(suggestions),
            )

    return result


def validate_bijection(
    root: Path, graph: ComponentGraph, registry_location: Optional[str] = None
) -> ValidationResult:
    """
    Validate 1:1 correspondence between registry entries and component files.

    Checks:
    - Every registry entry has a corresponding file (resolved through resolve())
    - Every file has a corresponding registry entry
    - Ids are case-sensitive exact matches
    """
    result = ValidationResult()

    # Check registry -> file
    for component in graph.nodes():
        if not component.in_registry:
            continue

        expected = component_path(component.kind, component.id)
        if expected is None:
            continue
        resolved = resolve(root, expected)
        if not resolved:
            result.add_error(
                ErrorKind.PATH_SECURITY,
                component.identity,
                f"registry entry maps to a rejected path: {resolved.reason}",
                "Rename the registry entry so its file location stays inside the plugin root",
                location=registry_location,
            )
            continue
        if component.on_disk:
            continue

        suggestions = suggest_typos(
            component.id, _ids_of_kind(graph, component.kind, in_registry=False)
        )
        fix_action = f"Create {expected}, or remove the entry from the registry"
        if suggestions:
            fix_action = f"Rename one of: {', '.join(suggestions)} to match '{component.id}', or " + fix_action[0].lower() + fix_action[1:]

        result.add_error(
            ErrorKind.ORPHAN_IN_REGISTRY,
            component.identity,
            f"{component.kind} '{component.id}' is registered but {expected} does not exist"
            f"{did_you_mean(suggestions)}",
            fix_action,
            location=registry_location,
            detail=tuple(suggestions),
        )

    # Check file -> registry
    for component in graph.nodes():
        if not component.on_disk or component.in_registry:
            continue
        if not is_canonical_id(component.kind, component.id):
            continue

        suggestions = suggest_typos(
            component.id, _ids_of_kind(graph, component.kind, in_registry=True)
        )
        fix_action = f"Add '{component.id}' to '{component.kind.plural}' in the registry, or delete {component.source_path}"
        if suggestions:
            fix_action = f"Update the registry entry to match one of: {', '.join(suggestions)}, or " + fix_action[0].lower() + fix_action[1:]

        result.add_error(
            ErrorKind.ORPHAN_ON_DISK,
            component.identity,
            f"file exists but {component.kind} '{component.id}' is not in the registry"
            f"{did_you_mean(suggestions)}",
            fix_action,
            location=component.source_path,
            detail=tuple(suggestions),
        )

    return result

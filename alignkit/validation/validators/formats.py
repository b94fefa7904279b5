# alignkit/validation/validators/formats.py
"""
Format rule.

Every component identity and every declared reference must have the
canonical shape for its kind:

    mcp       <name>
    command   /<namespace>:<name>
    skill     <category>/<name>
    agent     <name>
    workflow  <category>/<name>

where each segment is lowercase kebab-case. Any '..' is a violation even if
the rest of the string would match.

When the registry declares command_namespaces (or skill_categories), command
namespaces (skill categories) outside that list are violations too.
"""

from __future__ import annotations

from typing import Optional

from alignkit.graph import ComponentGraph
from alignkit.registry import Registry
from alignkit.types import ID_SHAPES, Component, ComponentKind, is_canonical_id, split_id
from alignkit.validation.helpers import component_location, did_you_mean, suggest_typos
from alignkit.validator import ErrorKind, ValidationResult


def _shape_problem(kind: ComponentKind, value: str) -> str:
    if ".." in value:
        return "contains '..'"
    return f"does not match {ID_SHAPES[kind]}"


def _check_identity(result: ValidationResult, component: Component, location: Optional[str]) -> None:
    if is_canonical_id(component.kind, component.id):
        return
    result.add_error(
        ErrorKind.FORMAT,
        component.identity,
        f"{component.kind} id '{component.id}' {_shape_problem(component.kind, component.id)}",
        f"Rename to the form {ID_SHAPES[component.kind]} using lowercase letters, digits and '-'",
        location=location,
    )


def _check_group(
    result: ValidationResult,
    component: Component,
    location: Optional[str],
    declared: tuple,
    label: str,
    section: str,
) -> None:
    """Check the namespace/category segment against the declared list."""
    if not declared:
        return
    parts = split_id(component.kind, component.id)
    if parts is None or parts[0] in declared:
        return
    suggestions = suggest_typos(parts[0], declared)
    result.add_error(
        ErrorKind.FORMAT,
        component.identity,
        f"{label} '{parts[0]}' is not declared in {section}{did_you_mean(suggestions)}",
        f"Add '{parts[0]}' to {section} in the registry, or move the {component.kind} to a declared {label}",
        location=location,
        detail=tuple(suggestions),
    )


def validate_formats(graph: ComponentGraph, registry: Registry, registry_location: Optional[str] = None) -> ValidationResult:
    """
    Validate identity and reference shapes.

    Checks:
    - Every node id matches the canonical shape for its kind
    - Command namespaces / skill categories are declared (when the registry lists them)
    - Every declared reference string matches the shape for the kind it is listed under
    """
    result = ValidationResult()

    for component in graph.nodes():
        location = component_location(component, registry_location)
        _check_identity(result, component, location)

        if component.kind is ComponentKind.COMMAND:
            _check_group(
                result, component, location,
                registry.command_namespaces, "namespace", "command_namespaces",
            )
        elif component.kind is ComponentKind.SKILL:
            _check_group(
                result, component, location,
                registry.skill_categories, "category", "skill_categories",
            )

        for ref in component.declared_refs:
            if is_canonical_id(ref.target_kind, ref.target_id):
                continue
            result.add_error(
                ErrorKind.FORMAT,
                component.identity,
                f"reference '{ref.declared_format}' under '{ref.target_kind.plural}' "
                f"{_shape_problem(ref.target_kind, ref.declared_format)}",
                f"Write {ref.target_kind} references as {ID_SHAPES[ref.target_kind]}",
                location=location,
            )

    return result

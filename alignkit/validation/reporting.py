# alignkit/validation/reporting.py
"""
Report rendering.

Violations are grouped by subject component in hierarchy order (mcp first,
workflow last, ids alphabetical). Reports carry no timestamps or absolute
paths, so an unchanged tree always renders byte-identical output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List

from alignkit.reverse_index import group_by_kind
from alignkit.types import Identity
from alignkit.validation.runner import EXIT_SUCCESS, EXIT_VALIDATION_FAILED, ValidationOutcome
from alignkit.validation.schema import (
    DependencyGroup,
    DependencyTree,
    ReportStats,
    ReportSummary,
    ValidationReport,
    ViolationRecord,
)
from alignkit.validator import ErrorKind, Violation

# (title, codes) per rule family, for the markdown checklist
CHECKS = [
    ("Frontmatter parsing", (ErrorKind.PARSE_ERROR,)),
    ("Path safety", (ErrorKind.PATH_SECURITY,)),
    ("Identity and reference format", (ErrorKind.FORMAT,)),
    ("Reference existence", (ErrorKind.MISSING_REFERENCE,)),
    ("Registry / filesystem sync", (ErrorKind.ORPHAN_IN_REGISTRY, ErrorKind.ORPHAN_ON_DISK)),
    ("Reference hierarchy", (ErrorKind.HIERARCHY,)),
    ("Reference cycles", (ErrorKind.CYCLE,)),
    ("Registry dependency lists", (ErrorKind.DECLARATION_DRIFT,)),
]


@dataclass(frozen=True)
class Report:
    exit_code: int
    text: str


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def group_by_subject(violations: Iterable[Violation]) -> Dict[Identity, List[Violation]]:
    """Group violations by subject, subjects and violations in deterministic order."""
    groups: Dict[Identity, List[Violation]] = {}
    for violation in sorted(violations, key=lambda v: v.sort_key()):
        groups.setdefault(violation.subject, []).append(violation)
    return groups


def summary_line(error_count: int, warning_count: int) -> str:
    status = "FAILED" if error_count else "PASSED"
    return f"Validation {status} ({_plural(error_count, 'error')}, {_plural(warning_count, 'warning')})."


def report(violations: Iterable[Violation]) -> Report:
    """Render the grouped text report and decide the exit code.

    Warnings are always printed but never change the exit code.
    """
    groups = group_by_subject(violations)
    error_count = sum(1 for group in groups.values() for v in group if v.is_error)
    warning_count = sum(1 for group in groups.values() for v in group if not v.is_error)

    lines: List[str] = []
    for subject, group in groups.items():
        lines.append(str(subject))
        for violation in group:
            for line in violation.format().splitlines():
                lines.append(f"  {line}")
        lines.append("")

    if not groups:
        lines.append("No violations found.")
        lines.append("")
    lines.append(summary_line(error_count, warning_count))

    exit_code = EXIT_VALIDATION_FAILED if error_count else EXIT_SUCCESS
    return Report(exit_code=exit_code, text="\n".join(lines) + "\n")


def build_report_text(outcome: ValidationOutcome) -> str:
    return report(outcome.violations).text


def build_report_markdown(outcome: ValidationOutcome) -> str:
    """Build markdown validation report.

    Generates a human-readable markdown report with status, checks performed,
    and errors/warnings grouped by component.
    """
    lines: List[str] = []

    lines.append("# Component Alignment Report")
    lines.append("")
    lines.append(f"**Status**: {'PASSED' if outcome.ok else 'FAILED'}")
    lines.append(f"**Registry**: `{outcome.registry.path.name}`")
    if outcome.registry.version:
        lines.append(f"**Registry version**: {outcome.registry.version}")
    lines.append(f"**Components**: {outcome.stats['total_components']}")
    lines.append(f"**References**: {outcome.stats['total_references']}")
    lines.append("")

    lines.append("## Checks Performed")
    lines.append("")
    for title, codes in CHECKS:
        failed = any(v.code in codes for v in outcome.errors)
        marker = "[ ]" if failed else "[x]"
        lines.append(f"- {marker} {title}")
    lines.append("")

    for heading, violations, empty in (
        ("Errors", outcome.errors, "_No errors found._"),
        ("Warnings", outcome.warnings, "_No warnings._"),
    ):
        lines.append(f"## {heading} ({len(violations)})")
        lines.append("")
        if not violations:
            lines.append(empty)
            lines.append("")
            continue
        for subject, group in group_by_subject(violations).items():
            lines.append(f"### `{subject}`")
            lines.append("")
            for violation in group:
                where = f" `{violation.location}`" if violation.location else ""
                lines.append(f"- **{violation.code.value}**{where}: {violation.message}")
                if violation.fix:
                    lines.append(f"  - Fix: {violation.fix}")
                if violation.code is ErrorKind.CYCLE and violation.detail:
                    lines.append(f"  - Path: {' -> '.join(violation.detail)}")
                elif violation.detail:
                    lines.append(f"  - Detail: {', '.join(violation.detail)}")
            lines.append("")

    return "\n".join(lines)


def build_report_json(outcome: ValidationOutcome) -> ValidationReport:
    """Build the JSON report model."""
    return ValidationReport(
        summary=ReportSummary(
            status="PASSED" if outcome.ok else "FAILED",
            exit_code=outcome.exit_code,
            errors=len(outcome.errors),
            warnings=len(outcome.warnings),
            registry=outcome.registry.path.name,
            registry_version=outcome.registry.version,
        ),
        stats=ReportStats(**outcome.stats),
        violations=[ViolationRecord(**v.to_dict()) for v in outcome.violations],
        used_by={
            str(identity): [str(referrer) for referrer in referrers]
            for identity, referrers in outcome.reverse_index.items()
        },
    )


# ============================================================================
# Dependency tree
# ============================================================================


def _groups(identities: Iterable[Identity]) -> List[DependencyGroup]:
    return [
        DependencyGroup(kind=kind.plural, ids=ids)
        for kind, ids in group_by_kind(identities).items()
    ]


def build_dependency_tree(outcome: ValidationOutcome, identity: Identity) -> DependencyTree:
    """Dependency view of one component.

    depends_on lists every declared reference (including ones that failed
    validation); transitive_count and used_by only follow validated
    references.

    Raises:
        KeyError: If identity is not a component of the graph.
    """
    component = outcome.graph.get(identity)
    if component is None:
        raise KeyError(str(identity))

    return DependencyTree(
        component=str(identity),
        level=identity.level,
        source_path=component.source_path,
        in_registry=component.in_registry,
        on_disk=component.on_disk,
        depends_on=_groups(outcome.graph.dependencies(identity)),
        transitive_count=len(outcome.graph.transitive_dependencies(identity, outcome.edges)),
        used_by=_groups(outcome.reverse_index.get(identity, ())),
    )


def format_tree_text(tree: DependencyTree) -> str:
    lines = [f"{tree.component} (level {tree.level})"]
    if tree.source_path:
        lines.append(f"  file: {tree.source_path}")
    lines.append(f"  registered: {'yes' if tree.in_registry else 'no'}")

    lines.extend(_tree_section("depends on", tree.depends_on))
    lines.append(f"  transitive dependencies: {tree.transitive_count}")
    lines.extend(_tree_section("used by", tree.used_by))
    return "\n".join(lines) + "\n"


def _tree_section(title: str, groups: List[DependencyGroup]) -> List[str]:
    if not groups:
        return [f"  {title}: (none)"]
    return [f"  {title}:"] + [f"    {group.kind}: {', '.join(group.ids)}" for group in groups]


def format_tree_markdown(tree: DependencyTree) -> str:
    lines = [f"# `{tree.component}`", ""]
    lines.append(f"**Level**: {tree.level}")
    if tree.source_path:
        lines.append(f"**File**: `{tree.source_path}`")
    lines.append(f"**Registered**: {'yes' if tree.in_registry else 'no'}")
    lines.append(f"**Transitive dependencies**: {tree.transitive_count}")
    lines.append("")

    for title, groups in (("Depends on", tree.depends_on), ("Used by", tree.used_by)):
        lines.append(f"## {title}")
        lines.append("")
        if not groups:
            lines.append("_None._")
        for group in groups:
            lines.append(f"- **{group.kind}**: {', '.join(f'`{i}`' for i in group.ids)}")
        lines.append("")

    return "\n".join(lines)

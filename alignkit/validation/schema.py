"""
Pydantic schema models for the JSON validation report.

Usage:
    from alignkit.validation.schema import ValidationReport

    report = ValidationReport(summary=..., stats=..., violations=[...], used_by={})
    print(report.model_dump_json(indent=2))
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class ReportSummary(BaseModel):
    """Overall outcome of a run."""
    status: Literal["PASSED", "FAILED"] = Field(description="FAILED if any error violation exists")
    exit_code: int = Field(description="Process exit code for this outcome (0 or 1)")
    errors: int = Field(description="Number of error violations")
    warnings: int = Field(description="Number of warning violations")
    registry: str = Field(description="Registry document, relative to the root")
    registry_version: Optional[str] = Field(None, description="Registry 'version' field")


class ReportStats(BaseModel):
    """Component and reference counts."""
    components: Dict[str, int] = Field(description="Component count per kind")
    references: Dict[str, int] = Field(description="Declared reference count per target kind")
    total_components: int
    total_references: int
    validated_references: int = Field(description="References that passed existence and hierarchy")
    in_registry: int
    on_disk: int


class ViolationRecord(BaseModel):
    """A single violation."""
    severity: Literal["error", "warning"]
    code: str = Field(description="Violation code (e.g. MISSING_REFERENCE)")
    category: str = Field(description="Error family (e.g. ExistenceError)")
    subject: str = Field(description="Subject identity as kind:id")
    message: str
    fix: str = ""
    location: Optional[str] = Field(None, description="File or registry the violation points at")
    detail: List[str] = Field(default_factory=list, description="Cycle path or suggestions")


class ValidationReport(BaseModel):
    """Response model for --format json."""
    summary: ReportSummary
    stats: ReportStats
    violations: List[ViolationRecord] = Field(default_factory=list)
    used_by: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="kind:id -> referrers (kind:id), over validated references",
    )


class DependencyGroup(BaseModel):
    """Ids of one kind."""
    kind: str
    ids: List[str]


class DependencyTree(BaseModel):
    """Dependency view of one component (--tree with --format json)."""
    component: str = Field(description="kind:id")
    level: int
    source_path: Optional[str] = None
    in_registry: bool
    on_disk: bool
    depends_on: List[DependencyGroup] = Field(default_factory=list)
    transitive_count: int = Field(description="Components reachable over validated references")
    used_by: List[DependencyGroup] = Field(default_factory=list)

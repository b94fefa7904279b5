# alignkit/validator/errors.py
"""Violation collection and formatting."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from alignkit.types import Identity

# Violation message template: [FAIL] CODE: location problem -> Fix: action
VIOLATION_TEMPLATE = "[{marker}] {code}: {location}{message}\n  Fix: {fix}"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ErrorKind(str, Enum):
    """Violation codes. Each belongs to one family of the error taxonomy."""
    PARSE_ERROR = "PARSE_ERROR"
    PATH_SECURITY = "PATH_SECURITY"
    FORMAT = "FORMAT"
    MISSING_REFERENCE = "MISSING_REFERENCE"
    ORPHAN_IN_REGISTRY = "ORPHAN_IN_REGISTRY"
    ORPHAN_ON_DISK = "ORPHAN_ON_DISK"
    HIERARCHY = "HIERARCHY"
    CYCLE = "CYCLE"
    DECLARATION_DRIFT = "DECLARATION_DRIFT"

    @property
    def category(self) -> str:
        return _CATEGORIES[self]


_CATEGORIES = {
    ErrorKind.PARSE_ERROR: "ParseError",
    ErrorKind.PATH_SECURITY: "PathSecurityError",
    ErrorKind.FORMAT: "FormatError",
    ErrorKind.MISSING_REFERENCE: "ExistenceError",
    ErrorKind.ORPHAN_IN_REGISTRY: "ExistenceError",
    ErrorKind.ORPHAN_ON_DISK: "ExistenceError",
    ErrorKind.HIERARCHY: "HierarchyViolation",
    ErrorKind.CYCLE: "CycleDetected",
    ErrorKind.DECLARATION_DRIFT: "ExistenceError",
}


class Violation:
    """Structured validation finding about one component."""

    def __init__(
        self,
        severity: Severity,
        code: ErrorKind,
        subject: Identity,
        message: str,
        fix: str = "",
        location: Optional[str] = None,
        detail: Tuple[str, ...] = (),
    ):
        self.severity = severity
        self.code = code
        self.subject = subject
        self.message = message
        self.fix = fix
        self.location = location
        self.detail = tuple(detail)

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def format(self) -> str:
        """Format violation message."""
        text = VIOLATION_TEMPLATE.format(
            marker="FAIL" if self.is_error else "WARN",
            code=self.code.value,
            location=f"{self.location}: " if self.location else "",
            message=self.message,
            fix=self.fix or "-",
        )
        if self.code is ErrorKind.CYCLE and self.detail:
            text += "\n  Path: " + " -> ".join(self.detail)
        elif self.detail:
            text += "\n  Detail: " + ", ".join(self.detail)
        return text

    def sort_key(self) -> Tuple[Any, ...]:
        """Sort key for deterministic ordering."""
        return (
            self.subject.sort_key(),
            0 if self.is_error else 1,
            self.code.value,
            self.message,
            self.detail,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert violation to dictionary for JSON serialization."""
        return {
            "severity": self.severity.value,
            "code": self.code.value,
            "category": self.code.category,
            "subject": str(self.subject),
            "message": self.message,
            "fix": self.fix,
            "location": self.location,
            "detail": list(self.detail),
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Violation):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash(self.sort_key())

    def __repr__(self) -> str:
        return f"Violation({self.severity.value}, {self.code.value}, {self.subject}, {self.message!r})"


class ValidationResult:
    """Collects violations (errors and warnings)."""

    def __init__(self):
        self.violations: List[Violation] = []

    def add_error(
        self,
        code: ErrorKind,
        subject: Identity,
        message: str,
        fix: str = "",
        location: Optional[str] = None,
        detail: Tuple[str, ...] = (),
    ) -> None:
        """Add an error-severity violation."""
        self.violations.append(
            Violation(Severity.ERROR, code, subject, message, fix, location, detail)
        )

    def add_warning(
        self,
        code: ErrorKind,
        subject: Identity,
        message: str,
        fix: str = "",
        location: Optional[str] = None,
        detail: Tuple[str, ...] = (),
    ) -> None:
        """Add a warning (reported, never fails the run)."""
        self.violations.append(
            Violation(Severity.WARNING, code, subject, message, fix, location, detail)
        )

    def extend(self, other: "ValidationResult") -> None:
        """Extend with violations from another result."""
        self.violations.extend(other.violations)

    @property
    def errors(self) -> List[Violation]:
        return [v for v in self.violations if v.is_error]

    @property
    def warnings(self) -> List[Violation]:
        return [v for v in self.violations if not v.is_error]

    def sorted_violations(self) -> List[Violation]:
        """Get violations in deterministic order."""
        return sorted(self.violations, key=lambda v: v.sort_key())

    def __len__(self) -> int:
        return len(self.violations)

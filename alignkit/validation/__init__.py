# alignkit/validation/__init__.py
"""Component alignment validation: runner, rules, reporting and CLI.

Usage:
    from alignkit.validation import validate

    outcome = validate("path/to/plugin")
    print(build_report_text(outcome))
"""

from alignkit.validation.reporting import (
    build_dependency_tree,
    build_report_json,
    build_report_markdown,
    build_report_text,
    report,
)
from alignkit.validation.runner import (
    EXIT_FATAL_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_FAILED,
    ValidationOutcome,
    ValidatorRunner,
    validate,
)

__all__ = [
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_FAILED",
    "EXIT_FATAL_ERROR",
    "ValidationOutcome",
    "ValidatorRunner",
    "validate",
    "report",
    "build_report_text",
    "build_report_markdown",
    "build_report_json",
    "build_dependency_tree",
]

"""Violation types shared by every validation rule."""

from .errors import ErrorKind, Severity, ValidationResult, Violation

__all__ = ["ErrorKind", "Severity", "ValidationResult", "Violation"]

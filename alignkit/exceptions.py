"""Exceptions raised by the alignment validator."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ParseErrorReason(str, Enum):
    """Why a document could not be turned into metadata."""
    NO_FRONTMATTER = "no_frontmatter"
    UNTERMINATED = "unterminated"
    MALFORMED = "malformed"
    UNSAFE_TAG = "unsafe_tag"
    EXPANSION_LIMIT = "expansion_limit"
    SCHEMA = "schema"
    TOO_LARGE = "too_large"
    ENCODING = "encoding"
    UNREADABLE = "unreadable"


class ParseError(ValueError):
    """A single document (component file or registry) could not be parsed.

    File-scoped: the scanner records it as a violation and moves on.
    """

    def __init__(self, reason: ParseErrorReason, message: str, line: Optional[int] = None):
        self.reason = reason
        self.message = message
        self.line = line
        super().__init__(message if line is None else f"{message} (line {line})")


class FatalValidationError(RuntimeError):
    """The run cannot proceed (missing root, unreadable or malformed registry)."""

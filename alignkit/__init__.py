"""alignkit - component alignment and dependency-graph validator.

Checks that a plugin's registry and its component files agree, that every
reference is well-formed and points at an existing component, that
references only flow down the mcp < command < skill < agent < workflow
hierarchy, and that there are no reference cycles.
"""

__version__ = "1.0.0"

from alignkit.exceptions import FatalValidationError, ParseError  # noqa: E402
from alignkit.validation.runner import ValidationOutcome, validate  # noqa: E402

__all__ = [
    "__version__",
    "FatalValidationError",
    "ParseError",
    "ValidationOutcome",
    "validate",
]

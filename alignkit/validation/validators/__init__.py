# alignkit/validation/validators/__init__.py
"""Validation rules for component alignment.

Each rule runs over the same assembled graph and returns its own
ValidationResult:

- Format (validate_formats)
- Existence (validate_references, validate_bijection)
- Hierarchy (validate_hierarchy)
- Cycles (validate_cycles), over validated_edges() only
- Declaration drift (validate_declaration_drift), warnings only
"""

from alignkit.validation.validators.cycles import find_cycles, validate_cycles
from alignkit.validation.validators.drift import validate_declaration_drift
from alignkit.validation.validators.existence import (
    reference_exists,
    validate_bijection,
    validate_references,
)
from alignkit.validation.validators.formats import validate_formats
from alignkit.validation.validators.hierarchy import (
    is_allowed,
    validate_hierarchy,
    validated_edges,
)

__all__ = [
    # formats.py
    "validate_formats",
    # existence.py
    "reference_exists",
    "validate_references",
    "validate_bijection",
    # hierarchy.py
    "is_allowed",
    "validate_hierarchy",
    "validated_edges",
    # cycles.py
    "find_cycles",
    "validate_cycles",
    # drift.py
    "validate_declaration_drift",
]

"""Path confinement for untrusted path strings.

Every candidate path (a file found while scanning the component tree, or a
location derived from a registry entry) is resolved through resolve() before
it is touched. resolve() is lexical and side-effect free: it never reads the
filesystem and never raises for malformed input.

Usage:
    from alignkit.paths import resolve, PathSecurityError

    resolved = resolve(root, "agents/tester.md")
    if not resolved:
        print(resolved.reason)
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Union
from urllib.parse import unquote

# A '%' must introduce exactly two hex digits; '%u2215'-style or truncated
# escapes are treated as undecodable.
_BAD_PERCENT_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class PathSecurityError:
    """Rejection sentinel returned by resolve().

    Falsy, so callers can write ``if not resolved:``.
    """
    candidate: object
    reason: str

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"unsafe path {self.candidate!r}: {self.reason}"


def _root_prefix(root: Union[str, Path]) -> str:
    root_str = os.path.abspath(os.fspath(root))
    return root_str if root_str.endswith(os.sep) else root_str + os.sep


def resolve(root: Union[str, Path], candidate: object) -> Union[Path, PathSecurityError]:
    """Resolve candidate against root, confining the result to root.

    Steps:
    1. Reject non-string or empty input.
    2. Percent-decode exactly once; reject undecodable escapes.
    3. Reject NUL bytes and strings that are not valid UTF-8 (e.g. file names
       the OS handed back with surrogate escapes).
    4. Reject any '..' substring, before and after normalization.
    5. Normalize separators and join onto root.
    6. Reject unless the result lies strictly under root + separator.

    Args:
        root: Directory the result must stay within
        candidate: Untrusted path string, relative to root

    Returns:
        Absolute normalized Path on success, PathSecurityError otherwise.
    """
    if not isinstance(candidate, str) or not candidate:
        return PathSecurityError(candidate, "path must be a non-empty string")

    if _BAD_PERCENT_ESCAPE.search(candidate):
        return PathSecurityError(candidate, "malformed percent-encoding")
    try:
        decoded = unquote(candidate, encoding="utf-8", errors="strict")
    except UnicodeDecodeError:
        return PathSecurityError(candidate, "percent-encoding does not decode to UTF-8")

    if "\x00" in candidate or "\x00" in decoded:
        return PathSecurityError(candidate, "path contains a NUL byte")

    try:
        decoded.encode("utf-8")
    except UnicodeEncodeError:
        return PathSecurityError(candidate, "path is not valid UTF-8")

    if ".." in candidate or ".." in decoded:
        return PathSecurityError(candidate, "path contains '..'")

    normalized = os.path.normpath(decoded.replace("\\", "/"))
    if ".." in normalized:
        return PathSecurityError(candidate, "path contains '..' after normalization")

    prefix = _root_prefix(root)
    resolved = os.path.normpath(os.path.join(prefix, normalized))
    if not resolved.startswith(prefix):
        return PathSecurityError(candidate, "path escapes the root directory")

    return Path(resolved)


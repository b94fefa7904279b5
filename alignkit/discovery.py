"""
discovery.py - Scan the component tree for component files.

Conventional locations (relative to the plugin root):

    mcps/<id>.md                        -> mcp       <id>
    commands/<namespace>/<name>.md      -> command   /<namespace>:<name>
    skills/<category>/<name>/SKILL.md   -> skill     <category>/<name>
    agents/<id>.md                      -> agent     <id>
    workflows/<category>/<name>.md      -> workflow  <category>/<name>

Every candidate is resolved through alignkit.paths.resolve() before it is
read. Symlinks are never followed. Each kind directory is an independent
producer of immutable scan output, so the kinds can be scanned concurrently;
callers only see the results after every producer has finished.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from alignkit.config.settings import DEFAULT_SETTINGS, ValidatorSettings
from alignkit.exceptions import ParseError, ParseErrorReason
from alignkit.frontmatter import extract_references, parse_frontmatter
from alignkit.paths import resolve
from alignkit.types import KIND_DIRS, SKILL_FILENAME, Component, ComponentKind, Identity
from alignkit.validator import ErrorKind, ValidationResult

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


@dataclass
class KindScan:
    """Scan output for one kind directory."""
    kind: ComponentKind
    components: List[Component] = field(default_factory=list)
    result: ValidationResult = field(default_factory=ValidationResult)


@dataclass
class TreeScan:
    """Scan output for the whole component tree, in hierarchy order."""
    components: List[Component] = field(default_factory=list)
    result: ValidationResult = field(default_factory=ValidationResult)


def _is_utf8(name: str) -> bool:
    try:
        os.fsencode(name).decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def _printable(name: str) -> str:
    """Display form of a file name, with undecodable bytes as \\xNN escapes."""
    return os.fsencode(name).decode("utf-8", "backslashreplace")


def _identity_for(kind: ComponentKind, parts: Tuple[str, ...]) -> Identity:
    """Build the identity a file at the given path segments declares."""
    if kind is ComponentKind.COMMAND:
        return Identity(kind, f"/{parts[0]}:{parts[1]}")
    if kind in (ComponentKind.SKILL, ComponentKind.WORKFLOW):
        return Identity(kind, f"{parts[0]}/{parts[1]}")
    return Identity(kind, parts[0])


class KindScanner:
    """Collects component files for a single kind."""

    def __init__(self, root: Path, kind: ComponentKind, settings: ValidatorSettings = DEFAULT_SETTINGS):
        self.root = root
        self.kind = kind
        self.settings = settings
        self.base = KIND_DIRS[kind]
        self.scan = KindScan(kind)

    def run(self) -> KindScan:
        base_dir = self.root / self.base
        if base_dir.is_symlink():
            self._symlink_warning(self.base, Identity(self.kind, self.base))
            return self.scan
        if not base_dir.is_dir():
            logger.debug("No %s/ directory under %s", self.base, self.root)
            return self.scan

        for rel_path, parts in self._candidates(base_dir):
            self._load(rel_path, _identity_for(self.kind, parts))

        logger.debug("Scanned %d %s components", len(self.scan.components), self.kind.value)
        return self.scan

    # ------------------------------------------------------------------
    # Candidate enumeration
    # ------------------------------------------------------------------

    def _entries(self, directory: Path, rel_dir: str) -> List[os.DirEntry]:
        """Directory entries sorted by name.

        Hidden entries are skipped. An unlistable directory or a name that is
        not valid UTF-8 is recorded as a violation and skipped.
        """
        try:
            with os.scandir(directory) as it:
                entries = [entry for entry in it if not entry.name.startswith(".")]
        except OSError as e:
            self.scan.result.add_error(
                ErrorKind.PARSE_ERROR,
                Identity(self.kind, rel_dir),
                f"cannot list directory: {e.strerror or e}",
                "Make the directory readable by the user running the validator",
                location=rel_dir,
                detail=(ParseErrorReason.UNREADABLE.value,),
            )
            return []

        listed = []
        for entry in entries:
            if _is_utf8(entry.name):
                listed.append(entry)
                continue
            rel_path = f"{rel_dir}/{_printable(entry.name)}"
            self.scan.result.add_error(
                ErrorKind.PATH_SECURITY,
                Identity(self.kind, rel_path),
                "file name is not valid UTF-8",
                "Rename it using only lowercase letters, digits and '-'",
                location=rel_path,
            )
        return sorted(listed, key=lambda entry: entry.name)

    def _candidates(self, base_dir: Path) -> List[Tuple[str, Tuple[str, ...]]]:
        """Return (root-relative path, id segments) for every candidate file."""
        if self.kind in (ComponentKind.MCP, ComponentKind.AGENT):
            return self._flat_files(base_dir, self.base, ())

        candidates: List[Tuple[str, Tuple[str, ...]]] = []
        for group in self._entries(base_dir, self.base):
            group_rel = f"{self.base}/{group.name}"
            if group.is_symlink():
                self._symlink_warning(group_rel, Identity(self.kind, group_rel))
                continue
            if not group.is_dir():
                continue

            if self.kind is ComponentKind.SKILL:
                candidates.extend(self._skill_files(Path(group.path), group_rel, group.name))
            else:
                candidates.extend(self._flat_files(Path(group.path), group_rel, (group.name,)))
        return candidates

    def _flat_files(
        self, directory: Path, rel_dir: str, prefix: Tuple[str, ...]
    ) -> List[Tuple[str, Tuple[str, ...]]]:
        candidates = []
        for entry in self._entries(directory, rel_dir):
            if not entry.name.endswith(MARKDOWN_SUFFIX):
                continue
            rel_path = f"{rel_dir}/{entry.name}"
            parts = prefix + (entry.name[: -len(MARKDOWN_SUFFIX)],)
            if entry.is_symlink():
                self._symlink_warning(rel_path, _identity_for(self.kind, parts))
                continue
            if entry.is_file():
                candidates.append((rel_path, parts))
        return candidates

    def _skill_files(
        self, category_dir: Path, rel_dir: str, category: str
    ) -> List[Tuple[str, Tuple[str, ...]]]:
        candidates = []
        for entry in self._entries(category_dir, rel_dir):
            rel_skill_dir = f"{rel_dir}/{entry.name}"
            parts = (category, entry.name)
            if entry.is_symlink():
                self._symlink_warning(rel_skill_dir, _identity_for(self.kind, parts))
                continue
            if not entry.is_dir():
                continue
            skill_file = Path(entry.path) / SKILL_FILENAME
            rel_path = f"{rel_skill_dir}/{SKILL_FILENAME}"
            if skill_file.is_symlink():
                self._symlink_warning(rel_path, _identity_for(self.kind, parts))
            elif skill_file.is_file():
                candidates.append((rel_path, parts))
        return candidates

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load(self, rel_path: str, identity: Identity) -> None:
        component = Component(identity.kind, identity.id, source_path=rel_path, on_disk=True)
        self.scan.components.append(component)

        resolved = resolve(self.root, rel_path)
        if not resolved:
            self.scan.result.add_error(
                ErrorKind.PATH_SECURITY,
                identity,
                f"component path rejected: {resolved.reason}",
                "Rename the file so its path contains only lowercase letters, digits, '-' and '/'",
                location=rel_path,
            )
            return

        try:
            content = self._read(resolved)
            metadata = parse_frontmatter(content, self.settings.yaml_limits)
            component.declared_refs = extract_references(metadata)
        except ParseError as e:
            self.scan.result.add_error(
                ErrorKind.PARSE_ERROR,
                identity,
                str(e),
                _PARSE_FIXES.get(e.reason, "Fix the frontmatter block"),
                location=rel_path,
                detail=(e.reason.value,),
            )

    def _read(self, path: Path) -> str:
        try:
            size = path.stat().st_size
            if size > self.settings.max_file_bytes:
                raise ParseError(
                    ParseErrorReason.TOO_LARGE,
                    f"file is {size} bytes (limit {self.settings.max_file_bytes})",
                )
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(ParseErrorReason.ENCODING, f"file is not valid UTF-8: {e.reason}") from e
        except OSError as e:
            raise ParseError(ParseErrorReason.UNREADABLE, f"cannot read file: {e.strerror or e}") from e

    def _symlink_warning(self, rel_path: str, identity: Identity) -> None:
        self.scan.result.add_warning(
            ErrorKind.PATH_SECURITY,
            identity,
            "symlink not followed",
            "Replace the symlink with a regular file or directory",
            location=rel_path,
        )


_PARSE_FIXES = {
    ParseErrorReason.NO_FRONTMATTER: "Start the file with a '---' line, the metadata, and a closing '---' line",
    ParseErrorReason.UNTERMINATED: "Close the frontmatter block with a '---' line",
    ParseErrorReason.MALFORMED: "Check YAML syntax in the frontmatter block",
    ParseErrorReason.UNSAFE_TAG: "Remove explicit YAML tags; only plain scalars, lists and mappings are allowed",
    ParseErrorReason.EXPANSION_LIMIT: "Reduce anchor/alias reuse and nesting in the frontmatter",
    ParseErrorReason.SCHEMA: "Make the frontmatter a mapping and list references as lists of id strings",
    ParseErrorReason.TOO_LARGE: "Shrink the file or raise max_file_bytes in .alignkit.yaml",
    ParseErrorReason.ENCODING: "Save the file as UTF-8",
    ParseErrorReason.UNREADABLE: "Make the file readable by the user running the validator",
}


def scan_kind(root: Path, kind: ComponentKind, settings: ValidatorSettings = DEFAULT_SETTINGS) -> KindScan:
    """Scan one kind directory."""
    return KindScanner(root, kind, settings).run()


def scan_tree(
    root: Path,
    settings: ValidatorSettings = DEFAULT_SETTINGS,
    kinds: Optional[List[ComponentKind]] = None,
) -> TreeScan:
    """Scan every kind directory under root.

    With settings.parallel_scan, each kind directory is scanned by its own
    worker; results are joined in hierarchy order once all workers finish.
    """
    kinds = list(kinds or ComponentKind)
    if settings.parallel_scan and len(kinds) > 1:
        with ThreadPoolExecutor(max_workers=len(kinds), thread_name_prefix="alignkit-scan") as pool:
            scans = list(pool.map(lambda kind: scan_kind(root, kind, settings), kinds))
    else:
        scans = [scan_kind(root, kind, settings) for kind in kinds]

    tree = TreeScan()
    for scan in scans:
        tree.components.extend(scan.components)
        tree.result.extend(scan.result)

    logger.debug(
        "Scanned %s: %d component files, %d scan violations",
        root, len(tree.components), len(tree.result),
    )
    return tree

"""
registry.py - Load the component registry (registry.yaml).

The registry is a plain YAML document (no frontmatter delimiters) read with
the same restricted loader as component frontmatter:

    version: 2.1.0
    command_namespaces: [dev, quality]
    skill_categories:
      methodology:
        description: Ways of working
    mcps: [context7]
    commands:
      - /dev:test
    skills:
      - methodology/writing-plans
    agents:
      tester:
        description: Testing specialist
        skills: [methodology/writing-plans]
        commands: [/dev:test]
    workflows:
      testing/full-suite:
        agents: [tester]

Every section may be a list of ids or a mapping of id -> entry. An entry may
be empty, a description string, or a mapping with `description` and
dependency lists keyed by kind (`mcps`, `commands`, `skills`, `agents`,
`workflows`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import ParseError, ParseErrorReason
from .frontmatter import DEFAULT_LIMITS, YamlLimits, load_yaml
from .types import ComponentKind, Identity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryEntry:
    """A single declared component.

    Attributes:
        identity: (kind, id) as declared
        description: Optional one-line description
        dependencies: Dependency ids the entry lists, keyed by kind
    """
    identity: Identity
    description: str = ""
    dependencies: Dict[ComponentKind, Tuple[str, ...]] = field(default_factory=dict)


@dataclass
class Registry:
    """The declared component set plus the metadata format rules need."""
    path: Path
    version: Optional[str] = None
    command_namespaces: Tuple[str, ...] = ()
    skill_categories: Tuple[str, ...] = ()
    entries: Dict[Identity, RegistryEntry] = field(default_factory=dict)

    def identities(self) -> List[Identity]:
        """All declared identities in deterministic order."""
        return sorted(self.entries, key=lambda identity: identity.sort_key())

    def __len__(self) -> int:
        return len(self.entries)


def _schema_error(message: str) -> ParseError:
    return ParseError(ParseErrorReason.SCHEMA, f"registry: {message}")


def _as_id(value: Any) -> str:
    # Non-string ids (e.g. a bare number) are kept as text so the format
    # rule reports them instead of the registry silently dropping them.
    return value if isinstance(value, str) else str(value)


def _name_list(data: Dict[str, Any], key: str) -> Tuple[str, ...]:
    """Read a list-or-mapping of names (namespaces, categories)."""
    value = data.get(key)
    if value is None:
        return ()
    if isinstance(value, dict):
        return tuple(_as_id(name) for name in value)
    if isinstance(value, list):
        names: List[str] = []
        for item in value:
            name = _as_id(item)
            if name not in names:
                names.append(name)
        return tuple(names)
    raise _schema_error(f"'{key}' must be a list or mapping, got {type(value).__name__}")


def _dependencies(section: str, component_id: str, entry: Dict[str, Any]) -> Dict[ComponentKind, Tuple[str, ...]]:
    deps: Dict[ComponentKind, Tuple[str, ...]] = {}
    for kind in ComponentKind:
        value = entry.get(kind.plural)
        if value is None:
            continue
        if not isinstance(value, list):
            raise _schema_error(
                f"{section}.{component_id}.{kind.plural} must be a list, got {type(value).__name__}"
            )
        deps[kind] = tuple(_as_id(item) for item in value)
    return deps


def _entry(kind: ComponentKind, component_id: str, value: Any) -> RegistryEntry:
    identity = Identity(kind, component_id)
    if value is None:
        return RegistryEntry(identity)
    if isinstance(value, str):
        return RegistryEntry(identity, description=value)
    if isinstance(value, dict):
        description = value.get("description") or ""
        return RegistryEntry(
            identity,
            description=str(description),
            dependencies=_dependencies(kind.plural, component_id, value),
        )
    raise _schema_error(
        f"{kind.plural}.{component_id} must be a mapping or description, got {type(value).__name__}"
    )


def _section(data: Dict[str, Any], kind: ComponentKind) -> List[RegistryEntry]:
    value = data.get(kind.plural)
    if value is None:
        return []
    entries: List[RegistryEntry] = []
    if isinstance(value, dict):
        for raw_id, entry_value in value.items():
            entries.append(_entry(kind, _as_id(raw_id), entry_value))
    elif isinstance(value, list):
        for item in value:
            if isinstance(item, dict):
                raise _schema_error(f"'{kind.plural}' list items must be ids, got a mapping")
            entries.append(_entry(kind, _as_id(item), None))
    else:
        raise _schema_error(
            f"'{kind.plural}' must be a list or mapping, got {type(value).__name__}"
        )
    return entries


def parse_registry(text: str, path: Path, limits: YamlLimits = DEFAULT_LIMITS) -> Registry:
    """Parse registry YAML text into a Registry.

    Raises:
        ParseError: If the YAML is malformed, unsafe, or has the wrong shape.
    """
    data = load_yaml(text, limits)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise _schema_error(f"top level must be a mapping, got {type(data).__name__}")

    version = data.get("version")
    registry = Registry(
        path=path,
        version=None if version is None else str(version),
        command_namespaces=_name_list(data, "command_namespaces"),
        skill_categories=_name_list(data, "skill_categories"),
    )

    for kind in ComponentKind:
        for entry in _section(data, kind):
            if entry.identity in registry.entries:
                logger.debug("Duplicate registry entry %s ignored", entry.identity)
                continue
            registry.entries[entry.identity] = entry

    logger.debug(
        "Loaded registry %s: %d components, %d command namespaces",
        path, len(registry), len(registry.command_namespaces),
    )
    return registry


def load_registry(path: Path, limits: YamlLimits = DEFAULT_LIMITS) -> Registry:
    """Read and parse the registry document.

    Raises:
        OSError: If the file cannot be read.
        ParseError: If the document cannot be parsed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(ParseErrorReason.ENCODING, f"registry is not valid UTF-8: {e}") from e
    return parse_registry(text, path, limits)

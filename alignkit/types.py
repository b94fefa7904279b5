"""
types.py - Component identities, references, and the reference hierarchy.

A component is a named unit of the plugin distribution (mcp server,
command, skill, agent, workflow). Its identity is the pair (kind, id) and
its hierarchy level is fixed by its kind:

    mcp=0  command=1  skill=2  agent=3  workflow=4

Usage:
    from alignkit.types import ComponentKind, Identity, ComponentRef, Component
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple


class ComponentKind(str, Enum):
    """Component kinds in hierarchy order."""
    MCP = "mcp"
    COMMAND = "command"
    SKILL = "skill"
    AGENT = "agent"
    WORKFLOW = "workflow"

    @property
    def level(self) -> int:
        return _LEVELS[self]

    @property
    def plural(self) -> str:
        """Section name used in the registry and in frontmatter (e.g. 'skills')."""
        return f"{self.value}s"

    def __str__(self) -> str:
        return self.value


_LEVELS: Dict[ComponentKind, int] = {
    ComponentKind.MCP: 0,
    ComponentKind.COMMAND: 1,
    ComponentKind.SKILL: 2,
    ComponentKind.AGENT: 3,
    ComponentKind.WORKFLOW: 4,
}

# Kinds each kind may reference. Every entry satisfies level(to) <= level(from);
# peers are only allowed for the composing tiers (skills and agents).
ALLOWED_REFERENCES: Dict[ComponentKind, FrozenSet[ComponentKind]] = {
    ComponentKind.MCP: frozenset(),
    ComponentKind.COMMAND: frozenset({ComponentKind.MCP}),
    ComponentKind.SKILL: frozenset({
        ComponentKind.SKILL,
        ComponentKind.COMMAND,
        ComponentKind.MCP,
    }),
    ComponentKind.AGENT: frozenset({
        ComponentKind.AGENT,
        ComponentKind.SKILL,
        ComponentKind.COMMAND,
        ComponentKind.MCP,
    }),
    ComponentKind.WORKFLOW: frozenset({
        ComponentKind.AGENT,
        ComponentKind.SKILL,
        ComponentKind.COMMAND,
        ComponentKind.MCP,
    }),
}

# Canonical identity shapes
_SEGMENT = r"[a-z][a-z0-9-]*"

ID_PATTERNS: Dict[ComponentKind, "re.Pattern[str]"] = {
    ComponentKind.MCP: re.compile(rf"^{_SEGMENT}$"),
    ComponentKind.COMMAND: re.compile(rf"^/({_SEGMENT}):({_SEGMENT})$"),
    ComponentKind.SKILL: re.compile(rf"^({_SEGMENT})/({_SEGMENT})$"),
    ComponentKind.AGENT: re.compile(rf"^{_SEGMENT}$"),
    ComponentKind.WORKFLOW: re.compile(rf"^({_SEGMENT})/({_SEGMENT})$"),
}

# Human-readable shape descriptions for fix guidance
ID_SHAPES: Dict[ComponentKind, str] = {
    ComponentKind.MCP: "<name> (kebab-case)",
    ComponentKind.COMMAND: "/<namespace>:<name>",
    ComponentKind.SKILL: "<category>/<name>",
    ComponentKind.AGENT: "<name> (kebab-case, no slash)",
    ComponentKind.WORKFLOW: "<category>/<name>",
}

# Top-level directory holding each kind on disk
KIND_DIRS: Dict[ComponentKind, str] = {kind: kind.plural for kind in ComponentKind}

SKILL_FILENAME = "SKILL.md"


def is_canonical_id(kind: ComponentKind, component_id: object) -> bool:
    """True if component_id has the canonical shape for kind and no '..'."""
    if not isinstance(component_id, str) or ".." in component_id:
        return False
    return ID_PATTERNS[kind].fullmatch(component_id) is not None


def split_id(kind: ComponentKind, component_id: str) -> Optional[Tuple[str, ...]]:
    """Split a canonical id into its path segments.

    Returns ("name",) for mcps and agents, (namespace, name) for commands and
    (category, name) for skills and workflows. Returns None for ids that are
    not canonical.

    Example:
        >>> split_id(ComponentKind.COMMAND, "/dev:test")
        ('dev', 'test')
    """
    match = ID_PATTERNS[kind].fullmatch(component_id) if is_canonical_id(kind, component_id) else None
    if match is None:
        return None
    return match.groups() or (component_id,)


def component_path(kind: ComponentKind, component_id: str) -> Optional[str]:
    """Conventional root-relative file location for a component.

    Returns None when the id is not canonical, since no file location can
    be derived from it.

    Example:
        >>> component_path(ComponentKind.SKILL, "methodology/writing-plans")
        'skills/methodology/writing-plans/SKILL.md'
    """
    parts = split_id(kind, component_id)
    if parts is None:
        return None
    base = KIND_DIRS[kind]
    if kind is ComponentKind.SKILL:
        return f"{base}/{parts[0]}/{parts[1]}/{SKILL_FILENAME}"
    return f"{base}/{'/'.join(parts)}.md"


@dataclass(frozen=True)
class Identity:
    """Identity of a component: (kind, id)."""
    kind: ComponentKind
    id: str

    @property
    def level(self) -> int:
        return self.kind.level

    def sort_key(self) -> Tuple[int, str]:
        """Sort key for deterministic ordering (hierarchy level, then id)."""
        return (self.kind.level, self.id)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"

    @classmethod
    def parse(cls, text: str) -> "Identity":
        """Parse 'kind:id' (e.g. 'skill:methodology/tdd', 'command:/dev:test').

        Raises:
            ValueError: If the kind prefix is missing or unknown.
        """
        kind_name, sep, component_id = text.partition(":")
        if not sep or not component_id:
            raise ValueError(f"expected KIND:ID, got '{text}'")
        try:
            kind = ComponentKind(kind_name.strip().lower())
        except ValueError:
            valid = ", ".join(k.value for k in ComponentKind)
            raise ValueError(f"unknown component kind '{kind_name}' (expected one of: {valid})")
        return cls(kind, component_id.strip())


@dataclass(frozen=True)
class ComponentRef:
    """A reference declared in a component's frontmatter.

    The target kind is fixed by the frontmatter key the reference was listed
    under, so references are never re-interpreted against several kinds.

    Attributes:
        target_kind: Kind of the referenced component
        target_id: Id of the referenced component
        declared_format: The raw string as written in the document
    """
    target_kind: ComponentKind
    target_id: str
    declared_format: str

    @property
    def target(self) -> Identity:
        return Identity(self.target_kind, self.target_id)


@dataclass
class Component:
    """A component node.

    Attributes:
        kind: Component kind (fixes the hierarchy level)
        id: Component id in the canonical shape for its kind
        source_path: Root-relative file path, or None if only declared in the registry
        declared_refs: References declared in the component's frontmatter
        in_registry: True if the registry declares this component
        on_disk: True if a component file was discovered
        registry_refs: Dependencies the registry entry itself lists, keyed by kind
    """
    kind: ComponentKind
    id: str
    source_path: Optional[str] = None
    declared_refs: List[ComponentRef] = field(default_factory=list)
    in_registry: bool = False
    on_disk: bool = False
    registry_refs: Dict[ComponentKind, Tuple[str, ...]] = field(default_factory=dict)

    @property
    def identity(self) -> Identity:
        return Identity(self.kind, self.id)

    @property
    def level(self) -> int:
        return self.kind.level

    def merge(self, other: "Component") -> None:
        """Merge another discovery of the same identity into this node."""
        if other.identity != self.identity:
            raise ValueError(f"cannot merge {other.identity} into {self.identity}")
        if other.source_path and not self.source_path:
            self.source_path = other.source_path
        for ref in other.declared_refs:
            if ref not in self.declared_refs:
                self.declared_refs.append(ref)
        self.in_registry = self.in_registry or other.in_registry
        self.on_disk = self.on_disk or other.on_disk
        for kind, ids in other.registry_refs.items():
            self.registry_refs.setdefault(kind, ids)

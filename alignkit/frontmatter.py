"""
frontmatter.py - Restricted YAML loading and frontmatter extraction.

Component files start with a metadata block:

    ---
    name: fullstack-developer
    skills:
      - frameworks/react
    commands: [/dev:test]
    ---

    Prompt body...

The block is deserialized with RestrictedLoader, a PyYAML SafeLoader whose
capabilities are reduced to an allow-list: scalars (str, int, float, bool,
null), sequences, mappings, and bounded anchors/aliases. Any explicit tag
outside that list (!!python/..., !!binary, !!set, !ruby/..., ...) is rejected
rather than downgraded. Implicit timestamps stay plain strings.

Alias expansion is bounded: the composed node graph is measured as if every
alias were expanded, and the document is rejected once the expanded node
count or nesting depth passes the configured limits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Set, Tuple

import yaml
from yaml.constructor import SafeConstructor
from yaml.events import AliasEvent
from yaml.nodes import MappingNode, Node, SequenceNode

from .exceptions import ParseError, ParseErrorReason
from .types import ComponentKind, ComponentRef

logger = logging.getLogger(__name__)

FRONTMATTER_DELIMITER = "---"

_YAML_TAG = "tag:yaml.org,2002:"

# Tags that may appear explicitly in a document (e.g. `!!str 123`)
ALLOWED_EXPLICIT_TAGS = frozenset(
    _YAML_TAG + name for name in ("str", "int", "float", "bool", "null", "seq", "map")
)

# Constructors kept from SafeLoader; everything else is dropped
_ALLOWED_CONSTRUCTOR_TAGS = ALLOWED_EXPLICIT_TAGS | {None}


@dataclass(frozen=True)
class YamlLimits:
    """Bounds on alias expansion.

    Attributes:
        max_nodes: Maximum node count with every alias expanded
        max_depth: Maximum nesting depth with every alias expanded
    """
    max_nodes: int = 10_000
    max_depth: int = 64


DEFAULT_LIMITS = YamlLimits()


class RestrictedLoader(yaml.SafeLoader):
    """SafeLoader reduced to scalars, sequences, mappings and bounded aliases."""

    yaml_constructors = {
        tag: constructor
        for tag, constructor in yaml.SafeLoader.yaml_constructors.items()
        if tag in _ALLOWED_CONSTRUCTOR_TAGS
    }

    def __init__(self, stream: str, limits: YamlLimits = DEFAULT_LIMITS):
        super().__init__(stream)
        self.limits = limits
        self._compose_depth = 0

    def compose_node(self, parent, index):
        if not self.check_event(AliasEvent):
            event = self.peek_event()
            tag = event.tag
            if tag not in (None, "!") and tag not in ALLOWED_EXPLICIT_TAGS:
                line = event.start_mark.line + 1 if event.start_mark else None
                raise ParseError(
                    ParseErrorReason.UNSAFE_TAG,
                    f"explicit tag '{tag}' is not allowed",
                    line=line,
                )
        self._compose_depth += 1
        try:
            if self._compose_depth > self.limits.max_depth:
                raise ParseError(
                    ParseErrorReason.EXPANSION_LIMIT,
                    f"nesting depth exceeds {self.limits.max_depth}",
                )
            return super().compose_node(parent, index)
        finally:
            self._compose_depth -= 1

    def get_single_node(self):
        node = super().get_single_node()
        if node is not None:
            self._check_expansion(node)
        return node

    def _check_expansion(self, root: Node) -> None:
        """Measure the document as if every alias were expanded."""
        measured: Dict[int, Tuple[int, int]] = {}
        active: Set[int] = set()
        max_nodes = self.limits.max_nodes
        max_depth = self.limits.max_depth

        def measure(node: Node) -> Tuple[int, int]:
            key = id(node)
            if key in measured:
                return measured[key]
            if key in active:
                raise ParseError(ParseErrorReason.EXPANSION_LIMIT, "recursive alias")
            active.add(key)

            if isinstance(node, SequenceNode):
                children: List[Node] = list(node.value)
            elif isinstance(node, MappingNode):
                children = [item for pair in node.value for item in pair]
            else:
                children = []

            count, height = 1, 1
            for child in children:
                child_count, child_height = measure(child)
                count += child_count
                height = max(height, child_height + 1)
                if count > max_nodes:
                    raise ParseError(
                        ParseErrorReason.EXPANSION_LIMIT,
                        f"alias expansion exceeds {max_nodes} nodes",
                    )
            if height > max_depth:
                raise ParseError(
                    ParseErrorReason.EXPANSION_LIMIT,
                    f"alias expansion exceeds depth {max_depth}",
                )

            active.discard(key)
            measured[key] = (count, height)
            return count, height

        measure(root)


# Implicit timestamps (e.g. `released: 2024-01-01`) stay strings.
RestrictedLoader.add_constructor(_YAML_TAG + "timestamp", SafeConstructor.construct_yaml_str)


def load_yaml(text: str, limits: YamlLimits = DEFAULT_LIMITS) -> Any:
    """Deserialize a YAML document with the restricted schema.

    Args:
        text: YAML source
        limits: Alias expansion bounds

    Returns:
        Plain Python data (dict, list, str, int, float, bool, None).

    Raises:
        ParseError: On malformed YAML, a disallowed tag, or an expansion bound.
    """
    loader = RestrictedLoader(text, limits)
    try:
        return loader.get_single_data()
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        line = mark.line + 1 if mark is not None else None
        problem = getattr(e, "problem", None) or str(e)
        raise ParseError(ParseErrorReason.MALFORMED, f"invalid YAML: {problem}", line=line) from e
    except RecursionError as e:
        raise ParseError(ParseErrorReason.EXPANSION_LIMIT, "document nesting is too deep") from e
    finally:
        loader.dispose()


def split_frontmatter(content: str) -> Tuple[str, str]:
    """Split a document into (frontmatter block, body).

    Raises:
        ParseError: NO_FRONTMATTER if the document does not open with '---',
            UNTERMINATED if the block is never closed.
    """
    lines = content.lstrip("\ufeff").splitlines(keepends=True)
    if not lines or lines[0].rstrip() != FRONTMATTER_DELIMITER:
        raise ParseError(ParseErrorReason.NO_FRONTMATTER, "document has no frontmatter block")

    for index in range(1, len(lines)):
        if lines[index].rstrip() == FRONTMATTER_DELIMITER:
            return "".join(lines[1:index]), "".join(lines[index + 1:])

    raise ParseError(
        ParseErrorReason.UNTERMINATED,
        "frontmatter block is not closed with '---'",
        line=1,
    )


def parse_frontmatter(content: str, limits: YamlLimits = DEFAULT_LIMITS) -> Dict[str, Any]:
    """Extract and deserialize the leading frontmatter block of a document.

    An empty block yields an empty mapping.

    Raises:
        ParseError: If the block is missing, unterminated, malformed, unsafe,
            too large after alias expansion, or not a mapping.
    """
    block, _body = split_frontmatter(content)
    data = load_yaml(block, limits)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError(
            ParseErrorReason.SCHEMA,
            f"frontmatter must be a mapping, got {type(data).__name__}",
        )
    return data


def extract_references(metadata: Dict[str, Any]) -> List[ComponentRef]:
    """Build ComponentRefs from the reference keys of a metadata mapping.

    Each reference key (mcps, commands, skills, agents, workflows) must be a
    list of strings; the key fixes the target kind. Duplicates are dropped,
    first occurrence wins.

    Raises:
        ParseError: SCHEMA if a reference key is not a list of strings.
    """
    refs: List[ComponentRef] = []
    for kind in ComponentKind:
        key = kind.plural
        if key not in metadata or metadata[key] is None:
            continue
        values = metadata[key]
        if not isinstance(values, list):
            raise ParseError(
                ParseErrorReason.SCHEMA,
                f"'{key}' must be a list of ids, got {type(values).__name__}",
            )
        for value in values:
            if not isinstance(value, str):
                raise ParseError(
                    ParseErrorReason.SCHEMA,
                    f"'{key}' entries must be strings, got {type(value).__name__} {value!r}",
                )
            ref = ComponentRef(target_kind=kind, target_id=value, declared_format=value)
            if ref not in refs:
                refs.append(ref)
    logger.debug("Extracted %d references", len(refs))
    return refs

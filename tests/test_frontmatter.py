"""
Test suite for frontmatter extraction and restricted YAML loading.

Covers:
- Delimiter handling (missing, unterminated, empty blocks)
- Tag allow-list (no object construction, no binary/set/custom tags)
- Bounded alias expansion (reference bombs, recursive aliases, depth)
- Merge keys: explicit keys always override merged values
- Reference extraction into typed ComponentRefs
"""

import pytest

from alignkit.exceptions import ParseError, ParseErrorReason
from alignkit.frontmatter import (
    YamlLimits,
    extract_references,
    load_yaml,
    parse_frontmatter,
    split_frontmatter,
)
from alignkit.types import ComponentKind, ComponentRef


def doc(block: str, body: str = "Body text.\n") -> str:
    return f"---\n{block}---\n{body}"


def reason_of(excinfo) -> ParseErrorReason:
    return excinfo.value.reason


# ============================================================================
# Delimiters
# ============================================================================


def test_parses_leading_block():
    metadata = parse_frontmatter(doc("name: tester\nskills: [methodology/tdd]\n"))
    assert metadata == {"name": "tester", "skills": ["methodology/tdd"]}


def test_body_is_not_parsed():
    """A second '---' block further down the body is body text."""
    content = doc("name: tester\n", body="\n---\nnot: metadata\n---\n")
    assert parse_frontmatter(content) == {"name": "tester"}


def test_empty_block_is_empty_mapping():
    assert parse_frontmatter("---\n---\nbody\n") == {}


def test_byte_order_mark_is_ignored():
    assert parse_frontmatter("\ufeff" + doc("name: tester\n")) == {"name": "tester"}


def test_crlf_line_endings():
    assert parse_frontmatter("---\r\nname: tester\r\n---\r\nbody\r\n") == {"name": "tester"}


@pytest.mark.parametrize("content", [
    "",
    "name: tester\n",
    "# Title\n---\nname: tester\n---\n",
    " ---\nname: tester\n---\n",
])
def test_missing_frontmatter(content):
    with pytest.raises(ParseError) as excinfo:
        parse_frontmatter(content)
    assert reason_of(excinfo) is ParseErrorReason.NO_FRONTMATTER


def test_unterminated_block():
    with pytest.raises(ParseError) as excinfo:
        split_frontmatter("---\nname: tester\nskills: []\n")
    assert reason_of(excinfo) is ParseErrorReason.UNTERMINATED


def test_split_returns_block_and_body():
    block, body = split_frontmatter("---\na: 1\n---\nhello\n")
    assert block == "a: 1\n"
    assert body == "hello\n"


@pytest.mark.parametrize("block", [
    'description: "unclosed\n',
    "skills: [a, b\n",
    "a: 1\n  b: 2\n",
    "key: value\n\tindented: tab\n",
])
def test_malformed_yaml(block):
    with pytest.raises(ParseError) as excinfo:
        parse_frontmatter(doc(block))
    assert reason_of(excinfo) is ParseErrorReason.MALFORMED


def test_malformed_yaml_reports_line():
    with pytest.raises(ParseError) as excinfo:
        load_yaml("a: 1\nb: [1, 2\nc: 3\n")
    assert excinfo.value.line is not None
    assert "line" in str(excinfo.value)


@pytest.mark.parametrize("block", ["- a\n- b\n", "just a string\n", "42\n"])
def test_non_mapping_block_is_schema_error(block):
    with pytest.raises(ParseError) as excinfo:
        parse_frontmatter(doc(block))
    assert reason_of(excinfo) is ParseErrorReason.SCHEMA


# ============================================================================
# Tag Allow-list
# ============================================================================


@pytest.mark.parametrize("block", [
    "x: !!python/object/apply:os.system ['echo pwned']\n",
    "x: !!python/name:os.system\n",
    "x: !!python/object:collections.OrderedDict {}\n",
    "!!python/object/new:type\nargs: [x]\n",
    "x: !!binary aGVsbG8=\n",
    "x: !!set {a: null}\n",
    "x: !!omap [a: 1]\n",
    "x: !!timestamp 2024-01-01\n",
    "x: !ruby/object:Gem::Installer {}\n",
    "x: !custom value\n",
    "x: !<tag:example.com,2024:thing> value\n",
])
def test_unsafe_tags_are_rejected(block):
    """Explicit tags outside the allow-list fail, never silently downgrade."""
    with pytest.raises(ParseError) as excinfo:
        load_yaml(block)
    assert reason_of(excinfo) is ParseErrorReason.UNSAFE_TAG


def test_unsafe_tag_inside_sequence_is_rejected():
    with pytest.raises(ParseError) as excinfo:
        load_yaml("skills:\n  - ok\n  - !!python/object/apply:os.getcwd []\n")
    assert reason_of(excinfo) is ParseErrorReason.UNSAFE_TAG
    assert excinfo.value.line == 3


@pytest.mark.parametrize("block,expected", [
    ("x: !!str 123\n", {"x": "123"}),
    ("x: !!int '7'\n", {"x": 7}),
    ("x: !!float '1.5'\n", {"x": 1.5}),
    ("x: !!bool 'true'\n", {"x": True}),
    ("x: !!null ''\n", {"x": None}),
    ("x: !!seq [1]\n", {"x": [1]}),
    ("x: !!map {a: 1}\n", {"x": {"a": 1}}),
])
def test_core_tags_are_allowed(block, expected):
    assert load_yaml(block) == expected


def test_implicit_timestamps_stay_strings():
    assert load_yaml("released: 2024-01-01\n") == {"released": "2024-01-01"}


def test_plain_scalars():
    data = load_yaml("a: 1\nb: 1.5\nc: true\nd: null\ne: text\n")
    assert data == {"a": 1, "b": 1.5, "c": True, "d": None, "e": "text"}


# ============================================================================
# Alias Expansion Bounds
# ============================================================================


BILLION_LAUGHS = """\
a: &a ["lol","lol","lol","lol","lol","lol","lol","lol","lol"]
b: &b [*a,*a,*a,*a,*a,*a,*a,*a,*a]
c: &c [*b,*b,*b,*b,*b,*b,*b,*b,*b]
d: &d [*c,*c,*c,*c,*c,*c,*c,*c,*c]
e: &e [*d,*d,*d,*d,*d,*d,*d,*d,*d]
f: &f [*e,*e,*e,*e,*e,*e,*e,*e,*e]
g: &g [*f,*f,*f,*f,*f,*f,*f,*f,*f]
h: &h [*g,*g,*g,*g,*g,*g,*g,*g,*g]
i: &i [*h,*h,*h,*h,*h,*h,*h,*h,*h]
"""


def test_reference_bomb_is_rejected():
    """
    Given: a document whose aliases expand to ~10^9 nodes
    When: it is loaded
    Then: loading fails with EXPANSION_LIMIT before anything is constructed
    """
    with pytest.raises(ParseError) as excinfo:
        parse_frontmatter(doc(BILLION_LAUGHS))
    assert reason_of(excinfo) is ParseErrorReason.EXPANSION_LIMIT


def test_small_alias_reuse_is_allowed():
    data = load_yaml("base: &tools [read, write]\nagent: {tools: *tools}\n")
    assert data["agent"]["tools"] == ["read", "write"]


def test_expansion_limit_is_configurable():
    text = "a: &a [1, 2, 3, 4]\nb: [*a, *a, *a, *a]\n"
    assert load_yaml(text, YamlLimits(max_nodes=100))["b"][0] == [1, 2, 3, 4]
    with pytest.raises(ParseError) as excinfo:
        load_yaml(text, YamlLimits(max_nodes=20))
    assert reason_of(excinfo) is ParseErrorReason.EXPANSION_LIMIT


def test_recursive_alias_is_rejected():
    with pytest.raises(ParseError) as excinfo:
        load_yaml("a: &a [*a]\n")
    assert reason_of(excinfo) is ParseErrorReason.EXPANSION_LIMIT


def test_nesting_depth_is_bounded():
    deep = "[" * 100 + "]" * 100
    with pytest.raises(ParseError) as excinfo:
        load_yaml(f"x: {deep}\n")
    assert reason_of(excinfo) is ParseErrorReason.EXPANSION_LIMIT


def test_depth_through_aliases_is_bounded():
    """Each alias level adds depth even though the source text is shallow."""
    lines = ["l0: &l0 [x]"]
    for level in range(1, 12):
        lines.append(f"l{level}: &l{level} [*l{level - 1}]")
    text = "\n".join(lines) + "\n"

    assert load_yaml(text, YamlLimits(max_depth=64))["l11"]
    with pytest.raises(ParseError) as excinfo:
        load_yaml(text, YamlLimits(max_depth=8))
    assert reason_of(excinfo) is ParseErrorReason.EXPANSION_LIMIT


# ============================================================================
# Merge Keys
# ============================================================================


def test_explicit_key_overrides_merged_value():
    """
    Given: a mapping that merges a base granting a permission
    And: explicitly sets the same key to a safer value
    Then: the explicit value wins
    """
    text = """\
base: &base
  permission: allow-all
  model: inherit
agent:
  <<: *base
  permission: read-only
"""
    data = load_yaml(text)
    assert data["agent"] == {"permission": "read-only", "model": "inherit"}


def test_explicit_key_wins_even_when_listed_before_merge():
    text = """\
base: &base {permission: allow-all}
agent:
  permission: read-only
  <<: *base
"""
    assert load_yaml(text)["agent"]["permission"] == "read-only"


def test_merge_list_earlier_sources_win():
    text = """\
one: &one {a: 1}
two: &two {a: 2, b: 2}
merged:
  <<: [*one, *two]
"""
    assert load_yaml(text)["merged"] == {"a": 1, "b": 2}


# ============================================================================
# Reference Extraction
# ============================================================================


def test_extract_references_by_key():
    metadata = {
        "name": "tester",
        "skills": ["methodology/tdd"],
        "commands": ["/dev:test"],
        "mcps": ["context7"],
    }
    refs = extract_references(metadata)
    assert refs == [
        ComponentRef(ComponentKind.MCP, "context7", "context7"),
        ComponentRef(ComponentKind.COMMAND, "/dev:test", "/dev:test"),
        ComponentRef(ComponentKind.SKILL, "methodology/tdd", "methodology/tdd"),
    ]


def test_reference_kind_comes_from_key():
    """The same string under two keys is two different references."""
    refs = extract_references({"agents": ["tester"], "mcps": ["tester"]})
    assert {ref.target_kind for ref in refs} == {ComponentKind.AGENT, ComponentKind.MCP}


def test_duplicate_references_are_dropped():
    refs = extract_references({"skills": ["a/b", "a/b", "c/d"]})
    assert [ref.target_id for ref in refs] == ["a/b", "c/d"]


def test_null_or_missing_reference_keys():
    assert extract_references({"skills": None, "name": "x"}) == []


def test_ids_are_kept_verbatim():
    refs = extract_references({"skills": [" methodology/tdd "]})
    assert refs[0].target_id == " methodology/tdd "


@pytest.mark.parametrize("metadata", [
    {"skills": "methodology/tdd"},
    {"skills": {"methodology/tdd": True}},
    {"commands": [1]},
    {"agents": [["nested"]]},
    {"mcps": [None]},
])
def test_reference_lists_must_be_lists_of_strings(metadata):
    with pytest.raises(ParseError) as excinfo:
        extract_references(metadata)
    assert reason_of(excinfo) is ParseErrorReason.SCHEMA

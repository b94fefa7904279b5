"""
Test suite for component tree scanning (alignkit.discovery).

Scenarios covered:
- Files at conventional locations become components with the right identity
- Files outside the layout are ignored
- Parse failures are file-scoped PARSE_ERROR violations
- Symlinks are never followed
- Unlistable directories and non-UTF-8 file names become violations
- Parallel and sequential scans produce the same result
"""

import os
import sys

import pytest

from alignkit import validate
from alignkit.config.settings import ValidatorSettings
from alignkit.discovery import scan_kind, scan_tree
from alignkit.types import ComponentKind, Identity

from conftest import codes, create_agent_file, create_skill_file, write_component

needs_symlinks = pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")


def identities(scan):
    return [str(c.identity) for c in scan.components]


def test_conventional_locations(temp_plugin):
    write_component(temp_plugin / "mcps" / "context7.md", {"name": "context7"})
    write_component(temp_plugin / "commands" / "dev" / "test.md", {"mcps": ["context7"]})
    write_component(temp_plugin / "skills" / "methodology" / "tdd" / "SKILL.md", {})
    write_component(temp_plugin / "agents" / "tester.md", {"skills": ["methodology/tdd"]})
    write_component(temp_plugin / "workflows" / "testing" / "full-suite.md", {"agents": ["tester"]})

    scan = scan_tree(temp_plugin)

    assert identities(scan) == [
        "mcp:context7",
        "command:/dev:test",
        "skill:methodology/tdd",
        "agent:tester",
        "workflow:testing/full-suite",
    ]
    assert len(scan.result) == 0
    agent = scan.components[3]
    assert agent.on_disk and not agent.in_registry
    assert agent.source_path == "agents/tester.md"
    assert [ref.target for ref in agent.declared_refs] == [Identity(ComponentKind.SKILL, "methodology/tdd")]


def test_files_outside_layout_are_ignored(temp_plugin):
    write_component(temp_plugin / "agents" / "nested" / "deep.md", {})
    (temp_plugin / "agents" / "notes.txt").write_text("not a component")
    write_component(temp_plugin / "skills" / "loose.md", {})
    write_component(temp_plugin / "skills" / "methodology" / "tdd" / "README.md", {})
    write_component(temp_plugin / "commands" / "top-level.md", {})
    write_component(temp_plugin / "workflows" / "a" / "b" / "c.md", {})
    write_component(temp_plugin / "agents" / ".hidden.md", {})

    scan = scan_tree(temp_plugin)

    assert scan.components == []
    assert len(scan.result) == 0


def test_missing_kind_directories_are_fine(tmp_path):
    scan = scan_tree(tmp_path)
    assert scan.components == []


def test_parse_error_is_file_scoped(temp_plugin):
    """
    Given: one agent with malformed frontmatter and one valid agent
    When: the tree is scanned
    Then: the broken agent yields a PARSE_ERROR and still becomes a component
    And: the valid agent is unaffected
    """
    (temp_plugin / "agents" / "broken.md").write_text('---\ndescription: "unclosed\n---\n')
    create_agent_file(temp_plugin, "fine", skills=["methodology/tdd"])

    scan = scan_kind(temp_plugin, ComponentKind.AGENT)

    assert identities(scan) == ["agent:broken", "agent:fine"]
    assert [v.code.value for v in scan.result.violations] == ["PARSE_ERROR"]
    violation = scan.result.violations[0]
    assert violation.subject == Identity(ComponentKind.AGENT, "broken")
    assert violation.location == "agents/broken.md"
    assert violation.detail == ("malformed",)
    assert scan.components[0].declared_refs == []
    assert len(scan.components[1].declared_refs) == 1


@pytest.mark.parametrize("content,reason", [
    ("no frontmatter here\n", "no_frontmatter"),
    ("---\nname: x\n", "unterminated"),
    ("---\nx: !!python/object/apply:os.system [ls]\n---\n", "unsafe_tag"),
    ("---\nskills: methodology/tdd\n---\n", "schema"),
])
def test_parse_error_reasons(temp_plugin, content, reason):
    (temp_plugin / "agents" / "bad.md").write_text(content)
    scan = scan_kind(temp_plugin, ComponentKind.AGENT)
    assert [v.detail for v in scan.result.violations] == [(reason,)]


def test_oversized_file_is_not_parsed(temp_plugin):
    path = create_agent_file(temp_plugin, "huge")
    path.write_text(path.read_text() + "x" * 4096)

    scan = scan_kind(temp_plugin, ComponentKind.AGENT, ValidatorSettings(max_file_bytes=1024))

    assert [v.detail for v in scan.result.violations] == [("too_large",)]
    assert identities(scan) == ["agent:huge"]


def test_invalid_utf8_is_parse_error(temp_plugin):
    (temp_plugin / "agents" / "latin1.md").write_bytes(b"---\nname: caf\xe9\n---\n")
    scan = scan_kind(temp_plugin, ComponentKind.AGENT)
    assert [v.detail for v in scan.result.violations] == [("encoding",)]


@needs_symlinks
def test_symlinked_file_is_not_followed(temp_plugin, tmp_path):
    outside = tmp_path / "outside.md"
    outside.write_text("---\nskills: [secret/data]\n---\n")
    os.symlink(outside, temp_plugin / "agents" / "linked.md")

    scan = scan_kind(temp_plugin, ComponentKind.AGENT)

    assert scan.components == []
    assert [(v.code.value, v.severity.value) for v in scan.result.violations] == [
        ("PATH_SECURITY", "warning"),
    ]
    assert scan.result.violations[0].location == "agents/linked.md"


@needs_symlinks
def test_symlinked_directory_is_not_followed(temp_plugin, tmp_path):
    outside = tmp_path / "elsewhere"
    write_component(outside / "tdd" / "SKILL.md", {})
    os.symlink(outside, temp_plugin / "skills" / "methodology")

    scan = scan_kind(temp_plugin, ComponentKind.SKILL)

    assert scan.components == []
    assert [v.location for v in scan.result.violations] == ["skills/methodology"]


def test_parallel_and_sequential_scans_agree(valid_plugin):
    parallel = scan_tree(valid_plugin, ValidatorSettings(parallel_scan=True))
    sequential = scan_tree(valid_plugin, ValidatorSettings(parallel_scan=False))

    assert identities(parallel) == identities(sequential)
    assert [c.declared_refs for c in parallel.components] == [c.declared_refs for c in sequential.components]


def test_scan_order_is_deterministic(temp_plugin):
    for name in ("zeta", "alpha", "mid"):
        create_skill_file(temp_plugin, f"methodology/{name}")
    scan = scan_tree(temp_plugin)
    assert identities(scan) == [
        "skill:methodology/alpha",
        "skill:methodology/mid",
        "skill:methodology/zeta",
    ]


@pytest.mark.skipif(sys.platform != "linux", reason="needs a filesystem that accepts non-UTF-8 names")
def test_non_utf8_file_name_is_path_security_error(temp_plugin):
    """
    Given: agents/bad<0xff>.md next to a valid agent
    Then: one PATH_SECURITY error with a printable location
    And: the badly named file is not loaded as a component
    """
    create_agent_file(temp_plugin, "tester")
    (temp_plugin / "agents" / os.fsdecode(b"bad\xff.md")).write_text("---\n---\n")

    scan = scan_kind(temp_plugin, ComponentKind.AGENT)

    assert identities(scan) == ["agent:tester"]
    [violation] = scan.result.violations
    assert violation.code.value == "PATH_SECURITY"
    assert violation.is_error
    assert violation.location == "agents/bad\\xff.md"
    assert str(violation.subject) == "agent:agents/bad\\xff.md"
    assert violation.format().isascii()


@pytest.mark.parametrize("parallel", [True, False])
def test_unlistable_directory_does_not_stop_the_run(valid_plugin, monkeypatch, parallel):
    """
    Given: workflows/locked/ cannot be listed
    Then: one PARSE_ERROR for that directory
    And: every other component is still scanned and validated
    """
    locked = valid_plugin / "workflows" / "locked"
    write_component(locked / "nightly.md", {"agents": ["tester"]})
    real_scandir = os.scandir

    def scandir(path):
        if os.fspath(path) == os.fspath(locked):
            raise PermissionError(13, "Permission denied", os.fspath(path))
        return real_scandir(path)

    monkeypatch.setattr("alignkit.discovery.os.scandir", scandir)

    outcome = validate(valid_plugin, ValidatorSettings(parallel_scan=parallel))

    assert codes(outcome) == ["PARSE_ERROR"]
    [violation] = outcome.violations
    assert violation.location == "workflows/locked"
    assert violation.detail == ("unreadable",)
    assert "Permission denied" in violation.message
    assert outcome.stats["on_disk"] == 6
    assert outcome.exit_code == 1

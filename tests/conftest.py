"""
Test fixtures and utilities for alignkit validator tests.

This module provides reusable fixtures for testing the component alignment
validator, including temporary plugin trees, component files, registry
helpers, and assertion helpers.
"""

import os
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import yaml

REPO_ROOT = Path(__file__).resolve().parent.parent

KIND_SECTIONS = {
    "mcp": "mcps",
    "command": "commands",
    "skill": "skills",
    "agent": "agents",
    "workflow": "workflows",
}

# ============================================================================
# Temporary Plugin Fixtures
# ============================================================================


@pytest.fixture
def temp_plugin(tmp_path):
    """
    Create a temporary plugin root with an empty registry.

    Returns a Path to the temporary directory with:
    - registry.yaml (version only)
    - mcps/, commands/, skills/, agents/, workflows/ (empty directories)
    """
    root = tmp_path / "plugin"
    root.mkdir()
    for section in KIND_SECTIONS.values():
        (root / section).mkdir()
    write_registry(root, {"version": "1.0.0"})
    return root


@pytest.fixture
def valid_plugin(temp_plugin):
    """
    Create a temporary plugin with one component of every kind, all aligned.

    Graph:
        workflow testing/full-suite -> agent tester
        agent tester -> skill methodology/tdd, command /dev:test
        skill methodology/tdd -> skill methodology/writing-plans
        skill methodology/writing-plans -> command /dev:test
        command /dev:test -> mcp context7
    """
    registry = read_registry(temp_plugin)
    registry["command_namespaces"] = ["dev"]
    registry["skill_categories"] = ["methodology"]
    write_registry(temp_plugin, registry)

    add_component(temp_plugin, "mcp", "context7")
    add_component(temp_plugin, "command", "/dev:test", mcps=["context7"])
    add_component(temp_plugin, "skill", "methodology/writing-plans", commands=["/dev:test"])
    add_component(temp_plugin, "skill", "methodology/tdd", skills=["methodology/writing-plans"])
    add_component(
        temp_plugin, "agent", "tester",
        skills=["methodology/tdd"], commands=["/dev:test"],
    )
    add_component(temp_plugin, "workflow", "testing/full-suite", agents=["tester"])
    return temp_plugin


# ============================================================================
# Registry Helpers
# ============================================================================


def read_registry(root: Path) -> Dict[str, Any]:
    return yaml.safe_load((root / "registry.yaml").read_text()) or {}


def write_registry(root: Path, data: Dict[str, Any]) -> None:
    (root / "registry.yaml").write_text(yaml.safe_dump(data, sort_keys=False))


def add_to_registry(root: Path, kind: str, component_id: str, **entry: Any) -> None:
    """
    Declare a component in registry.yaml.

    Args:
        root: Plugin root
        kind: Component kind ('agent', 'skill', ...)
        component_id: Component id
        **entry: Entry fields (description, per-kind dependency lists)
    """
    registry = read_registry(root)
    section = registry.get(KIND_SECTIONS[kind]) or {}
    section[component_id] = dict(entry) if entry else None
    registry[KIND_SECTIONS[kind]] = section
    write_registry(root, registry)


# ============================================================================
# Component File Helpers
# ============================================================================


def component_file(root: Path, kind: str, component_id: str) -> Path:
    """Conventional file location for a component."""
    if kind == "command":
        namespace, name = component_id.lstrip("/").split(":", 1)
        return root / "commands" / namespace / f"{name}.md"
    if kind == "skill":
        return root / "skills" / component_id / "SKILL.md"
    if kind == "workflow":
        return root / "workflows" / f"{component_id}.md"
    return root / KIND_SECTIONS[kind] / f"{component_id}.md"


def write_component(path: Path, frontmatter: Optional[Dict[str, Any]] = None, body: str = "") -> Path:
    """Write a markdown file with a frontmatter block."""
    path.parent.mkdir(parents=True, exist_ok=True)
    block = yaml.safe_dump(frontmatter or {}, sort_keys=False) if frontmatter else ""
    path.write_text(f"---\n{block}---\n\n{body or 'Component body.'}\n")
    return path


def create_component_file(root: Path, kind: str, component_id: str, **refs: List[str]) -> Path:
    """
    Create a component file with reference lists in its frontmatter.

    Args:
        root: Plugin root
        kind: Component kind
        component_id: Component id
        **refs: Reference lists keyed by section (skills=[...], commands=[...])
    """
    frontmatter: Dict[str, Any] = {"name": component_id, "description": f"Test {kind} {component_id}"}
    frontmatter.update(refs)
    return write_component(component_file(root, kind, component_id), frontmatter)


def create_agent_file(root: Path, agent_id: str, **refs: List[str]) -> Path:
    return create_component_file(root, "agent", agent_id, **refs)


def create_skill_file(root: Path, skill_id: str, **refs: List[str]) -> Path:
    return create_component_file(root, "skill", skill_id, **refs)


def create_command_file(root: Path, command_id: str, **refs: List[str]) -> Path:
    return create_component_file(root, "command", command_id, **refs)


def create_workflow_file(root: Path, workflow_id: str, **refs: List[str]) -> Path:
    return create_component_file(root, "workflow", workflow_id, **refs)


def add_component(root: Path, kind: str, component_id: str, **refs: List[str]) -> Path:
    """Create the component file and declare it in the registry."""
    add_to_registry(root, kind, component_id)
    return create_component_file(root, kind, component_id, **refs)


# ============================================================================
# Validator Runner Fixture
# ============================================================================


@pytest.fixture
def run_validator():
    """
    Fixture that returns a function to run the validator CLI on a plugin root.

    Returns:
        Function(root, flags=[]) -> CompletedProcess
    """
    def _run(root: Path, flags: Optional[List[str]] = None):
        """
        Run the validator on the given plugin root.

        Args:
            root: Plugin root directory
            flags: Optional list of command-line flags

        Returns:
            subprocess.CompletedProcess with returncode, stdout, stderr
        """
        if flags is None:
            flags = []

        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(
            p for p in (str(REPO_ROOT), env.get("PYTHONPATH", "")) if p
        )
        for key in list(env):
            if key.startswith("ALIGNKIT_"):
                del env[key]

        cmd = [sys.executable, "-m", "alignkit", str(root)] + flags
        return subprocess.run(cmd, capture_output=True, text=True, env=env)

    return _run


def parse_violations(output: str) -> List[Dict[str, str]]:
    """
    Parse violation lines from the text report.

    Format: [FAIL] CODE: location: message
              Fix: action

    Returns:
        List of dictionaries with keys: marker, code, text, fix
    """
    violations: List[Dict[str, str]] = []
    for line in output.splitlines():
        stripped = line.strip()
        if stripped.startswith(("[FAIL] ", "[WARN] ")):
            marker, rest = stripped[1:5], stripped[7:]
            code, _, text = rest.partition(": ")
            violations.append({"marker": marker, "code": code, "text": text, "fix": ""})
        elif stripped.startswith("Fix: ") and violations:
            violations[-1]["fix"] = stripped[len("Fix: "):]
    return violations


# ============================================================================
# Assertion Helpers
# ============================================================================


def assert_validator_passed(result: subprocess.CompletedProcess):
    """Assert that validator passed (exit code 0)."""
    assert result.returncode == 0, f"Validator failed with output: {result.stdout}{result.stderr}"


def assert_validator_failed(result: subprocess.CompletedProcess):
    """Assert that validator reported violations (exit code 1)."""
    assert result.returncode == 1, (
        f"Expected exit code 1, got {result.returncode}. "
        f"Stdout: {result.stdout} Stderr: {result.stderr}"
    )


def assert_error_code(output: str, code: str):
    """Assert that the text report contains an error with the given code."""
    assert f"[FAIL] {code}:" in output, f"Expected error {code} in output. Got: {output}"


def assert_warning_code(output: str, code: str):
    """Assert that the text report contains a warning with the given code."""
    assert f"[WARN] {code}:" in output, f"Expected warning {code} in output. Got: {output}"


def codes(outcome) -> List[str]:
    """Violation codes of a ValidationOutcome, in report order."""
    return [v.code.value for v in outcome.violations]


def violations_with_code(outcome, code: str):
    return [v for v in outcome.violations if v.code.value == code]

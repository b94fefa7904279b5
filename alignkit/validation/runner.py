# alignkit/validation/runner.py
"""
Validation orchestration.

A run is a single pass:

    registry + component tree scan -> graph assembly -> every rule
    -> reverse index over validated edges -> ValidationOutcome

Scanning may use one worker per kind directory; graph assembly and the rules
only start once every worker has finished. All state lives in the values
passed between these steps; nothing is cached between runs.

Usage:
    from alignkit.validation.runner import validate

    outcome = validate("path/to/plugin")
    if not outcome.ok:
        ...
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from alignkit.config.settings import ValidatorSettings, load_settings
from alignkit.discovery import TreeScan, scan_tree
from alignkit.exceptions import FatalValidationError, ParseError
from alignkit.graph import ComponentGraph, Edge, build_graph
from alignkit.paths import resolve
from alignkit.registry import Registry, load_registry
from alignkit.reverse_index import ReverseIndex, build_reverse_index
from alignkit.types import ComponentKind
from alignkit.validation.validators import (
    validate_bijection,
    validate_cycles,
    validate_declaration_drift,
    validate_formats,
    validate_hierarchy,
    validate_references,
    validated_edges,
)
from alignkit.validator import ValidationResult, Violation

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_VALIDATION_FAILED = 1
EXIT_FATAL_ERROR = 2


@dataclass
class ValidationOutcome:
    """Everything a run produced.

    Attributes:
        root: Plugin root that was validated
        violations: All violations, sorted by subject then severity
        reverse_index: identity -> referrers, over validated edges
        graph: The assembled component graph
        registry: The loaded registry
        edges: Edges that passed the existence and hierarchy rules
        stats: Component and reference counts
    """
    root: Path
    violations: Tuple[Violation, ...]
    reverse_index: ReverseIndex
    graph: ComponentGraph
    registry: Registry
    edges: List[Edge] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def errors(self) -> List[Violation]:
        return [v for v in self.violations if v.is_error]

    @property
    def warnings(self) -> List[Violation]:
        return [v for v in self.violations if not v.is_error]

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def exit_code(self) -> int:
        return EXIT_SUCCESS if self.ok else EXIT_VALIDATION_FAILED


def compute_stats(graph: ComponentGraph, edges: List[Edge]) -> Dict[str, Any]:
    """Component counts per kind and reference counts per target kind."""
    components = {kind.value: 0 for kind in ComponentKind}
    references = {kind.value: 0 for kind in ComponentKind}
    for node in graph.nodes():
        components[node.kind.value] += 1
    for _source, target in graph.edges():
        references[target.kind.value] += 1

    return {
        "components": components,
        "references": references,
        "total_components": len(graph),
        "total_references": len(graph.edges()),
        "validated_references": len(edges),
        "in_registry": sum(1 for node in graph.nodes() if node.in_registry),
        "on_disk": sum(1 for node in graph.nodes() if node.on_disk),
    }


class ValidatorRunner:
    """
    Orchestrates a validation run over one plugin root.

    Attributes:
        root: Plugin root directory
        settings: Effective settings for this run
    """

    def __init__(self, root: Union[str, Path], settings: ValidatorSettings):
        self.root = Path(os.path.abspath(os.fspath(root)))
        self.settings = settings
        self.registry_location = Path(os.path.normpath(settings.registry_file)).as_posix()

    def load_registry(self) -> Registry:
        """
        Locate and parse the registry document.

        Raises:
            FatalValidationError: If the root or registry is missing, unreadable or malformed.
        """
        if not self.root.is_dir():
            raise FatalValidationError(f"root directory not found: {self.root}")

        registry_path = resolve(self.root, self.settings.registry_file)
        if not registry_path:
            raise FatalValidationError(f"registry location rejected: {registry_path}")
        if registry_path.is_symlink() or not registry_path.is_file():
            raise FatalValidationError(f"registry file not found: {registry_path}")

        try:
            return load_registry(registry_path, self.settings.yaml_limits)
        except OSError as e:
            raise FatalValidationError(f"cannot read registry {registry_path}: {e}") from e
        except ParseError as e:
            raise FatalValidationError(f"failed to parse registry {registry_path}: {e}") from e

    def scan(self) -> TreeScan:
        return scan_tree(self.root, self.settings)

    def _timed(self, name: str, rule: Callable[[], ValidationResult], result: ValidationResult) -> None:
        start = time.perf_counter()
        rule_result = rule()
        result.extend(rule_result)
        logger.debug(
            "%s check: %d errors, %d warnings (%.3fs)",
            name, len(rule_result.errors), len(rule_result.warnings), time.perf_counter() - start,
        )

    def run_rules(self, graph: ComponentGraph, registry: Registry) -> Tuple[ValidationResult, List[Edge]]:
        """Run every rule to completion over the assembled graph."""
        result = ValidationResult()
        location = self.registry_location

        self._timed("Format", lambda: validate_formats(graph, registry, location), result)
        self._timed("Reference", lambda: validate_references(graph, location), result)
        self._timed("Bijection", lambda: validate_bijection(self.root, graph, location), result)
        self._timed("Hierarchy", lambda: validate_hierarchy(graph, location), result)

        edges = validated_edges(graph)
        self._timed("Cycle", lambda: validate_cycles(graph, edges, location), result)
        self._timed("Drift", lambda: validate_declaration_drift(graph, location), result)
        return result, edges

    def run_all(self) -> ValidationOutcome:
        """
        Run a complete validation pass.

        Returns:
            ValidationOutcome with every violation found

        Raises:
            FatalValidationError: For a missing root or a bad registry.
        """
        start_time = time.perf_counter()

        registry = self.load_registry()
        scan = self.scan()
        graph = build_graph(registry, scan.components)

        result = ValidationResult()
        result.extend(scan.result)
        rule_result, edges = self.run_rules(graph, registry)
        result.extend(rule_result)

        outcome = ValidationOutcome(
            root=self.root,
            violations=tuple(result.sorted_violations()),
            reverse_index=build_reverse_index(graph, edges),
            graph=graph,
            registry=registry,
            edges=edges,
            stats=compute_stats(graph, edges),
        )

        logger.debug(
            "Validation completed in %.3fs: %d errors, %d warnings",
            time.perf_counter() - start_time, len(outcome.errors), len(outcome.warnings),
        )
        return outcome


def validate(root: Union[str, Path], settings: Optional[ValidatorSettings] = None) -> ValidationOutcome:
    """
    Validate the plugin tree at root.

    Args:
        root: Plugin root directory
        settings: Settings to use (None resolves them from the environment and
            root/.alignkit.yaml)

    Returns:
        ValidationOutcome

    Raises:
        FatalValidationError: If the run cannot proceed.
    """
    root_path = Path(root)
    if settings is None:
        settings = load_settings(root_path if root_path.is_dir() else None)
    return ValidatorRunner(root_path, settings).run_all()

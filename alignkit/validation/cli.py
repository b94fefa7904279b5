# alignkit/validation/cli.py
"""
CLI entry point for the component alignment validator.

Usage:
    alignkit [ROOT] [--format text|markdown|json] [--tree KIND:ID] [--debug]
    python -m alignkit [ROOT] ...
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from alignkit import __version__
from alignkit.config.settings import load_settings
from alignkit.exceptions import FatalValidationError
from alignkit.types import Identity
from alignkit.validation.reporting import (
    build_dependency_tree,
    build_report_json,
    build_report_markdown,
    build_report_text,
    format_tree_markdown,
    format_tree_text,
)
from alignkit.validation.runner import EXIT_FATAL_ERROR, ValidatorRunner

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="alignkit",
        description="Component alignment validator - check registry/file sync and the reference graph",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0 - All validation checks passed (warnings allowed)
  1 - Validation failed (at least one error)
  2 - Fatal error (missing root, unreadable or malformed registry)

Examples:
  alignkit
  alignkit path/to/plugin --format markdown
  alignkit --tree agent:fullstack-developer
  alignkit --format json --debug
        """,
    )

    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Plugin root directory (default: current directory)",
    )

    parser.add_argument(
        "--format",
        choices=["text", "markdown", "json"],
        default="text",
        help="Report format (default: text)",
    )

    parser.add_argument(
        "--tree",
        metavar="KIND:ID",
        help="Print the dependency tree of one component instead of the violation report",
    )

    parser.add_argument(
        "--registry",
        metavar="PATH",
        help="Registry document, relative to the root (default: registry.yaml)",
    )

    parser.add_argument(
        "--no-parallel",
        action="store_true",
        help="Scan kind directories sequentially",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging with timing and validation steps (stderr)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"alignkit {__version__}",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT, stream=sys.stderr)

    tree_identity = None
    if args.tree:
        try:
            tree_identity = Identity.parse(args.tree)
        except ValueError as e:
            parser.error(f"--tree: {e}")

    root = Path(args.root)
    settings = load_settings(
        root if root.is_dir() else None,
        registry_file=args.registry,
        parallel_scan=False if args.no_parallel else None,
    )
    runner = ValidatorRunner(root, settings)
    logger.debug("Validating %s (format=%s)", runner.root, args.format)

    try:
        outcome = runner.run_all()
    except FatalValidationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(EXIT_FATAL_ERROR)

    if tree_identity is not None:
        try:
            tree = build_dependency_tree(outcome, tree_identity)
        except KeyError:
            print(f"ERROR: unknown component: {tree_identity}", file=sys.stderr)
            sys.exit(EXIT_FATAL_ERROR)
        if args.format == "json":
            print(tree.model_dump_json(indent=2))
        elif args.format == "markdown":
            print(format_tree_markdown(tree))
        else:
            sys.stdout.write(format_tree_text(tree))
        sys.exit(outcome.exit_code)

    if args.format == "json":
        print(build_report_json(outcome).model_dump_json(indent=2))
    elif args.format == "markdown":
        print(build_report_markdown(outcome))
    else:
        sys.stdout.write(build_report_text(outcome))

    sys.exit(outcome.exit_code)


if __name__ == "__main__":
    main()

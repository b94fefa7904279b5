"""Validator settings.

Resolution order for every field:
    explicit override > environment variable > <root>/.alignkit.yaml > default

Settings are a plain value passed down the call chain; nothing is cached at
module level.

Usage:
    from alignkit.config.settings import ValidatorSettings, load_settings

    settings = load_settings(root)                    # env + config file
    settings = load_settings(root, parallel_scan=False)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from alignkit.exceptions import ParseError
from alignkit.frontmatter import YamlLimits, load_yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".alignkit.yaml"
ENV_PREFIX = "ALIGNKIT_"

# Sanity bounds for numeric settings
MIN_YAML_NODES = 16
MAX_YAML_NODES = 1_000_000
MIN_YAML_DEPTH = 4
MAX_YAML_DEPTH = 512
MIN_FILE_BYTES = 1024
MAX_FILE_BYTES = 64 * 1024 * 1024

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ValidatorSettings:
    """Effective validator configuration.

    Attributes:
        registry_file: Registry document, relative to the root
        max_yaml_nodes: Expanded-node bound for any YAML document
        max_yaml_depth: Nesting-depth bound for any YAML document
        max_file_bytes: Component files larger than this are not parsed
        parallel_scan: Scan kind directories concurrently
    """
    registry_file: str = "registry.yaml"
    max_yaml_nodes: int = 10_000
    max_yaml_depth: int = 64
    max_file_bytes: int = 1024 * 1024
    parallel_scan: bool = True

    @property
    def yaml_limits(self) -> YamlLimits:
        return YamlLimits(max_nodes=self.max_yaml_nodes, max_depth=self.max_yaml_depth)


DEFAULT_SETTINGS = ValidatorSettings()

_BOUNDS = {
    "max_yaml_nodes": (MIN_YAML_NODES, MAX_YAML_NODES),
    "max_yaml_depth": (MIN_YAML_DEPTH, MAX_YAML_DEPTH),
    "max_file_bytes": (MIN_FILE_BYTES, MAX_FILE_BYTES),
}


def _coerce(name: str, raw: Any, source: str) -> Optional[Any]:
    """Convert a raw config value to the field's type, or None if invalid."""
    default = getattr(DEFAULT_SETTINGS, name)

    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        logger.warning("Ignoring %s setting '%s': %r is not a boolean", source, name, raw)
        return None

    if isinstance(default, int):
        if isinstance(raw, bool):
            logger.warning("Ignoring %s setting '%s': %r is not an integer", source, name, raw)
            return None
        try:
            value = int(raw)
        except (TypeError, ValueError):
            logger.warning("Ignoring %s setting '%s': %r is not an integer", source, name, raw)
            return None
        low, high = _BOUNDS[name]
        if value < low or value > high:
            clamped = min(max(value, low), high)
            logger.warning(
                "Setting '%s' value %d is outside [%d, %d]. Clamping to %d.",
                name, value, low, high, clamped,
            )
            value = clamped
        return value

    if not isinstance(raw, str) or not raw.strip():
        logger.warning("Ignoring %s setting '%s': expected a non-empty string", source, name)
        return None
    return raw.strip()


def _from_mapping(values: Mapping[str, Any], source: str) -> Dict[str, Any]:
    known = {f.name for f in fields(ValidatorSettings)}
    resolved: Dict[str, Any] = {}
    for name, raw in values.items():
        if name not in known:
            logger.warning("Ignoring unknown %s setting '%s'", source, name)
            continue
        value = _coerce(name, raw, source)
        if value is not None:
            resolved[name] = value
    return resolved


def _from_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
    values = {}
    for f in fields(ValidatorSettings):
        env_key = ENV_PREFIX + f.name.upper()
        if env_key in environ:
            values[f.name] = environ[env_key]
    return _from_mapping(values, "environment")


def _from_config_file(root: Path) -> Dict[str, Any]:
    config_path = root / CONFIG_FILENAME
    if not config_path.is_file() or config_path.is_symlink():
        return {}
    try:
        data = load_yaml(config_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, ParseError) as e:
        logger.warning("Ignoring %s: %s", config_path, e)
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: top level must be a mapping", config_path)
        return {}
    return _from_mapping(data, CONFIG_FILENAME)


def load_settings(
    root: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> ValidatorSettings:
    """Resolve settings for a validation run.

    Args:
        root: Plugin root (where .alignkit.yaml is looked up); None skips the file
        environ: Environment mapping (defaults to os.environ)
        **overrides: Explicit values; None values are ignored

    Returns:
        ValidatorSettings with every field resolved.
    """
    resolved: Dict[str, Any] = {}
    if root is not None:
        resolved.update(_from_config_file(root))
    resolved.update(_from_environment(os.environ if environ is None else environ))
    resolved.update(
        _from_mapping({k: v for k, v in overrides.items() if v is not None}, "override")
    )
    settings = replace(DEFAULT_SETTINGS, **resolved)
    logger.debug("Resolved settings: %s", settings)
    return settings

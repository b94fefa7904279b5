"""Configuration for the alignment validator."""

from .settings import DEFAULT_SETTINGS, ValidatorSettings, load_settings

__all__ = ["DEFAULT_SETTINGS", "ValidatorSettings", "load_settings"]

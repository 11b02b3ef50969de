"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when a configuration value cannot be interpreted."""


class MissingConfigurationError(ConfigurationError):
    """Raised when a required environment variable is absent or blank."""

"""Application configuration helpers."""

from __future__ import annotations

from .bulk import BulkConfig, get_bulk_config
from .engine import EngineConfig, get_engine_config
from .env import int_env, optional_env, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "BulkConfig",
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "EngineConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_bulk_config",
    "get_database_config",
    "get_engine_config",
    "get_storage_config",
    "int_env",
    "optional_env",
    "require_env_vars",
]

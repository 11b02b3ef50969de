"""Defaults for bulk analysis and load runs."""

from __future__ import annotations

from dataclasses import dataclass

from .env import int_env, optional_env

DEFAULT_ENTITY_TYPE = "GENERIC"
DEFAULT_MAX_RESOLUTION_INFOS = 1000
DEFAULT_MAX_ERRORS = 1000
DEFAULT_TOP_ERRORS = 10
DEFAULT_PROGRESS_INTERVAL = 1000


@dataclass(frozen=True, slots=True)
class BulkConfig:
    default_data_source: str | None = None
    default_entity_type: str | None = DEFAULT_ENTITY_TYPE
    max_resolution_infos: int = DEFAULT_MAX_RESOLUTION_INFOS
    max_errors: int = DEFAULT_MAX_ERRORS
    top_errors: int = DEFAULT_TOP_ERRORS
    # zero disables the failure threshold
    max_failures: int = 0
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL


def get_bulk_config() -> BulkConfig:
    return BulkConfig(
        default_data_source=optional_env("BULKDATA_DEFAULT_DATA_SOURCE"),
        default_entity_type=optional_env("BULKDATA_DEFAULT_ENTITY_TYPE") or DEFAULT_ENTITY_TYPE,
        max_resolution_infos=int_env("BULKDATA_MAX_RESOLUTION_INFOS", DEFAULT_MAX_RESOLUTION_INFOS),
        max_errors=int_env("BULKDATA_MAX_ERRORS", DEFAULT_MAX_ERRORS),
        top_errors=int_env("BULKDATA_TOP_ERRORS", DEFAULT_TOP_ERRORS),
        max_failures=int_env("BULKDATA_MAX_FAILURES", 0),
        progress_interval=int_env(
            "BULKDATA_PROGRESS_INTERVAL", DEFAULT_PROGRESS_INTERVAL, minimum=1
        ),
    )

"""Public interface for the resolution engine adapter."""

from __future__ import annotations

from .client import HttpResolutionEngine, catalog_resilience_config, records_resilience_config
from .schema import DataSourcesResponse, ErrorResponse, LoadRecordResponse, ResolutionInfoPayload
from .translator import parse_resolution_info

__all__ = [
    "DataSourcesResponse",
    "ErrorResponse",
    "HttpResolutionEngine",
    "LoadRecordResponse",
    "ResolutionInfoPayload",
    "catalog_resilience_config",
    "parse_resolution_info",
    "records_resilience_config",
]

"""Domain model for bulk record analysis and loading."""

from __future__ import annotations

from .analysis import BulkAnalysis, DataSourceStat, EntityTypeStat
from .enums import AttributeClass, LoadStatus, RecordFormat
from .identifiers import EntityId, EntityIdentifier, RecordId, parse_entity_identifier
from .load_result import (
    BulkLoadError,
    BulkLoadResult,
    DataSourceLoadResult,
    EntityTypeLoadResult,
    ErrorSummary,
    LoadCounts,
    LoadProgress,
    LoadRun,
)
from .records import (
    DATA_SOURCE_KEY,
    ENTITY_TYPE_KEY,
    LOAD_ID_KEY,
    RECORD_ID_KEY,
    SOURCE_ID_KEY,
    RawRecord,
    normalize_code,
)
from .resolution import FlaggedEntity, ResolutionInfo

__all__ = [
    "DATA_SOURCE_KEY",
    "ENTITY_TYPE_KEY",
    "LOAD_ID_KEY",
    "RECORD_ID_KEY",
    "SOURCE_ID_KEY",
    "AttributeClass",
    "BulkAnalysis",
    "BulkLoadError",
    "BulkLoadResult",
    "DataSourceLoadResult",
    "DataSourceStat",
    "EntityId",
    "EntityIdentifier",
    "EntityTypeLoadResult",
    "EntityTypeStat",
    "ErrorSummary",
    "FlaggedEntity",
    "LoadCounts",
    "LoadProgress",
    "LoadRun",
    "LoadStatus",
    "RawRecord",
    "RecordFormat",
    "RecordId",
    "ResolutionInfo",
    "normalize_code",
    "parse_entity_identifier",
]

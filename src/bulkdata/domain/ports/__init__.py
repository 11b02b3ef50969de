"""Ports the bulk pipeline depends on."""

from __future__ import annotations

from .engine import (
    DataSourceCatalog,
    EngineError,
    IngestOutcome,
    RecordAdded,
    RecordDuplicate,
    RecordIngestor,
    RecordRejected,
    SubmittedRecord,
)
from .persistence import LoadRunRepository
from .records import RecordSource, RecordStreamError
from .unit_of_work import LoadRunRepositories, LoadRunUnitOfWork, RepositoryCollection, UnitOfWork

__all__ = [
    "DataSourceCatalog",
    "EngineError",
    "IngestOutcome",
    "LoadRunRepositories",
    "LoadRunRepository",
    "LoadRunUnitOfWork",
    "RecordAdded",
    "RecordDuplicate",
    "RecordIngestor",
    "RecordRejected",
    "RecordSource",
    "RecordStreamError",
    "RepositoryCollection",
    "SubmittedRecord",
    "UnitOfWork",
]

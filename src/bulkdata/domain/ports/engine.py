"""Port for submitting records to the entity-resolution engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from bulkdata.domain.model import ResolutionInfo


class EngineError(RuntimeError):
    """Raised when the engine cannot be reached or answers outside its contract."""

    def __init__(self, message: str, *, code: str = "ENGINE_UNAVAILABLE") -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True, slots=True)
class SubmittedRecord:
    """A classified record ready for the engine's per-record ingestion call."""

    data_source: str
    payload: Mapping[str, object]
    record_id: str | None = None
    entity_type: str | None = None
    load_id: str | None = None


@dataclass(frozen=True, slots=True)
class RecordAdded:
    info: ResolutionInfo


@dataclass(frozen=True, slots=True)
class RecordDuplicate:
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class RecordRejected:
    code: str
    message: str


type IngestOutcome = RecordAdded | RecordDuplicate | RecordRejected


@runtime_checkable
class RecordIngestor(Protocol):
    """Per-record ingestion operation of the resolution engine.

    Engine-side rejections come back as ``RecordRejected``; only transport level
    failures raise ``EngineError``.
    """

    def add_record(self, record: SubmittedRecord) -> IngestOutcome: ...


@runtime_checkable
class DataSourceCatalog(Protocol):
    """Lists the data source codes the engine is configured for."""

    def data_sources(self) -> frozenset[str]: ...

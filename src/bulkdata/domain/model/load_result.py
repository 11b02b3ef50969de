"""Outcome types for bulk load runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .enums import LoadStatus
from .identifiers import RecordId

if TYPE_CHECKING:
    from datetime import datetime

    from .resolution import ResolutionInfo


@dataclass(frozen=True, slots=True)
class BulkLoadError:
    """One record that failed to load; never aborts the run on its own."""

    code: str
    message: str
    data_source: str | None = None
    record_id: str | None = None
    line_number: int | None = None

    @property
    def record(self) -> RecordId | None:
        if self.data_source is None or self.record_id is None:
            return None
        return RecordId(data_source=self.data_source, record_id=self.record_id)


@dataclass(frozen=True, slots=True)
class ErrorSummary:
    """How often an error code occurred, with the first message seen for it."""

    code: str
    message: str
    count: int


@dataclass(frozen=True, slots=True)
class LoadCounts:
    submitted: int = 0
    loaded: int = 0
    skipped: int = 0
    failed: int = 0
    incomplete: int = 0


@dataclass(frozen=True, slots=True)
class DataSourceLoadResult(LoadCounts):
    data_source: str | None = None


@dataclass(frozen=True, slots=True)
class EntityTypeLoadResult(LoadCounts):
    entity_type: str | None = None


@dataclass(frozen=True, slots=True)
class LoadProgress:
    """Consistent read of a running load, safe to hand to polling clients."""

    status: LoadStatus = LoadStatus.NOT_STARTED
    submitted: int = 0
    loaded: int = 0
    skipped: int = 0
    failed: int = 0
    incomplete: int = 0
    abort_reason: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class BulkLoadResult:
    """Terminal aggregate of a load run.

    ``resolutions`` is capped; ``resolution_count`` and the entity totals keep counting
    after the cap is reached. ``errors`` is capped as well while ``top_errors`` and
    ``failed`` cover every failure.
    """

    load_id: str
    status: LoadStatus
    submitted: int = 0
    loaded: int = 0
    skipped: int = 0
    failed: int = 0
    incomplete: int = 0
    data_source_results: tuple[DataSourceLoadResult, ...] = ()
    entity_type_results: tuple[EntityTypeLoadResult, ...] = ()
    resolutions: tuple[ResolutionInfo, ...] = ()
    resolution_count: int = 0
    affected_entity_total: int = 0
    flagged_entity_total: int = 0
    errors: tuple[BulkLoadError, ...] = ()
    top_errors: tuple[ErrorSummary, ...] = ()
    abort_reason: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    media_type: str | None = None
    character_encoding: str | None = None

    @property
    def partial(self) -> bool:
        return self.status is LoadStatus.ABORTED

    @property
    def errors_truncated(self) -> bool:
        return len(self.errors) < self.failed

    def data_source_result(self, data_source: str | None) -> DataSourceLoadResult | None:
        return next(
            (item for item in self.data_source_results if item.data_source == data_source),
            None,
        )

    def entity_type_result(self, entity_type: str | None) -> EntityTypeLoadResult | None:
        return next(
            (item for item in self.entity_type_results if item.entity_type == entity_type),
            None,
        )


@dataclass(frozen=True, slots=True)
class LoadRun:
    """A load run as stored for later status queries."""

    load_id: str
    progress: LoadProgress
    errors: tuple[BulkLoadError, ...] = ()

    @property
    def status(self) -> LoadStatus:
        return self.progress.status

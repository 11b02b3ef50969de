"""Live bulk load of a record stream into the resolution engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from bulkdata.config.bulk import (
    DEFAULT_MAX_ERRORS,
    DEFAULT_MAX_RESOLUTION_INFOS,
    DEFAULT_PROGRESS_INTERVAL,
    DEFAULT_TOP_ERRORS,
)
from bulkdata.domain.bulk_pipeline.aggregator import ResolutionInfoAggregator
from bulkdata.domain.bulk_pipeline.classifier import RecordClassifier
from bulkdata.domain.bulk_pipeline.errors import (
    INCOMPLETE_RECORD,
    MALFORMED_RECORD,
    UNKNOWN_DATA_SOURCE,
    LoadErrorTracker,
)
from bulkdata.domain.bulk_pipeline.tracker import RecordOutcome
from bulkdata.domain.model import (
    BulkLoadError,
    BulkLoadResult,
    DataSourceLoadResult,
    EntityTypeLoadResult,
)
from bulkdata.domain.ports.engine import (
    EngineError,
    RecordAdded,
    RecordDuplicate,
    RecordRejected,
    SubmittedRecord,
)
from bulkdata.domain.ports.records import RecordStreamError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from bulkdata.domain.bulk_pipeline.classifier import RecordClassification
    from bulkdata.domain.bulk_pipeline.tracker import LoadStatusTracker
    from bulkdata.domain.model import LoadProgress, RawRecord
    from bulkdata.domain.ports.engine import IngestOutcome, RecordIngestor

log = getLogger(__name__)


@dataclass(slots=True)
class _Tally:
    submitted: int = 0
    loaded: int = 0
    skipped: int = 0
    failed: int = 0
    incomplete: int = 0

    def count(self, outcome: RecordOutcome, *, incomplete: bool) -> None:
        self.submitted += 1
        match outcome:
            case RecordOutcome.LOADED:
                self.loaded += 1
            case RecordOutcome.SKIPPED:
                self.skipped += 1
            case RecordOutcome.FAILED:
                self.failed += 1
                self.incomplete += incomplete


@dataclass(slots=True)
class _LoadRunState:
    """Per-run accumulators; one instance per ``load`` call, never shared."""

    resolutions: ResolutionInfoAggregator
    errors: LoadErrorTracker
    data_sources: dict[str | None, _Tally] = field(default_factory=dict[str | None, _Tally])
    entity_types: dict[str | None, _Tally] = field(default_factory=dict[str | None, _Tally])

    def count(
        self,
        classification: RecordClassification,
        outcome: RecordOutcome,
        *,
        incomplete: bool = False,
    ) -> None:
        source = self.data_sources.setdefault(classification.data_source, _Tally())
        source.count(outcome, incomplete=incomplete)
        entity_type = self.entity_types.setdefault(classification.entity_type, _Tally())
        entity_type.count(outcome, incomplete=incomplete)


@dataclass(slots=True)
class BulkLoader:
    """Submit records one at a time and fold every engine answer into a load result.

    Rejected or malformed records are recorded as errors and the run goes on. Only an
    unreadable source, the failure threshold or an external abort on the tracker end
    a run early; a result is returned in every case.
    """

    engine: RecordIngestor
    classifier: RecordClassifier = field(default_factory=RecordClassifier)
    known_data_sources: frozenset[str] | None = None
    max_resolution_infos: int = DEFAULT_MAX_RESOLUTION_INFOS
    max_errors: int = DEFAULT_MAX_ERRORS
    top_errors: int = DEFAULT_TOP_ERRORS
    max_failures: int = 0
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL
    on_progress: Callable[[LoadProgress], None] | None = None

    def load(
        self,
        records: Iterable[RawRecord],
        tracker: LoadStatusTracker,
        *,
        media_type: str | None = None,
        character_encoding: str | None = None,
    ) -> BulkLoadResult:
        tracker.start()
        log.info("Starting bulk load %s", tracker.load_id)
        state = _LoadRunState(
            resolutions=ResolutionInfoAggregator(self.max_resolution_infos),
            errors=LoadErrorTracker(self.max_errors, top_n=self.top_errors),
        )

        if self.on_progress is not None:
            self.on_progress(tracker.progress())
        try:
            self._consume(iter(records), tracker, state)
        except BaseException as exc:
            tracker.abort(f"load interrupted: {exc!r}")
            raise

        tracker.complete()
        final = tracker.progress()
        log.info(
            "Finished bulk load %s: status=%s, submitted=%s, loaded=%s, skipped=%s, failed=%s",
            tracker.load_id,
            final.status,
            final.submitted,
            final.loaded,
            final.skipped,
            final.failed,
        )
        if self.on_progress is not None:
            self.on_progress(final)
        return self._result(
            tracker.load_id,
            final,
            state,
            media_type=media_type,
            character_encoding=character_encoding,
        )

    def _consume(
        self,
        iterator: Iterator[RawRecord],
        tracker: LoadStatusTracker,
        state: _LoadRunState,
    ) -> None:
        while not tracker.aborted:
            try:
                record = next(iterator)
            except StopIteration:
                break
            except RecordStreamError as exc:
                tracker.abort(f"record source failed: {exc}")
                break

            progress = self._process(record, tracker, state)
            if self.max_failures > 0 and progress.failed >= self.max_failures:
                tracker.abort(f"too many failures: {progress.failed} records failed to load")
            if self.on_progress is not None and self._progress_due(progress):
                self.on_progress(progress)

    def _process(
        self,
        record: RawRecord,
        tracker: LoadStatusTracker,
        state: _LoadRunState,
    ) -> LoadProgress:
        classification = self.classifier.classify(record)
        data_source = classification.data_source

        def fail(code: str, message: str, *, incomplete: bool = False) -> LoadProgress:
            state.errors.record(
                BulkLoadError(
                    code=code,
                    message=message,
                    data_source=data_source,
                    record_id=classification.record_id,
                    line_number=record.line_number,
                )
            )
            state.count(classification, RecordOutcome.FAILED, incomplete=incomplete)
            return tracker.count(RecordOutcome.FAILED, incomplete=incomplete)

        if classification.malformed:
            return fail(
                MALFORMED_RECORD,
                classification.reason or "malformed record",
                incomplete=True,
            )
        if data_source is None:
            return fail(INCOMPLETE_RECORD, "record has no data source", incomplete=True)
        if self.known_data_sources is not None and data_source not in self.known_data_sources:
            return fail(UNKNOWN_DATA_SOURCE, f"unrecognized data source: {data_source}")

        outcome = self._submit(
            SubmittedRecord(
                data_source=data_source,
                payload=record.to_payload(
                    data_source=data_source,
                    entity_type=classification.entity_type,
                    load_id=tracker.load_id,
                ),
                record_id=classification.record_id,
                entity_type=classification.entity_type,
                load_id=tracker.load_id,
            )
        )
        match outcome:
            case RecordAdded(info=info):
                state.resolutions.fold(info)
                state.count(classification, RecordOutcome.LOADED)
                return tracker.count(RecordOutcome.LOADED)
            case RecordDuplicate():
                state.count(classification, RecordOutcome.SKIPPED)
                return tracker.count(RecordOutcome.SKIPPED)
            case RecordRejected(code=code, message=message):
                log.debug(
                    "Engine rejected %s/%s: %s %s",
                    data_source,
                    classification.record_id,
                    code,
                    message,
                )
                return fail(code, message)

    def _progress_due(self, progress: LoadProgress) -> bool:
        return self.progress_interval > 0 and progress.submitted % self.progress_interval == 0

    def _submit(self, record: SubmittedRecord) -> IngestOutcome:
        try:
            return self.engine.add_record(record)
        except EngineError as exc:
            return RecordRejected(code=exc.code, message=str(exc))

    @staticmethod
    def _result(
        load_id: str,
        progress: LoadProgress,
        state: _LoadRunState,
        *,
        media_type: str | None,
        character_encoding: str | None,
    ) -> BulkLoadResult:
        return BulkLoadResult(
            load_id=load_id,
            status=progress.status,
            submitted=progress.submitted,
            loaded=progress.loaded,
            skipped=progress.skipped,
            failed=progress.failed,
            incomplete=progress.incomplete,
            data_source_results=tuple(
                DataSourceLoadResult(
                    data_source=code,
                    submitted=tally.submitted,
                    loaded=tally.loaded,
                    skipped=tally.skipped,
                    failed=tally.failed,
                    incomplete=tally.incomplete,
                )
                for code, tally in state.data_sources.items()
            ),
            entity_type_results=tuple(
                EntityTypeLoadResult(
                    entity_type=code,
                    submitted=tally.submitted,
                    loaded=tally.loaded,
                    skipped=tally.skipped,
                    failed=tally.failed,
                    incomplete=tally.incomplete,
                )
                for code, tally in state.entity_types.items()
            ),
            resolutions=state.resolutions.snapshot(),
            resolution_count=state.resolutions.folded_count,
            affected_entity_total=state.resolutions.affected_total,
            flagged_entity_total=state.resolutions.flagged_total,
            errors=state.errors.errors(),
            top_errors=state.errors.top_errors(),
            abort_reason=progress.abort_reason,
            started_at=progress.started_at,
            finished_at=progress.finished_at,
            media_type=media_type,
            character_encoding=character_encoding,
        )

"""Application services for analyzing and loading bulk record sets."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from bulkdata.config.bulk import BulkConfig
from bulkdata.domain.bulk_pipeline import (
    BulkAnalyzer,
    BulkLoader,
    LoadStatusTracker,
    RecordClassifier,
)
from bulkdata.domain.model import LoadStatus

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable

    from bulkdata.domain.bulk_pipeline import LoadRegistry
    from bulkdata.domain.model import BulkAnalysis, BulkLoadResult, LoadProgress, LoadRun
    from bulkdata.domain.ports import LoadRunUnitOfWork, RecordIngestor, RecordSource

log = getLogger(__name__)


class UnknownDataSourceError(ValueError):
    """Raised when a load maps records onto data sources the engine does not know."""

    def __init__(self, codes: frozenset[str]) -> None:
        super().__init__(f"Unrecognized data source(s): {', '.join(sorted(codes))}")
        self.codes = codes


def analyze_bulk_records(
    source: RecordSource,
    *,
    classifier: RecordClassifier | None = None,
    cancel: threading.Event | None = None,
) -> BulkAnalysis:
    """Produce a structural summary of ``source`` without submitting anything."""

    analyzer = BulkAnalyzer(classifier=classifier or RecordClassifier())
    return analyzer.analyze(
        source,
        cancel=cancel,
        media_type=source.record_format.media_type,
        character_encoding=source.character_encoding,
    )


def check_data_sources(classifier: RecordClassifier, known: frozenset[str]) -> None:
    """Reject mappings and defaults that target data sources the engine lacks."""

    requested = set(classifier.data_source_map.targets())
    if classifier.default_data_source:
        requested.add(classifier.default_data_source.strip().upper())
    unknown = frozenset(requested - known)
    if unknown:
        raise UnknownDataSourceError(unknown)


def load_bulk_records(
    source: RecordSource,
    *,
    engine: RecordIngestor,
    load_id: str,
    classifier: RecordClassifier | None = None,
    known_data_sources: frozenset[str] | None = None,
    unit_of_work_factory: Callable[[], LoadRunUnitOfWork] | None = None,
    registry: LoadRegistry | None = None,
    config: BulkConfig | None = None,
) -> BulkLoadResult:
    """Load ``source`` into the engine, recording progress for polling clients.

    When a registry is given the run can be aborted through it by load id while this
    call is in flight. When a unit-of-work factory is given the run is stored on start,
    at every progress interval and on completion.
    """

    settings = config or BulkConfig()
    effective_classifier = classifier or RecordClassifier(
        default_data_source=settings.default_data_source,
        default_entity_type=settings.default_entity_type,
    )
    if known_data_sources is not None:
        check_data_sources(effective_classifier, known_data_sources)

    tracker = LoadStatusTracker(load_id)
    if registry is not None:
        registry.register(tracker)

    on_progress: Callable[[LoadProgress], None] | None = None
    if unit_of_work_factory is not None:
        on_progress = _progress_writer(load_id, unit_of_work_factory)

    loader = BulkLoader(
        engine=engine,
        classifier=effective_classifier,
        known_data_sources=known_data_sources,
        max_resolution_infos=settings.max_resolution_infos,
        max_errors=settings.max_errors,
        top_errors=settings.top_errors,
        max_failures=settings.max_failures,
        progress_interval=settings.progress_interval,
        on_progress=on_progress,
    )
    try:
        result = loader.load(
            source,
            tracker,
            media_type=source.record_format.media_type,
            character_encoding=source.character_encoding,
        )
    except BaseException as exc:
        if unit_of_work_factory is not None:
            _store_final_progress(
                tracker, unit_of_work_factory, reason=f"load interrupted: {exc!r}"
            )
        raise
    finally:
        if registry is not None:
            registry.discard(load_id)

    if unit_of_work_factory is not None:
        with unit_of_work_factory() as uow:
            uow.repositories.load_runs.save_result(result)
            uow.commit()
    return result


def get_load_run(
    load_id: str,
    *,
    unit_of_work_factory: Callable[[], LoadRunUnitOfWork],
) -> LoadRun | None:
    with unit_of_work_factory() as uow:
        return uow.repositories.load_runs.get(load_id)


def list_load_runs(
    *,
    unit_of_work_factory: Callable[[], LoadRunUnitOfWork],
    limit: int = 20,
) -> list[LoadRun]:
    with unit_of_work_factory() as uow:
        return uow.repositories.load_runs.list_recent(limit)


def _store_final_progress(
    tracker: LoadStatusTracker,
    unit_of_work_factory: Callable[[], LoadRunUnitOfWork],
    *,
    reason: str,
) -> None:
    """Persist the terminal state of a run whose load call raised."""

    if tracker.status is LoadStatus.NOT_STARTED:
        return
    if tracker.status is LoadStatus.IN_PROGRESS:
        tracker.abort(reason)
    try:
        with unit_of_work_factory() as uow:
            uow.repositories.load_runs.save_progress(tracker.load_id, tracker.progress())
            uow.commit()
    except Exception:
        log.exception("Could not store the final state of load %s", tracker.load_id)


def _progress_writer(
    load_id: str,
    unit_of_work_factory: Callable[[], LoadRunUnitOfWork],
) -> Callable[[LoadProgress], None]:
    def write(progress: LoadProgress) -> None:
        with unit_of_work_factory() as uow:
            uow.repositories.load_runs.save_progress(load_id, progress)
            uow.commit()
        log.debug("Stored progress for %s: %s submitted", load_id, progress.submitted)

    return write

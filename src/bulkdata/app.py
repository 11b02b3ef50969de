"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from bulkdata.adapters.engine import HttpResolutionEngine
from bulkdata.adapters.records import open_records, read_head
from bulkdata.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLoadRunUnitOfWork,
    is_started,
    startup,
)
from bulkdata.config import get_bulk_config
from bulkdata.domain.bulk_data import (
    analyze_bulk_records,
    get_load_run,
    list_load_runs,
    load_bulk_records,
)
from bulkdata.domain.bulk_pipeline import CodeMapping, LoadRegistry, RecordClassifier, make_load_id
from bulkdata.domain.model import LoadRun
from bulkdata.domain.ports.unit_of_work import LoadRunUnitOfWork

if TYPE_CHECKING:
    import threading
    from collections.abc import Mapping
    from pathlib import Path

    from bulkdata.config import BulkConfig
    from bulkdata.domain.model import BulkAnalysis, BulkLoadResult, RecordFormat
    from bulkdata.domain.ports import RecordIngestor

UnitOfWorkFactory = Callable[[], LoadRunUnitOfWork]

log = getLogger(__name__)

# loads started by this process, abortable by id from signal handlers or other threads
LOAD_REGISTRY = LoadRegistry()


def build_classifier(
    config: BulkConfig,
    *,
    default_data_source: str | None = None,
    default_entity_type: str | None = None,
    data_source_map: Mapping[str | None, str] | None = None,
    entity_type_map: Mapping[str | None, str] | None = None,
) -> RecordClassifier:
    return RecordClassifier(
        default_data_source=default_data_source or config.default_data_source,
        default_entity_type=default_entity_type or config.default_entity_type,
        data_source_map=CodeMapping.of(data_source_map),
        entity_type_map=CodeMapping.of(entity_type_map),
    )


def analyze_file(
    path: Path,
    *,
    record_format: RecordFormat | None = None,
    character_encoding: str = "utf-8",
    classifier: RecordClassifier | None = None,
    cancel: threading.Event | None = None,
) -> BulkAnalysis:
    """Summarise a bulk file's data sources, entity types and attribute classes."""

    effective_classifier = classifier or build_classifier(get_bulk_config())
    with open_records(
        path,
        record_format=record_format,
        character_encoding=character_encoding,
    ) as reader:
        analysis = analyze_bulk_records(reader, classifier=effective_classifier, cancel=cancel)

    log.info(
        "Finished analysis of %s: records=%s, malformed=%s, data_sources=%s, complete=%s",
        path,
        analysis.record_count,
        analysis.malformed_count,
        len(analysis.data_source_stats),
        analysis.complete,
    )
    return analysis


def load_file(
    path: Path,
    *,
    record_format: RecordFormat | None = None,
    character_encoding: str = "utf-8",
    source_id: str | None = None,
    classifier: RecordClassifier | None = None,
    load_id: str | None = None,
    engine: RecordIngestor | None = None,
    known_data_sources: frozenset[str] | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: BulkConfig | None = None,
) -> BulkLoadResult:
    """Load a bulk file into the resolution engine using the configured adapters.

    Without an explicit engine an HTTP engine is built from the environment and its
    data source catalog is used to validate the requested data sources before any
    record is submitted.
    """

    if unit_of_work_factory is None and not is_started():
        startup()
    effective_uow = unit_of_work_factory or SqlAlchemyLoadRunUnitOfWork
    settings = config or get_bulk_config()
    effective_classifier = classifier or build_classifier(settings)
    effective_load_id = load_id or _load_id_for(path)

    owned_engine: HttpResolutionEngine | None = None
    if engine is None:
        owned_engine = HttpResolutionEngine()
        engine = owned_engine

    log.info(
        "Starting bulk load %s from %s: default_data_source=%s, max_failures=%s",
        effective_load_id,
        path,
        effective_classifier.default_data_source,
        settings.max_failures,
    )
    try:
        if owned_engine is not None and known_data_sources is None:
            known_data_sources = owned_engine.data_sources()
        with open_records(
            path,
            record_format=record_format,
            character_encoding=character_encoding,
            source_id=source_id,
        ) as reader:
            result = load_bulk_records(
                reader,
                engine=engine,
                load_id=effective_load_id,
                classifier=effective_classifier,
                known_data_sources=known_data_sources,
                unit_of_work_factory=effective_uow,
                registry=LOAD_REGISTRY,
                config=settings,
            )
    finally:
        if owned_engine is not None:
            owned_engine.close()

    log.info(
        f"Finished bulk load {result.load_id}: status={result.status}, "
        f"loaded={result.loaded}, skipped={result.skipped}, failed={result.failed}, "
        f"affected={result.affected_entity_total}, flagged={result.flagged_entity_total}"
    )
    return result


def load_status(
    load_id: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> LoadRun | None:
    """Return the stored state of a load run, preferring the live tracker if running."""

    if unit_of_work_factory is None and not is_started():
        startup()
    run = get_load_run(
        load_id,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyLoadRunUnitOfWork,
    )
    live = LOAD_REGISTRY.progress(load_id)
    if live is not None:
        return LoadRun(load_id=load_id, progress=live, errors=run.errors if run else ())
    return run


def recent_loads(
    *,
    limit: int = 20,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[LoadRun]:
    if unit_of_work_factory is None and not is_started():
        startup()
    return list_load_runs(
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyLoadRunUnitOfWork,
        limit=limit,
    )


def _load_id_for(path: Path) -> str:
    modified: datetime | None
    try:
        modified = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
    except OSError:
        modified = None
    return make_load_id(read_head(path), file_name=path.name, file_modified=modified)

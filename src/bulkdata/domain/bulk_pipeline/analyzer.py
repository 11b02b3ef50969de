"""Dry-run analysis of a bulk record stream."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from bulkdata.domain.bulk_pipeline.classifier import RecordClassifier
from bulkdata.domain.model import BulkAnalysis, DataSourceStat, EntityTypeStat
from bulkdata.domain.ports.records import RecordStreamError

if TYPE_CHECKING:
    import threading
    from collections.abc import Iterable

    from bulkdata.domain.bulk_pipeline.classifier import RecordClassification
    from bulkdata.domain.model import RawRecord

log = getLogger(__name__)

ANALYSIS_CANCELLED = "analysis cancelled"


@dataclass(slots=True)
class _AnalysisState:
    record_count: int = 0
    malformed_count: int = 0
    records_with_record_id: int = 0
    records_with_data_source: int = 0
    records_with_entity_type: int = 0
    data_sources: dict[str | None, DataSourceStat] = field(
        default_factory=dict[str | None, DataSourceStat]
    )
    entity_types: dict[str | None, EntityTypeStat] = field(
        default_factory=dict[str | None, EntityTypeStat]
    )

    def track(self, classification: RecordClassification) -> None:
        self.record_count += 1
        self.malformed_count += classification.malformed
        self.records_with_record_id += classification.has_record_id
        self.records_with_data_source += classification.data_source is not None
        self.records_with_entity_type += classification.entity_type is not None

        source_stat = self.data_sources.get(classification.data_source)
        if source_stat is None:
            source_stat = DataSourceStat(data_source=classification.data_source)
            self.data_sources[classification.data_source] = source_stat
        source_stat.track(
            has_record_id=classification.has_record_id,
            has_entity_type=classification.entity_type is not None,
            malformed=classification.malformed,
            attribute_classes=classification.attribute_classes,
        )

        type_stat = self.entity_types.get(classification.entity_type)
        if type_stat is None:
            type_stat = EntityTypeStat(entity_type=classification.entity_type)
            self.entity_types[classification.entity_type] = type_stat
        type_stat.track(
            has_record_id=classification.has_record_id,
            has_data_source=classification.data_source is not None,
            malformed=classification.malformed,
            attribute_classes=classification.attribute_classes,
        )

    def emit(
        self,
        *,
        abort_reason: str | None,
        media_type: str | None,
        character_encoding: str | None,
    ) -> BulkAnalysis:
        return BulkAnalysis(
            record_count=self.record_count,
            malformed_count=self.malformed_count,
            records_with_record_id=self.records_with_record_id,
            records_with_data_source=self.records_with_data_source,
            records_with_entity_type=self.records_with_entity_type,
            data_source_stats=tuple(self.data_sources.values()),
            entity_type_stats=tuple(self.entity_types.values()),
            complete=abort_reason is None,
            abort_reason=abort_reason,
            media_type=media_type,
            character_encoding=character_encoding,
        )


@dataclass(slots=True)
class BulkAnalyzer:
    """Classify every record of a stream once, without touching the engine.

    Stats are ordered by first appearance. Cancellation (``cancel`` set) and source
    failures end the run early with an incomplete analysis rather than an exception.
    """

    classifier: RecordClassifier = field(default_factory=RecordClassifier)

    def analyze(
        self,
        records: Iterable[RawRecord],
        *,
        cancel: threading.Event | None = None,
        media_type: str | None = None,
        character_encoding: str | None = None,
    ) -> BulkAnalysis:
        state = _AnalysisState()
        abort_reason: str | None = None
        iterator = iter(records)
        while True:
            if cancel is not None and cancel.is_set():
                abort_reason = ANALYSIS_CANCELLED
                break
            try:
                record = next(iterator)
            except StopIteration:
                break
            except RecordStreamError as exc:
                abort_reason = f"record source failed: {exc}"
                log.warning("Analysis stopped after %s records: %s", state.record_count, exc)
                break
            state.track(self.classifier.classify(record))

        log.info(
            "Analyzed %s records (%s malformed, %s data sources)%s",
            state.record_count,
            state.malformed_count,
            len(state.data_sources),
            "" if abort_reason is None else f", incomplete: {abort_reason}",
        )
        return state.emit(
            abort_reason=abort_reason,
            media_type=media_type,
            character_encoding=character_encoding,
        )

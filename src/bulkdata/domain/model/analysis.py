"""Statistics produced by a bulk analysis run."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enums import AttributeClass

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(slots=True)
class _RecordStat:
    record_count: int = 0
    records_with_record_id: int = 0
    malformed_count: int = 0
    attribute_classes: Counter[AttributeClass] = field(default_factory=Counter[AttributeClass])

    def _track(
        self,
        *,
        has_record_id: bool,
        malformed: bool,
        attribute_classes: Iterable[AttributeClass],
    ) -> None:
        self.record_count += 1
        if has_record_id:
            self.records_with_record_id += 1
        if malformed:
            self.malformed_count += 1
            return
        self.attribute_classes.update(attribute_classes)


@dataclass(slots=True)
class DataSourceStat(_RecordStat):
    """Counters for the records of one data source (``None`` when none was given)."""

    data_source: str | None = None
    records_with_entity_type: int = 0

    def track(
        self,
        *,
        has_record_id: bool,
        has_entity_type: bool,
        malformed: bool,
        attribute_classes: Iterable[AttributeClass],
    ) -> None:
        self._track(
            has_record_id=has_record_id,
            malformed=malformed,
            attribute_classes=attribute_classes,
        )
        if has_entity_type:
            self.records_with_entity_type += 1


@dataclass(slots=True)
class EntityTypeStat(_RecordStat):
    """Counters for the records of one entity type (``None`` when none was given)."""

    entity_type: str | None = None
    records_with_data_source: int = 0

    def track(
        self,
        *,
        has_record_id: bool,
        has_data_source: bool,
        malformed: bool,
        attribute_classes: Iterable[AttributeClass],
    ) -> None:
        self._track(
            has_record_id=has_record_id,
            malformed=malformed,
            attribute_classes=attribute_classes,
        )
        if has_data_source:
            self.records_with_data_source += 1


@dataclass(frozen=True, slots=True)
class BulkAnalysis:
    """Snapshot emitted once at the end of an analysis run.

    The stat objects are handed over by the analyzer at emission and are not touched
    again. ``complete`` is false when the run was cancelled or the source failed part
    way through; the counts then cover only the records consumed so far.
    """

    record_count: int
    malformed_count: int
    records_with_record_id: int
    records_with_data_source: int
    records_with_entity_type: int
    data_source_stats: tuple[DataSourceStat, ...]
    entity_type_stats: tuple[EntityTypeStat, ...]
    complete: bool = True
    abort_reason: str | None = None
    media_type: str | None = None
    character_encoding: str | None = None

    @property
    def incomplete(self) -> bool:
        return not self.complete

    def data_source_stat(self, data_source: str | None) -> DataSourceStat | None:
        return next(
            (stat for stat in self.data_source_stats if stat.data_source == data_source),
            None,
        )

    def entity_type_stat(self, entity_type: str | None) -> EntityTypeStat | None:
        return next(
            (stat for stat in self.entity_type_stats if stat.entity_type == entity_type),
            None,
        )

"""Per-record resolution side effects reported by the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .identifiers import RecordId


@dataclass(frozen=True, slots=True)
class FlaggedEntity:
    """An entity whose resolution became ambiguous or conflicting."""

    entity_id: int
    degrees: int | None = None
    flags: frozenset[str] = frozenset()


def _merge_flagged(entities: Iterable[FlaggedEntity]) -> tuple[FlaggedEntity, ...]:
    merged: dict[int, FlaggedEntity] = {}
    for entity in entities:
        existing = merged.get(entity.entity_id)
        if existing is None:
            merged[entity.entity_id] = entity
            continue
        known_degrees = [d for d in (existing.degrees, entity.degrees) if d is not None]
        merged[entity.entity_id] = FlaggedEntity(
            entity_id=entity.entity_id,
            degrees=min(known_degrees) if known_degrees else None,
            flags=existing.flags | entity.flags,
        )
    return tuple(merged.values())


@dataclass(frozen=True, slots=True)
class ResolutionInfo:
    """Affected and flagged entities for one submitted record.

    Entity ids are unique within one instance; construction drops repeats while keeping
    first-seen order.
    """

    record: RecordId | None = None
    affected_entities: tuple[int, ...] = ()
    flagged_entities: tuple[FlaggedEntity, ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "affected_entities", tuple(dict.fromkeys(self.affected_entities)))
        object.__setattr__(self, "flagged_entities", _merge_flagged(self.flagged_entities))

    @property
    def data_source(self) -> str | None:
        return self.record.data_source if self.record else None

    @property
    def record_id(self) -> str | None:
        return self.record.record_id if self.record else None

    @property
    def affected_count(self) -> int:
        return len(self.affected_entities)

    @property
    def flagged_count(self) -> int:
        return len(self.flagged_entities)

    @property
    def flagged_entity_ids(self) -> frozenset[int]:
        return frozenset(entity.entity_id for entity in self.flagged_entities)

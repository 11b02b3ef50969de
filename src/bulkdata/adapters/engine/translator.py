"""Translate engine payloads into domain resolution info."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bulkdata.domain.model import FlaggedEntity, RecordId, ResolutionInfo

from .schema import ResolutionInfoPayload

if TYPE_CHECKING:
    from collections.abc import Mapping


def parse_resolution_info(
    payload: ResolutionInfoPayload | Mapping[str, object] | None,
    *,
    data_source: str | None = None,
    record_id: str | None = None,
) -> ResolutionInfo:
    """Build a ResolutionInfo, using the submitted record's key when the engine omits it."""

    if payload is None:
        info = ResolutionInfoPayload()
    elif isinstance(payload, ResolutionInfoPayload):
        info = payload
    else:
        info = ResolutionInfoPayload.model_validate(payload)

    source = info.data_source or data_source
    identifier = info.record_id or record_id
    record = RecordId(source, identifier) if source and identifier else None

    interesting = info.interesting_entities.entities if info.interesting_entities else []
    return ResolutionInfo(
        record=record,
        affected_entities=tuple(entity.entity_id for entity in info.affected_entities),
        flagged_entities=tuple(
            FlaggedEntity(
                entity_id=entity.entity_id,
                degrees=entity.degrees,
                flags=frozenset(entity.flags),
            )
            for entity in interesting
        ),
    )

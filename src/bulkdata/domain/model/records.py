"""Raw bulk records as they stream out of a record source."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Mapping

DATA_SOURCE_KEY: Final[str] = "DATA_SOURCE"
RECORD_ID_KEY: Final[str] = "RECORD_ID"
ENTITY_TYPE_KEY: Final[str] = "ENTITY_TYPE"
SOURCE_ID_KEY: Final[str] = "SOURCE_ID"
LOAD_ID_KEY: Final[str] = "LOAD_ID"

_EXTRACTED_KEYS: Final[frozenset[str]] = frozenset(
    {DATA_SOURCE_KEY, RECORD_ID_KEY, ENTITY_TYPE_KEY}
)


def _blank_to_none(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_code(value: object) -> str | None:
    """Trim and upper-case a data source or entity type code; blank becomes ``None``."""

    text = _blank_to_none(value)
    return text.upper() if text is not None else None


@dataclass(frozen=True, slots=True)
class RawRecord:
    """One record from a bulk source.

    ``attributes`` keeps the arrival order of every field except the data source,
    record id and entity type, which are lifted into their own fields. ``parse_error``
    is set when the source could not turn the raw text into a mapping at all.
    """

    attributes: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))
    data_source: str | None = None
    record_id: str | None = None
    entity_type: str | None = None
    line_number: int | None = None
    parse_error: str | None = None

    @classmethod
    def from_mapping(
        cls,
        mapping: Mapping[str, object],
        *,
        line_number: int | None = None,
    ) -> RawRecord:
        attributes: dict[str, object] = {}
        extracted: dict[str, object] = {}
        for key, value in mapping.items():
            upper = key.strip().upper()
            if upper in _EXTRACTED_KEYS:
                extracted[upper] = value
            else:
                attributes[key] = value
        return cls(
            attributes=MappingProxyType(attributes),
            data_source=normalize_code(extracted.get(DATA_SOURCE_KEY)),
            record_id=_blank_to_none(extracted.get(RECORD_ID_KEY)),
            entity_type=normalize_code(extracted.get(ENTITY_TYPE_KEY)),
            line_number=line_number,
        )

    @classmethod
    def unparsable(cls, reason: str, *, line_number: int | None = None) -> RawRecord:
        return cls(line_number=line_number, parse_error=reason)

    def to_payload(
        self,
        *,
        data_source: str | None = None,
        entity_type: str | None = None,
        load_id: str | None = None,
    ) -> dict[str, object]:
        """Return the JSON document submitted to the engine for this record."""

        payload: dict[str, object] = {}
        effective_source = data_source or self.data_source
        effective_type = entity_type or self.entity_type
        if effective_source is not None:
            payload[DATA_SOURCE_KEY] = effective_source
        if self.record_id is not None:
            payload[RECORD_ID_KEY] = self.record_id
        if effective_type is not None:
            payload[ENTITY_TYPE_KEY] = effective_type
        payload.update(self.attributes)
        if load_id is not None:
            payload[LOAD_ID_KEY] = load_id
        return payload

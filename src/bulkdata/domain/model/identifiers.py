"""Record and entity identifiers plus the text parser that tells them apart."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Final, cast

_MIN_ENTITY_ID: Final[int] = -(2**63)
_MAX_ENTITY_ID: Final[int] = 2**63 - 1
_ENTITY_ID_PATTERN = re.compile(r"-?\d+")


@dataclass(frozen=True, slots=True)
class RecordId:
    """Composite key naming one record within a data source."""

    data_source: str
    record_id: str

    def __post_init__(self) -> None:
        if not self.data_source.strip():
            raise ValueError("Record identifier requires a data source code")
        if not self.record_id.strip():
            raise ValueError("Record identifier requires a record id")

    def __str__(self) -> str:
        return f"{self.data_source}:{self.record_id}"

    def to_json(self) -> str:
        return json.dumps({"src": self.data_source, "id": self.record_id})

    @classmethod
    def parse(cls, text: str) -> RecordId:
        """Parse ``{"src": ..., "id": ...}`` JSON or a delimited form such as ``:PEOPLE:123``.

        In the delimited form the first character is the delimiter and separates the data
        source code from the record id.
        """

        stripped = text.strip()
        if len(stripped) < 3:  # noqa: PLR2004
            raise ValueError(f"Invalid record identifier: {text!r}")
        if stripped.startswith("{"):
            return cls._parse_json(stripped)
        delimiter = stripped[0]
        parts = stripped[1:].split(delimiter, 1)
        if len(parts) != 2:  # noqa: PLR2004
            raise ValueError(f"Invalid record identifier: {text!r}")
        return cls(data_source=parts[0].strip(), record_id=parts[1].strip())

    @classmethod
    def _parse_json(cls, text: str) -> RecordId:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid record identifier JSON: {text!r}") from exc
        if not isinstance(payload, dict):
            raise ValueError(f"Invalid record identifier JSON: {text!r}")
        mapping = cast(dict[str, object], payload)
        source = mapping.get("src")
        record_id = mapping.get("id")
        if source is None or record_id is None:
            raise ValueError(f"Record identifier JSON requires 'src' and 'id': {text!r}")
        return cls(data_source=str(source).strip(), record_id=str(record_id).strip())


@dataclass(frozen=True, slots=True)
class EntityId:
    """Identifier assigned by the resolution engine to a resolved entity."""

    value: int

    def __post_init__(self) -> None:
        if not _MIN_ENTITY_ID <= self.value <= _MAX_ENTITY_ID:
            raise ValueError(f"Entity id out of 64-bit range: {self.value}")

    def __str__(self) -> str:
        return str(self.value)

    @classmethod
    def parse(cls, text: str) -> EntityId:
        stripped = text.strip()
        if not _ENTITY_ID_PATTERN.fullmatch(stripped):
            raise ValueError(f"Invalid entity id: {text!r}")
        return cls(int(stripped))


type EntityIdentifier = EntityId | RecordId


def parse_entity_identifier(text: str) -> EntityIdentifier:
    """Decide between the two identifier shapes for a single text value.

    A bare (optionally negative) integer names an entity; anything else must name a
    record. Raises ``ValueError`` when the text is neither.
    """

    stripped = text.strip()
    if _ENTITY_ID_PATTERN.fullmatch(stripped):
        return EntityId.parse(stripped)
    return RecordId.parse(stripped)

"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class AttributeClass(StrEnum):
    """Closed classification of record attributes used to bucket statistics."""

    ADDRESS = "ADDRESS"
    CHARACTERISTIC = "CHARACTERISTIC"
    IDENTIFIER = "IDENTIFIER"
    NAME = "NAME"
    OBSERVATION = "OBSERVATION"
    PHONE = "PHONE"
    RELATIONSHIP = "RELATIONSHIP"
    OTHER = "OTHER"


class LoadStatus(StrEnum):
    """Lifecycle of one bulk-load run; values are persisted and polled verbatim."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    ABORTED = "ABORTED"
    COMPLETED = "COMPLETED"

    @property
    def is_terminal(self) -> bool:
        return self in {LoadStatus.ABORTED, LoadStatus.COMPLETED}


class RecordFormat(StrEnum):
    JSON = "JSON"
    JSON_LINES = "JSON_LINES"
    CSV = "CSV"

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES[self]

    @classmethod
    def from_media_type(cls, media_type: str) -> RecordFormat | None:
        normalized = media_type.split(";", 1)[0].strip().lower()
        for record_format, known in _MEDIA_TYPES.items():
            if known == normalized:
                return record_format
        return None


_MEDIA_TYPES: dict[RecordFormat, str] = {
    RecordFormat.JSON: "application/json",
    RecordFormat.JSON_LINES: "application/x-jsonlines",
    RecordFormat.CSV: "text/csv",
}

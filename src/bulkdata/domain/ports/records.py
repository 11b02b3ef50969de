"""Port for streaming bulk records out of a source."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator

    from bulkdata.domain.model import RawRecord, RecordFormat


class RecordStreamError(OSError):
    """Raised when a record source becomes unreadable part way through a stream."""


@runtime_checkable
class RecordSource(Protocol):
    """Single-pass stream of raw records with the detected format."""

    @property
    def record_format(self) -> RecordFormat: ...

    @property
    def character_encoding(self) -> str: ...

    def __iter__(self) -> Iterator[RawRecord]: ...

"""Tracking of per-record load failures."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from bulkdata.domain.model import ErrorSummary

if TYPE_CHECKING:
    from bulkdata.domain.model import BulkLoadError

MALFORMED_RECORD = "MALFORMED_RECORD"
INCOMPLETE_RECORD = "INCOMPLETE_RECORD"
UNKNOWN_DATA_SOURCE = "UNKNOWN_DATA_SOURCE"


class LoadErrorTracker:
    """Keeps the first ``capacity`` errors and a frequency count per error code."""

    def __init__(self, capacity: int, *, top_n: int = 10) -> None:
        self.capacity = capacity
        self.top_n = top_n
        self._errors: list[BulkLoadError] = []
        self._counts: Counter[str] = Counter()
        self._sample_messages: dict[str, str] = {}

    def __len__(self) -> int:
        return sum(self._counts.values())

    def record(self, error: BulkLoadError) -> None:
        self._counts[error.code] += 1
        self._sample_messages.setdefault(error.code, error.message)
        if len(self._errors) < self.capacity:
            self._errors.append(error)

    def errors(self) -> tuple[BulkLoadError, ...]:
        return tuple(self._errors)

    def top_errors(self) -> tuple[ErrorSummary, ...]:
        return tuple(
            ErrorSummary(code=code, message=self._sample_messages[code], count=count)
            for code, count in self._counts.most_common(self.top_n)
        )

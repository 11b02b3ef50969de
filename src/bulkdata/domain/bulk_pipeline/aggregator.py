"""Bounded folding of per-record resolution info."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from bulkdata.domain.model import ResolutionInfo


class ResolutionInfoAggregator:
    """Fixed-capacity, insertion-ordered store of ResolutionInfo with running totals.

    Entries beyond ``capacity`` are counted but not retained. Entity ids are unique
    within each ResolutionInfo already; across records nothing is de-duplicated, so an
    entity touched by two records counts twice.
    """

    __slots__ = (
        "_entries",
        "_size",
        "affected_total",
        "capacity",
        "flagged_total",
        "folded_count",
    )

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must be non-negative, got {capacity}")
        self.capacity = capacity
        self._entries: list[ResolutionInfo | None] = [None] * capacity
        self._size = 0
        self.folded_count = 0
        self.affected_total = 0
        self.flagged_total = 0

    def __len__(self) -> int:
        return self._size

    @property
    def dropped_count(self) -> int:
        return self.folded_count - self._size

    def fold(self, info: ResolutionInfo) -> None:
        self.folded_count += 1
        self.affected_total += info.affected_count
        self.flagged_total += info.flagged_count
        if self._size < self.capacity:
            self._entries[self._size] = info
            self._size += 1

    def snapshot(self) -> tuple[ResolutionInfo, ...]:
        return tuple(cast("ResolutionInfo", entry) for entry in self._entries[: self._size])

"""In-process registry of running loads for polling and cancellation."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from bulkdata.domain.bulk_pipeline.tracker import LoadStateError

if TYPE_CHECKING:
    from bulkdata.domain.bulk_pipeline.tracker import LoadStatusTracker
    from bulkdata.domain.model import LoadProgress


class LoadRegistry:
    """Maps load ids to their trackers; runs themselves share no state."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._trackers: dict[str, LoadStatusTracker] = {}

    def register(self, tracker: LoadStatusTracker) -> LoadStatusTracker:
        with self._lock:
            existing = self._trackers.get(tracker.load_id)
            if existing is not None and not existing.status.is_terminal:
                raise LoadStateError(f"load already registered: {tracker.load_id}")
            self._trackers[tracker.load_id] = tracker
        return tracker

    def get(self, load_id: str) -> LoadStatusTracker | None:
        with self._lock:
            return self._trackers.get(load_id)

    def progress(self, load_id: str) -> LoadProgress | None:
        tracker = self.get(load_id)
        return tracker.progress() if tracker is not None else None

    def abort(self, load_id: str, reason: str) -> bool:
        """Request cancellation; ``False`` when the load is unknown, unstarted or finished."""

        tracker = self.get(load_id)
        if tracker is None:
            return False
        try:
            return tracker.abort(reason)
        except LoadStateError:
            return False

    def abort_all(self, reason: str) -> list[str]:
        with self._lock:
            trackers = list(self._trackers.values())
        return [tracker.load_id for tracker in trackers if self.abort(tracker.load_id, reason)]

    def discard(self, load_id: str) -> None:
        with self._lock:
            self._trackers.pop(load_id, None)

    def active(self) -> list[str]:
        with self._lock:
            trackers = list(self._trackers.values())
        return [tracker.load_id for tracker in trackers if not tracker.status.is_terminal]

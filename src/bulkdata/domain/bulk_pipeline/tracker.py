"""Thread-safe lifecycle and progress counters for one bulk-load run."""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from bulkdata.domain.model import LoadProgress, LoadStatus

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)


class LoadStateError(RuntimeError):
    """Raised for lifecycle transitions that are not legal from the current status."""


class RecordOutcome(StrEnum):
    LOADED = "loaded"
    SKIPPED = "skipped"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LoadStatusTracker:
    """Guards NOT_STARTED -> IN_PROGRESS -> {COMPLETED | ABORTED}.

    All reads and writes go through one lock so a polling thread always sees the
    status and the counters from the same instant. The lock is never held by callers
    while they wait on the engine. It is reentrant because a SIGINT handler may abort
    the run on the same thread that is inside a tracker call.
    """

    def __init__(self, load_id: str, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self.load_id = load_id
        self._clock = clock
        self._lock = threading.RLock()
        self._status = LoadStatus.NOT_STARTED
        self._submitted = 0
        self._loaded = 0
        self._skipped = 0
        self._failed = 0
        self._incomplete = 0
        self._abort_reason: str | None = None
        self._started_at: datetime | None = None
        self._finished_at: datetime | None = None

    @property
    def status(self) -> LoadStatus:
        with self._lock:
            return self._status

    @property
    def aborted(self) -> bool:
        return self.status is LoadStatus.ABORTED

    def start(self) -> None:
        with self._lock:
            if self._status is not LoadStatus.NOT_STARTED:
                raise LoadStateError(f"load already started: {self.load_id} is {self._status}")
            self._status = LoadStatus.IN_PROGRESS
            self._started_at = self._clock()

    def abort(self, reason: str) -> bool:
        """Move to ABORTED; returns ``False`` when the run had already finished."""

        with self._lock:
            if self._status is LoadStatus.NOT_STARTED:
                raise LoadStateError(f"load not started: {self.load_id}")
            if self._status.is_terminal:
                return False
            self._status = LoadStatus.ABORTED
            self._abort_reason = reason
            self._finished_at = self._clock()
        log.warning("Load %s aborted: %s", self.load_id, reason)
        return True

    def complete(self) -> bool:
        """Move to COMPLETED; a no-op returning ``False`` once the run is terminal."""

        with self._lock:
            if self._status is LoadStatus.NOT_STARTED:
                raise LoadStateError(f"load not started: {self.load_id}")
            if self._status.is_terminal:
                return False
            self._status = LoadStatus.COMPLETED
            self._finished_at = self._clock()
        return True

    def count(self, outcome: RecordOutcome, *, incomplete: bool = False) -> LoadProgress:
        with self._lock:
            if self._status is LoadStatus.NOT_STARTED:
                raise LoadStateError(f"load not started: {self.load_id}")
            self._submitted += 1
            match outcome:
                case RecordOutcome.LOADED:
                    self._loaded += 1
                case RecordOutcome.SKIPPED:
                    self._skipped += 1
                case RecordOutcome.FAILED:
                    self._failed += 1
                    if incomplete:
                        self._incomplete += 1
            return self._snapshot()

    def progress(self) -> LoadProgress:
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> LoadProgress:
        return LoadProgress(
            status=self._status,
            submitted=self._submitted,
            loaded=self._loaded,
            skipped=self._skipped,
            failed=self._failed,
            incomplete=self._incomplete,
            abort_reason=self._abort_reason,
            started_at=self._started_at,
            finished_at=self._finished_at,
        )

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from bulkdata.domain.bulk_pipeline import LoadStateError, LoadStatusTracker, RecordOutcome
from bulkdata.domain.model import LoadStatus

if TYPE_CHECKING:
    from collections.abc import Callable

_NOW = datetime(2026, 3, 1, 12, tzinfo=UTC)


def _tracker() -> LoadStatusTracker:
    return LoadStatusTracker("load-1", clock=lambda: _NOW)


def test_tracker_walks_through_lifecycle() -> None:
    tracker = _tracker()
    assert tracker.status is LoadStatus.NOT_STARTED

    tracker.start()
    tracker.count(RecordOutcome.LOADED)
    tracker.count(RecordOutcome.SKIPPED)
    tracker.count(RecordOutcome.FAILED, incomplete=True)
    assert tracker.complete()

    progress = tracker.progress()
    assert progress.status is LoadStatus.COMPLETED
    assert (progress.submitted, progress.loaded, progress.skipped, progress.failed) == (3, 1, 1, 1)
    assert progress.incomplete == 1
    assert progress.started_at == _NOW
    assert progress.finished_at == _NOW


def test_tracker_rejects_second_start() -> None:
    tracker = _tracker()
    tracker.start()

    with pytest.raises(LoadStateError, match="already started"):
        tracker.start()


def test_tracker_requires_start_before_counting_or_aborting() -> None:
    tracker = _tracker()

    with pytest.raises(LoadStateError):
        tracker.count(RecordOutcome.LOADED)
    with pytest.raises(LoadStateError):
        tracker.abort("too early")


def test_abort_is_terminal_and_keeps_first_reason() -> None:
    tracker = _tracker()
    tracker.start()

    assert tracker.abort("operator request")
    assert not tracker.abort("second request")
    assert not tracker.complete()

    progress = tracker.progress()
    assert progress.status is LoadStatus.ABORTED
    assert progress.abort_reason == "operator request"
    assert tracker.aborted


def test_complete_after_complete_is_a_no_op() -> None:
    tracker = _tracker()
    tracker.start()

    assert tracker.complete()
    assert not tracker.complete()
    assert not tracker.abort("late")
    assert tracker.status is LoadStatus.COMPLETED


def test_counts_stay_consistent_under_concurrent_updates() -> None:
    tracker = _tracker()
    tracker.start()
    outcomes = [RecordOutcome.LOADED, RecordOutcome.SKIPPED, RecordOutcome.FAILED]

    def worker(outcome: RecordOutcome) -> None:
        for _ in range(500):
            tracker.count(outcome)
            snapshot = tracker.progress()
            assert snapshot.submitted == snapshot.loaded + snapshot.skipped + snapshot.failed

    threads = [threading.Thread(target=worker, args=(outcome,)) for outcome in outcomes]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    progress = tracker.progress()
    assert progress.submitted == 1500
    assert progress.loaded == progress.skipped == progress.failed == 500


def _race_abort_against_complete() -> tuple[dict[str, bool], LoadStatusTracker]:
    tracker = _tracker()
    tracker.start()
    barrier = threading.Barrier(2)
    results: dict[str, bool] = {}

    def finish(name: str, transition: Callable[[], bool]) -> None:
        barrier.wait()
        results[name] = transition()

    threads = [
        threading.Thread(target=finish, args=("abort", lambda: tracker.abort("stop"))),
        threading.Thread(target=finish, args=("complete", tracker.complete)),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results, tracker


@pytest.mark.parametrize("attempt", range(25))
def test_racing_abort_and_complete_leave_one_terminal_status(attempt: int) -> None:  # noqa: ARG001
    results, tracker = _race_abort_against_complete()

    assert sorted(results.values()) == [False, True]
    progress = tracker.progress()
    if results["abort"]:
        assert progress.status is LoadStatus.ABORTED
        assert progress.abort_reason == "stop"
    else:
        assert progress.status is LoadStatus.COMPLETED
        assert progress.abort_reason is None

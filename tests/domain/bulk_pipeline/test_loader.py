from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from bulkdata.domain.bulk_pipeline import (
    INCOMPLETE_RECORD,
    MALFORMED_RECORD,
    UNKNOWN_DATA_SOURCE,
    BulkLoader,
    LoadStatusTracker,
    RecordClassifier,
)
from bulkdata.domain.model import LOAD_ID_KEY, LoadProgress, LoadStatus, RawRecord, RecordId
from bulkdata.domain.ports import EngineError, RecordStreamError
from tests.helpers.engine import FakeEngine, duplicate, rejected
from tests.helpers.records import FailingSource, make_record

if TYPE_CHECKING:
    from bulkdata.domain.ports import SubmittedRecord


def _customers() -> list[RawRecord]:
    return [
        make_record("CUSTOMERS", "1", NAME_FULL="Alice"),
        make_record("CUSTOMERS", "2", PHONE_NUMBER="555-1212"),
    ]


def test_load_records_engine_rejection_as_error() -> None:
    engine = FakeEngine(outcomes={"2": rejected("E100", "bad phone")})
    tracker = LoadStatusTracker("load-1")

    result = BulkLoader(engine=engine).load(_customers(), tracker)

    assert result.status is LoadStatus.COMPLETED
    assert (result.submitted, result.loaded, result.failed) == (2, 1, 1)
    assert len(result.errors) == 1
    error = result.errors[0]
    assert (error.data_source, error.record_id, error.code) == ("CUSTOMERS", "2", "E100")
    assert error.message == "bad phone"


def test_load_keeps_counts_consistent() -> None:
    engine = FakeEngine(outcomes={"2": duplicate(), "3": rejected("E1")})
    records = [make_record("CUSTOMERS", str(index)) for index in range(1, 6)]

    result = BulkLoader(engine=engine).load(records, LoadStatusTracker("load-1"))

    assert result.submitted == result.loaded + result.skipped + result.failed
    assert (result.loaded, result.skipped, result.failed) == (3, 1, 1)
    customers = result.data_source_result("CUSTOMERS")
    assert customers is not None
    assert customers.submitted == 5
    assert customers.skipped == 1


def test_load_stamps_load_id_and_resolved_data_source() -> None:
    engine = FakeEngine()
    classifier = RecordClassifier(default_data_source="customers", default_entity_type="person")

    BulkLoader(engine=engine, classifier=classifier).load(
        [make_record(None, "9")], LoadStatusTracker("load-7")
    )

    submitted = engine.submitted[0]
    assert submitted.data_source == "CUSTOMERS"
    assert submitted.load_id == "load-7"
    assert submitted.payload["DATA_SOURCE"] == "CUSTOMERS"
    assert submitted.payload["ENTITY_TYPE"] == "PERSON"
    assert submitted.payload[LOAD_ID_KEY] == "load-7"


def test_load_fails_malformed_and_incomplete_records_locally() -> None:
    engine = FakeEngine(known=frozenset({"CUSTOMERS"}))
    records = [
        RawRecord.unparsable("Expecting value", line_number=4),
        make_record(None, "2"),
        make_record("UNKNOWN", "3"),
        make_record("CUSTOMERS", "4"),
    ]

    result = BulkLoader(engine=engine, known_data_sources=engine.known).load(
        records, LoadStatusTracker("load-1")
    )

    assert [record.record_id for record in engine.submitted] == ["4"]
    assert [error.code for error in result.errors] == [
        MALFORMED_RECORD,
        INCOMPLETE_RECORD,
        UNKNOWN_DATA_SOURCE,
    ]
    assert result.errors[0].line_number == 4
    assert result.failed == 3
    assert result.incomplete == 2
    assert result.loaded == 1


def test_load_converts_engine_errors_into_failures() -> None:
    engine = FakeEngine(outcomes={"1": EngineError("boom", code="HTTP_503")})

    result = BulkLoader(engine=engine).load(_customers(), LoadStatusTracker("load-1"))

    assert result.status is LoadStatus.COMPLETED
    assert result.failed == 1
    assert result.errors[0].code == "HTTP_503"
    assert result.loaded == 1


def test_load_aggregates_resolution_info_with_cap() -> None:
    engine = FakeEngine(affected={"1": (10, 11), "2": (11, 12), "3": (13,)})
    records = [make_record("CUSTOMERS", str(index)) for index in (1, 2, 3)]

    result = BulkLoader(engine=engine, max_resolution_infos=2).load(
        records, LoadStatusTracker("load-1")
    )

    assert result.affected_entity_total == 5
    assert result.resolution_count == 3
    assert [info.record for info in result.resolutions] == [
        RecordId("CUSTOMERS", "1"),
        RecordId("CUSTOMERS", "2"),
    ]


def test_abort_before_first_record_submits_nothing() -> None:
    tracker = LoadStatusTracker("load-1")
    engine = FakeEngine()

    def on_progress(progress: LoadProgress) -> None:
        if progress.status is LoadStatus.IN_PROGRESS and progress.submitted == 0:
            tracker.abort("cancelled by operator")

    result = BulkLoader(engine=engine, on_progress=on_progress).load(_customers(), tracker)

    assert engine.submitted == []
    assert result.status is LoadStatus.ABORTED
    assert result.partial
    assert result.submitted == 0
    assert result.abort_reason == "cancelled by operator"


def test_abort_mid_run_stops_before_next_record() -> None:
    tracker = LoadStatusTracker("load-1")

    def on_submit(record: SubmittedRecord) -> None:
        if record.record_id == "2":
            tracker.abort("operator request")

    engine = FakeEngine(on_submit=on_submit)
    records = [make_record("CUSTOMERS", str(index)) for index in range(1, 5)]

    result = BulkLoader(engine=engine).load(records, tracker)

    assert [record.record_id for record in engine.submitted] == ["1", "2"]
    assert result.status is LoadStatus.ABORTED
    assert result.submitted == 2


def test_max_failures_aborts_the_run() -> None:
    engine = FakeEngine(outcomes={str(i): rejected("E1") for i in range(1, 10)})
    records = [make_record("CUSTOMERS", str(index)) for index in range(1, 10)]

    result = BulkLoader(engine=engine, max_failures=3).load(records, LoadStatusTracker("l"))

    assert result.status is LoadStatus.ABORTED
    assert result.failed == 3
    assert result.abort_reason == "too many failures: 3 records failed to load"


def test_source_failure_aborts_with_partial_result() -> None:
    source = FailingSource(_customers(), RecordStreamError("unexpected end of JSON array"))

    result = BulkLoader(engine=FakeEngine()).load(source, LoadStatusTracker("load-1"))

    assert result.status is LoadStatus.ABORTED
    assert result.loaded == 2
    assert result.abort_reason == "record source failed: unexpected end of JSON array"


def test_unexpected_exception_aborts_and_propagates() -> None:
    tracker = LoadStatusTracker("load-1")
    source = FailingSource(_customers(), RuntimeError("disk vanished"))

    with pytest.raises(RuntimeError, match="disk vanished"):
        BulkLoader(engine=FakeEngine()).load(source, tracker)

    assert tracker.status is LoadStatus.ABORTED
    assert (tracker.progress().abort_reason or "").startswith("load interrupted")


def test_progress_callback_fires_at_interval_and_end() -> None:
    seen: list[LoadProgress] = []
    records = [make_record("CUSTOMERS", str(index)) for index in range(1, 6)]

    BulkLoader(engine=FakeEngine(), progress_interval=2, on_progress=seen.append).load(
        records, LoadStatusTracker("load-1")
    )

    assert [progress.submitted for progress in seen] == [0, 2, 4, 5]
    assert seen[-1].status is LoadStatus.COMPLETED


def test_errors_are_capped_but_top_errors_count_everything() -> None:
    engine = FakeEngine(outcomes={str(i): rejected("E1") for i in range(1, 6)})
    records = [make_record("CUSTOMERS", str(index)) for index in range(1, 6)]

    result = BulkLoader(engine=engine, max_errors=2).load(records, LoadStatusTracker("l"))

    assert len(result.errors) == 2
    assert result.errors_truncated
    assert result.top_errors[0].count == 5

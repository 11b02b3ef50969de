from __future__ import annotations

import io
from typing import TYPE_CHECKING

import pytest

from bulkdata.adapters.records import RecordReader, detect_format, open_records, read_head
from bulkdata.domain.model import SOURCE_ID_KEY, RecordFormat
from bulkdata.domain.ports import RecordStreamError
from tests.helpers.records import json_lines, reader_for

if TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.parametrize(
    ("first_char", "expected"),
    [("[", RecordFormat.JSON), ("{", RecordFormat.JSON_LINES), ("D", RecordFormat.CSV)],
)
def test_detect_format(first_char: str, expected: RecordFormat) -> None:
    assert detect_format(first_char) is expected


def test_json_lines_skips_blank_and_comment_lines() -> None:
    text = (
        "\n"
        + json_lines([{"DATA_SOURCE": "CUSTOMERS", "RECORD_ID": 1, "NAME_FULL": "Alice"}])
        + "\n# exported 2026-01-01\n"
        + json_lines([{"DATA_SOURCE": "CUSTOMERS", "RECORD_ID": 2, "NAME_FULL": "Bob"}])
    )

    reader = reader_for(text)
    records = list(reader)

    assert reader.record_format is RecordFormat.JSON_LINES
    assert [record.record_id for record in records] == ["1", "2"]
    assert [record.line_number for record in records] == [2, 5]


def test_json_lines_turns_bad_lines_into_unparsable_records() -> None:
    text = '{"RECORD_ID": "1", "NAME_FULL": "Alice"}\n{"RECORD_ID": \nnot json\n'

    records = list(reader_for(text))

    assert [record.parse_error is None for record in records] == [True, False, False]
    assert records[1].line_number == 2
    assert records[2].parse_error == "line is not a JSON object"


def test_json_array_streams_multi_line_elements() -> None:
    text = (
        "[\n"
        '  {"DATA_SOURCE": "CUSTOMERS",\n'
        '   "RECORD_ID": "1", "NAME_FULL": "Alice"},\n'
        '  {"DATA_SOURCE": "CUSTOMERS", "RECORD_ID": "2"}, 42\n'
        "]\n"
    )

    reader = reader_for(text)
    records = list(reader)

    assert reader.record_format is RecordFormat.JSON
    assert [record.record_id for record in records[:2]] == ["1", "2"]
    assert records[2].parse_error == "record is not a JSON object"


def test_truncated_json_array_raises_stream_error() -> None:
    reader = reader_for('[{"RECORD_ID": "1"}, {"RECORD_ID": ')

    with pytest.raises(RecordStreamError, match="truncated"):
        list(reader)


def test_invalid_json_array_element_is_malformed_and_reading_resumes() -> None:
    text = (
        "[\n"
        '  {"DATA_SOURCE": "CUSTOMERS", "RECORD_ID": "1"},\n'
        '  {"DATA_SOURCE": CUSTOMERS, "RECORD_ID": "2", "TAGS": ["a", "]"]},\n'
        '  {"DATA_SOURCE": "CUSTOMERS",\n'
        '   "RECORD_ID": "3"}\n'
        "]\n"
    )

    records = list(reader_for(text))

    assert [record.record_id for record in records] == ["1", None, "3"]
    assert [record.line_number for record in records] == [2, 3, 4]
    assert records[1].parse_error is not None
    assert records[1].parse_error.startswith("invalid JSON")


def test_csv_upper_cases_headers_and_drops_blank_values() -> None:
    text = (
        "\n data_source,record_id,name_full,phone_number\n"
        "CUSTOMERS,1,Alice,\n"
        "CUSTOMERS,2,Bob,555\n"
    )

    reader = reader_for(text)
    records = list(reader)

    assert reader.record_format is RecordFormat.CSV
    assert [record.data_source for record in records] == ["CUSTOMERS", "CUSTOMERS"]
    assert dict(records[0].attributes) == {"NAME_FULL": "Alice"}
    assert dict(records[1].attributes) == {"NAME_FULL": "Bob", "PHONE_NUMBER": "555"}


def test_csv_row_with_extra_values_is_unparsable() -> None:
    text = "RECORD_ID,NAME_FULL\n1,Alice,extra\n"

    records = list(reader_for(text, record_format=RecordFormat.CSV))

    assert records[0].parse_error == "row has more values than header columns"


def test_source_id_is_stamped_on_parsed_records() -> None:
    records = list(reader_for(json_lines([{"RECORD_ID": "1"}]), source_id=" feed-7 "))

    assert records[0].attributes[SOURCE_ID_KEY] == "feed-7"


def test_reader_is_single_pass() -> None:
    reader = RecordReader(io.StringIO(json_lines([{"RECORD_ID": "1"}])))
    list(reader)

    with pytest.raises(RuntimeError, match="only be iterated once"):
        list(reader)


def test_open_records_and_read_head(tmp_path: Path) -> None:
    path = tmp_path / "records.jsonl"
    path.write_text(json_lines([{"RECORD_ID": "1"}, {"RECORD_ID": "2"}]), encoding="utf-8")

    with open_records(path) as reader:
        assert [record.record_id for record in reader] == ["1", "2"]
    assert read_head(path, 5) == b'{"REC'


def test_open_records_wraps_missing_file(tmp_path: Path) -> None:
    with pytest.raises(RecordStreamError, match="cannot open"), open_records(tmp_path / "nope"):
        pass

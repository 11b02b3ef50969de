"""Streaming reader for JSON, JSON-lines and CSV bulk record files."""

from __future__ import annotations

import csv
import io
import itertools
import json
from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING, Final, TextIO, cast

from bulkdata.domain.model import SOURCE_ID_KEY, RawRecord, RecordFormat
from bulkdata.domain.ports.records import RecordSource, RecordStreamError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

log = getLogger(__name__)

DEFAULT_ENCODING: Final[str] = "utf-8"
_COMMENT_PREFIX: Final[str] = "#"
# upper bound for one JSON array element still waiting for its closing lines
_MAX_ELEMENT_CHARS: Final[int] = 16 * 1024 * 1024


def detect_format(first_char: str) -> RecordFormat:
    """``[`` starts a JSON array, ``{`` a JSON-lines file, anything else is CSV."""

    if first_char == "[":
        return RecordFormat.JSON
    if first_char == "{":
        return RecordFormat.JSON_LINES
    return RecordFormat.CSV


class RecordReader:
    """Single-pass iterator of RawRecords over a text stream.

    The format is sniffed on construction unless given. Individual records that cannot
    be parsed come out as malformed RawRecords; only failures of the stream itself
    raise ``RecordStreamError``.
    """

    def __init__(
        self,
        stream: TextIO,
        *,
        record_format: RecordFormat | None = None,
        character_encoding: str = DEFAULT_ENCODING,
        source_id: str | None = None,
    ) -> None:
        self._stream = stream
        self._character_encoding = character_encoding
        self._source_id = source_id.strip() if source_id and source_id.strip() else None
        self._consumed = False
        self._prefix = ""
        if record_format is None:
            self._prefix = self._sniff()
            record_format = detect_format(self._prefix.lstrip()[:1])
        self._record_format = record_format

    @property
    def record_format(self) -> RecordFormat:
        return self._record_format

    @property
    def character_encoding(self) -> str:
        return self._character_encoding

    @property
    def media_type(self) -> str:
        return self._record_format.media_type

    def __iter__(self) -> Iterator[RawRecord]:
        if self._consumed:
            raise RuntimeError("RecordReader can only be iterated once")
        self._consumed = True
        match self._record_format:
            case RecordFormat.JSON:
                parsed = _json_array_records(self._lines())
            case RecordFormat.JSON_LINES:
                parsed = _json_lines_records(self._lines())
            case RecordFormat.CSV:
                parsed = _csv_records(self._lines())
        for record in parsed:
            yield self._stamp(record)

    def _sniff(self) -> str:
        consumed: list[str] = []
        while True:
            char = self._read(1)
            consumed.append(char)
            if not char or not char.isspace():
                break
        # finish the line so iteration can resume on whole lines
        if consumed[-1] and consumed[-1] != "\n":
            consumed.append(self._read_line())
        return "".join(consumed)

    def _read(self, size: int) -> str:
        try:
            return self._stream.read(size)
        except (OSError, UnicodeDecodeError) as exc:
            raise RecordStreamError(f"cannot read records: {exc}") from exc

    def _read_line(self) -> str:
        try:
            return self._stream.readline()
        except (OSError, UnicodeDecodeError) as exc:
            raise RecordStreamError(f"cannot read records: {exc}") from exc

    def _lines(self) -> Iterator[str]:
        yield from io.StringIO(self._prefix)
        while True:
            line = self._read_line()
            if not line:
                return
            yield line

    def _stamp(self, record: RawRecord) -> RawRecord:
        if self._source_id is None or record.parse_error is not None:
            return record
        attributes = dict(record.attributes)
        attributes[SOURCE_ID_KEY] = self._source_id
        return RawRecord(
            attributes=attributes,
            data_source=record.data_source,
            record_id=record.record_id,
            entity_type=record.entity_type,
            line_number=record.line_number,
        )


def _json_lines_records(lines: Iterable[str]) -> Iterator[RawRecord]:
    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line or line.startswith(_COMMENT_PREFIX):
            continue
        if not line.startswith("{"):
            yield RawRecord.unparsable("line is not a JSON object", line_number=line_number)
            continue
        try:
            value = json.loads(line)
        except json.JSONDecodeError as exc:
            yield RawRecord.unparsable(f"invalid JSON: {exc.msg}", line_number=line_number)
            continue
        yield _record_from_value(value, line_number=line_number)


def _json_array_records(lines: Iterable[str]) -> Iterator[RawRecord]:
    """Decode array elements as their lines arrive.

    An element that is not valid JSON becomes a malformed record and reading resumes
    after it; only the array structure itself and oversized elements end the stream.
    """

    decoder = json.JSONDecoder()
    buffer = ""
    buffer_line = 1
    opened = closed = False
    expect_value = True
    for line in lines:
        buffer += line
        position = 0
        while True:
            position = _skip_whitespace(buffer, position)
            if position >= len(buffer):
                break
            if not opened:
                if buffer[position] != "[":
                    raise RecordStreamError("JSON record file does not start with '['")
                opened = True
                position += 1
                continue
            if closed:
                raise RecordStreamError("unexpected content after the JSON array")
            char = buffer[position]
            if char == "]":
                closed = True
                position += 1
                continue
            if not expect_value:
                if char != ",":
                    raise RecordStreamError(f"expected ',' between array elements, found {char!r}")
                expect_value = True
                position += 1
                continue
            line_number = buffer_line + buffer.count("\n", 0, position)
            try:
                value, end = decoder.raw_decode(buffer, position)
            except json.JSONDecodeError as exc:
                if _skip_whitespace(buffer, exc.pos) >= len(buffer):
                    # element continues on a later line
                    break
                end = _element_end(buffer, position)
                if end is None:
                    break
                yield RawRecord.unparsable(f"invalid JSON: {exc.msg}", line_number=line_number)
            else:
                yield _record_from_value(value, line_number=line_number)
            expect_value = False
            position = end
        buffer_line += buffer.count("\n", 0, position)
        buffer = buffer[position:]
        if len(buffer) > _MAX_ELEMENT_CHARS:
            raise RecordStreamError(
                f"JSON array element at line {buffer_line} exceeds {_MAX_ELEMENT_CHARS} characters"
            )
    if not closed:
        raise RecordStreamError("JSON array is truncated")


def _element_end(text: str, start: int) -> int | None:
    """Index of the ``,`` or ``]`` closing the element at ``start``, if already buffered."""

    depth = 0
    in_string = escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char in "[{":
            depth += 1
        elif char in "]}":
            if depth == 0 and char == "]":
                return index
            depth = max(depth - 1, 0)
        elif char == "," and depth == 0:
            return index
    return None


def _skip_whitespace(text: str, position: int) -> int:
    while position < len(text) and text[position].isspace():
        position += 1
    return position


def _csv_records(lines: Iterable[str]) -> Iterator[RawRecord]:
    content = itertools.dropwhile(lambda line: not line.strip(), lines)
    reader = csv.DictReader(content)
    try:
        header = reader.fieldnames
    except csv.Error as exc:
        raise RecordStreamError(f"unreadable CSV header: {exc}") from exc
    if header is None:
        return
    reader.fieldnames = [name.strip().upper() for name in header]
    rows = iter(reader)
    while True:
        try:
            row = next(rows)
        except StopIteration:
            return
        except csv.Error as exc:
            raise RecordStreamError(f"unreadable CSV at line {reader.line_num}: {exc}") from exc
        line_number = reader.line_num
        if None in row:
            yield RawRecord.unparsable(
                "row has more values than header columns", line_number=line_number
            )
            continue
        values = {
            name: value.strip()
            for name, value in row.items()
            if name and isinstance(value, str) and value.strip()
        }
        yield RawRecord.from_mapping(values, line_number=line_number)


def _record_from_value(value: object, *, line_number: int | None) -> RawRecord:
    if not isinstance(value, dict):
        return RawRecord.unparsable("record is not a JSON object", line_number=line_number)
    return RawRecord.from_mapping(cast(dict[str, object], value), line_number=line_number)


def read_head(path: Path, size: int = 1024) -> bytes:
    """Return the first ``size`` bytes of a file, used to fingerprint load ids."""

    try:
        with path.open("rb") as handle:
            return handle.read(size)
    except OSError as exc:
        raise RecordStreamError(f"cannot read {path}: {exc}") from exc


@contextmanager
def open_records(
    path: Path,
    *,
    record_format: RecordFormat | None = None,
    character_encoding: str = DEFAULT_ENCODING,
    source_id: str | None = None,
) -> Iterator[RecordReader]:
    try:
        handle = path.open(encoding=character_encoding, newline="")
    except (OSError, LookupError) as exc:
        raise RecordStreamError(f"cannot open {path}: {exc}") from exc
    with handle:
        reader = RecordReader(
            handle,
            record_format=record_format,
            character_encoding=character_encoding,
            source_id=source_id,
        )
        log.info("Reading %s as %s (%s)", path, reader.record_format, character_encoding)
        yield reader


if TYPE_CHECKING:
    _source_check: RecordSource = RecordReader(cast(TextIO, None))

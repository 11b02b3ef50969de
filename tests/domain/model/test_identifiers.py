from __future__ import annotations

import pytest

from bulkdata.domain.model import EntityId, RecordId, parse_entity_identifier


def test_record_id_parses_json_form() -> None:
    parsed = RecordId.parse('{"src": "CUSTOMERS", "id": "1001"}')

    assert parsed == RecordId("CUSTOMERS", "1001")


def test_record_id_parses_delimited_form() -> None:
    assert RecordId.parse(":CUSTOMERS:1001") == RecordId("CUSTOMERS", "1001")
    assert RecordId.parse("|WATCHLIST|A:B") == RecordId("WATCHLIST", "A:B")


@pytest.mark.parametrize("text", ["", "::", ":CUSTOMERS", '{"src": "CUSTOMERS"}', "{bad"])
def test_record_id_rejects_invalid_text(text: str) -> None:
    with pytest.raises(ValueError, match="record identifier|Record identifier"):
        RecordId.parse(text)


def test_record_id_requires_both_parts() -> None:
    with pytest.raises(ValueError, match="data source"):
        RecordId(" ", "1")
    with pytest.raises(ValueError, match="record id"):
        RecordId("CUSTOMERS", "")


def test_record_id_json_round_trips_through_parse() -> None:
    original = RecordId("CUSTOMERS", "1001")

    assert RecordId.parse(original.to_json()) == original


def test_entity_id_enforces_64_bit_range() -> None:
    assert EntityId.parse(" -42 ") == EntityId(-42)
    with pytest.raises(ValueError, match="64-bit"):
        EntityId(2**63)
    with pytest.raises(ValueError, match="Invalid entity id"):
        EntityId.parse("12a")


def test_parse_entity_identifier_distinguishes_shapes() -> None:
    assert parse_entity_identifier("123") == EntityId(123)
    assert parse_entity_identifier(":CUSTOMERS:123") == RecordId("CUSTOMERS", "123")

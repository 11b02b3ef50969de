from __future__ import annotations

import pytest

from bulkdata.domain.bulk_pipeline import CodeMapping, RecordClassifier, classify_attribute
from bulkdata.domain.model import AttributeClass, RawRecord
from tests.helpers.records import make_record


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("NAME_FULL", AttributeClass.NAME),
        ("home_addr_line1", AttributeClass.ADDRESS),
        ("EMAIL_ADDRESS", AttributeClass.IDENTIFIER),
        ("PHONE_NUMBER", AttributeClass.PHONE),
        ("DATE_OF_BIRTH", AttributeClass.CHARACTERISTIC),
        ("REL_ANCHOR_KEY", AttributeClass.RELATIONSHIP),
        ("SOURCE_ID", AttributeClass.OBSERVATION),
        ("FAVOURITE_COLOUR", AttributeClass.OTHER),
    ],
)
def test_classify_attribute(name: str, expected: AttributeClass) -> None:
    assert classify_attribute(name) is expected


def test_classify_collects_classes_from_nested_lists() -> None:
    record = make_record(
        NAME_FULL="Alice",
        ADDRESSES=[{"ADDR_CITY": "Berlin"}, {"PHONE_NUMBER": "555-1212"}],
    )

    classification = RecordClassifier().classify(record)

    assert not classification.malformed
    assert classification.attribute_classes == frozenset(
        {AttributeClass.NAME, AttributeClass.ADDRESS, AttributeClass.PHONE}
    )
    assert classification.data_source == "CUSTOMERS"
    assert classification.has_record_id


def test_classify_flags_unparsable_record() -> None:
    classification = RecordClassifier().classify(RawRecord.unparsable("bad json"))

    assert classification.malformed
    assert classification.reason == "bad json"
    assert classification.attribute_classes == frozenset()


def test_classify_flags_record_with_only_observations() -> None:
    classification = RecordClassifier().classify(make_record(SOURCE_ID="feed-1"))

    assert classification.malformed
    assert classification.reason == "record has no identifiable attributes"


def test_classify_flags_lists_of_scalars() -> None:
    classification = RecordClassifier().classify(make_record(NAMES=["Alice", "Bob"]))

    assert classification.malformed
    assert "must contain objects" in (classification.reason or "")


def test_classify_flags_excessive_nesting() -> None:
    nested: dict[str, object] = {"NAME_FULL": "Alice"}
    for _ in range(12):
        nested = {"INNER": nested}

    classification = RecordClassifier().classify(make_record(**nested))

    assert classification.malformed
    assert classification.reason == "attributes are nested too deeply"


def test_classify_applies_defaults_and_mappings() -> None:
    classifier = RecordClassifier(
        default_data_source="fallback",
        default_entity_type="person",
        data_source_map=CodeMapping.of({"crm": "customers"}),
    )

    mapped = classifier.classify(make_record("CRM"))
    defaulted = classifier.classify(make_record(None))

    assert mapped.data_source == "CUSTOMERS"
    assert mapped.has_data_source
    assert mapped.entity_type == "PERSON"
    assert not mapped.has_entity_type
    assert defaulted.data_source == "FALLBACK"
    assert not defaulted.has_data_source


def test_code_mapping_wildcard_applies_to_unmapped_codes() -> None:
    mapping = CodeMapping.of({"": "CUSTOMERS", "WATCH": "WATCHLIST"})

    assert mapping.apply("WATCH") == "WATCHLIST"
    assert mapping.apply("OTHER") == "CUSTOMERS"
    assert mapping.apply(None) == "CUSTOMERS"
    assert mapping.targets() == frozenset({"CUSTOMERS", "WATCHLIST"})

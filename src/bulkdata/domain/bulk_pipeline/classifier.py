"""Attribute classification for single raw records."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Final, cast

from bulkdata.domain.model import AttributeClass, normalize_code

if TYPE_CHECKING:
    from bulkdata.domain.model import RawRecord

MAX_NESTING_DEPTH: Final[int] = 8

_OBSERVATION_FIELDS: Final[frozenset[str]] = frozenset(
    {"SOURCE_ID", "LOAD_ID", "DSRC_ACTION", "RECORD_TYPE", "UPDATE_DATE", "STATUS"}
)

# first matching token wins, so IDENTIFIER precedes ADDRESS for EMAIL_ADDRESS
_TOKEN_RULES: Final[tuple[tuple[AttributeClass, frozenset[str]], ...]] = (
    (AttributeClass.RELATIONSHIP, frozenset({"REL", "RELATIONSHIP"})),
    (
        AttributeClass.IDENTIFIER,
        frozenset(
            {
                "SSN",
                "PASSPORT",
                "DRIVERS",
                "NATIONAL",
                "TAX",
                "ACCOUNT",
                "ACCT",
                "EMAIL",
                "WEBSITE",
                "DUNS",
                "NPI",
                "LEI",
                "TRUSTED",
                "SOCIAL",
                "LINKEDIN",
            }
        ),
    ),
    (AttributeClass.NAME, frozenset({"NAME"})),
    (AttributeClass.PHONE, frozenset({"PHONE", "FAX", "MOBILE"})),
    (AttributeClass.ADDRESS, frozenset({"ADDR", "ADDRESS", "POSTAL", "CITY", "STATE", "COUNTRY"})),
    (
        AttributeClass.CHARACTERISTIC,
        frozenset(
            {"DOB", "BIRTH", "DEATH", "GENDER", "NATIONALITY", "CITIZENSHIP", "REGISTRATION"}
        ),
    ),
)


def classify_attribute(name: str) -> AttributeClass:
    """Map an attribute name such as ``HOME_ADDR_LINE1`` to its attribute class."""

    upper = name.strip().upper()
    if upper in _OBSERVATION_FIELDS:
        return AttributeClass.OBSERVATION
    tokens = upper.split("_")
    for attribute_class, keywords in _TOKEN_RULES:
        if any(token in keywords for token in tokens):
            return attribute_class
    return AttributeClass.OTHER


@dataclass(frozen=True, slots=True)
class CodeMapping:
    """Upper-cased code remapping; the ``""`` entry applies to every unmapped code."""

    entries: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def of(cls, mapping: Mapping[str | None, str] | None) -> CodeMapping:
        entries: dict[str, str] = {}
        for key, value in (mapping or {}).items():
            target = normalize_code(value)
            if target is None:
                continue
            entries.setdefault(normalize_code(key) or "", target)
        return cls(entries=MappingProxyType(entries))

    def apply(self, code: str | None) -> str | None:
        mapped = self.entries.get(code or "")
        if mapped is None:
            mapped = self.entries.get("")
        return mapped or code

    def targets(self) -> frozenset[str]:
        return frozenset(self.entries.values())


@dataclass(frozen=True, slots=True)
class RecordClassification:
    data_source: str | None
    entity_type: str | None
    record_id: str | None
    attribute_classes: frozenset[AttributeClass]
    malformed: bool
    has_data_source: bool = False
    has_entity_type: bool = False
    reason: str | None = None

    @property
    def has_record_id(self) -> bool:
        return self.record_id is not None


@dataclass(frozen=True, slots=True)
class RecordClassifier:
    """Pure record inspection; unclassifiable input is flagged, never raised."""

    default_data_source: str | None = None
    default_entity_type: str | None = None
    data_source_map: CodeMapping = field(default_factory=CodeMapping)
    entity_type_map: CodeMapping = field(default_factory=CodeMapping)

    def classify(self, record: RawRecord) -> RecordClassification:
        data_source = self.data_source_map.apply(record.data_source) or normalize_code(
            self.default_data_source
        )
        entity_type = self.entity_type_map.apply(record.entity_type) or normalize_code(
            self.default_entity_type
        )

        def result(
            classes: frozenset[AttributeClass], *, reason: str | None
        ) -> RecordClassification:
            return RecordClassification(
                data_source=data_source,
                entity_type=entity_type,
                record_id=record.record_id,
                attribute_classes=classes,
                malformed=reason is not None,
                has_data_source=record.data_source is not None,
                has_entity_type=record.entity_type is not None,
                reason=reason,
            )

        if record.parse_error is not None:
            return result(frozenset(), reason=record.parse_error)

        classes: set[AttributeClass] = set()
        try:
            problem = _collect_classes(record.attributes, classes, depth=0)
        except (TypeError, ValueError, RecursionError) as exc:
            problem = f"unreadable attribute structure: {exc}"
        if problem is not None:
            return result(frozenset(), reason=problem)
        if not classes - {AttributeClass.OBSERVATION}:
            return result(frozenset(), reason="record has no identifiable attributes")
        return result(frozenset(classes), reason=None)


def _collect_classes(
    attributes: Mapping[str, object],
    classes: set[AttributeClass],
    *,
    depth: int,
) -> str | None:
    if depth > MAX_NESTING_DEPTH:
        return "attributes are nested too deeply"
    for name, value in attributes.items():
        if value is None:
            continue
        if isinstance(value, Mapping):
            problem = _collect_classes(cast(Mapping[str, object], value), classes, depth=depth + 1)
        elif isinstance(value, list):
            problem = _collect_list(name, cast(list[object], value), classes, depth=depth + 1)
        elif isinstance(value, str | int | float | bool):
            if isinstance(value, str) and not value.strip():
                continue
            classes.add(classify_attribute(str(name)))
            problem = None
        else:
            problem = f"unsupported value for attribute {name!r}"
        if problem is not None:
            return problem
    return None


def _collect_list(
    name: str,
    items: list[object],
    classes: set[AttributeClass],
    *,
    depth: int,
) -> str | None:
    for item in items:
        if not isinstance(item, Mapping):
            return f"list attribute {name!r} must contain objects"
        problem = _collect_classes(cast(Mapping[str, object], item), classes, depth=depth)
        if problem is not None:
            return problem
    return None

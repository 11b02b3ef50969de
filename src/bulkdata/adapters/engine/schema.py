"""Pydantic models describing the resolution engine REST payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bulkdata.domain.model import EntityId, parse_entity_identifier


def _to_text(value: object) -> object:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return value


def _to_entity_id(value: object) -> int:
    """Accept numeric or textual entity ids; record keys in their place are rejected."""

    if isinstance(value, bool):
        raise ValueError(f"Invalid entity id: {value!r}")  # noqa: TRY004
    if isinstance(value, int):
        return EntityId(value).value
    identifier = parse_entity_identifier(str(value))
    if not isinstance(identifier, EntityId):
        raise ValueError(f"Expected an entity id, got record key {identifier}")  # noqa: TRY004
    return identifier.value


class EngineBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AffectedEntityPayload(EngineBaseModel):
    entity_id: int = Field(alias="ENTITY_ID")

    _parse_entity_id = field_validator("entity_id", mode="before")(_to_entity_id)


class InterestingEntityPayload(EngineBaseModel):
    entity_id: int = Field(alias="ENTITY_ID")
    degrees: int | None = Field(default=None, alias="DEGREES")
    flags: list[str] = Field(default_factory=list, alias="FLAGS")

    _parse_entity_id = field_validator("entity_id", mode="before")(_to_entity_id)


class InterestingEntitiesPayload(EngineBaseModel):
    entities: list[InterestingEntityPayload] = Field(default_factory=list, alias="ENTITIES")


class ResolutionInfoPayload(EngineBaseModel):
    """The engine's ``withInfo`` document for one record."""

    data_source: str | None = Field(default=None, alias="DATA_SOURCE")
    record_id: str | None = Field(default=None, alias="RECORD_ID")
    affected_entities: list[AffectedEntityPayload] = Field(
        default_factory=list, alias="AFFECTED_ENTITIES"
    )
    interesting_entities: InterestingEntitiesPayload | None = Field(
        default=None, alias="INTERESTING_ENTITIES"
    )

    _normalize_record_id = field_validator("record_id", mode="before")(_to_text)


class LoadRecordData(EngineBaseModel):
    record_id: str | None = Field(default=None, alias="recordId")
    info: ResolutionInfoPayload | None = None

    _normalize_record_id = field_validator("record_id", mode="before")(_to_text)


class LoadRecordResponse(EngineBaseModel):
    data: LoadRecordData


class ErrorPayload(EngineBaseModel):
    code: str | None = None
    message: str = ""

    _normalize_code = field_validator("code", mode="before")(_to_text)


class ErrorResponse(EngineBaseModel):
    errors: list[ErrorPayload] = Field(default_factory=list)

    def first(self) -> ErrorPayload | None:
        return self.errors[0] if self.errors else None


class DataSourcesData(EngineBaseModel):
    data_sources: list[str] = Field(default_factory=list, alias="dataSources")


class DataSourcesResponse(EngineBaseModel):
    data: DataSourcesData

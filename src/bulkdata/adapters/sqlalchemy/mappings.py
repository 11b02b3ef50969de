"""SQLAlchemy table metadata for persisted load runs."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)

from bulkdata.domain.model import LoadStatus

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

load_run_table = Table(
    "bulk_load_run",
    mapper_registry.metadata,
    Column("load_id", String(255), primary_key=True),
    # stored as the verbatim enum names polled by clients
    Column("status", Enum(LoadStatus, native_enum=False), nullable=False),
    Column("submitted", Integer, nullable=False, default=0),
    Column("loaded", Integer, nullable=False, default=0),
    Column("skipped", Integer, nullable=False, default=0),
    Column("failed", Integer, nullable=False, default=0),
    Column("incomplete", Integer, nullable=False, default=0),
    Column("abort_reason", Text, nullable=True),
    Column("started_at", UTCDateTime(), nullable=True),
    Column("finished_at", UTCDateTime(), nullable=True),
    Column("updated_at", UTCDateTime(), nullable=False),
    Index("ix_bulk_load_run_updated_at", "updated_at"),
)

load_error_table = Table(
    "bulk_load_error",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "load_id",
        String(255),
        ForeignKey("bulk_load_run.load_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("position", Integer, nullable=False),
    Column("code", String(255), nullable=False),
    Column("message", Text, nullable=False),
    Column("data_source", String(255), nullable=True),
    Column("record_id", String(255), nullable=True),
    Column("line_number", Integer, nullable=True),
    Index("ix_bulk_load_error_load_id", "load_id", "position"),
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the load-run metadata."""

    log.info("Creating load-run tables")
    mapper_registry.metadata.create_all(engine)

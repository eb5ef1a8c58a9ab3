"""SQLAlchemy table metadata for stored catalog entities."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Dialect,
    Index,
    MetaData,
    String,
    Table,
    TypeDecorator,
)

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


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "pk": "pk_%(table_name)s",
    }
)

catalog_entity_table = Table(
    "catalog_entity",
    metadata,
    Column("partition_key", String, primary_key=True),
    Column("entity_ref", String, primary_key=True),
    Column("kind", String, nullable=False),
    Column("name", String(63), nullable=False),
    Column("body", JSON, nullable=False),
    Column("synced_at", UTCDateTime, nullable=False),
    Index("ix_catalog_entity_kind", "partition_key", "kind"),
)


def create_all_tables(engine: Engine) -> None:
    log.debug("Ensuring catalog tables on %s", engine.url.render_as_string(hide_password=True))
    metadata.create_all(engine, checkfirst=True)

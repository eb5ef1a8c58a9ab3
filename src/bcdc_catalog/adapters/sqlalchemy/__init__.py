"""SQLAlchemy adapter package for catalog entity storage."""

from __future__ import annotations

from .mappings import catalog_entity_table, create_all_tables, metadata
from .sink import SqlAlchemyEntitySink, StoredEntity, create_entity_sink

__all__ = [
    "SqlAlchemyEntitySink",
    "StoredEntity",
    "catalog_entity_table",
    "create_all_tables",
    "create_entity_sink",
    "metadata",
]

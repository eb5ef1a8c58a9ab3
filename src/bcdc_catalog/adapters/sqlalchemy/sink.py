"""Full-replace entity sink backed by a SQLAlchemy engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, cast

from sqlalchemy import create_engine, delete, insert, make_url, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from bcdc_catalog.config.storage import resolve_database_uri

from .mappings import catalog_entity_table, create_all_tables

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.engine import Engine

    from bcdc_catalog.domain.entities import CatalogEntity, EntityDict

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class StoredEntity:
    partition_key: str
    entity_ref: str
    kind: str
    name: str
    body: EntityDict
    synced_at: datetime


class SqlAlchemyEntitySink:
    """Stores each partition's entities as JSON documents, replacing the partition per call."""

    def __init__(self, engine: Engine) -> None:
        create_all_tables(engine)
        self._engine = engine
        self._session_factory: sessionmaker[Session] = sessionmaker(
            bind=engine, expire_on_commit=False
        )

    @property
    def engine(self) -> Engine:
        return self._engine

    def apply_full_mutation(
        self,
        *,
        partition_key: str,
        entities: Sequence[CatalogEntity],
    ) -> None:
        synced_at = datetime.now(UTC)
        rows = [
            {
                "partition_key": partition_key,
                "entity_ref": entity.ref,
                "kind": entity.kind.value,
                "name": entity.name,
                "body": entity.to_dict(),
                "synced_at": synced_at,
            }
            for entity in entities
        ]

        with self._session_factory() as session, session.begin():
            removed = session.execute(
                delete(catalog_entity_table).where(
                    catalog_entity_table.c.partition_key == partition_key
                )
            )
            if rows:
                session.execute(insert(catalog_entity_table), rows)

        log.info(
            "Replaced partition %s: %s removed, %s stored",
            partition_key,
            getattr(removed, "rowcount", "?"),
            len(rows),
        )

    def load_partition(self, partition_key: str, *, kind: str | None = None) -> list[StoredEntity]:
        stmt = select(catalog_entity_table).where(
            catalog_entity_table.c.partition_key == partition_key
        )
        if kind is not None:
            stmt = stmt.where(catalog_entity_table.c.kind == kind)
        stmt = stmt.order_by(catalog_entity_table.c.entity_ref)

        with self._session_factory() as session:
            return [
                StoredEntity(
                    partition_key=row.partition_key,
                    entity_ref=row.entity_ref,
                    kind=row.kind,
                    name=row.name,
                    body=cast("EntityDict", row.body),
                    synced_at=row.synced_at,
                )
                for row in session.execute(stmt)
            ]


def _create_engine(database_uri: str) -> Engine:
    url = make_url(database_uri)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        # mutations run on a worker thread; every thread must see the same database
        return create_engine(
            url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, future=True)


def create_entity_sink(database_uri: str | None = None) -> SqlAlchemyEntitySink:
    return SqlAlchemyEntitySink(_create_engine(resolve_database_uri(database_uri)))

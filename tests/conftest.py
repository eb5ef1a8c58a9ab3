from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from bcdc_catalog.adapters.sqlalchemy import SqlAlchemyEntitySink

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def entity_sink(sqlite_engine: Engine) -> SqlAlchemyEntitySink:
    return SqlAlchemyEntitySink(sqlite_engine)


@pytest.fixture(autouse=True)
def _isolated_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> None:
    for name in (
        "BCDC_ENVIRONMENT",
        "BCDC_BACKEND_BASE_URL",
        "BCDC_ALLOWED_HOSTS",
        "BCDC_CATALOGUE_SEARCH_URL",
        "BCDC_HTTP_CACHE",
        "BCDC_SYNC_FREQUENCY_SECONDS",
        "BCDC_SYNC_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BCDC_DATA_DIR", str(tmp_path_factory.mktemp("bcdc-data")))

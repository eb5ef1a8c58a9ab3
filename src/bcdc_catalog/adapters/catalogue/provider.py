"""Entity provider running one BC Data Catalogue sync at a time."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .client import HttpUrlReader
from .fetcher import PageFetchState, fetch_packages
from .translator import CatalogueTranslator

if TYPE_CHECKING:
    from collections.abc import Callable
    from contextlib import AbstractAsyncContextManager

    from bcdc_catalog.config.catalogue import CatalogueConfig
    from bcdc_catalog.domain.ports.fetching import UrlReader
    from bcdc_catalog.domain.ports.sink import EntitySink

    ReaderFactory = Callable[[], AbstractAsyncContextManager[UrlReader]]

log = getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CatalogueSyncResult:
    """Outcome of one provider run."""

    state: PageFetchState
    packages: int
    entities: int
    applied: bool


class CatalogueProvider:
    """Fetches every catalogue page, translates the packages and replaces the sink's set.

    Runs must not overlap: two concurrent runs would both issue a full replace
    for the same partition key.
    """

    def __init__(
        self,
        *,
        config: CatalogueConfig,
        sink: EntitySink,
        reader_factory: ReaderFactory | None = None,
    ) -> None:
        self._config = config
        self._sink = sink
        self._reader_factory = reader_factory or (lambda: HttpUrlReader(config.resilience))

    @property
    def provider_name(self) -> str:
        return f"bc-data-catalogue-apis-{self._config.environment}"

    @property
    def partition_key(self) -> str:
        return f"bc-data-catalogue-provider:{self._config.environment}"

    def run(self) -> CatalogueSyncResult:
        return asyncio.run(self.run_async())

    async def run_async(self) -> CatalogueSyncResult:
        log.info("<run %s", self.provider_name)

        async with self._reader_factory() as reader:
            fetched = await fetch_packages(reader, search_url=self._config.search_url)
            if fetched.state is PageFetchState.ABORTED:
                log.error(
                    "Catalogue fetch aborted after %s requests; leaving %s untouched",
                    fetched.requests,
                    self.partition_key,
                )
                return CatalogueSyncResult(
                    state=fetched.state,
                    packages=len(fetched.packages),
                    entities=0,
                    applied=False,
                )

            translator = CatalogueTranslator(
                reader=reader,
                allowed_hosts=self._config.allowed_hosts,
                managed_by=self._config.search_url,
            )
            entities = await translator.translate(fetched.packages)

        batch = entities.all_entities()
        await asyncio.to_thread(
            self._sink.apply_full_mutation, partition_key=self.partition_key, entities=batch
        )

        log.info(">run %s: %s entities applied", self.provider_name, len(batch))
        return CatalogueSyncResult(
            state=fetched.state,
            packages=len(fetched.packages),
            entities=len(batch),
            applied=True,
        )

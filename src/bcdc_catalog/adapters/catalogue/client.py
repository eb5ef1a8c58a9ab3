"""HTTP URL reader used for catalogue pages and API definitions."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx

from bcdc_catalog.adapters.http_resilience import ResilientClient
from bcdc_catalog.domain.ports.fetching import FetchError

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from bcdc_catalog.config.http_resilience import ResilienceConfig

log = getLogger(__name__)


class HttpUrlReader:
    """Reads whole response bodies through one :class:`ResilientClient`.

    The client is opened lazily and lives until :meth:`aclose`, so one reader
    should be scoped to one sync run.
    """

    def __init__(
        self,
        resilience: ResilienceConfig,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._resilience = resilience
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> HttpUrlReader:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def read_url(self, url: str) -> bytes:
        if self._client is None:
            self._client = self._client_factory(self._resilience)

        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(f"Failed to read {url}: {exc}", url=url) from exc

        log.debug("Read %s bytes from %s", len(response.content), url)
        return response.content

"""Paginated retrieval of catalogue packages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from bcdc_catalog.config.catalogue import CATALOGUE_SEARCH_URL
from bcdc_catalog.domain.ports.fetching import FetchError

from .schema import CataloguePackage, PackageSearchResponse, parse_package

if TYPE_CHECKING:
    from collections.abc import Iterable

    from bcdc_catalog.domain.ports.fetching import UrlReader

log = getLogger(__name__)

PAGE_SIZE: Final[int] = 1000
MAX_CONSECUTIVE_FAILURES: Final[int] = 3


class PageFetchState(StrEnum):
    DONE = "done"
    ABORTED = "aborted"


@dataclass(slots=True)
class PageFetchResult:
    """Outcome of one pagination pass over the catalogue."""

    state: PageFetchState
    packages: list[CataloguePackage] = field(default_factory=list[CataloguePackage])
    pages: int = 0
    requests: int = 0
    consecutive_failures: int = 0


def page_url(search_url: str, page: int, *, page_size: int = PAGE_SIZE) -> str:
    return f"{search_url}?start={page * page_size}&rows={page_size}"


def select_packages(results: Iterable[object]) -> list[CataloguePackage]:
    """Validate raw results and keep the active datasets.

    A structural violation raises ``CataloguePackageValidationError``; packages of
    another type or state are dropped.
    """

    selected: list[CataloguePackage] = []
    dropped = 0
    for item in results:
        package = parse_package(item)
        if package.is_active_dataset:
            selected.append(package)
            continue
        dropped += 1
        log.debug(
            "Skipping package %s (type=%s, state=%s)", package.id, package.type, package.state
        )

    if dropped:
        log.info("Dropped %s packages that are not active datasets", dropped)
    return selected


async def fetch_packages(
    reader: UrlReader,
    *,
    search_url: str = CATALOGUE_SEARCH_URL,
    page_size: int = PAGE_SIZE,
    max_consecutive_failures: int = MAX_CONSECUTIVE_FAILURES,
) -> PageFetchResult:
    """Walk the search pages until one comes back empty.

    Malformed or failed responses retry the same page straight away; only
    consecutive failures are bounded, a good page resets the counter.
    """

    result = PageFetchResult(state=PageFetchState.DONE)
    page = 0

    while True:
        url = page_url(search_url, page, page_size=page_size)
        result.requests += 1
        rows = await _request_page(reader, url)

        if rows is None:
            result.consecutive_failures += 1
            if result.consecutive_failures >= max_consecutive_failures:
                log.error(
                    "Giving up on catalogue page %s after %s consecutive failures",
                    page,
                    result.consecutive_failures,
                )
                result.state = PageFetchState.ABORTED
                return result
            continue

        result.consecutive_failures = 0
        if not rows:
            log.info(f"Total packages {len(result.packages)} from {result.pages} pages")
            return result

        packages = select_packages(rows)
        result.packages.extend(packages)
        result.pages += 1
        log.info("Catalogue page %s: %s results, %s kept", page, len(rows), len(packages))
        page += 1


async def _request_page(reader: UrlReader, url: str) -> list[object] | None:
    try:
        body = await reader.read_url(url)
    except FetchError as exc:
        log.warning("Failed to fetch catalogue page %s: %s", url, exc)
        return None

    try:
        response = PackageSearchResponse.model_validate_json(body)
    except ValidationError as exc:
        log.warning("Invalid response from %s (%s validation errors)", url, exc.error_count())
        return None

    if not response.success:
        log.warning("Unsuccessful response from %s", url)
        return None
    return response.result.results

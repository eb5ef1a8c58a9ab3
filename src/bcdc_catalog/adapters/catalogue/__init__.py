"""Public interface for the BC Data Catalogue adapter."""

from __future__ import annotations

from .client import HttpUrlReader
from .fetcher import PageFetchResult, PageFetchState, fetch_packages, select_packages
from .provider import CatalogueProvider, CatalogueSyncResult
from .schema import (
    CataloguePackage,
    CataloguePackageValidationError,
    PackageSearchResponse,
    Resource,
    parse_package,
)
from .translator import ApiRegistry, CatalogEntities, CatalogueTranslator

__all__ = [
    "ApiRegistry",
    "CatalogEntities",
    "CatalogueProvider",
    "CatalogueSyncResult",
    "CatalogueTranslator",
    "CataloguePackage",
    "CataloguePackageValidationError",
    "HttpUrlReader",
    "PackageSearchResponse",
    "PageFetchResult",
    "PageFetchState",
    "Resource",
    "fetch_packages",
    "parse_package",
    "select_packages",
]

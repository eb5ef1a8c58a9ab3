"""Domain port definitions for adapters."""

from __future__ import annotations

from .fetching import FetchError, UrlReader
from .sink import EntitySink

__all__ = [
    "EntitySink",
    "FetchError",
    "UrlReader",
]

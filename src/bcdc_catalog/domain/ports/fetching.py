"""Ports for reading remote content."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


class FetchError(RuntimeError):
    """Raised when a URL cannot be read."""

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


@runtime_checkable
class UrlReader(Protocol):
    """Async capability returning the raw body stored at ``url``."""

    async def read_url(self, url: str) -> bytes: ...


__all__ = ["FetchError", "UrlReader"]

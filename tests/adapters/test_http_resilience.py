from __future__ import annotations

from typing import Any, cast

import pytest

from bcdc_catalog.adapters.http_resilience import (
    CacheConfig,
    RateLimit,
    ResilienceConfig,
    ResilientClient,
    _build_cache_components,  # type: ignore[reportPrivateUsage]
    _ShouldCacheResponseFilter,  # type: ignore[reportPrivateUsage]
)


def _only_definitions(payload: object) -> bool:
    return not (isinstance(payload, dict) and "success" in payload)


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        (b'{"openapi": "3.0.0"}', True),
        (b'{"success": true, "result": {"results": []}}', False),
        (b"<html>maintenance</html>", False),
        (b"\xff\xfe", False),
        (None, False),
    ],
)
def test_cache_filter_only_keeps_matching_json(body: bytes | None, expected: bool) -> None:
    response_filter = _ShouldCacheResponseFilter(_only_definitions)

    assert response_filter.needs_body() is True
    assert response_filter.apply(cast("Any", None), body) is expected


def test_cache_components_disabled() -> None:
    assert _build_cache_components(None) == (None, None)
    assert _build_cache_components(CacheConfig(enabled=False)) == (None, None)


def test_cache_components_reject_unknown_backend() -> None:
    with pytest.raises(ValueError, match="Unsupported cache backend"):
        _build_cache_components(CacheConfig(backend=cast("Any", "sqlite")))


def test_client_without_cache_uses_plain_httpx_client() -> None:
    client = ResilientClient(
        ResilienceConfig(
            name="test",
            cache=None,
            ratelimit=RateLimit(max_calls=1, per_seconds=1.0),
            default_headers={"Accept": "application/json"},
        )
    )

    inner = client._client  # noqa: SLF001  # type: ignore[reportPrivateUsage]
    assert inner.headers["Accept"] == "application/json"
    assert inner.follow_redirects is True
    assert client._limiter is not None  # noqa: SLF001  # type: ignore[reportPrivateUsage]

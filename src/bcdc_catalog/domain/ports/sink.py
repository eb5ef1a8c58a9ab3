"""Port for the store that receives the entities of a sync run."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from bcdc_catalog.domain.entities import CatalogEntity


@runtime_checkable
class EntitySink(Protocol):
    """Full-replace store for catalog entities.

    Every call carries the complete entity set for ``partition_key``: entities
    previously stored under the same key but absent from ``entities`` are removed.
    """

    def apply_full_mutation(
        self,
        *,
        partition_key: str,
        entities: Sequence[CatalogEntity],
    ) -> None: ...


__all__ = ["EntitySink"]

"""Batch synchronisation of catalog rows into the search index."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Protocol, Sequence

from gunpla_search.app.services.search_config import SearchConfig

logger = logging.getLogger(__name__)


class WritableIndex(Protocol):
    async def add_documents(
        self,
        collection: str,
        documents: Sequence[Mapping[str, Any]],
        primary_key: str = "id",
    ) -> dict[str, Any]: ...

    async def delete_all_documents(self, collection: str) -> dict[str, Any]: ...

    async def update_settings(
        self, collection: str, index_settings: Mapping[str, Any]
    ) -> dict[str, Any]: ...


class DocumentSource(Protocol):
    async def kit_documents(self) -> list[dict[str, Any]]: ...

    async def mobile_suit_documents(self) -> list[dict[str, Any]]: ...

    async def series_documents(self) -> list[dict[str, Any]]: ...

    async def product_line_documents(self) -> list[dict[str, Any]]: ...

    async def grade_documents(self) -> list[dict[str, Any]]: ...


KIT_INDEX_SETTINGS: dict[str, Any] = {
    "searchableAttributes": [
        "name",
        "number",
        "variant",
        "searchableText",
    ],
    "filterableAttributes": [
        "productLine.id",
        "productLine.grade.id",
        "series.id",
        "series.timeline.id",
        "releaseType.id",
        "mobileSuits.id",
        "baseKitId",
    ],
    "sortableAttributes": ["name", "releaseDate", "priceYen"],
}

MOBILE_SUIT_INDEX_SETTINGS: dict[str, Any] = {
    "searchableAttributes": ["name", "description", "searchableText"],
    "filterableAttributes": ["series.id", "series.timeline.id"],
    "sortableAttributes": ["name"],
}

SERIES_INDEX_SETTINGS: dict[str, Any] = {
    "searchableAttributes": ["name", "description", "searchableText"],
    "filterableAttributes": ["timeline.id"],
    "sortableAttributes": ["name"],
}

PRODUCT_LINE_INDEX_SETTINGS: dict[str, Any] = {
    "searchableAttributes": ["name", "description", "searchableText"],
    "filterableAttributes": ["grade.id"],
    "sortableAttributes": ["name"],
}

GRADE_INDEX_SETTINGS: dict[str, Any] = {
    "searchableAttributes": ["name", "description", "searchableText"],
    "sortableAttributes": ["name"],
}


@dataclass(slots=True)
class SyncReport:
    """Number of documents pushed per collection."""

    counts: dict[str, int] = field(default_factory=dict)
    elapsed_ms: float = 0.0

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def chunked(items: Sequence[Any], size: int) -> list[Sequence[Any]]:
    size = max(int(size), 1)
    return [items[start : start + size] for start in range(0, len(items), size)]


class IndexSynchronizer:
    """Copy catalog documents from the relational store into the index."""

    def __init__(
        self,
        source: DocumentSource,
        index: WritableIndex,
        config: SearchConfig,
    ) -> None:
        self._source = source
        self._index = index
        self._config = config

    def _collections(
        self,
    ) -> list[tuple[str, Callable[[], Awaitable[list[dict[str, Any]]]], dict[str, Any]]]:
        names = self._config.indexes
        return [
            (names.kits, self._source.kit_documents, KIT_INDEX_SETTINGS),
            (
                names.mobile_suits,
                self._source.mobile_suit_documents,
                MOBILE_SUIT_INDEX_SETTINGS,
            ),
            (names.series, self._source.series_documents, SERIES_INDEX_SETTINGS),
            (
                names.product_lines,
                self._source.product_line_documents,
                PRODUCT_LINE_INDEX_SETTINGS,
            ),
            (names.grades, self._source.grade_documents, GRADE_INDEX_SETTINGS),
        ]

    async def configure_indexes(self) -> None:
        for collection, _, index_settings in self._collections():
            logger.info("Updating settings for index %s", collection)
            await self._index.update_settings(collection, index_settings)

    async def sync(self, *, clear: bool = False) -> SyncReport:
        """Push every collection; ``clear`` removes existing documents first."""

        start = time.perf_counter()
        report = SyncReport()
        batch_size = self._config.limits.sync_batch_size
        for collection, load, _ in self._collections():
            documents = await load()
            if clear:
                await self._index.delete_all_documents(collection)
            for batch in chunked(documents, batch_size):
                await self._index.add_documents(collection, batch)
            report.counts[collection] = len(documents)
            logger.info("Queued %d documents for index %s", len(documents), collection)

        report.elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "Index sync queued %d documents in %.1fms", report.total, report.elapsed_ms
        )
        return report


__all__ = [
    "GRADE_INDEX_SETTINGS",
    "IndexSynchronizer",
    "KIT_INDEX_SETTINGS",
    "MOBILE_SUIT_INDEX_SETTINGS",
    "PRODUCT_LINE_INDEX_SETTINGS",
    "SERIES_INDEX_SETTINGS",
    "SyncReport",
    "chunked",
]

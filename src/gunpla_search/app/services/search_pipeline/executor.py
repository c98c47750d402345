"""Index query execution for the search pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IndexSearchResponse:
    """Raw hits in native relevance order plus the index's hit estimate."""

    hits: list[dict[str, Any]] = field(default_factory=list)
    estimated_total_hits: int = 0


class SearchIndex(Protocol):
    """Read interface of the external full-text index."""

    async def search(
        self,
        collection: str,
        query: str,
        *,
        filter: str | None = None,
        sort: Sequence[str] | None = None,
        limit: int = 20,
        offset: int = 0,
        attributes_to_retrieve: Sequence[str] | None = None,
    ) -> IndexSearchResponse:
        """Return hits for ``query`` in ``collection``."""

        ...


def candidate_limit(limit: int, rerank: bool, cap: int = 100) -> int:
    """Return how many candidates to request for a page of ``limit`` results.

    Reordering needs material from beyond the page boundary, so twice the
    page size is fetched (capped) when the reranker will move things around.
    """

    limit = max(int(limit), 0)
    if not rerank:
        return limit
    return min(limit * 2, cap)


class IndexQueryExecutor:
    """Issue retrieval calls against the index.

    Errors from the index are not caught here; the public entry points decide
    between falling back and failing.
    """

    def __init__(self, index: SearchIndex, max_candidates: int = 100) -> None:
        self._index = index
        self._max_candidates = max_candidates

    @property
    def max_candidates(self) -> int:
        return self._max_candidates

    def candidate_limit(self, limit: int, rerank: bool) -> int:
        return candidate_limit(limit, rerank, self._max_candidates)

    async def execute(
        self,
        collection: str,
        query: str,
        *,
        filter: str | None = None,
        sort: Sequence[str] | None = None,
        limit: int,
        offset: int = 0,
        attributes: Sequence[str] | None = None,
    ) -> IndexSearchResponse:
        response = await self._index.search(
            collection,
            query,
            filter=filter,
            sort=list(sort) if sort else None,
            limit=limit,
            offset=offset,
            attributes_to_retrieve=attributes,
        )
        logger.debug(
            "Index %s returned %d hits (estimated total %d) for %r",
            collection,
            len(response.hits),
            response.estimated_total_hits,
            query,
        )
        return response


__all__ = [
    "IndexQueryExecutor",
    "IndexSearchResponse",
    "SearchIndex",
    "candidate_limit",
]

from __future__ import annotations

"""Result reranking component for the search pipeline."""

import enum
import logging
from typing import Protocol, Sequence

from gunpla_search.app.services.search_config import (
    DEFAULT_ERA_CUTOFF_YEAR,
    DEFAULT_GRADE_PRIORITY,
)

from .documents import SearchableKit

logger = logging.getLogger(__name__)

ERA_MODERN = 0
ERA_OLDER = 1
ERA_UNDATED = 2


class RankingPolicy(enum.Enum):
    """Reordering strategy, chosen by call site."""

    # Full kits listing: era buckets, base kits, grade priority.
    CATALOG = "catalog"
    # Compact cross-entity preview: base kits before variants, then truncate.
    PREVIEW = "preview"


class BaseSearchReranker(Protocol):
    """Interface for producing the final ordered candidate list."""

    policy: RankingPolicy

    def rerank(
        self,
        candidates: Sequence[SearchableKit],
        prioritize_base_kits: bool,
        limit: int | None = None,
    ) -> list[SearchableKit]:
        """Return ``candidates`` reordered according to the policy."""


class CatalogReranker:
    """Order kits by release era, base-kit status and grade priority.

    The original index order is the last sort key, so kits that tie on every
    policy key keep their relevance order.
    """

    policy = RankingPolicy.CATALOG

    def __init__(
        self,
        era_cutoff_year: int = DEFAULT_ERA_CUTOFF_YEAR,
        grade_priority: Sequence[str] = DEFAULT_GRADE_PRIORITY,
    ) -> None:
        self.era_cutoff_year = era_cutoff_year
        self.grade_priority = tuple(code.lower() for code in grade_priority)
        self._grade_rank = {code: idx for idx, code in enumerate(self.grade_priority)}

    def era_bucket(self, kit: SearchableKit) -> int:
        year = kit.release_year
        if year is None:
            return ERA_UNDATED
        return ERA_MODERN if year >= self.era_cutoff_year else ERA_OLDER

    def grade_rank(self, kit: SearchableKit) -> int:
        code = kit.grade_code
        if code is None:
            return len(self.grade_priority)
        return self._grade_rank.get(code, len(self.grade_priority))

    def rerank(
        self,
        candidates: Sequence[SearchableKit],
        prioritize_base_kits: bool,
        limit: int | None = None,
    ) -> list[SearchableKit]:
        if not candidates:
            return []

        if prioritize_base_kits:
            keyed = [
                (
                    (
                        self.era_bucket(kit),
                        0 if kit.is_base_kit else 1,
                        self.grade_rank(kit),
                        position,
                    ),
                    kit,
                )
                for position, kit in enumerate(candidates)
            ]
        else:
            keyed = [
                ((self.era_bucket(kit), self.grade_rank(kit), position), kit)
                for position, kit in enumerate(candidates)
            ]
        keyed.sort(key=lambda item: item[0])
        ranked = [kit for _, kit in keyed]

        logger.debug(
            "Catalog reranker ordered %d kits (base-kit priority=%s)",
            len(ranked),
            prioritize_base_kits,
        )
        if limit is not None:
            return ranked[: max(limit, 0)]
        return ranked


class PreviewReranker:
    """Lightweight ordering for the search preview.

    Base kits are moved ahead of variants when requested; nothing else is
    reordered.
    """

    policy = RankingPolicy.PREVIEW

    def __init__(self, preview_size: int = 8) -> None:
        self.preview_size = preview_size

    def rerank(
        self,
        candidates: Sequence[SearchableKit],
        prioritize_base_kits: bool,
        limit: int | None = None,
    ) -> list[SearchableKit]:
        size = self.preview_size if limit is None else max(limit, 0)
        if not prioritize_base_kits:
            return list(candidates[:size])

        base_kits = [kit for kit in candidates if kit.is_base_kit]
        variant_kits = [kit for kit in candidates if not kit.is_base_kit]
        return (base_kits + variant_kits)[:size]


__all__ = [
    "BaseSearchReranker",
    "CatalogReranker",
    "ERA_MODERN",
    "ERA_OLDER",
    "ERA_UNDATED",
    "PreviewReranker",
    "RankingPolicy",
]

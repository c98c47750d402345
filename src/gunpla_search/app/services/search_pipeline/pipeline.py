"""Composable pipeline orchestration for catalog searches."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from gunpla_search.app.services.search_config import SearchConfig

from .documents import (
    KIT_ATTRIBUTES,
    MOBILE_SUIT_ATTRIBUTES,
    SearchableKit,
    SearchableMobileSuit,
)
from .executor import IndexQueryExecutor, IndexSearchResponse
from .filters import FilterCriteria, build_listing_sort, compile_criteria
from .normalizer import BaseSearchNormalizer, NormalizedQuery
from .projector import (
    CrossEntitySearchResult,
    ProjectedKit,
    ProjectedMobileSuit,
    RankedResultPage,
    paginate,
    project_kit,
    project_mobile_suit,
)
from .reranker import CatalogReranker, PreviewReranker

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SearchPipelineComponents:
    """Concrete pipeline step implementations."""

    normalizer: BaseSearchNormalizer
    preview_normalizer: BaseSearchNormalizer
    executor: IndexQueryExecutor
    catalog_reranker: CatalogReranker
    preview_reranker: PreviewReranker


@dataclass(slots=True)
class KitListingPlan:
    """Decisions taken before the kits listing hits the index."""

    normalized: NormalizedQuery
    filter: str | None
    sort: list[str] = field(default_factory=list)
    rerank: bool = True
    fetch_limit: int = 0


@dataclass(slots=True)
class SearchPipeline:
    """Execute the configured search pipeline components in order.

    Index failures propagate out of every method; recovery is decided by the
    public API layer.
    """

    components: SearchPipelineComponents
    config: SearchConfig

    def plan_listing(self, criteria: FilterCriteria) -> KitListingPlan:
        comps = self.components
        normalized = comps.normalizer.normalize(criteria.search_term)
        filter_expr = compile_criteria(criteria)
        sort = build_listing_sort(criteria.sort_by, criteria.order)
        # An explicit sort is honoured as-is; reranking only refines relevance.
        rerank = criteria.is_relevance_sort
        over_fetch = rerank and normalized.prioritize_base_kits
        return KitListingPlan(
            normalized=normalized,
            filter=filter_expr,
            sort=sort,
            rerank=rerank,
            fetch_limit=comps.executor.candidate_limit(criteria.limit, over_fetch),
        )

    async def list_kits(self, criteria: FilterCriteria) -> RankedResultPage:
        """Return one reranked, paginated page of the kits listing."""

        plan = self.plan_listing(criteria)
        response = await self.components.executor.execute(
            self.config.indexes.kits,
            plan.normalized.text,
            filter=plan.filter,
            sort=plan.sort,
            limit=plan.fetch_limit,
            offset=criteria.offset,
            attributes=KIT_ATTRIBUTES,
        )
        kits = [SearchableKit.from_hit(hit) for hit in response.hits]
        if plan.rerank:
            kits = self.components.catalog_reranker.rerank(
                kits, plan.normalized.prioritize_base_kits, criteria.limit
            )
        return paginate(
            kits,
            limit=criteria.limit,
            offset=criteria.offset,
            estimated_total_hits=response.estimated_total_hits,
        )

    async def preview(
        self,
        query: str,
        *,
        kit_filter: str | None = None,
        mobile_suit_filter: str | None = None,
        sort: list[str] | None = None,
    ) -> CrossEntitySearchResult:
        """Search kits and mobile suits for the compact search preview."""

        comps = self.components
        limits = self.config.limits
        normalized = comps.preview_normalizer.normalize(query)
        if not normalized.text:
            return CrossEntitySearchResult.empty()

        prioritize = normalized.prioritize_base_kits
        kit_limit = (
            limits.preview_candidates if prioritize else limits.preview_variant_candidates
        )
        kits_response, suits_response = await asyncio.gather(
            comps.executor.execute(
                self.config.indexes.kits,
                normalized.text,
                filter=kit_filter,
                sort=sort,
                limit=kit_limit,
                attributes=KIT_ATTRIBUTES,
            ),
            comps.executor.execute(
                self.config.indexes.mobile_suits,
                normalized.text,
                filter=mobile_suit_filter,
                limit=limits.preview_size,
                attributes=MOBILE_SUIT_ATTRIBUTES,
            ),
        )

        kits = [SearchableKit.from_hit(hit) for hit in kits_response.hits]
        ranked = comps.preview_reranker.rerank(kits, prioritize, limits.preview_size)
        suits = [
            project_mobile_suit(SearchableMobileSuit.from_hit(hit))
            for hit in suits_response.hits
        ]
        total_kits = kits_response.estimated_total_hits
        total_suits = suits_response.estimated_total_hits
        return CrossEntitySearchResult(
            kits=[project_kit(kit) for kit in ranked],
            mobile_suits=suits,
            total_kits=total_kits,
            total_mobile_suits=total_suits,
            has_more=(
                total_kits > limits.preview_size or total_suits > limits.preview_size
            ),
        )

    async def suggest(self, query: str) -> list[str]:
        """Return up to ``suggestion_limit`` distinct kit and mobile suit names."""

        limits = self.config.limits
        if len(query or "") < limits.min_suggestion_length:
            return []

        executor = self.components.executor
        kits_response, suits_response = await asyncio.gather(
            executor.execute(
                self.config.indexes.kits,
                query,
                limit=limits.suggestion_limit,
                attributes=("name",),
            ),
            executor.execute(
                self.config.indexes.mobile_suits,
                query,
                limit=limits.suggestion_limit,
                attributes=("name",),
            ),
        )
        names = [_hit_name(hit) for hit in kits_response.hits]
        names += [_hit_name(hit) for hit in suits_response.hits]
        unique = [name for name in dict.fromkeys(names) if name]
        return unique[: limits.suggestion_limit]

    async def find_kits(self, query: str, limit: int) -> list[ProjectedKit]:
        text = (query or "").strip()
        if not text:
            return []
        response = await self.components.executor.execute(
            self.config.indexes.kits,
            text,
            limit=limit,
            attributes=KIT_ATTRIBUTES,
        )
        return [project_kit(SearchableKit.from_hit(hit)) for hit in response.hits]

    async def find_mobile_suits(
        self, query: str, limit: int
    ) -> list[ProjectedMobileSuit]:
        text = (query or "").strip()
        if not text:
            return []
        response = await self.components.executor.execute(
            self.config.indexes.mobile_suits,
            text,
            limit=limit,
            attributes=MOBILE_SUIT_ATTRIBUTES,
        )
        return [
            project_mobile_suit(SearchableMobileSuit.from_hit(hit))
            for hit in response.hits
        ]

    async def taxonomy_options(self) -> dict[str, list[dict[str, str]]]:
        """Collect timeline and grade options from the series/product line indexes."""

        executor = self.components.executor
        series_response, product_lines_response = await asyncio.gather(
            executor.execute(
                self.config.indexes.series, "", limit=1000, attributes=("timeline",)
            ),
            executor.execute(
                self.config.indexes.product_lines,
                "",
                limit=1000,
                attributes=("grade",),
            ),
        )
        return {
            "timelines": _distinct_options(series_response, "timeline"),
            "grades": _distinct_options(product_lines_response, "grade"),
        }


def _hit_name(hit: dict[str, Any]) -> str:
    return str(hit.get("name") or "")


def _distinct_options(
    response: IndexSearchResponse, attribute: str
) -> list[dict[str, str]]:
    options: dict[str, dict[str, str]] = {}
    for hit in response.hits:
        nested = hit.get(attribute)
        if not isinstance(nested, dict):
            continue
        slug = nested.get("slug")
        if not slug or slug in options:
            continue
        options[slug] = {"value": str(slug), "label": str(nested.get("name") or slug)}
    return list(options.values())


__all__ = [
    "KitListingPlan",
    "SearchPipeline",
    "SearchPipelineComponents",
]

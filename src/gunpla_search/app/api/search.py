import asyncio
import logging
from typing import Any, Protocol

from gunpla_search.app.services.search_config import SearchConfig
from gunpla_search.app.services.search_pipeline import (
    CatalogReranker,
    CrossEntitySearchResult,
    DefaultSearchNormalizer,
    FilterCriteria,
    FilterDataError,
    IndexQueryExecutor,
    KitSearchError,
    PreviewReranker,
    ProjectedKit,
    ProjectedMobileSuit,
    RankedResultPage,
    SearchFilters,
    SearchIndex,
    SearchPipeline,
    SearchPipelineComponents,
    compile_filter,
)
from gunpla_search.app.services.search_pipeline.filters import (
    ALL,
    GRADE_PATH,
    TIMELINE_PATH,
    build_search_sort,
)


logger = logging.getLogger(__name__)


DEFAULT_TIMELINE_OPTIONS: list[dict[str, str]] = [
    {"value": "universal-century", "label": "Universal Century"},
    {"value": "after-colony", "label": "After Colony"},
    {"value": "cosmic-era", "label": "Cosmic Era"},
    {"value": "anno-domini", "label": "Anno Domini"},
    {"value": "advanced-generation", "label": "Advanced Generation"},
    {"value": "regild-century", "label": "Regild Century"},
    {"value": "post-disaster", "label": "Post Disaster"},
    {"value": "ad-stella", "label": "Ad Stella"},
]

DEFAULT_GRADE_OPTIONS: list[dict[str, str]] = [
    {"value": "hg", "label": "HG (High Grade)"},
    {"value": "rg", "label": "RG (Real Grade)"},
    {"value": "mg", "label": "MG (Master Grade)"},
    {"value": "pg", "label": "PG (Perfect Grade)"},
    {"value": "sd", "label": "SD (Super Deformed)"},
    {"value": "mega", "label": "MEGA SIZE"},
    {"value": "entry", "label": "Entry Grade"},
]


class TaxonomyLookup(Protocol):
    async def list_grades(self) -> list[dict[str, Any]]: ...

    async def list_product_lines(self) -> list[dict[str, Any]]: ...

    async def list_mobile_suits(self) -> list[dict[str, Any]]: ...

    async def list_series(self) -> list[dict[str, Any]]: ...

    async def list_release_types(self) -> list[dict[str, Any]]: ...

    async def resolve_slug(self, kind: str, slug: str | None) -> str | None: ...

    async def resolve_slugs(self, kind: str, slugs: list[str]) -> list[str]: ...


class FallbackSearch(Protocol):
    async def search_kits_and_mobile_suits(
        self, query: str, filters: SearchFilters
    ) -> CrossEntitySearchResult: ...

    async def get_search_suggestions(self, query: str) -> list[str]: ...


def build_pipeline(index: SearchIndex, config: SearchConfig) -> SearchPipeline:
    """Wire the default pipeline components for ``config``."""

    components = SearchPipelineComponents(
        normalizer=DefaultSearchNormalizer(config.policy.variant_keywords),
        preview_normalizer=DefaultSearchNormalizer(
            config.policy.preview_variant_keywords
        ),
        executor=IndexQueryExecutor(index, config.limits.max_candidates),
        catalog_reranker=CatalogReranker(
            era_cutoff_year=config.policy.era_cutoff_year,
            grade_priority=config.policy.grade_priority,
        ),
        preview_reranker=PreviewReranker(config.limits.preview_size),
    )
    return SearchPipeline(components=components, config=config)


class CatalogSearchAPI:
    """Public catalog search entry points.

    Index failures are handled here and nowhere else: the cross-entity search
    and the suggestions fall back to the database, the kits listing fails with
    :class:`KitSearchError`.
    """

    def __init__(
        self,
        index: SearchIndex,
        taxonomy: TaxonomyLookup,
        fallback: FallbackSearch,
        config: SearchConfig | None = None,
        pipeline: SearchPipeline | None = None,
    ) -> None:
        self.config = config or SearchConfig()
        self.taxonomy = taxonomy
        self.fallback = fallback
        self.pipeline = pipeline or build_pipeline(index, self.config)

    async def get_filtered_kits(self, criteria: FilterCriteria) -> RankedResultPage:
        """Return one page of the kits listing ranked by the catalog policy."""

        try:
            return await self.pipeline.list_kits(criteria)
        except Exception as exc:
            logger.exception(
                "Kits listing search failed for term %r", criteria.search_term
            )
            raise KitSearchError() from exc

    async def get_filter_data(self) -> dict[str, list[dict[str, Any]]]:
        """Return every facet taxonomy for the listing filters."""

        taxonomy = self.taxonomy
        try:
            grades, product_lines, mobile_suits, series, release_types = (
                await asyncio.gather(
                    taxonomy.list_grades(),
                    taxonomy.list_product_lines(),
                    taxonomy.list_mobile_suits(),
                    taxonomy.list_series(),
                    taxonomy.list_release_types(),
                )
            )
        except Exception as exc:
            logger.exception("Loading filter data failed")
            raise FilterDataError() from exc
        return {
            "grades": grades,
            "product_lines": product_lines,
            "mobile_suits": mobile_suits,
            "series": series,
            "release_types": release_types,
        }

    async def resolve_criteria_slugs(
        self,
        criteria: FilterCriteria,
        *,
        grades: list[str] | None = None,
        product_lines: list[str] | None = None,
        mobile_suits: list[str] | None = None,
        series: list[str] | None = None,
        release_types: list[str] | None = None,
    ) -> FilterCriteria:
        """Add ids for slug selections to ``criteria``; unknown slugs are dropped."""

        lookups = (
            ("grades", grades, criteria.grade_ids),
            ("product_lines", product_lines, criteria.product_line_ids),
            ("mobile_suits", mobile_suits, criteria.mobile_suit_ids),
            ("series", series, criteria.series_ids),
            ("release_types", release_types, criteria.release_type_ids),
        )
        for kind, slugs, target in lookups:
            if not slugs:
                continue
            for identifier in await self.taxonomy.resolve_slugs(kind, slugs):
                if identifier not in target:
                    target.append(identifier)
        return criteria

    async def _compile_search_filters(
        self, filters: SearchFilters
    ) -> tuple[str | None, str | None]:
        timeline_id = None
        if filters.timeline and filters.timeline != ALL:
            timeline_id = await self.taxonomy.resolve_slug("timelines", filters.timeline)
        grade_id = None
        if filters.grade and filters.grade != ALL:
            grade_id = await self.taxonomy.resolve_slug("grades", filters.grade)

        kit_filter = compile_filter(
            {TIMELINE_PATH: [timeline_id], GRADE_PATH: [grade_id]}
        )
        mobile_suit_filter = compile_filter({TIMELINE_PATH: [timeline_id]})
        return kit_filter, mobile_suit_filter

    async def search_kits_and_mobile_suits(
        self, query: str, filters: SearchFilters | None = None
    ) -> CrossEntitySearchResult:
        """Preview search across kits and mobile suits."""

        filters = filters or SearchFilters()
        if not (query or "").strip():
            return CrossEntitySearchResult.empty()

        try:
            kit_filter, mobile_suit_filter = await self._compile_search_filters(filters)
            return await self.pipeline.preview(
                query,
                kit_filter=kit_filter,
                mobile_suit_filter=mobile_suit_filter,
                sort=build_search_sort(filters.sort_by),
            )
        except Exception:
            logger.exception(
                "Index search failed for %r; falling back to database search", query
            )

        return await self.fallback.search_kits_and_mobile_suits(query, filters)

    async def get_search_suggestions(self, query: str) -> list[str]:
        try:
            return await self.pipeline.suggest(query)
        except Exception:
            logger.exception(
                "Index suggestions failed for %r; falling back to database", query
            )

        return await self.fallback.get_search_suggestions(query)

    async def search_kits(
        self, query: str, limit: int | None = None
    ) -> list[ProjectedKit]:
        limit = limit or self.config.limits.simple_search_limit
        try:
            return await self.pipeline.find_kits(query, limit)
        except Exception:
            logger.exception("Kit search failed for %r", query)
            return []

    async def search_mobile_suits(
        self, query: str, limit: int | None = None
    ) -> list[ProjectedMobileSuit]:
        limit = limit or self.config.limits.simple_search_limit
        try:
            return await self.pipeline.find_mobile_suits(query, limit)
        except Exception:
            logger.exception("Mobile suit search failed for %r", query)
            return []

    async def get_filter_options(self) -> dict[str, list[dict[str, str]]]:
        """Return timeline and grade select options for the search box."""

        try:
            options = await self.pipeline.taxonomy_options()
            timelines = options["timelines"]
            grades = options["grades"]
        except Exception:
            logger.exception("Loading filter options from the index failed")
            timelines = DEFAULT_TIMELINE_OPTIONS
            grades = DEFAULT_GRADE_OPTIONS

        return {
            "timelines": [{"value": ALL, "label": "All Timelines"}, *timelines],
            "grades": [{"value": ALL, "label": "All Grades"}, *grades],
        }


__all__ = ["CatalogSearchAPI", "build_pipeline"]

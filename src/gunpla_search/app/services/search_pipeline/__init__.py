"""Search pipeline component interfaces and defaults."""
from __future__ import annotations

from .exceptions import (
    FilterDataError,
    IndexConfigurationError,
    KitSearchError,
    SearchIndexError,
)
from .documents import SearchableKit, SearchableMobileSuit
from .normalizer import (
    BaseSearchNormalizer,
    DefaultSearchNormalizer,
    NormalizedQuery,
    is_variant_search,
)
from .filters import FilterCriteria, SearchFilters, compile_filter
from .executor import IndexQueryExecutor, IndexSearchResponse, SearchIndex
from .reranker import (
    BaseSearchReranker,
    CatalogReranker,
    PreviewReranker,
    RankingPolicy,
)
from .projector import (
    CrossEntitySearchResult,
    ProjectedKit,
    ProjectedMobileSuit,
    RankedResultPage,
)
from .pipeline import SearchPipeline, SearchPipelineComponents

__all__ = [
    "FilterDataError",
    "IndexConfigurationError",
    "KitSearchError",
    "SearchIndexError",
    "SearchableKit",
    "SearchableMobileSuit",
    "BaseSearchNormalizer",
    "DefaultSearchNormalizer",
    "NormalizedQuery",
    "is_variant_search",
    "FilterCriteria",
    "SearchFilters",
    "compile_filter",
    "IndexQueryExecutor",
    "IndexSearchResponse",
    "SearchIndex",
    "BaseSearchReranker",
    "CatalogReranker",
    "PreviewReranker",
    "RankingPolicy",
    "CrossEntitySearchResult",
    "ProjectedKit",
    "ProjectedMobileSuit",
    "RankedResultPage",
    "SearchPipeline",
    "SearchPipelineComponents",
]

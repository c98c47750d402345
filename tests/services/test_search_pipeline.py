from __future__ import annotations

import asyncio
from typing import Any, Sequence

from gunpla_search.app.api.search import build_pipeline
from gunpla_search.app.services.search_config import SearchConfig
from gunpla_search.app.services.search_pipeline import (
    FilterCriteria,
    IndexSearchResponse,
)
from gunpla_search.app.services.search_pipeline.executor import candidate_limit


class RecordingIndex:
    """In-memory index returning canned hits per collection."""

    def __init__(self, responses: dict[str, IndexSearchResponse] | None = None):
        self.responses = responses or {}
        self.calls: list[dict[str, Any]] = []

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
        self.calls.append(
            {
                "collection": collection,
                "query": query,
                "filter": filter,
                "sort": sort,
                "limit": limit,
                "offset": offset,
            }
        )
        return self.responses.get(collection, IndexSearchResponse())

    def call_for(self, collection: str) -> dict[str, Any]:
        return next(call for call in self.calls if call["collection"] == collection)


def _kit_hit(
    kit_id: str,
    *,
    year: int | None = 2020,
    base_kit_id: str | None = None,
    grade: str = "hg",
) -> dict[str, Any]:
    hit: dict[str, Any] = {
        "id": kit_id,
        "name": f"Kit {kit_id}",
        "baseKitId": base_kit_id,
        "productLine": {"id": "pl", "name": "PL", "grade": {"slug": grade}},
    }
    if year is not None:
        hit["releaseDate"] = f"{year}-01-15"
    return hit


def _kits(*hits: dict[str, Any], total: int | None = None) -> IndexSearchResponse:
    return IndexSearchResponse(
        hits=list(hits), estimated_total_hits=len(hits) if total is None else total
    )


def _pipeline(index: RecordingIndex):
    return build_pipeline(index, SearchConfig())


def test_candidate_limit_overfetches_only_when_reranking() -> None:
    assert candidate_limit(20, rerank=True) == 40
    assert candidate_limit(80, rerank=True) == 100
    assert candidate_limit(20, rerank=False) == 20


def test_listing_overfetches_for_base_kit_queries() -> None:
    index = RecordingIndex()
    pipeline = _pipeline(index)

    asyncio.run(pipeline.list_kits(FilterCriteria(search_term="zaku", limit=20)))

    call = index.call_for("kits")
    assert call["limit"] == 40
    assert call["sort"] is None
    assert call["filter"] is None


def test_listing_requests_exact_limit_for_variant_queries() -> None:
    index = RecordingIndex()
    pipeline = _pipeline(index)

    asyncio.run(
        pipeline.list_kits(FilterCriteria(search_term="zaku clear", limit=20))
    )

    assert index.call_for("kits")["limit"] == 20


def test_listing_with_explicit_sort_keeps_index_order() -> None:
    index = RecordingIndex(
        {
            "kits": _kits(
                _kit_hit("old", year=1999),
                _kit_hit("new", year=2021),
            )
        }
    )
    pipeline = _pipeline(index)

    page = asyncio.run(
        pipeline.list_kits(
            FilterCriteria(sort_by="name", order="ascending", limit=10)
        )
    )

    assert [kit.id for kit in page.kits] == ["old", "new"]
    call = index.call_for("kits")
    assert call["sort"] == ["name:asc"]
    assert call["limit"] == 10


def test_listing_reranks_and_paginates() -> None:
    index = RecordingIndex(
        {
            "kits": _kits(
                _kit_hit("undated", year=None),
                _kit_hit("variant", base_kit_id="base"),
                _kit_hit("old", year=2001),
                _kit_hit("base"),
                total=90,
            )
        }
    )
    pipeline = _pipeline(index)

    page = asyncio.run(
        pipeline.list_kits(
            FilterCriteria(search_term="gundam", grade_ids=["g1"], limit=3, offset=30)
        )
    )

    assert [kit.id for kit in page.kits] == ["base", "variant", "old"]
    assert page.total == 90
    assert page.has_more is True
    call = index.call_for("kits")
    assert call["offset"] == 30
    assert call["filter"] == '(productLine.grade.id = "g1")'


def test_rating_sort_is_reranked_like_relevance() -> None:
    index = RecordingIndex(
        {"kits": _kits(_kit_hit("variant", base_kit_id="base"), _kit_hit("base"))}
    )
    pipeline = _pipeline(index)
    criteria = FilterCriteria(sort_by="rating", order="descending", limit=1)

    plan = pipeline.plan_listing(criteria)
    page = asyncio.run(pipeline.list_kits(criteria))

    assert plan.rerank is True
    assert plan.sort == []
    assert [kit.id for kit in page.kits] == ["base"]
    assert index.call_for("kits")["limit"] == 2


def test_preview_prioritises_base_kits_and_reports_totals() -> None:
    kit_hits = [_kit_hit(f"v{idx}", base_kit_id="b") for idx in range(6)]
    kit_hits += [_kit_hit(f"b{idx}") for idx in range(4)]
    index = RecordingIndex(
        {
            "kits": _kits(*kit_hits, total=10),
            "mobile-suits": IndexSearchResponse(
                hits=[{"id": "ms1", "name": "Zaku II"}], estimated_total_hits=1
            ),
        }
    )
    pipeline = _pipeline(index)

    result = asyncio.run(pipeline.preview("zaku", kit_filter='(x = "1")'))

    assert [kit.id for kit in result.kits] == [
        "b0",
        "b1",
        "b2",
        "b3",
        "v0",
        "v1",
        "v2",
        "v3",
    ]
    assert result.mobile_suits[0].name == "Zaku II"
    assert result.total_kits == 10
    assert result.has_more is True
    assert index.call_for("kits")["limit"] == 50
    assert index.call_for("kits")["filter"] == '(x = "1")'
    assert index.call_for("mobile-suits")["limit"] == 8


def test_preview_variant_query_uses_smaller_candidate_pool() -> None:
    index = RecordingIndex()
    pipeline = _pipeline(index)

    result = asyncio.run(pipeline.preview("zaku metallic"))

    assert index.call_for("kits")["limit"] == 30
    assert result.has_more is False


def test_preview_keywords_differ_from_listing_keywords() -> None:
    # "freedom" contains "re", a grade keyword only the listing knows about.
    index = RecordingIndex({"kits": _kits(_kit_hit("v", base_kit_id="b"), _kit_hit("b"))})
    pipeline = _pipeline(index)

    result = asyncio.run(pipeline.preview("Strike Freedom"))

    assert [kit.id for kit in result.kits] == ["b", "v"]
    assert index.call_for("kits")["limit"] == 50

    listing = RecordingIndex()
    asyncio.run(
        _pipeline(listing).list_kits(
            FilterCriteria(search_term="Strike Freedom", limit=20)
        )
    )
    assert listing.call_for("kits")["limit"] == 20


def test_suggestions_are_deduplicated_and_capped() -> None:
    index = RecordingIndex(
        {
            "kits": IndexSearchResponse(
                hits=[
                    {"name": "Zaku II"},
                    {"name": "Zaku II"},
                    {"name": "Zaku Warrior"},
                ]
            ),
            "mobile-suits": IndexSearchResponse(
                hits=[
                    {"name": "Zaku II"},
                    {"name": "Zaku I"},
                    {"name": "Zaku III"},
                    {"name": "Zaku Phantom"},
                ]
            ),
        }
    )
    pipeline = _pipeline(index)

    suggestions = asyncio.run(pipeline.suggest("za"))

    assert suggestions == [
        "Zaku II",
        "Zaku Warrior",
        "Zaku I",
        "Zaku III",
        "Zaku Phantom",
    ]


def test_short_suggestion_query_skips_index() -> None:
    index = RecordingIndex()

    assert asyncio.run(_pipeline(index).suggest("z")) == []
    assert index.calls == []


def test_taxonomy_options_are_distinct_by_slug() -> None:
    index = RecordingIndex(
        {
            "series": IndexSearchResponse(
                hits=[
                    {"timeline": {"slug": "uc", "name": "Universal Century"}},
                    {"timeline": {"slug": "uc", "name": "UC duplicate"}},
                    {"timeline": None},
                    {"timeline": {"slug": "ce", "name": "Cosmic Era"}},
                ]
            ),
            "product-lines": IndexSearchResponse(
                hits=[{"grade": {"slug": "hg", "name": "High Grade"}}]
            ),
        }
    )

    options = asyncio.run(_pipeline(index).taxonomy_options())

    assert options["timelines"] == [
        {"value": "uc", "label": "Universal Century"},
        {"value": "ce", "label": "Cosmic Era"},
    ]
    assert options["grades"] == [{"value": "hg", "label": "High Grade"}]

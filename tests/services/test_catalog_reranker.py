from __future__ import annotations

import pytest

from gunpla_search.app.services.search_pipeline import (
    CatalogReranker,
    PreviewReranker,
    RankingPolicy,
    SearchableKit,
)
from gunpla_search.app.services.search_pipeline.reranker import (
    ERA_MODERN,
    ERA_OLDER,
    ERA_UNDATED,
)


def _kit(
    name: str,
    year: int | None = None,
    base_kit_id: str | None = None,
    grade: str | None = None,
) -> SearchableKit:
    hit: dict = {"id": name.lower(), "name": name}
    if year is not None:
        hit["releaseDate"] = f"{year}-06-01T00:00:00.000Z"
    if base_kit_id is not None:
        hit["baseKitId"] = base_kit_id
    if grade is not None:
        hit["productLine"] = {
            "id": f"pl-{grade}",
            "name": grade.upper(),
            "grade": {"id": f"g-{grade}", "name": grade.upper(), "slug": grade},
        }
    return SearchableKit.from_hit(hit)


def _names(kits: list[SearchableKit]) -> list[str]:
    return [kit.name for kit in kits]


def test_mixed_candidates_follow_era_then_base_then_grade() -> None:
    candidates = [
        _kit("D", None, None, "mg"),
        _kit("C", 2008, None, "pg"),
        _kit("B", 2020, "x", "hg"),
        _kit("A", 2020, None, "hg"),
    ]

    ranked = CatalogReranker().rerank(candidates, prioritize_base_kits=True)

    assert _names(ranked) == ["A", "B", "C", "D"]


def test_ties_keep_index_order() -> None:
    candidates = [
        _kit("X", 2015, None, "hg"),
        _kit("Y", 2016, None, "hg"),
    ]

    ranked = CatalogReranker().rerank(candidates, prioritize_base_kits=True)

    assert _names(ranked) == ["X", "Y"]


def test_stability_across_many_equal_keys() -> None:
    candidates = [_kit(f"K{idx}", 2012, None, "rg") for idx in range(40)]
    candidates.insert(20, _kit("Top", 2012, None, "pg"))

    ranked = CatalogReranker().rerank(candidates, prioritize_base_kits=True)

    assert ranked[0].name == "Top"
    assert _names(ranked[1:]) == [f"K{idx}" for idx in range(40)]


@pytest.mark.parametrize("prioritize", [True, False])
def test_dated_kits_outrank_undated(prioritize: bool) -> None:
    candidates = [
        _kit("Undated", None, None, "pg"),
        _kit("Old", 1990, "base", "fm"),
        _kit("New", 2011, "base", None),
    ]

    ranked = CatalogReranker().rerank(candidates, prioritize_base_kits=prioritize)

    assert _names(ranked) == ["New", "Old", "Undated"]


def test_base_kits_lead_variants_within_era() -> None:
    candidates = [
        _kit("Variant", 2018, "base", "pg"),
        _kit("Base", 2018, None, "fm"),
    ]

    ranked = CatalogReranker().rerank(candidates, prioritize_base_kits=True)

    assert _names(ranked) == ["Base", "Variant"]


def test_variant_search_does_not_demote_variants() -> None:
    candidates = [
        _kit("Variant", 2018, "base", "pg"),
        _kit("Base", 2018, None, "hg"),
        _kit("Other", 2018, None, "pg"),
    ]

    ranked = CatalogReranker().rerank(candidates, prioritize_base_kits=False)

    assert _names(ranked) == ["Variant", "Other", "Base"]


def test_recognized_grade_outranks_unknown_grade() -> None:
    candidates = [
        _kit("Unknown", 2020, None, "sd"),
        _kit("Missing", 2020, None, None),
        _kit("Entry", 2020, None, "eg"),
        _kit("Perfect", 2020, None, "pg"),
    ]

    ranked = CatalogReranker().rerank(candidates, prioritize_base_kits=True)

    assert _names(ranked) == ["Perfect", "Entry", "Unknown", "Missing"]


def test_grade_lookup_is_case_insensitive() -> None:
    reranker = CatalogReranker()

    assert reranker.grade_rank(_kit("A", 2020, None, "MG")) == 1
    assert reranker.grade_rank(_kit("B", 2020, None, "ver-ka")) == 6


def test_era_bucket_uses_cutoff_year() -> None:
    reranker = CatalogReranker(era_cutoff_year=2010)

    assert reranker.era_bucket(_kit("A", 2010)) == ERA_MODERN
    assert reranker.era_bucket(_kit("B", 2009)) == ERA_OLDER
    assert reranker.era_bucket(_kit("C")) == ERA_UNDATED


def test_unparseable_release_date_is_undated() -> None:
    kit = SearchableKit.from_hit({"id": "1", "name": "Broken", "releaseDate": "soon"})

    assert CatalogReranker().era_bucket(kit) == ERA_UNDATED


def test_rerank_respects_limit_and_empty_input() -> None:
    reranker = CatalogReranker()
    candidates = [_kit(f"K{idx}", 2020, None, "hg") for idx in range(5)]

    assert reranker.rerank([], prioritize_base_kits=True) == []
    assert len(reranker.rerank(candidates, True, limit=3)) == 3


def test_preview_reranker_truncates_without_reordering() -> None:
    candidates = [
        _kit(f"K{idx}", 2020, "base" if idx % 2 else None) for idx in range(12)
    ]

    ranked = PreviewReranker(preview_size=8).rerank(
        candidates, prioritize_base_kits=False
    )

    assert _names(ranked) == [f"K{idx}" for idx in range(8)]


def test_preview_reranker_moves_base_kits_first() -> None:
    candidates = [
        _kit("V1", 2001, "b"),
        _kit("B1", None, None, "fm"),
        _kit("V2", 2020, "b", "pg"),
        _kit("B2", 2020, None, "pg"),
    ]

    ranked = PreviewReranker(preview_size=3).rerank(
        candidates, prioritize_base_kits=True
    )

    # No era or grade ordering in the preview policy.
    assert _names(ranked) == ["B1", "B2", "V1"]


def test_policies_are_distinct() -> None:
    assert CatalogReranker.policy is RankingPolicy.CATALOG
    assert PreviewReranker.policy is RankingPolicy.PREVIEW

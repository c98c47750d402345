from __future__ import annotations

import asyncio

import pytest

from gunpla_search.app.db.catalog import fallback_sort_key
from gunpla_search.app.services.search_pipeline import SearchFilters
from gunpla_search.persistence.catalog_db import CatalogDB


SEED_SQL = """
INSERT INTO grades (id, name, slug) VALUES
    ('g-hg', 'High Grade', 'hg'),
    ('g-mg', 'Master Grade', 'mg'),
    ('g-pg', 'Perfect Grade', 'pg');
INSERT INTO timelines (id, name, slug) VALUES
    ('t-uc', 'Universal Century', 'universal-century'),
    ('t-ce', 'Cosmic Era', 'cosmic-era');
INSERT INTO series (id, name, slug, timeline_id) VALUES
    ('s-0079', 'Mobile Suit Gundam', 'mobile-suit-gundam', 't-uc'),
    ('s-seed', 'Gundam SEED', 'gundam-seed', 't-ce');
INSERT INTO product_lines (id, name, slug, grade_id) VALUES
    ('pl-hguc', 'HGUC', 'hguc', 'g-hg'),
    ('pl-mg', 'MG', 'mg-line', 'g-mg'),
    ('pl-pg', 'PG', 'pg-line', 'g-pg');
INSERT INTO release_types (id, name, slug) VALUES
    ('rt-retail', 'Retail', 'retail'),
    ('rt-pb', 'Premium Bandai', 'p-bandai');
INSERT INTO mobile_suits (id, name, slug, scraped_images, series_id) VALUES
    ('ms-zaku', 'Zaku II', 'zaku-ii', '["https://img.example/zaku.png"]', 's-0079'),
    ('ms-strike', 'Strike Gundam', 'strike', 'not json', 's-seed');
INSERT INTO kits (
    id, name, slug, number, variant, release_date, price_yen, notes,
    base_kit_id, product_line_id, series_id, release_type_id
) VALUES
    ('k-hg-zaku', 'HGUC Zaku II', 'hguc-zaku-ii', '241', NULL, '2019-03-01',
     1650, NULL, NULL, 'pl-hguc', 's-0079', 'rt-retail'),
    ('k-mg-zaku', 'MG Zaku II Ver.2.0', 'mg-zaku-ii-v2', '117', 'Ver.2.0',
     '2007-06-01', 4400, NULL, NULL, 'pl-mg', 's-0079', 'rt-retail'),
    ('k-mg-zaku-clear', 'MG Zaku II Clear', 'mg-zaku-ii-clear', '117C', 'Clear',
     '2021-01-01', 6000, NULL, 'k-mg-zaku', 'pl-mg', 's-0079', 'rt-pb'),
    ('k-zaku-parts', 'Zaku Weapon Set', 'zaku-weapons', 'A1', NULL, '2022-02-01',
     800, 'Accessory pack', NULL, 'pl-hguc', 's-0079', 'rt-retail'),
    ('k-pg-zaku', 'PG Zaku II', 'pg-zaku-ii', '1', NULL, NULL,
     20000, NULL, NULL, 'pl-pg', 's-0079', 'rt-retail'),
    ('k-strike', 'HG Strike Gundam', 'hg-strike', '2', NULL, '2020-05-01',
     1500, NULL, NULL, 'pl-hguc', 's-seed', 'rt-retail');
INSERT INTO kit_mobile_suits (kit_id, mobile_suit_id) VALUES
    ('k-hg-zaku', 'ms-zaku'),
    ('k-mg-zaku', 'ms-zaku'),
    ('k-mg-zaku-clear', 'ms-zaku'),
    ('k-pg-zaku', 'ms-zaku'),
    ('k-strike', 'ms-strike');
"""


def _run(tmp_path, scenario):
    async def runner():
        async with CatalogDB(tmp_path / "catalog.sqlite3") as db:
            await db.execute_script(SEED_SQL)
            return await scenario(db)

    return asyncio.run(runner())


def test_fallback_search_orders_by_catalog_policy(tmp_path) -> None:
    async def scenario(db: CatalogDB):
        return await db.catalog.search_kits_and_mobile_suits("zaku", SearchFilters())

    result = _run(tmp_path, scenario)

    assert [kit.id for kit in result.kits] == [
        "k-hg-zaku",
        "k-zaku-parts",
        "k-mg-zaku-clear",
        "k-mg-zaku",
        "k-pg-zaku",
    ]
    assert result.total_kits == 5
    assert result.total_mobile_suits == 1
    assert result.has_more is False
    suit = result.mobile_suits[0]
    assert suit.name == "Zaku II"
    assert suit.kits_count == 4
    assert suit.scraped_images == ["https://img.example/zaku.png"]
    assert result.kits[0].mobile_suits == ["Zaku II"]
    assert result.kits[0].timeline == "Universal Century"


def test_fallback_search_applies_slug_filters(tmp_path) -> None:
    async def scenario(db: CatalogDB):
        return await db.catalog.search_kits_and_mobile_suits(
            "gundam", SearchFilters(timeline="cosmic-era", grade="hg")
        )

    result = _run(tmp_path, scenario)

    assert [kit.id for kit in result.kits] == ["k-strike"]
    assert [suit.name for suit in result.mobile_suits] == ["Strike Gundam"]
    assert result.mobile_suits[0].scraped_images == []


def test_fallback_search_explicit_sort(tmp_path) -> None:
    async def scenario(db: CatalogDB):
        return await db.catalog.search_kits_and_mobile_suits(
            "zaku", SearchFilters(sort_by="price-desc")
        )

    result = _run(tmp_path, scenario)

    assert [kit.price_yen for kit in result.kits] == [20000, 6000, 4400, 1650, 800]


def test_fallback_suggestions(tmp_path) -> None:
    async def scenario(db: CatalogDB):
        return (
            await db.catalog.get_search_suggestions("zaku"),
            await db.catalog.get_search_suggestions("z"),
        )

    suggestions, too_short = _run(tmp_path, scenario)

    assert suggestions == [
        "HGUC Zaku II",
        "MG Zaku II Clear",
        "MG Zaku II Ver.2.0",
        "PG Zaku II",
        "Zaku Weapon Set",
    ]
    assert too_short == []


def test_like_wildcards_are_literal(tmp_path) -> None:
    async def scenario(db: CatalogDB):
        return await db.catalog.search_kits_and_mobile_suits("%", SearchFilters())

    result = _run(tmp_path, scenario)

    assert result.kits == []
    assert result.total_kits == 0


def test_taxonomy_lists_and_slug_resolution(tmp_path) -> None:
    async def scenario(db: CatalogDB):
        grades = await db.taxonomy.list_grades()
        first = await db.taxonomy.resolve_slug("grades", "mg")
        missing = await db.taxonomy.resolve_slug("grades", "eg")
        many = await db.taxonomy.resolve_slugs(
            "release_types", ["p-bandai", "stale", "retail", "p-bandai"]
        )
        return grades, first, missing, many

    grades, first, missing, many = _run(tmp_path, scenario)

    assert [grade["slug"] for grade in grades] == ["hg", "mg", "pg"]
    assert first == "g-mg"
    assert missing is None
    assert many == ["rt-pb", "rt-retail"]


def test_unknown_taxonomy_kind_is_rejected(tmp_path) -> None:
    async def scenario(db: CatalogDB):
        with pytest.raises(ValueError):
            await db.taxonomy.list_items("users")

    _run(tmp_path, scenario)


def test_kit_documents_match_index_shape(tmp_path) -> None:
    async def scenario(db: CatalogDB):
        return await db.catalog.kit_documents()

    documents = {doc["id"]: doc for doc in _run(tmp_path, scenario)}

    clear = documents["k-mg-zaku-clear"]
    assert clear["baseKitId"] == "k-mg-zaku"
    assert clear["productLine"]["grade"]["slug"] == "mg"
    assert clear["series"]["timeline"]["slug"] == "universal-century"
    assert clear["releaseDate"] == "2021-01-01"
    assert "Zaku II" in clear["searchableText"]
    assert documents["k-pg-zaku"]["releaseDate"] is None


def test_grade_documents_for_the_grades_index(tmp_path) -> None:
    async def scenario(db: CatalogDB):
        await db.execute_script(
            "UPDATE grades SET description = 'Large 1/60 kits' WHERE id = 'g-pg';"
        )
        return await db.catalog.grade_documents()

    documents = _run(tmp_path, scenario)

    assert [doc["id"] for doc in documents] == ["g-hg", "g-mg", "g-pg"]
    assert documents[0]["slug"] == "hg"
    assert documents[0]["description"] is None
    assert documents[2]["searchableText"] == "Perfect Grade Large 1/60 kits"


def test_repositories_require_init(tmp_path) -> None:
    db = CatalogDB(tmp_path / "catalog.sqlite3")

    with pytest.raises(RuntimeError):
        db.catalog


@pytest.mark.parametrize(
    ("row", "expected"),
    [
        (
            {
                "release_date": "2015-01-01",
                "base_kit_id": None,
                "notes": None,
                "grade_slug": "MG",
                "name": "B",
            },
            (0, 0, 0, 1, -735599, "b"),
        ),
        (
            {
                "release_date": None,
                "base_kit_id": "x",
                "notes": "Accessory",
                "grade_slug": None,
                "name": "A",
            },
            (2, 1, 1, 6, 0, "a"),
        ),
    ],
)
def test_fallback_sort_key(row: dict, expected: tuple) -> None:
    assert fallback_sort_key(row) == expected

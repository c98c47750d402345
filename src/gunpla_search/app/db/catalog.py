from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Sequence

import orjson

from gunpla_search.app.services.search_config import (
    DEFAULT_ERA_CUTOFF_YEAR,
    DEFAULT_GRADE_PRIORITY,
)
from gunpla_search.app.services.search_pipeline.documents import parse_release_date
from gunpla_search.app.services.search_pipeline.filters import ALL, SearchFilters
from gunpla_search.app.services.search_pipeline.projector import (
    CrossEntitySearchResult,
    ProjectedKit,
    ProjectedMobileSuit,
)

from .base import BaseRepository

logger = logging.getLogger(__name__)

PREVIEW_SIZE = 8
SUGGESTION_LIMIT = 5

_KIT_SELECT = """
    SELECT
        k.id, k.name, k.slug, k.number, k.variant, k.release_date, k.price_yen,
        k.box_art, k.notes, k.base_kit_id,
        pl.id AS product_line_id, pl.name AS product_line_name,
        pl.slug AS product_line_slug,
        g.id AS grade_id, g.name AS grade_name, g.slug AS grade_slug,
        s.id AS series_id, s.name AS series_name, s.slug AS series_slug,
        t.id AS timeline_id, t.name AS timeline_name, t.slug AS timeline_slug,
        rt.id AS release_type_id, rt.name AS release_type_name,
        rt.slug AS release_type_slug
    FROM kits k
    LEFT JOIN product_lines pl ON pl.id = k.product_line_id
    LEFT JOIN grades g ON g.id = pl.grade_id
    LEFT JOIN series s ON s.id = k.series_id
    LEFT JOIN timelines t ON t.id = s.timeline_id
    LEFT JOIN release_types rt ON rt.id = k.release_type_id
"""

_KIT_SORTS: dict[str, str] = {
    "name-asc": "k.name COLLATE NOCASE ASC",
    "name-desc": "k.name COLLATE NOCASE DESC",
    "release-desc": "k.release_date DESC",
    "release-asc": "k.release_date ASC",
    "price-asc": "k.price_yen ASC",
    "price-desc": "k.price_yen DESC",
}


def _like(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _decode_images(raw: Any) -> list[str]:
    if not raw:
        return []
    try:
        decoded = orjson.loads(raw)
    except orjson.JSONDecodeError:
        logger.debug("Ignoring malformed scraped_images payload")
        return []
    return [str(item) for item in decoded if item] if isinstance(decoded, list) else []


def _ref(row: Any, prefix: str) -> dict[str, Any] | None:
    identifier = row[f"{prefix}_id"]
    if identifier is None:
        return None
    return {
        "id": identifier,
        "name": row[f"{prefix}_name"],
        "slug": row[f"{prefix}_slug"],
    }


def _searchable_text(parts: Sequence[Any]) -> str:
    return " ".join(str(part) for part in parts if part)


def fallback_sort_key(
    row: Any,
    era_cutoff_year: int = DEFAULT_ERA_CUTOFF_YEAR,
    grade_priority: Sequence[str] = DEFAULT_GRADE_PRIORITY,
) -> tuple:
    """Relevance order used when the search index is unavailable."""

    released = parse_release_date(row["release_date"])
    if released is None:
        era = 2
    else:
        era = 0 if released.year >= era_cutoff_year else 1
    is_variant = 1 if row["base_kit_id"] else 0
    is_accessory = 1 if "accessory" in (row["notes"] or "").lower() else 0
    grade_slug = (row["grade_slug"] or "").lower()
    grade_rank = (
        grade_priority.index(grade_slug)
        if grade_slug in grade_priority
        else len(grade_priority)
    )
    recency = -released.toordinal() if released else 0
    return (era, is_variant, is_accessory, grade_rank, recency, (row["name"] or "").lower())


class CatalogRepository(BaseRepository):
    """Direct-database catalog search used when the index cannot be reached."""

    async def _mobile_suit_refs(
        self, kit_ids: Sequence[str]
    ) -> dict[str, list[dict[str, Any]]]:
        if not kit_ids:
            return {}
        placeholders = ",".join("?" for _ in kit_ids)
        rows = await self._fetch_all(
            f"""
            SELECT kms.kit_id, ms.id, ms.name, ms.slug
            FROM kit_mobile_suits kms
            JOIN mobile_suits ms ON ms.id = kms.mobile_suit_id
            WHERE kms.kit_id IN ({placeholders})
            ORDER BY ms.name COLLATE NOCASE ASC
            """,
            list(kit_ids),
        )
        refs: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for row in rows:
            refs[row["kit_id"]].append(
                {"id": row["id"], "name": row["name"], "slug": row["slug"]}
            )
        return refs

    def _kit_where(self, query: str, filters: SearchFilters) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        if query:
            pattern = _like(query)
            clauses.append(
                """(
                    k.name LIKE ? ESCAPE '\\'
                    OR k.number LIKE ? ESCAPE '\\'
                    OR k.variant LIKE ? ESCAPE '\\'
                    OR s.name LIKE ? ESCAPE '\\'
                    OR EXISTS (
                        SELECT 1 FROM kit_mobile_suits kms
                        JOIN mobile_suits ms ON ms.id = kms.mobile_suit_id
                        WHERE kms.kit_id = k.id AND ms.name LIKE ? ESCAPE '\\'
                    )
                )"""
            )
            params.extend([pattern] * 5)
        if filters.timeline and filters.timeline != ALL:
            clauses.append("t.slug = ?")
            params.append(filters.timeline)
        if filters.grade and filters.grade != ALL:
            clauses.append("g.slug = ?")
            params.append(filters.grade)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    def _mobile_suit_where(
        self, query: str, filters: SearchFilters
    ) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        if query:
            pattern = _like(query)
            clauses.append("(ms.name LIKE ? ESCAPE '\\' OR s.name LIKE ? ESCAPE '\\')")
            params.extend([pattern, pattern])
        if filters.timeline and filters.timeline != ALL:
            clauses.append("t.slug = ?")
            params.append(filters.timeline)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    async def search_kits_and_mobile_suits(
        self, query: str, filters: SearchFilters
    ) -> CrossEntitySearchResult:
        """Search kits and mobile suits with plain ``LIKE`` matching."""

        query = (query or "").strip()
        kit_where, kit_params = self._kit_where(query, filters)
        explicit_sort = _KIT_SORTS.get(filters.sort_by or "")
        order_by = explicit_sort or (
            "(k.base_kit_id IS NOT NULL) ASC, g.slug ASC, k.name COLLATE NOCASE ASC"
        )
        kit_rows = await self._fetch_all(
            f"{_KIT_SELECT} {kit_where} ORDER BY {order_by} LIMIT ?",
            [*kit_params, PREVIEW_SIZE],
        )
        if explicit_sort is None:
            kit_rows.sort(key=fallback_sort_key)

        suits_map = await self._mobile_suit_refs([row["id"] for row in kit_rows])
        kits = [
            ProjectedKit(
                id=row["id"],
                name=row["name"],
                slug=row["slug"],
                number=row["number"],
                variant=row["variant"],
                release_date=parse_release_date(row["release_date"]),
                price_yen=row["price_yen"],
                box_art=row["box_art"],
                base_kit_id=row["base_kit_id"],
                grade=row["grade_name"],
                product_line=row["product_line_name"],
                series=row["series_name"],
                timeline=row["timeline_name"],
                release_type=row["release_type_name"],
                mobile_suits=[ms["name"] for ms in suits_map.get(row["id"], [])],
            )
            for row in kit_rows
        ]

        suit_where, suit_params = self._mobile_suit_where(query, filters)
        suit_from = """
            FROM mobile_suits ms
            LEFT JOIN series s ON s.id = ms.series_id
            LEFT JOIN timelines t ON t.id = s.timeline_id
        """
        suit_rows = await self._fetch_all(
            f"""
            SELECT
                ms.id, ms.name, ms.slug, ms.description, ms.scraped_images,
                s.name AS series_name, t.name AS timeline_name,
                (SELECT COUNT(*) FROM kit_mobile_suits kms
                 WHERE kms.mobile_suit_id = ms.id) AS kits_count
            {suit_from} {suit_where}
            ORDER BY ms.name COLLATE NOCASE ASC
            LIMIT ?
            """,
            [*suit_params, PREVIEW_SIZE],
        )
        mobile_suits = [
            ProjectedMobileSuit(
                id=row["id"],
                name=row["name"],
                slug=row["slug"],
                description=row["description"],
                series=row["series_name"],
                timeline=row["timeline_name"],
                kits_count=int(row["kits_count"] or 0),
                scraped_images=_decode_images(row["scraped_images"]),
            )
            for row in suit_rows
        ]

        kit_count_row = await self._fetch_one(
            f"""
            SELECT COUNT(*) AS total FROM kits k
            LEFT JOIN product_lines pl ON pl.id = k.product_line_id
            LEFT JOIN grades g ON g.id = pl.grade_id
            LEFT JOIN series s ON s.id = k.series_id
            LEFT JOIN timelines t ON t.id = s.timeline_id
            {kit_where}
            """,
            kit_params,
        )
        suit_count_row = await self._fetch_one(
            f"SELECT COUNT(*) AS total {suit_from} {suit_where}", suit_params
        )
        total_kits = int(kit_count_row["total"]) if kit_count_row else 0
        total_suits = int(suit_count_row["total"]) if suit_count_row else 0

        logger.debug(
            "Database search for %r matched %d kits and %d mobile suits",
            query,
            total_kits,
            total_suits,
        )
        return CrossEntitySearchResult(
            kits=kits,
            mobile_suits=mobile_suits,
            total_kits=total_kits,
            total_mobile_suits=total_suits,
            has_more=total_kits > PREVIEW_SIZE or total_suits > PREVIEW_SIZE,
        )

    async def get_search_suggestions(self, query: str) -> list[str]:
        """Return distinct kit and mobile suit names containing ``query``."""

        if len(query or "") < 2:
            return []
        pattern = _like(query)
        kit_rows = await self._fetch_all(
            "SELECT name FROM kits WHERE name LIKE ? ESCAPE '\\' "
            "ORDER BY name COLLATE NOCASE ASC LIMIT ?",
            (pattern, SUGGESTION_LIMIT),
        )
        suit_rows = await self._fetch_all(
            "SELECT name FROM mobile_suits WHERE name LIKE ? ESCAPE '\\' "
            "ORDER BY name COLLATE NOCASE ASC LIMIT ?",
            (pattern, SUGGESTION_LIMIT),
        )
        names = [row["name"] for row in kit_rows] + [row["name"] for row in suit_rows]
        return list(dict.fromkeys(names))[:SUGGESTION_LIMIT]

    async def kit_documents(self) -> list[dict[str, Any]]:
        """Return every kit shaped as a ``kits`` index document."""

        rows = await self._fetch_all(f"{_KIT_SELECT} ORDER BY k.id")
        suits_map = await self._mobile_suit_refs([row["id"] for row in rows])
        documents: list[dict[str, Any]] = []
        for row in rows:
            product_line = _ref(row, "product_line")
            grade = _ref(row, "grade")
            if product_line is not None:
                product_line["grade"] = grade
            series = _ref(row, "series")
            timeline = _ref(row, "timeline")
            if series is not None:
                series["timeline"] = timeline
            mobile_suits = suits_map.get(row["id"], [])
            released = parse_release_date(row["release_date"])
            documents.append(
                {
                    "id": row["id"],
                    "name": row["name"],
                    "slug": row["slug"],
                    "number": row["number"],
                    "variant": row["variant"],
                    "releaseDate": released.isoformat() if released else None,
                    "priceYen": row["price_yen"],
                    "boxArt": row["box_art"],
                    "notes": row["notes"],
                    "baseKitId": row["base_kit_id"],
                    "productLine": product_line,
                    "series": series,
                    "releaseType": _ref(row, "release_type"),
                    "mobileSuits": mobile_suits,
                    "searchableText": _searchable_text(
                        [
                            row["name"],
                            row["number"],
                            row["variant"],
                            row["grade_name"],
                            row["product_line_name"],
                            row["series_name"],
                            row["timeline_name"],
                            *(ms["name"] for ms in mobile_suits),
                        ]
                    ),
                }
            )
        return documents

    async def mobile_suit_documents(self) -> list[dict[str, Any]]:
        rows = await self._fetch_all(
            """
            SELECT
                ms.id, ms.name, ms.slug, ms.description, ms.scraped_images,
                s.id AS series_id, s.name AS series_name, s.slug AS series_slug,
                t.id AS timeline_id, t.name AS timeline_name, t.slug AS timeline_slug
            FROM mobile_suits ms
            LEFT JOIN series s ON s.id = ms.series_id
            LEFT JOIN timelines t ON t.id = s.timeline_id
            ORDER BY ms.id
            """
        )
        documents = []
        for row in rows:
            series = _ref(row, "series")
            if series is not None:
                series["timeline"] = _ref(row, "timeline")
            documents.append(
                {
                    "id": row["id"],
                    "name": row["name"],
                    "slug": row["slug"],
                    "description": row["description"],
                    "scrapedImages": _decode_images(row["scraped_images"]),
                    "series": series,
                    "searchableText": _searchable_text(
                        [row["name"], row["description"], row["series_name"]]
                    ),
                }
            )
        return documents

    async def series_documents(self) -> list[dict[str, Any]]:
        rows = await self._fetch_all(
            """
            SELECT
                s.id, s.name, s.slug, s.description,
                t.id AS timeline_id, t.name AS timeline_name, t.slug AS timeline_slug
            FROM series s
            LEFT JOIN timelines t ON t.id = s.timeline_id
            ORDER BY s.id
            """
        )
        return [
            {
                "id": row["id"],
                "name": row["name"],
                "slug": row["slug"],
                "description": row["description"],
                "timeline": _ref(row, "timeline"),
                "searchableText": _searchable_text(
                    [row["name"], row["description"], row["timeline_name"]]
                ),
            }
            for row in rows
        ]

    async def product_line_documents(self) -> list[dict[str, Any]]:
        rows = await self._fetch_all(
            """
            SELECT
                pl.id, pl.name, pl.slug, pl.description,
                g.id AS grade_id, g.name AS grade_name, g.slug AS grade_slug
            FROM product_lines pl
            JOIN grades g ON g.id = pl.grade_id
            ORDER BY pl.id
            """
        )
        return [
            {
                "id": row["id"],
                "name": row["name"],
                "slug": row["slug"],
                "description": row["description"],
                "grade": _ref(row, "grade"),
                "searchableText": _searchable_text(
                    [row["name"], row["description"], row["grade_name"]]
                ),
            }
            for row in rows
        ]

    async def grade_documents(self) -> list[dict[str, Any]]:
        rows = await self._fetch_all(
            "SELECT id, name, slug, description FROM grades ORDER BY id"
        )
        return [
            {
                "id": row["id"],
                "name": row["name"],
                "slug": row["slug"],
                "description": row["description"],
                "searchableText": _searchable_text([row["name"], row["description"]]),
            }
            for row in rows
        ]


__all__ = ["CatalogRepository", "fallback_sort_key"]

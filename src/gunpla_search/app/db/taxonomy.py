from __future__ import annotations

import logging
from typing import Any, Iterable

from aiosqlitepool import SQLiteConnectionPool
from cachetools import TTLCache

from .base import BaseRepository

logger = logging.getLogger(__name__)

# Facet name -> backing table.
TAXONOMY_TABLES: dict[str, str] = {
    "grades": "grades",
    "product_lines": "product_lines",
    "mobile_suits": "mobile_suits",
    "series": "series",
    "release_types": "release_types",
    "timelines": "timelines",
}

_MISS = object()


class TaxonomyRepository(BaseRepository):
    """Flat ``{id, name, slug}`` lookups for filter taxonomies."""

    def __init__(
        self,
        pool: SQLiteConnectionPool,
        *,
        cache_maxsize: int = 1024,
        cache_ttl: int = 300,
    ) -> None:
        super().__init__(pool)
        self._slug_cache: TTLCache[tuple[str, str], str | None] = TTLCache(
            maxsize=cache_maxsize, ttl=cache_ttl
        )

    @staticmethod
    def _table(kind: str) -> str:
        try:
            return TAXONOMY_TABLES[kind]
        except KeyError:
            raise ValueError(f"Unknown taxonomy kind: {kind}") from None

    async def list_items(self, kind: str) -> list[dict[str, Any]]:
        table = self._table(kind)
        rows = await self._fetch_all(
            f"SELECT id, name, slug FROM {table} ORDER BY name COLLATE NOCASE ASC"
        )
        return [{"id": row["id"], "name": row["name"], "slug": row["slug"]} for row in rows]

    async def list_grades(self) -> list[dict[str, Any]]:
        return await self.list_items("grades")

    async def list_product_lines(self) -> list[dict[str, Any]]:
        return await self.list_items("product_lines")

    async def list_mobile_suits(self) -> list[dict[str, Any]]:
        return await self.list_items("mobile_suits")

    async def list_series(self) -> list[dict[str, Any]]:
        return await self.list_items("series")

    async def list_release_types(self) -> list[dict[str, Any]]:
        return await self.list_items("release_types")

    async def list_timelines(self) -> list[dict[str, Any]]:
        return await self.list_items("timelines")

    async def resolve_slug(self, kind: str, slug: str | None) -> str | None:
        """Return the id for ``slug`` or ``None`` when it does not resolve."""

        normalized = (slug or "").strip()
        if not normalized:
            return None
        key = (kind, normalized)
        cached = self._slug_cache.get(key, _MISS)
        if cached is not _MISS:
            return cached  # type: ignore[return-value]

        table = self._table(kind)
        row = await self._fetch_one(
            f"SELECT id FROM {table} WHERE slug = ? LIMIT 1", (normalized,)
        )
        resolved = row["id"] if row else None
        if resolved is None:
            logger.debug("Slug %r did not resolve for %s", normalized, kind)
        self._slug_cache[key] = resolved
        return resolved

    async def resolve_slugs(self, kind: str, slugs: Iterable[str]) -> list[str]:
        """Resolve ``slugs`` to ids, silently dropping the unknown ones."""

        resolved: list[str] = []
        for slug in slugs:
            identifier = await self.resolve_slug(kind, slug)
            if identifier and identifier not in resolved:
                resolved.append(identifier)
        return resolved

    def clear_cache(self) -> None:
        self._slug_cache.clear()


__all__ = ["TAXONOMY_TABLES", "TaxonomyRepository"]

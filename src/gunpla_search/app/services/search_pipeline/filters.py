"""Translate structured filter selections into index filter expressions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

GRADE_PATH = "productLine.grade.id"
PRODUCT_LINE_PATH = "productLine.id"
MOBILE_SUIT_PATH = "mobileSuits.id"
SERIES_PATH = "series.id"
RELEASE_TYPE_PATH = "releaseType.id"
TIMELINE_PATH = "series.timeline.id"

ALL = "all"


@dataclass(slots=True)
class FilterCriteria:
    """Selections for the kits listing.

    Identifiers are OR-ed within a facet and facets are AND-ed together.
    """

    grade_ids: list[str] = field(default_factory=list)
    product_line_ids: list[str] = field(default_factory=list)
    mobile_suit_ids: list[str] = field(default_factory=list)
    series_ids: list[str] = field(default_factory=list)
    release_type_ids: list[str] = field(default_factory=list)
    search_term: str = ""
    sort_by: str = "relevance"
    order: str = "most-relevant"
    limit: int = 50
    offset: int = 0

    def facets(self) -> dict[str, list[str]]:
        return {
            GRADE_PATH: self.grade_ids,
            PRODUCT_LINE_PATH: self.product_line_ids,
            MOBILE_SUIT_PATH: self.mobile_suit_ids,
            SERIES_PATH: self.series_ids,
            RELEASE_TYPE_PATH: self.release_type_ids,
        }

    @property
    def is_relevance_sort(self) -> bool:
        return build_listing_sort(self.sort_by, self.order) == []


@dataclass(slots=True)
class SearchFilters:
    """Slug based selections used by the cross-entity search box."""

    timeline: str = ALL
    grade: str = ALL
    sort_by: str = "relevance"


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _clean_ids(ids: Iterable[str | None]) -> list[str]:
    cleaned = {str(value).strip() for value in ids if value is not None}
    cleaned.discard("")
    return sorted(cleaned)


def compile_clause(path: str, ids: Iterable[str | None]) -> str | None:
    """Return ``(path = "a" OR path = "b")`` or ``None`` for an empty facet."""

    values = _clean_ids(ids)
    if not values:
        return None
    terms = " OR ".join(f"{path} = {_quote(value)}" for value in values)
    return f"({terms})"


def compile_filter(facets: Mapping[str, Sequence[str | None]]) -> str | None:
    """Join non-empty facet clauses with ``AND``.

    ``None`` means no restriction; it is never an always-false expression.
    """

    clauses = [
        clause
        for clause in (compile_clause(path, ids) for path, ids in facets.items())
        if clause
    ]
    if not clauses:
        return None
    return " AND ".join(clauses)


def compile_criteria(criteria: FilterCriteria) -> str | None:
    return compile_filter(criteria.facets())


def build_listing_sort(sort_by: str | None, order: str | None) -> list[str]:
    """Map the kits listing sort controls onto index sort rules."""

    direction = "asc" if order == "ascending" else "desc"
    if sort_by == "name":
        return [f"name:{direction}"]
    if sort_by == "release-date":
        return [f"releaseDate:{direction}"]
    # Ratings are not indexed; "rating" falls back to relevance.
    return []


SEARCH_SORTS: dict[str, list[str]] = {
    "name-asc": ["name:asc"],
    "name-desc": ["name:desc"],
    "release-desc": ["releaseDate:desc"],
    "release-asc": ["releaseDate:asc"],
    "price-asc": ["priceYen:asc"],
    "price-desc": ["priceYen:desc"],
}


def build_search_sort(sort_by: str | None) -> list[str]:
    return list(SEARCH_SORTS.get(sort_by or "", []))


__all__ = [
    "ALL",
    "FilterCriteria",
    "GRADE_PATH",
    "MOBILE_SUIT_PATH",
    "PRODUCT_LINE_PATH",
    "RELEASE_TYPE_PATH",
    "SEARCH_SORTS",
    "SERIES_PATH",
    "SearchFilters",
    "TIMELINE_PATH",
    "build_listing_sort",
    "build_search_sort",
    "compile_clause",
    "compile_criteria",
    "compile_filter",
]

"""Typed views over the documents returned by the search index."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping

logger = logging.getLogger(__name__)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _mapping(value: Any) -> Mapping[str, Any] | None:
    if isinstance(value, Mapping):
        return value
    return None


def parse_release_date(value: Any) -> date | None:
    """Return the calendar date of an ISO date/datetime string, or ``None``."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        logger.debug("Ignoring unparsable release date %r", value)
        return None


@dataclass(slots=True, frozen=True)
class TaxonRef:
    """A flat ``{id, name, slug}`` reference embedded in a document."""

    id: str | None = None
    name: str | None = None
    slug: str | None = None

    @classmethod
    def from_hit(cls, data: Any) -> "TaxonRef | None":
        raw = _mapping(data)
        if raw is None:
            return None
        return cls(
            id=_text(raw.get("id")),
            name=_text(raw.get("name")),
            slug=_text(raw.get("slug")),
        )


@dataclass(slots=True, frozen=True)
class ProductLineRef:
    id: str | None = None
    name: str | None = None
    slug: str | None = None
    grade: TaxonRef | None = None

    @classmethod
    def from_hit(cls, data: Any) -> "ProductLineRef | None":
        raw = _mapping(data)
        if raw is None:
            return None
        return cls(
            id=_text(raw.get("id")),
            name=_text(raw.get("name")),
            slug=_text(raw.get("slug")),
            grade=TaxonRef.from_hit(raw.get("grade")),
        )


@dataclass(slots=True, frozen=True)
class SeriesRef:
    id: str | None = None
    name: str | None = None
    slug: str | None = None
    timeline: TaxonRef | None = None

    @classmethod
    def from_hit(cls, data: Any) -> "SeriesRef | None":
        raw = _mapping(data)
        if raw is None:
            return None
        return cls(
            id=_text(raw.get("id")),
            name=_text(raw.get("name")),
            slug=_text(raw.get("slug")),
            timeline=TaxonRef.from_hit(raw.get("timeline")),
        )


@dataclass(slots=True, frozen=True)
class SearchableKit:
    """Kit candidate document as stored in the ``kits`` collection.

    ``base_kit_id`` is ``None`` for a canonical kit and references the base kit
    for variants. Nested relations are optional because the index only holds
    what the sync process found at the time it ran.
    """

    id: str
    name: str
    slug: str | None = None
    number: str | None = None
    variant: str | None = None
    release_date: str | None = None
    price_yen: int | None = None
    box_art: str | None = None
    notes: str | None = None
    base_kit_id: str | None = None
    product_line: ProductLineRef | None = None
    series: SeriesRef | None = None
    release_type: TaxonRef | None = None
    mobile_suits: tuple[TaxonRef, ...] = ()
    searchable_text: str | None = None

    @classmethod
    def from_hit(cls, hit: Mapping[str, Any]) -> "SearchableKit":
        mobile_suits = tuple(
            ref
            for ref in (TaxonRef.from_hit(ms) for ms in hit.get("mobileSuits") or ())
            if ref is not None
        )
        price = hit.get("priceYen")
        return cls(
            id=str(hit.get("id") or ""),
            name=str(hit.get("name") or ""),
            slug=_text(hit.get("slug")),
            number=_text(hit.get("number")),
            variant=_text(hit.get("variant")),
            release_date=_text(hit.get("releaseDate")),
            price_yen=int(price) if isinstance(price, (int, float)) else None,
            box_art=_text(hit.get("boxArt")),
            notes=_text(hit.get("notes")),
            base_kit_id=_text(hit.get("baseKitId")) or None,
            product_line=ProductLineRef.from_hit(hit.get("productLine")),
            series=SeriesRef.from_hit(hit.get("series")),
            release_type=TaxonRef.from_hit(hit.get("releaseType")),
            mobile_suits=mobile_suits,
            searchable_text=_text(hit.get("searchableText")),
        )

    @property
    def is_base_kit(self) -> bool:
        return not self.base_kit_id

    @property
    def grade_code(self) -> str | None:
        if self.product_line is None or self.product_line.grade is None:
            return None
        slug = self.product_line.grade.slug
        return slug.lower() if slug else None

    @property
    def release_year(self) -> int | None:
        parsed = parse_release_date(self.release_date)
        return parsed.year if parsed else None


@dataclass(slots=True, frozen=True)
class SearchableMobileSuit:
    """Mobile suit document as stored in the ``mobile-suits`` collection."""

    id: str
    name: str
    slug: str | None = None
    description: str | None = None
    scraped_images: tuple[str, ...] = field(default_factory=tuple)
    series: SeriesRef | None = None

    @classmethod
    def from_hit(cls, hit: Mapping[str, Any]) -> "SearchableMobileSuit":
        images = hit.get("scrapedImages") or ()
        return cls(
            id=str(hit.get("id") or ""),
            name=str(hit.get("name") or ""),
            slug=_text(hit.get("slug")),
            description=_text(hit.get("description")),
            scraped_images=tuple(str(image) for image in images if image),
            series=SeriesRef.from_hit(hit.get("series")),
        )


KIT_ATTRIBUTES: tuple[str, ...] = (
    "id",
    "name",
    "slug",
    "number",
    "variant",
    "releaseDate",
    "priceYen",
    "boxArt",
    "notes",
    "baseKitId",
    "productLine",
    "series",
    "releaseType",
    "mobileSuits",
)

MOBILE_SUIT_ATTRIBUTES: tuple[str, ...] = (
    "id",
    "name",
    "slug",
    "description",
    "scrapedImages",
    "series",
)


__all__ = [
    "KIT_ATTRIBUTES",
    "MOBILE_SUIT_ATTRIBUTES",
    "ProductLineRef",
    "SearchableKit",
    "SearchableMobileSuit",
    "SeriesRef",
    "TaxonRef",
    "parse_release_date",
]

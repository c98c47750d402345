"""Projection of index documents into caller-facing result shapes."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Sequence

from .documents import SearchableKit, SearchableMobileSuit, parse_release_date


@dataclass(slots=True)
class ProjectedKit:
    id: str
    name: str
    slug: str | None
    number: str | None
    variant: str | None
    release_date: date | None
    price_yen: int | None
    box_art: str | None
    base_kit_id: str | None
    grade: str | None
    product_line: str | None
    series: str | None
    timeline: str | None
    release_type: str | None
    mobile_suits: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["release_date"] = (
            self.release_date.isoformat() if self.release_date else None
        )
        return data


@dataclass(slots=True)
class ProjectedMobileSuit:
    id: str
    name: str
    slug: str | None
    description: str | None
    series: str | None
    timeline: str | None
    kits_count: int = 0
    scraped_images: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class RankedResultPage:
    """One page of the kits listing."""

    kits: list[ProjectedKit]
    total: int
    has_more: bool

    def as_dict(self) -> dict[str, Any]:
        return {
            "kits": [kit.as_dict() for kit in self.kits],
            "total": self.total,
            "has_more": self.has_more,
        }


@dataclass(slots=True)
class CrossEntitySearchResult:
    """Preview of matching kits and mobile suits for the search box."""

    kits: list[ProjectedKit] = field(default_factory=list)
    mobile_suits: list[ProjectedMobileSuit] = field(default_factory=list)
    total_kits: int = 0
    total_mobile_suits: int = 0
    has_more: bool = False

    @classmethod
    def empty(cls) -> "CrossEntitySearchResult":
        return cls()

    def as_dict(self) -> dict[str, Any]:
        return {
            "kits": [kit.as_dict() for kit in self.kits],
            "mobile_suits": [ms.as_dict() for ms in self.mobile_suits],
            "total_kits": self.total_kits,
            "total_mobile_suits": self.total_mobile_suits,
            "has_more": self.has_more,
        }


def project_kit(kit: SearchableKit) -> ProjectedKit:
    product_line = kit.product_line
    grade = product_line.grade if product_line else None
    series = kit.series
    timeline = series.timeline if series else None
    return ProjectedKit(
        id=kit.id,
        name=kit.name,
        slug=kit.slug,
        number=kit.number,
        variant=kit.variant,
        release_date=parse_release_date(kit.release_date),
        price_yen=kit.price_yen,
        box_art=kit.box_art,
        base_kit_id=kit.base_kit_id,
        grade=(grade.name or None) if grade else None,
        product_line=product_line.name if product_line else None,
        series=series.name if series else None,
        timeline=timeline.name if timeline else None,
        release_type=kit.release_type.name if kit.release_type else None,
        mobile_suits=[ms.name for ms in kit.mobile_suits if ms.name],
    )


def project_mobile_suit(mobile_suit: SearchableMobileSuit) -> ProjectedMobileSuit:
    series = mobile_suit.series
    timeline = series.timeline if series else None
    return ProjectedMobileSuit(
        id=mobile_suit.id,
        name=mobile_suit.name,
        slug=mobile_suit.slug,
        description=mobile_suit.description,
        series=series.name if series else None,
        timeline=timeline.name if timeline else None,
        # Kit counts are not part of the index documents.
        kits_count=0,
        scraped_images=list(mobile_suit.scraped_images),
    )


def has_more_results(offset: int, limit: int, estimated_total_hits: int) -> bool:
    return (offset + limit) < estimated_total_hits


def paginate(
    ranked: Sequence[SearchableKit],
    *,
    limit: int,
    offset: int,
    estimated_total_hits: int,
) -> RankedResultPage:
    """Truncate the reranked window to ``limit`` and project it.

    ``offset`` was already applied by the index query; it only feeds the
    ``has_more`` computation here.
    """

    limit = max(limit, 0)
    page = [project_kit(kit) for kit in ranked[:limit]]
    total = max(int(estimated_total_hits or 0), 0)
    return RankedResultPage(
        kits=page,
        total=total,
        has_more=has_more_results(offset, limit, total),
    )


__all__ = [
    "CrossEntitySearchResult",
    "ProjectedKit",
    "ProjectedMobileSuit",
    "RankedResultPage",
    "has_more_results",
    "paginate",
    "project_kit",
    "project_mobile_suit",
]

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from gunpla_search.settings import DEFAULT_VARIANT_KEYWORDS, PREVIEW_VARIANT_KEYWORDS

DEFAULT_ERA_CUTOFF_YEAR = 2010
DEFAULT_GRADE_PRIORITY: tuple[str, ...] = ("pg", "mg", "rg", "hg", "eg", "fm")


def _keywords(words: Any) -> tuple[str, ...]:
    return tuple(str(word).strip().lower() for word in words if str(word).strip())


@dataclass(slots=True, frozen=True)
class RankingPolicyConfig:
    """Static policy data consumed by the rerankers."""

    era_cutoff_year: int = DEFAULT_ERA_CUTOFF_YEAR
    grade_priority: tuple[str, ...] = DEFAULT_GRADE_PRIORITY
    variant_keywords: tuple[str, ...] = tuple(DEFAULT_VARIANT_KEYWORDS)
    preview_variant_keywords: tuple[str, ...] = tuple(PREVIEW_VARIANT_KEYWORDS)

    def as_dict(self) -> dict[str, Any]:
        """Return the policy as a plain dictionary."""

        return asdict(self)


@dataclass(slots=True, frozen=True)
class SearchLimits:
    """Limits applied to search operations."""

    max_candidates: int = 100
    default_limit: int = 50
    preview_size: int = 8
    preview_candidates: int = 50
    preview_variant_candidates: int = 30
    suggestion_limit: int = 5
    min_suggestion_length: int = 2
    simple_search_limit: int = 20
    sync_batch_size: int = 500

    def as_dict(self) -> dict[str, Any]:
        """Return the limits as a plain dictionary."""

        return asdict(self)


@dataclass(slots=True, frozen=True)
class IndexNames:
    """Names of the collections held by the search index."""

    kits: str = "kits"
    mobile_suits: str = "mobile-suits"
    series: str = "series"
    product_lines: str = "product-lines"
    grades: str = "grades"

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class SearchConfig:
    """Aggregate search configuration used across services."""

    policy: RankingPolicyConfig = field(default_factory=RankingPolicyConfig)
    limits: SearchLimits = field(default_factory=SearchLimits)
    indexes: IndexNames = field(default_factory=IndexNames)

    @classmethod
    def from_settings(cls, settings: Any) -> "SearchConfig":
        """Construct a :class:`SearchConfig` from application settings."""

        search_settings = settings.SEARCH
        index_settings = settings.INDEXES
        policy = RankingPolicyConfig(
            era_cutoff_year=int(search_settings.era_cutoff_year),
            grade_priority=tuple(
                str(code).strip().lower() for code in search_settings.grade_priority
            ),
            variant_keywords=_keywords(search_settings.variant_keywords),
            preview_variant_keywords=_keywords(
                search_settings.preview_variant_keywords
            ),
        )
        limits = SearchLimits(
            max_candidates=int(search_settings.max_candidates),
            default_limit=int(search_settings.default_limit),
            preview_size=int(search_settings.preview_size),
            preview_candidates=int(search_settings.preview_candidates),
            preview_variant_candidates=int(search_settings.preview_variant_candidates),
            suggestion_limit=int(search_settings.suggestion_limit),
            min_suggestion_length=int(search_settings.min_suggestion_length),
            simple_search_limit=int(search_settings.simple_search_limit),
            sync_batch_size=int(search_settings.sync_batch_size),
        )
        indexes = IndexNames(
            kits=str(index_settings.kits),
            mobile_suits=str(index_settings.mobile_suits),
            series=str(index_settings.series),
            product_lines=str(index_settings.product_lines),
            grades=str(index_settings.grades),
        )
        return cls(policy=policy, limits=limits, indexes=indexes)

    def as_dict(self) -> dict[str, Any]:
        """Return the full configuration as a dictionary."""

        return {
            "policy": self.policy.as_dict(),
            "limits": self.limits.as_dict(),
            "indexes": self.indexes.as_dict(),
        }


__all__ = [
    "DEFAULT_ERA_CUTOFF_YEAR",
    "DEFAULT_GRADE_PRIORITY",
    "IndexNames",
    "RankingPolicyConfig",
    "SearchConfig",
    "SearchLimits",
]

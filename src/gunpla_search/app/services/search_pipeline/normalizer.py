from __future__ import annotations

"""Query normalization component for the search pipeline."""

import logging
from dataclasses import dataclass
from typing import Iterable, Protocol

from gunpla_search.settings import DEFAULT_VARIANT_KEYWORDS

logger = logging.getLogger(__name__)


def is_variant_search(
    query: str | None,
    keywords: Iterable[str] = DEFAULT_VARIANT_KEYWORDS,
) -> bool:
    """Return ``True`` when ``query`` mentions a finish or version keyword.

    Matching is a case-insensitive substring test against the whole query, so
    ``"convert"`` triggers on ``"ver"``. Callers rely on this tolerance.
    """

    lower_query = (query or "").lower()
    if not lower_query:
        return False
    return any(keyword in lower_query for keyword in keywords)


@dataclass(slots=True)
class NormalizedQuery:
    """Normalized representation of a free-text search query."""

    text: str
    variant_intent: bool

    @property
    def prioritize_base_kits(self) -> bool:
        return not self.variant_intent


class BaseSearchNormalizer(Protocol):
    """Interface for query normalization components."""

    def normalize(self, query: str | None) -> NormalizedQuery:
        """Return the trimmed query and its variant-intent classification."""

        ...


class DefaultSearchNormalizer:
    """Classify queries using the configured variant keyword set."""

    def __init__(self, keywords: Iterable[str] = DEFAULT_VARIANT_KEYWORDS) -> None:
        self._keywords = tuple(keyword.lower() for keyword in keywords if keyword)

    def normalize(self, query: str | None) -> NormalizedQuery:
        text = (query or "").strip()
        variant_intent = is_variant_search(text, self._keywords)
        logger.debug(
            "Classified query %r as %s search",
            text,
            "variant" if variant_intent else "base-kit",
        )
        return NormalizedQuery(text=text, variant_intent=variant_intent)


__all__ = [
    "BaseSearchNormalizer",
    "DefaultSearchNormalizer",
    "NormalizedQuery",
    "is_variant_search",
]

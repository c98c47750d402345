from __future__ import annotations

import pytest

from gunpla_search.app.services.search_pipeline import (
    DefaultSearchNormalizer,
    is_variant_search,
)


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("RX-78-2 metallic ver", True),
        ("RX-78-2 Gundam", False),
        ("", False),
        (None, False),
        ("Unicorn CLEAR", True),
        ("hguc zaku", True),
        ("Titanium Finish", True),
    ],
)
def test_is_variant_search(query: str | None, expected: bool) -> None:
    assert is_variant_search(query) is expected


def test_substring_matches_inside_words() -> None:
    # "convert" contains "ver"; the match is deliberately not whole-word.
    assert is_variant_search("convert") is True


def test_normalizer_trims_and_classifies() -> None:
    normalized = DefaultSearchNormalizer().normalize("  Zaku Commander  ")

    assert normalized.text == "Zaku Commander"
    assert normalized.variant_intent is False
    assert normalized.prioritize_base_kits is True


def test_normalizer_uses_configured_keywords() -> None:
    normalizer = DefaultSearchNormalizer(["Gold"])

    assert normalizer.normalize("Akatsuki gold").variant_intent is True
    assert normalizer.normalize("Akatsuki metallic").variant_intent is False


def test_blank_query_is_not_variant() -> None:
    normalized = DefaultSearchNormalizer().normalize("   ")

    assert normalized.text == ""
    assert normalized.variant_intent is False

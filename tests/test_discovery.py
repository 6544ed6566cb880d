"""
Tests for category discovery: query construction, color sanitization,
candidate filtering and the empty-outcome diagnostics.
"""
import asyncio

import pytest

from conftest import FakeSearchProvider, make_candidate, make_context
from stylist_service.core.errors import SearchError
from stylist_service.core.models import StyleBracket
from stylist_service.services.discovery import (
    CategoryDiscovery,
    filter_candidates,
    gender_term,
    sanitize_colors,
)


class TestQueryConstruction:
    """Fixed term order plus purchase intent and exclusion suffix."""

    def test_scenario_query(self, settings):
        discovery = CategoryDiscovery(FakeSearchProvider(), settings)
        context = make_context(categories=("Black Dress",), colors="", style="")
        assert discovery.build_query("Black Dress", context) == \
            "Women's Black Dress buy online -pinterest -lyst -polyvore"

    def test_term_order(self, settings):
        discovery = CategoryDiscovery(FakeSearchProvider(), settings)
        context = make_context(style="minimalist", colors="navy, white", gender="male")
        assert discovery.build_query("Shirt", context) == \
            "minimalist navy white Men's Shirt buy online -pinterest -lyst -polyvore"

    def test_category_style_override(self, settings):
        discovery = CategoryDiscovery(FakeSearchProvider(), settings)
        context = make_context(style="boho", colors="", category_styles={"Shoes": "chunky platform"})
        assert discovery.build_query("Shoes", context).startswith("chunky platform Women's Shoes")
        assert discovery.build_query("Dress", context).startswith("boho Women's Dress")

    def test_precomputed_query_completed_once(self, settings):
        discovery = CategoryDiscovery(FakeSearchProvider(), settings)
        query = discovery.finalize_query("women's wide-leg trousers buy online -pinterest")
        assert query == "women's wide-leg trousers buy online -pinterest -lyst -polyvore"

    @pytest.mark.parametrize("gender, expected", [
        ("female", "Women's"),
        ("Male", "Men's"),
        ("non-binary", "Unisex"),
        ("kids", "kids"),
        ("", ""),
    ])
    def test_gender_mapping(self, gender, expected):
        assert gender_term(gender) == expected


class TestColorSanitization:
    """Category-tagged bracket colors."""

    def test_keeps_matching_tags_and_untagged(self):
        bracket = StyleBracket(colors=("Dress: black", "Shoes: red", "gold"))
        assert sanitize_colors("Dress", bracket, "blue") == ["black", "gold"]

    def test_fuzzy_tag_match_either_direction(self):
        bracket = StyleBracket(colors=("shoe: tan", "Evening Dresses: emerald"))
        assert sanitize_colors("Shoes", bracket, "") == ["tan"]
        assert sanitize_colors("dress", bracket, "") == ["emerald"]

    def test_falls_back_to_generic_preference(self):
        bracket = StyleBracket(colors=("Shoes: red",))
        assert sanitize_colors("Dress", bracket, "navy, cream") == ["navy", "cream"]

    def test_no_bracket(self):
        assert sanitize_colors("Dress", None, "black") == ["black"]
        assert sanitize_colors("Dress", None, "") == []


class TestCandidateFilter:
    def test_drops_duplicates_and_non_product_links(self):
        candidates = [
            make_candidate(1),
            make_candidate(2, link="https://shop.example.com/dress/item-1"),
            make_candidate(3, link="https://www.google.com/search?q=dress"),
            make_candidate(4, link="https://www.youtube.com/watch?v=abc"),
            make_candidate(5),
        ]
        kept = filter_candidates(candidates)
        assert [c.rank for c in kept] == [1, 5]


class TestDiscover:
    """Empty outcomes are diagnostics, never exceptions."""

    def test_returns_candidates_in_provider_order(self, settings, context):
        provider = FakeSearchProvider({"dress": [make_candidate(i) for i in range(1, 4)]})
        result = asyncio.run(CategoryDiscovery(provider, settings).discover("Dress", context))

        assert [c.rank for c in result.candidates] == [1, 2, 3]
        assert result.initial_count == 3
        assert result.query == provider.queries[0]

    def test_zero_results(self, settings):
        context = make_context(categories=("Black Dress",), colors="")
        provider = FakeSearchProvider()
        result = asyncio.run(CategoryDiscovery(provider, settings).discover("Black Dress", context))

        assert result.candidates == []
        assert result.initial_count == 0
        assert result.query == "Women's Black Dress buy online -pinterest -lyst -polyvore"
        assert any("Zero results" in note for note in result.notes)

    def test_missing_credentials(self, settings, context):
        provider = FakeSearchProvider(configured=False)
        result = asyncio.run(CategoryDiscovery(provider, settings).discover("Dress", context))

        assert result.candidates == []
        assert provider.queries == []
        assert any("credentials missing" in note for note in result.notes)

    def test_provider_failure(self, settings, context):
        provider = FakeSearchProvider(error=SearchError("SerpApi error: Invalid API key"))
        result = asyncio.run(CategoryDiscovery(provider, settings).discover("Dress", context))

        assert result.candidates == []
        assert any("Search provider failed" in note for note in result.notes)
        assert not any("Zero results" in note for note in result.notes)

    def test_uses_precomputed_query(self, settings, context):
        provider = FakeSearchProvider({"trousers": [make_candidate(1, "trousers")]})
        result = asyncio.run(CategoryDiscovery(provider, settings).discover(
            "Bottom", context, query="women's black wide-leg trousers"
        ))

        assert provider.queries == ["women's black wide-leg trousers buy online -pinterest -lyst -polyvore"]
        assert len(result.candidates) == 1

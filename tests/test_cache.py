"""
Tests for the in-memory cache store and cache key generation.
"""
import threading

import pytest

from conftest import make_context, make_item
from stylist_service.cache import CacheManager, CacheStore, fast_hash
from stylist_service.core.models import CategoryResult, ScoredItem, SearchResponse, StyleBracket


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestCacheStore:
    def test_get_set(self):
        store = CacheStore(ttl_seconds=60)
        store.set("exact_abc", {"mode": "full"})
        assert store.get("exact_abc") == {"mode": "full"}
        assert store.get("missing") is None

    def test_expiry(self):
        clock = FakeClock()
        store = CacheStore(ttl_seconds=60, clock=clock)
        store.set("k", 1)
        store.set("short", 2, ttl_seconds=10)

        clock.now += 30
        assert store.get("k") == 1
        assert store.get("short") is None

        clock.now += 31
        assert store.get("k") is None
        assert store.get_stats()["entries"] == 0

    def test_clear_expired(self):
        clock = FakeClock()
        store = CacheStore(ttl_seconds=60, clock=clock)
        store.set("a", 1)
        store.set("b", 2, ttl_seconds=120)
        clock.now += 90

        assert store.clear_expired() == 1
        assert store.get("b") == 2

    def test_concurrent_writers(self):
        store = CacheStore()

        def writer(offset):
            for i in range(200):
                store.set(f"key_{offset}_{i}", i)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get_stats()["entries"] == 800


class TestCacheKeys:
    """Deterministic, layer-prefixed keys."""

    def test_format(self):
        key = CacheManager().generate_cache_key("exact", make_context())
        prefix, digest = key.split("_")
        assert prefix == "exact"
        assert len(digest) == 16

    def test_order_and_case_insensitive(self):
        manager = CacheManager()
        a = make_context(categories=("Dress", "Shoes"), colors="Black, gold")
        b = make_context(categories=("shoes", "dress"), colors="gold,black")
        assert manager.generate_cache_key("exact", a) == manager.generate_cache_key("exact", b)

    def test_search_layer_ignores_photo_and_occasion(self):
        manager = CacheManager()
        a = make_context(reference_payload="photo-a", occasion="dinner")
        b = make_context(reference_payload="photo-b", occasion="brunch")

        assert manager.generate_cache_key("search", a) == manager.generate_cache_key("search", b)
        assert manager.generate_cache_key("exact", a) != manager.generate_cache_key("exact", b)

    def test_search_layer_tracks_query_inputs(self):
        manager = CacheManager()
        women = make_context(gender="female")
        men = make_context(gender="male")
        tagged = make_context(bracket=StyleBracket(colors=("Dress: red",)))
        untagged = make_context(bracket=StyleBracket(colors=("Dress: navy",)))

        assert manager.generate_cache_key("search", women) != manager.generate_cache_key("search", men)
        assert manager.generate_cache_key("search", tagged) != manager.generate_cache_key("search", untagged)

    def test_search_layer_keys_on_sent_queries(self):
        manager = CacheManager()
        context = make_context()
        a = manager.generate_cache_key("search", context, queries={"Dress": "black slip dress buy online"})
        b = manager.generate_cache_key("search", context, queries={"Dress": "red wrap dress buy online"})
        c = manager.generate_cache_key("search", context, queries={"dress": "Black  slip dress buy online"})

        assert a != b
        assert a == c

    def test_search_layer_uses_first_five_keywords(self):
        manager = CacheManager()
        a = make_context(bracket=StyleBracket(keywords=("a", "b", "c", "d", "e", "f")))
        b = make_context(bracket=StyleBracket(keywords=("a", "b", "c", "d", "e", "z")))
        c = make_context(bracket=StyleBracket(keywords=("q",)))

        assert manager.generate_cache_key("search", a) == manager.generate_cache_key("search", b)
        assert manager.generate_cache_key("search", a) != manager.generate_cache_key("search", c)

    def test_unknown_layer(self):
        with pytest.raises(ValueError):
            CacheManager().generate_cache_key("disk", make_context())

    def test_disabled_manager_is_a_no_op(self):
        manager = CacheManager(enabled=False)
        manager.set("exact_x", {"a": 1})
        assert manager.get("exact_x") is None


class TestFastHash:
    def test_empty(self):
        assert fast_hash(None) == "no_data"

    def test_large_payload_sampled(self):
        payload = "A" * 5000 + "B" * 5000
        changed_unsampled = "A" * 1000 + "C" + "A" * 3999 + "B" * 5000

        assert fast_hash(payload) == fast_hash(changed_unsampled)
        assert fast_hash(payload) != fast_hash(payload + "B")
        assert len(fast_hash(payload)) == 16


class TestCachedResponseRoundTrip:
    """Cached responses come back exactly as they were stored."""

    def test_zero_scores_and_ranks_survive(self):
        item = make_item(1, match_score=0, rank=0)
        scored = ScoredItem(item=item, visual_match_score=0, score_reason="Off style")

        restored = ScoredItem.from_dict(scored.to_dict())

        assert restored.item.match_score == 0
        assert restored.item.rank == 0
        assert restored.visual_match_score == 0
        assert restored.to_dict() == scored.to_dict()

    def test_missing_scores_use_defaults(self):
        data = make_item(1).to_dict()
        del data["match_score"]
        data["rank"] = None

        restored = ScoredItem.from_dict(data)
        assert restored.item.match_score == 50
        assert restored.item.rank == 0

    def test_response_round_trip(self):
        response = SearchResponse(
            mode="simplified",
            category_results=[CategoryResult(
                category="Dress",
                items=[ScoredItem(item=make_item(n, match_score=s)) for n, s in ((1, 0), (2, 90))],
                initial_candidate_count=2,
                query="Black Women's Dress buy online",
                logs=["[Dress] Search query: Black Women's Dress buy online"],
            )],
            notes=["line one", "line two"],
        )

        restored = SearchResponse.from_dict(response.to_dict())
        assert restored.to_dict() == response.to_dict()

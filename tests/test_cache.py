"""Tests for the tag-invalidated TTL cache."""

import pytest

from backend.trello_dashboard.cache import TaggedTTLCache


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TaggedTTLCache(ttl_seconds=1800, clock=clock)


class TestTaggedTTLCache:
    def test_miss_on_empty_cache(self, cache):
        assert cache.get("board") is None

    def test_hit_within_ttl(self, cache, clock):
        payload = object()
        cache.set("board", payload, tags=("trello",))
        clock.advance(1799)
        assert cache.get("board") is payload

    def test_expires_after_ttl(self, cache, clock):
        cache.set("board", object(), tags=("trello",))
        clock.advance(1800)
        assert cache.get("board") is None

    def test_invalidate_tag(self, cache):
        cache.set("board", object(), tags=("trello",))
        assert cache.invalidate_tag("trello") == 1
        assert cache.get("board") is None

    def test_other_tags_are_unaffected(self, cache):
        payload = object()
        cache.set("board", payload, tags=("trello",))
        cache.invalidate_tag("github")
        assert cache.get("board") is payload

    def test_set_after_invalidation_is_fresh(self, cache):
        cache.set("board", object(), tags=("trello",))
        cache.invalidate_tag("trello")
        payload = object()
        cache.set("board", payload, tags=("trello",))
        assert cache.get("board") is payload

    def test_invalidation_during_load_leaves_result_stale(self, cache):
        generation = cache.generation_for(("trello",))
        cache.invalidate_tag("trello")
        cache.set("board", object(), tags=("trello",), generation=generation)
        assert cache.get("board") is None

    def test_peek_returns_stale_entry(self, cache, clock):
        payload = object()
        cache.set("board", payload, tags=("trello",))
        clock.advance(5000)
        assert cache.get("board") is None
        assert cache.peek("board").payload is payload

    def test_set_replaces_entry(self, cache):
        first, second = object(), object()
        cache.set("board", first)
        entry = cache.set("board", second)
        assert cache.get("board") is second
        assert entry.payload is second
        assert entry.expires_at == 1000.0 + 1800

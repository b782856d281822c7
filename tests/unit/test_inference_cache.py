"""Unit tests for the response cache."""

from __future__ import annotations

import pytest

from insightmeet.inference.cache import CacheEntry, ResponseCache, make_cache_key
from tests.helpers.inference import FakeClock


@pytest.fixture
def cache(clock: FakeClock) -> ResponseCache[str]:
    """Provide a three-entry cache with a one-second TTL."""
    return ResponseCache(max_entries=3, default_ttl_ms=1000, clock=clock)


class TestMakeCacheKey:
    """Tests for cache key construction."""

    def test_parameter_order_does_not_matter(self) -> None:
        """Mappings with equal content give equal keys."""
        first = make_cache_key("gpt2", "hi", {"a": 1, "b": 2})
        second = make_cache_key("gpt2", "hi", {"b": 2, "a": 1})
        assert first == second

    def test_key_includes_model_input_and_parameters(self) -> None:
        """Keys differ when any part of the triple differs."""
        base = make_cache_key("gpt2", "hi", {})
        assert base == 'gpt2:"hi":{}'
        assert make_cache_key("t5-small", "hi", {}) != base
        assert make_cache_key("gpt2", "hello", {}) != base
        assert make_cache_key("gpt2", "hi", {"top_k": 5}) != base

    def test_structured_inputs_are_sorted(self) -> None:
        """Question-answering payloads key the same whatever their order."""
        first = make_cache_key("m", {"question": "q", "context": "c"}, {})
        second = make_cache_key("m", {"context": "c", "question": "q"}, {})
        assert first == second


class TestResponseCacheExpiry:
    """Lazy TTL expiry."""

    def test_live_entry_is_returned(
        self, cache: ResponseCache[str], clock: FakeClock
    ) -> None:
        """Entries are served until their TTL has passed."""
        cache.set("k", "v")
        clock.advance(1000)
        assert cache.get("k") == "v"

    def test_expired_entry_is_removed_on_read(
        self, cache: ResponseCache[str], clock: FakeClock
    ) -> None:
        """A lookup past the TTL returns None and deletes the entry."""
        cache.set("k", "v")
        clock.advance(1001)

        assert len(cache) == 1, "expiry is lazy until a lookup"
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_per_entry_ttl_overrides_default(
        self, cache: ResponseCache[str], clock: FakeClock
    ) -> None:
        """set() accepts a TTL for a single entry."""
        cache.set("short", "v", ttl_ms=10)
        cache.set("long", "v")
        clock.advance(11)

        assert cache.get("short") is None
        assert cache.get("long") == "v"


class TestResponseCacheEviction:
    """FIFO eviction at capacity."""

    def test_oldest_inserted_entry_is_evicted(self, cache: ResponseCache[str]) -> None:
        """Reading an entry does not protect it from eviction."""
        for key in ("a", "b", "c"):
            cache.set(key, key)
        assert cache.get("a") == "a"

        cache.set("d", "d")

        assert cache.get("a") is None
        assert [cache.get(key) for key in ("b", "c", "d")] == ["b", "c", "d"]

    def test_replacing_a_key_does_not_evict(self, cache: ResponseCache[str]) -> None:
        """Overwriting an existing key keeps the size constant."""
        for key in ("a", "b", "c"):
            cache.set(key, key)

        cache.set("b", "updated")

        assert len(cache) == 3
        assert cache.get("a") == "a"
        assert cache.get("b") == "updated"

    def test_clear_drops_everything(self, cache: ResponseCache[str]) -> None:
        """clear() empties the cache."""
        cache.set("a", "a")
        cache.clear()
        assert len(cache) == 0
        assert cache.get("a") is None

    def test_capacity_must_be_positive(self) -> None:
        """A zero-sized cache is rejected."""
        with pytest.raises(ValueError, match="max_entries"):
            ResponseCache(max_entries=0)


class TestStaleness:
    """Tests for is_stale."""

    @pytest.mark.parametrize(
        ("elapsed_ms", "expected"),
        [(0, False), (799, False), (800, True), (1000, True)],
    )
    def test_stale_from_eighty_percent_of_ttl(
        self,
        cache: ResponseCache[str],
        clock: FakeClock,
        elapsed_ms: int,
        *,
        expected: bool,
    ) -> None:
        """Entries turn stale once 80% of the TTL has elapsed."""
        cache.set("k", "v")
        clock.advance(elapsed_ms)
        assert cache.is_stale("k") is expected

    def test_absent_key_is_not_stale(self, cache: ResponseCache[str]) -> None:
        """Missing keys are never stale."""
        assert cache.is_stale("missing") is False


def test_cache_entry_expiry_boundary() -> None:
    """An entry exactly at its TTL is still live."""
    entry = CacheEntry(payload="v", created_at_ms=0.0, ttl_ms=100.0)
    assert entry.is_expired(100.0) is False
    assert entry.is_expired(100.5) is True

"""Tests for the response cache and cache key derivation."""

from __future__ import annotations

import pytest

from chatrelay.relay.cache import KEY_PREFIX, ResponseCache, cache_key


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> ResponseCache:
    return ResponseCache(ttl=300.0, max_entries=3, clock=clock)


class TestCacheKey:
    def test_rate_query(self) -> None:
        assert cache_key("what's the rate for RUB to RWF") == "rate:what's the rate for rub to rwf"

    def test_normalizes_whitespace_and_case(self) -> None:
        assert cache_key("  What's the RATE   for rub to rwf ") == (
            KEY_PREFIX + "what's the rate for rub to rwf"
        )

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "hello",
            "what's my rate",
            "send 100 usd at what rate",
            "what is the fee for my transfer",
        ],
    )
    def test_not_cacheable(self, text: str) -> None:
        assert cache_key(text) is None


class TestGetSet:
    def test_miss(self, cache: ResponseCache) -> None:
        assert cache.get("rate:x") is None

    def test_hit_within_ttl(self, cache: ResponseCache, clock: FakeClock) -> None:
        cache.set("rate:x", "1 RUB = 15 RWF")
        clock.now += 299.9
        assert cache.get("rate:x") == "1 RUB = 15 RWF"

    def test_expires_at_ttl(self, cache: ResponseCache, clock: FakeClock) -> None:
        cache.set("rate:x", "1 RUB = 15 RWF")
        clock.now += 300.0
        assert cache.get("rate:x") is None

    def test_expired_read_does_not_evict(self, cache: ResponseCache, clock: FakeClock) -> None:
        cache.set("rate:x", "old")
        clock.now += 301
        assert cache.get("rate:x") is None
        assert len(cache) == 1

    def test_overwrite_refreshes(self, cache: ResponseCache, clock: FakeClock) -> None:
        cache.set("rate:x", "old")
        clock.now += 200
        cache.set("rate:x", "new")
        clock.now += 200
        assert cache.get("rate:x") == "new"


class TestSweep:
    def test_sweep_runs_past_threshold(self, cache: ResponseCache, clock: FakeClock) -> None:
        for i in range(3):
            cache.set(f"rate:{i}", "v")
        clock.now += 301
        cache.set("rate:fresh", "v")
        assert len(cache) == 1
        assert cache.get("rate:fresh") == "v"

    def test_no_sweep_at_threshold(self, cache: ResponseCache, clock: FakeClock) -> None:
        cache.set("rate:a", "v")
        cache.set("rate:b", "v")
        clock.now += 301
        cache.set("rate:c", "v")
        assert len(cache) == 3

    def test_sweep_keeps_live_entries(self, cache: ResponseCache, clock: FakeClock) -> None:
        cache.set("rate:old", "v")
        clock.now += 250
        cache.set("rate:new", "v")
        clock.now += 100
        assert cache.sweep() == 1
        assert cache.get("rate:new") == "v"

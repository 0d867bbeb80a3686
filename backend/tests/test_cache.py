"""
Unit tests for the TTL cache.

Run: pytest backend/tests/test_cache.py -v
"""
from __future__ import annotations

import asyncio

import pytest

from resolver.cache import CacheStore, make_key, normalize_key
from tests.fakes import FakeClock


# ── Keys ────────────────────────────────────────────────────────────────

def test_normalize_key_collapses_case_and_whitespace() -> None:
    assert normalize_key("  Real   MADRID ") == "real madrid"


def test_make_key_includes_kind() -> None:
    assert make_key("Real Madrid", "team") == "team:real madrid"
    assert make_key("Real Madrid", "team") != make_key("Real Madrid", "player")


# ── Get / set / TTL ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_get_returns_fresh_value(clock: FakeClock) -> None:
    cache: CacheStore[str] = CacheStore("t", ttl_s=60, clock=clock)
    await cache.set("k", "v")
    clock.advance(59)
    assert await cache.get("k") == "v"


@pytest.mark.asyncio
async def test_expired_entry_is_never_returned(clock: FakeClock) -> None:
    cache: CacheStore[str] = CacheStore("t", ttl_s=60, clock=clock)
    await cache.set("k", "v")
    clock.advance(60)
    assert await cache.get("k") is None


@pytest.mark.asyncio
async def test_set_replaces_and_restarts_ttl(clock: FakeClock) -> None:
    cache: CacheStore[str] = CacheStore("t", ttl_s=60, clock=clock)
    await cache.set("k", "old")
    clock.advance(50)
    await cache.set("k", "new")
    clock.advance(50)
    assert await cache.get("k") == "new"


@pytest.mark.asyncio
async def test_sweep_evicts_only_stale_entries(clock: FakeClock) -> None:
    cache: CacheStore[int] = CacheStore("t", ttl_s=10, clock=clock)
    await cache.set("a", 1)
    clock.advance(8)
    await cache.set("b", 2)
    clock.advance(5)
    assert await cache.sweep() == 1
    assert len(cache) == 1
    assert await cache.get("b") == 2


@pytest.mark.asyncio
async def test_clear_and_stats(clock: FakeClock) -> None:
    cache: CacheStore[int] = CacheStore("t", ttl_s=10, clock=clock)
    await cache.set("a", 1)
    await cache.get("a")
    await cache.get("missing")
    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["size"] == 1
    await cache.clear()
    assert len(cache) == 0
    assert cache.stats()["hits"] == 0


@pytest.mark.asyncio
async def test_delete_removes_key(clock: FakeClock) -> None:
    cache: CacheStore[int] = CacheStore("t", ttl_s=10, clock=clock)
    await cache.set("a", 1)
    await cache.delete("a")
    await cache.delete("a")
    assert await cache.get("a") is None


# ── Background sweeper ──────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_sweeper_runs_periodically(clock: FakeClock) -> None:
    cache: CacheStore[int] = CacheStore("t", ttl_s=1, clock=clock)
    await cache.set("a", 1)
    clock.advance(5)
    cache.start_sweeper(0.01)
    await asyncio.sleep(0.05)
    await cache.stop_sweeper()
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_zero_interval_disables_sweeper(clock: FakeClock) -> None:
    cache: CacheStore[int] = CacheStore("t", ttl_s=1, clock=clock)
    cache.start_sweeper(0)
    await cache.stop_sweeper()


# ── Concurrency ─────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_concurrent_get_and_set_stay_consistent(clock: FakeClock) -> None:
    cache: CacheStore[int] = CacheStore("t", ttl_s=60, clock=clock)

    async def writer(i: int) -> None:
        await cache.set(f"k{i % 10}", i)

    async def reader(i: int) -> None:
        value = await cache.get(f"k{i % 10}")
        assert value is None or value % 10 == i % 10

    await asyncio.gather(*(op(i) for i in range(200) for op in (writer, reader)))
    assert len(cache) == 10
    stats = cache.stats()
    assert stats["hits"] + stats["misses"] == 200
    assert await cache.get("k3") in range(3, 200, 10)

"""
In-memory TTL cache shared by the orchestrator and every source adapter.

Entries are evicted passively (a stale entry is never returned) and actively by
sweep(), which a background task can call periodically. One asyncio.Lock guards
the map so concurrent adapter calls within a resolution stay consistent.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from shared.utils.logging import get_logger
from shared.utils.metrics import CACHE_LOOKUPS, CACHE_SIZE

logger = get_logger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


def normalize_key(name: str) -> str:
    """Lower-cased, trimmed, inner whitespace collapsed."""
    return " ".join((name or "").strip().lower().split())


def make_key(name: str, kind: str) -> str:
    return f"{kind}:{normalize_key(name)}"


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    key: str
    value: T
    stored_at: float


class CacheStore(Generic[T]):
    """Key -> (value, stored_at) map with a fixed TTL."""

    def __init__(self, name: str, ttl_s: float, clock: Optional[Clock] = None) -> None:
        self._name = name
        self._ttl = ttl_s
        self._clock = clock or time.time
        self._entries: dict[str, CacheEntry[T]] = {}
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0
        self._sweeper: Optional[asyncio.Task[None]] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def ttl_s(self) -> float:
        return self._ttl

    def _is_fresh(self, entry: CacheEntry[T], now: float) -> bool:
        return now - entry.stored_at < self._ttl

    async def get(self, key: str) -> Optional[T]:
        """Return the value if present and within TTL, else None."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry, self._clock()):
                self._hits += 1
                CACHE_LOOKUPS.labels(cache=self._name, result="hit").inc()
                return entry.value
            self._misses += 1
            CACHE_LOOKUPS.labels(cache=self._name, result="miss").inc()
            return None

    async def set(self, key: str, value: T) -> None:
        """Store (or replace) a value; entries are never patched in place."""
        async with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, stored_at=self._clock())

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        CACHE_SIZE.labels(cache=self._name).set(0)

    async def sweep(self) -> int:
        """Evict every stale entry. Returns the number evicted."""
        async with self._lock:
            now = self._clock()
            stale = [k for k, e in self._entries.items() if not self._is_fresh(e, now)]
            for k in stale:
                del self._entries[k]
            size = len(self._entries)
        CACHE_SIZE.labels(cache=self._name).set(size)
        if stale:
            logger.debug("cache_sweep", cache=self._name, evicted=len(stale), remaining=size)
        return len(stale)

    def stats(self) -> dict[str, int | float | str]:
        return {
            "name": self._name,
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "ttl_s": self._ttl,
        }

    def __len__(self) -> int:
        return len(self._entries)

    # ── Periodic sweep ──────────────────────────────────────────────────
    def start_sweeper(self, interval_s: float) -> None:
        """Run sweep() every interval_s on the current event loop."""
        if self._sweeper is not None or interval_s <= 0:
            return
        self._sweeper = asyncio.create_task(self._sweep_loop(interval_s))

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_loop(self, interval_s: float) -> None:
        while True:
            await asyncio.sleep(interval_s)
            try:
                await self.sweep()
            except Exception as exc:
                logger.exception("cache_sweep_error", cache=self._name, error=str(exc))

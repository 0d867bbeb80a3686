"""
Chunked, staggered fan-out for bulk lookups (roster enrichment).
Chunks run one after another with a pause between them; tasks inside a chunk
start stagger_s apart instead of all at once.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Sequence, TypeVar

from shared.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def run_chunked(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    chunk_size: int = 5,
    chunk_delay_s: float = 0.3,
    stagger_s: float = 0.05,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> list[R]:
    """Results in input order. A worker exception propagates; wrap workers that may fail."""
    results: list[R] = []
    size = max(1, chunk_size)

    async def staggered(index: int, item: T) -> R:
        if index and stagger_s > 0:
            await sleep(stagger_s * index)
        return await worker(item)

    for offset in range(0, len(items), size):
        if offset and chunk_delay_s > 0:
            await sleep(chunk_delay_s)
        chunk = items[offset : offset + size]
        results.extend(await asyncio.gather(*(staggered(i, it) for i, it in enumerate(chunk))))
        logger.debug("chunk_done", offset=offset, size=len(chunk), total=len(items))
    return results

"""
Unit tests for chunked, staggered fan-out.

Run: pytest backend/tests/test_batching.py -v
"""
from __future__ import annotations

import pytest

from resolver.batching import run_chunked


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.mark.asyncio
async def test_results_keep_input_order() -> None:
    async def double(x: int) -> int:
        return x * 2

    sleep = RecordingSleep()
    out = await run_chunked([1, 2, 3, 4, 5], double, chunk_size=2, chunk_delay_s=0.3, stagger_s=0.05, sleep=sleep)
    assert out == [2, 4, 6, 8, 10]


@pytest.mark.asyncio
async def test_delays_between_chunks_and_staggered_starts() -> None:
    async def ident(x: int) -> int:
        return x

    sleep = RecordingSleep()
    await run_chunked([1, 2, 3, 4, 5], ident, chunk_size=2, chunk_delay_s=0.3, stagger_s=0.05, sleep=sleep)
    # chunk [1,2]: stagger for #2; pause; chunk [3,4]: stagger for #4; pause; chunk [5]
    assert sorted(sleep.delays) == [0.05, 0.05, 0.3, 0.3]


@pytest.mark.asyncio
async def test_worker_exception_propagates() -> None:
    async def boom(x: int) -> int:
        raise ValueError(x)

    with pytest.raises(ValueError):
        await run_chunked([1], boom, sleep=RecordingSleep())


@pytest.mark.asyncio
async def test_empty_input() -> None:
    async def ident(x: int) -> int:
        return x

    assert await run_chunked([], ident) == []

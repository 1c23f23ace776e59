"""Tests for the catalog RateLimiter."""

import asyncio
import time

import pytest

from anime_collector.utils.http import RateLimiter


@pytest.mark.asyncio
async def test_rate_limiter_basic() -> None:
    """Consecutive calls are spaced by the minimum interval."""
    limiter = RateLimiter(calls_per_second=5.0)  # 0.2s interval

    start = time.monotonic()
    await limiter.acquire()
    await limiter.acquire()
    await limiter.acquire()
    elapsed = time.monotonic() - start

    # 3 calls, 2 intervals
    assert elapsed >= 0.38, f"Rate limiting too fast: {elapsed}s"
    assert elapsed < 1.0, f"Rate limiting too slow: {elapsed}s"


@pytest.mark.asyncio
async def test_rate_limiter_disabled() -> None:
    limiter = RateLimiter(calls_per_second=0)

    start = time.monotonic()
    for _ in range(20):
        await limiter.acquire()

    assert time.monotonic() - start < 0.1
    assert limiter._lock is None


def test_rate_limiter_across_asyncio_run_calls() -> None:
    """Each CLI run has its own event loop; the lock follows it."""
    limiter = RateLimiter(calls_per_second=20.0)

    async def one_call() -> str:
        await limiter.acquire()
        return "ok"

    assert asyncio.run(one_call()) == "ok"
    first_loop = limiter._loop

    assert asyncio.run(one_call()) == "ok"
    assert limiter._lock is not None
    assert limiter._loop is not first_loop


@pytest.mark.asyncio
async def test_rate_limiter_lazy_lock_initialization() -> None:
    limiter = RateLimiter(calls_per_second=50.0)
    assert limiter._lock is None

    await limiter.acquire()
    lock_ref = limiter._lock
    assert isinstance(lock_ref, asyncio.Lock)

    await limiter.acquire()
    assert limiter._lock is lock_ref

"""
Tests for the result cache backends.
"""

import asyncio
import pickle
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from utils.cache import CacheEntry, MemoryResultCache, RedisResultCache

pytestmark = pytest.mark.unit


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestMemoryResultCache:
    @pytest.mark.asyncio
    async def test_put_then_get_within_duration(self):
        clock = FakeClock()
        cache = MemoryResultCache(duration_ms=60_000, clock=clock)

        await cache.put("merge:batman", [1, 2, 3])
        clock.now += 59

        entry = await cache.get("merge:batman")
        assert entry is not None
        assert entry.data == [1, 2, 3]
        assert entry.timestamp == 1_000.0

    @pytest.mark.asyncio
    async def test_expired_entry_is_absent_and_dropped(self):
        clock = FakeClock()
        cache = MemoryResultCache(duration_ms=60_000, clock=clock)

        await cache.put("merge:batman", [1])
        clock.now += 61

        assert await cache.get("merge:batman") is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_clear(self):
        cache = MemoryResultCache()
        await cache.put("a", 1)
        await cache.put("b", 2)

        await cache.clear()

        assert await cache.get("a") is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_get_or_compute_runs_factory_once_for_concurrent_misses(self):
        cache = MemoryResultCache()
        calls = 0

        async def factory():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return "computed"

        results = await asyncio.gather(*(cache.get_or_compute("k", factory) for _ in range(5)))

        assert results == ["computed"] * 5
        assert calls == 1

    @pytest.mark.asyncio
    async def test_get_or_compute_does_not_store_failures(self):
        cache = MemoryResultCache()

        async def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await cache.get_or_compute("k", failing)

        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_get_or_compute_skips_rejected_data(self):
        cache = MemoryResultCache()
        calls = 0

        async def factory():
            nonlocal calls
            calls += 1
            return calls

        first = await cache.get_or_compute("k", factory, cacheable=lambda data: data > 1)
        second = await cache.get_or_compute("k", factory, cacheable=lambda data: data > 1)
        third = await cache.get_or_compute("k", factory, cacheable=lambda data: data > 1)

        assert (first, second, third) == (1, 2, 2)
        assert calls == 2

    @pytest.mark.asyncio
    async def test_key_locks_are_released_after_computation(self):
        cache = MemoryResultCache()

        async def factory():
            await asyncio.sleep(0.01)
            return "computed"

        await asyncio.gather(*(cache.get_or_compute(f"k{i % 3}", factory) for i in range(9)))

        assert cache._locks == {}
        assert cache._lock_users == {}

    @pytest.mark.asyncio
    async def test_key_lock_released_when_factory_fails(self):
        cache = MemoryResultCache()

        async def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await cache.get_or_compute("k", failing)

        assert cache._locks == {}


class TestRedisResultCache:
    @pytest.mark.asyncio
    async def test_put_writes_pickled_entry_with_expiry(self):
        redis = AsyncMock()
        cache = RedisResultCache(redis, duration_ms=3_600_000, clock=FakeClock())

        await cache.put("search:batman:1:", {"page": 1})

        redis.set.assert_awaited_once()
        args, kwargs = redis.set.call_args
        assert args[0] == "moviesearch:search:batman:1:"
        entry = pickle.loads(args[1])
        assert entry.data == {"page": 1}
        assert kwargs["ex"] == 3_660

    @pytest.mark.asyncio
    async def test_get_returns_live_entry(self):
        clock = FakeClock()
        redis = AsyncMock()
        redis.get.return_value = pickle.dumps(CacheEntry(data="hit", timestamp=clock.now - 10))
        cache = RedisResultCache(redis, duration_ms=60_000, clock=clock)

        entry = await cache.get("k")

        assert entry is not None
        assert entry.data == "hit"
        redis.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_drops_expired_entry(self):
        clock = FakeClock()
        redis = AsyncMock()
        redis.get.return_value = pickle.dumps(CacheEntry(data="old", timestamp=clock.now - 61))
        cache = RedisResultCache(redis, duration_ms=60_000, clock=clock)

        assert await cache.get("k") is None
        redis.delete.assert_awaited_once_with("moviesearch:k")

    @pytest.mark.asyncio
    async def test_redis_errors_read_as_miss(self):
        redis = AsyncMock()
        redis.get.side_effect = RedisConnectionError("down")
        cache = RedisResultCache(redis)

        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_redis_errors_dropping_expired_entry_read_as_miss(self):
        clock = FakeClock()
        redis = AsyncMock()
        redis.get.return_value = pickle.dumps(CacheEntry(data="old", timestamp=clock.now - 61))
        redis.delete.side_effect = RedisConnectionError("down")
        cache = RedisResultCache(redis, duration_ms=60_000, clock=clock)

        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_dropped_even_when_delete_fails(self):
        redis = AsyncMock()
        redis.get.return_value = b"not a pickle"
        redis.delete.side_effect = RedisConnectionError("down")
        cache = RedisResultCache(redis)

        assert await cache.get("k") is None
        redis.delete.assert_awaited_once_with("moviesearch:k")

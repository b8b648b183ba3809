"""
Result cache for search pipeline output.

Entries are {data, timestamp} pairs keyed by composite strings such as
"merge:<query>" or "search:<query>:<page>:<user>". An entry older than the
configured duration is treated as absent and dropped on the lookup that finds
it; nothing evicts in the background.

Two backends share the ResultCache interface:
    MemoryResultCache  per-process dict, atomic get_or_compute per key
    RedisResultCache   shared redis.asyncio store, last writer wins

Caches are constructed by whoever owns the pipeline (see
services.search_service.build_search_service) and injected, never global.
"""

import asyncio
import pickle
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from utils.get_logger import get_logger

logger = get_logger(__name__)

DEFAULT_CACHE_DURATION_MS = 60 * 60 * 1000


@dataclass
class CacheEntry:
    data: Any = None
    timestamp: float = 0.0

    def age(self, now: float) -> float:
        return now - self.timestamp

    def is_expired(self, duration_seconds: float, now: float) -> bool:
        return self.age(now) > duration_seconds


class ResultCache(ABC):
    """Time-bounded memoization layer shared by concurrent requests."""

    def __init__(
        self,
        duration_ms: int = DEFAULT_CACHE_DURATION_MS,
        clock: Callable[[], float] = time.time,
    ):
        self.duration_seconds = duration_ms / 1000.0
        self.clock = clock

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Return the live entry for key, or None when absent or expired."""

    @abstractmethod
    async def put(self, key: str, data: Any) -> CacheEntry:
        """Store data under key stamped with the current time."""

    @abstractmethod
    async def clear(self) -> None:
        """Drop every entry."""

    async def get_or_compute(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        cacheable: Callable[[Any], bool] | None = None,
    ) -> Any:
        """Read-through helper: return cached data or compute, store and return it.

        Exceptions raised by factory propagate and nothing is stored. When
        cacheable is given and rejects the computed data, it is returned
        without being stored.
        """
        entry = await self.get(key)
        if entry is not None:
            return entry.data
        data = await factory()
        if cacheable is None or cacheable(data):
            await self.put(key, data)
        return data


class MemoryResultCache(ResultCache):
    def __init__(
        self,
        duration_ms: int = DEFAULT_CACHE_DURATION_MS,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(duration_ms=duration_ms, clock=clock)
        self._entries: dict[str, CacheEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        # Callers holding or waiting on each key's lock
        self._lock_users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self.duration_seconds, self.clock()):
            logger.debug(f"Cache entry expired: {key}")
            self._entries.pop(key, None)
            return None
        return entry

    async def put(self, key: str, data: Any) -> CacheEntry:
        entry = CacheEntry(data=data, timestamp=self.clock())
        self._entries[key] = entry
        return entry

    async def clear(self) -> None:
        self._entries.clear()

    async def get_or_compute(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        cacheable: Callable[[Any], bool] | None = None,
    ) -> Any:
        # Concurrent misses on one key wait for the first computation
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                return await super().get_or_compute(key, factory, cacheable)
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                self._locks.pop(key, None)


class RedisResultCache(ResultCache):
    """
    Redis-backed cache. Entries are pickled CacheEntry objects; the age check
    happens on read exactly like the memory backend. Redis key expiry is set a
    little past the duration only so abandoned keys do not accumulate.
    """

    def __init__(
        self,
        redis: Redis,
        duration_ms: int = DEFAULT_CACHE_DURATION_MS,
        prefix: str = "moviesearch",
        clock: Callable[[], float] = time.time,
    ):
        super().__init__(duration_ms=duration_ms, clock=clock)
        self._redis = redis
        self.prefix = prefix

    def _full_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> CacheEntry | None:
        storage_key = self._full_key(key)
        try:
            payload = await self._redis.get(storage_key)
        except RedisError as e:
            logger.warning(f"Redis error reading {storage_key}: {e}")
            return None
        if payload is None:
            return None

        try:
            entry = pickle.loads(payload)
        except (pickle.UnpicklingError, EOFError, AttributeError, TypeError) as e:
            logger.warning(f"Dropping unreadable cache entry {storage_key}: {e}")
            await self._drop(storage_key)
            return None

        if not isinstance(entry, CacheEntry) or entry.is_expired(
            self.duration_seconds, self.clock()
        ):
            await self._drop(storage_key)
            return None
        return entry

    async def _drop(self, storage_key: str) -> None:
        try:
            await self._redis.delete(storage_key)
        except RedisError as e:
            logger.warning(f"Redis error dropping {storage_key}: {e}")

    async def put(self, key: str, data: Any) -> CacheEntry:
        entry = CacheEntry(data=data, timestamp=self.clock())
        storage_key = self._full_key(key)
        try:
            await self._redis.set(
                storage_key,
                pickle.dumps(entry, protocol=pickle.HIGHEST_PROTOCOL),
                ex=int(self.duration_seconds) + 60,
            )
        except RedisError as e:
            logger.warning(f"Redis error writing {storage_key}: {e}")
        return entry

    async def clear(self) -> None:
        async for key in self._redis.scan_iter(match=f"{self.prefix}:*"):
            await self._redis.delete(key)

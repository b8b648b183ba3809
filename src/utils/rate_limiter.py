"""
Rate Limiter Utility - Per-event-loop rate limiting per upstream API.

Each upstream (TMDB, OMDb, the term extraction service) gets its own limiter
keyed by its (max_rate, time_period) configuration. Limiters are scoped to the
running event loop, so test loops and server loops never share an AsyncLimiter.

Usage:
    from utils.rate_limiter import get_rate_limiter

    limiter = get_rate_limiter(max_rate=35, time_period=1)
    async with limiter:
        ...
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any

from aiolimiter import AsyncLimiter

from utils.get_logger import get_logger

logger = get_logger(__name__)

_lock = threading.Lock()

# Key: (max_rate, time_period, loop_id)
_limiters: dict[tuple[int, float, int], ResilientRateLimiter] = {}


class ResilientRateLimiter:
    """
    Wrapper around AsyncLimiter that recreates the underlying limiter when it
    is used from a different event loop than the one it was created on.
    """

    def __init__(self, max_rate: int, time_period: float):
        self.max_rate = max_rate
        self.time_period = time_period
        self._limiter: AsyncLimiter | None = None
        self._loop_id: int | None = None

    def _ensure_limiter(self) -> AsyncLimiter:
        current_loop_id = id(asyncio.get_running_loop())
        if self._limiter is None or self._loop_id != current_loop_id:
            self._limiter = AsyncLimiter(self.max_rate, self.time_period)
            self._loop_id = current_loop_id
            logger.debug(
                f"Created rate limiter for loop {current_loop_id}: "
                f"{self.max_rate} requests per {self.time_period}s"
            )
        return self._limiter

    async def __aenter__(self) -> ResilientRateLimiter:
        try:
            await self._ensure_limiter().acquire()
        except RuntimeError as e:
            # Future attached to a different loop: rebuild once and retry
            logger.warning(f"Rate limiter loop mismatch detected: {e}")
            self._limiter = None
            await self._ensure_limiter().acquire()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        return None


def get_rate_limiter(max_rate: int, time_period: float = 1.0) -> ResilientRateLimiter:
    """
    Get or create a rate limiter for an API configuration on the running loop.

    Args:
        max_rate: Maximum number of requests allowed
        time_period: Time period in seconds (default: 1.0)

    Returns:
        ResilientRateLimiter instance
    """
    loop = asyncio.get_running_loop()
    cache_key = (max_rate, time_period, id(loop))

    if cache_key not in _limiters:
        with _lock:
            if cache_key not in _limiters:
                _limiters[cache_key] = ResilientRateLimiter(max_rate, time_period)
                logger.debug(f"Created rate limiter for loop {id(loop)}: {max_rate}/{time_period}s")

    return _limiters[cache_key]

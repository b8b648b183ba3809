"""
Base API Client - Shared request handling with deduplication, rate limiting and retry logic.
All provider clients inherit from this and use its _core_async_request method.
"""

import asyncio
import json
import os
import random
from typing import Any

import aiohttp

from utils.get_logger import get_logger
from utils.rate_limiter import get_rate_limiter

logger = get_logger(__name__)

# Unit tests mock the transport; rate limiting only adds latency there
_SKIP_RATE_LIMITING = os.getenv("ENVIRONMENT", "").lower() == "test"


class NoOpRateLimiter:
    async def __aenter__(self) -> Any:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        return None


class BaseAPIClient:
    """
    Base class for API clients with shared request handling.
    Provides in-flight deduplication, rate limiting, bounded timeouts and retries.
    """

    _rate_limit_max = 10
    _rate_limit_period = 1.0
    _retry_backoff = 0.5
    _max_rate_limit_retries = 5

    def __init__(self, timeout: float = 8.0, max_retries: int = 2):
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        # Concurrent identical GETs share one task
        self._pending_requests: dict[str, asyncio.Task] = {}

    def _limiter(self) -> Any:
        if _SKIP_RATE_LIMITING:
            return NoOpRateLimiter()
        return get_rate_limiter(self._rate_limit_max, self._rate_limit_period)

    async def _core_async_request(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, Any] | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ) -> Any:
        """
        Core async HTTP GET request with deduplication, rate limiting, and retry logic.

        Args:
            url: Full URL to request
            params: Optional query parameters
            headers: Optional HTTP headers
            timeout: Total request timeout in seconds (defaults to the client timeout)
            max_retries: Maximum attempts for transient failures

        Returns:
            Parsed JSON body, or None for a non-retryable HTTP error status.

        Raises:
            TimeoutError, aiohttp.ClientError: if the request fails after all retries
        """
        params_str = json.dumps(params, sort_keys=True, default=str) if params else "{}"
        request_key = f"GET|{url}|{params_str}"

        pending_task = self._pending_requests.get(request_key)
        if pending_task is None:
            pending_task = asyncio.ensure_future(
                self._fetch(url, params, headers, timeout, max_retries)
            )
            self._pending_requests[request_key] = pending_task
            pending_task.add_done_callback(
                lambda _t, key=request_key: self._pending_requests.pop(key, None)
            )

        return await asyncio.shield(pending_task)

    async def _fetch(
        self,
        url: str,
        params: dict[str, Any] | None,
        headers: dict[str, Any] | None,
        timeout: float | None,
        max_retries: int | None,
    ) -> Any:
        request_timeout = aiohttp.ClientTimeout(total=timeout or self.timeout)
        attempts = max_retries or self.max_retries
        rate_limit_retries = 0
        attempt = 0

        while attempt < attempts:
            try:
                async with (
                    self._limiter(),
                    aiohttp.ClientSession() as session,
                    session.get(
                        url, headers=headers, params=params, timeout=request_timeout
                    ) as response,
                ):
                    status = response.status

                    if status == 429:
                        rate_limit_retries += 1
                        if rate_limit_retries > self._max_rate_limit_retries:
                            logger.error(f"Rate limit retries exhausted for {url}")
                            return None
                        retry_after = response.headers.get("Retry-After", "1")
                        wait_time = (
                            float(retry_after) if retry_after.isdigit() else 1.0
                        ) + random.uniform(0.1, 0.5)
                        logger.warning(f"Rate limit hit for {url}, waiting {wait_time:.2f}s")
                        await asyncio.sleep(wait_time)
                        continue

                    if status != 200:
                        if status == 404:
                            logger.debug(f"API returned status 404 for {url} (resource not found)")
                        else:
                            logger.warning(f"API returned status {status} for {url}")
                        # 4xx errors are not transient
                        if 400 <= status < 500:
                            return None
                        attempt += 1
                        if attempt < attempts:
                            await asyncio.sleep(self._retry_backoff * 2 ** (attempt - 1))
                            continue
                        return None

                    return await response.json(content_type=None)

            except asyncio.CancelledError:
                raise
            except (TimeoutError, aiohttp.ClientError) as e:
                attempt += 1
                if attempt >= attempts:
                    logger.error(f"Error making request to {url} after {attempts} attempts: {e!r}")
                    raise
                await asyncio.sleep(self._retry_backoff * 2 ** (attempt - 1))

        return None

    async def _core_async_post_request(
        self,
        url: str,
        json_body: dict[str, Any],
        headers: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> tuple[Any, int]:
        """
        Single-attempt async POST. Returns (parsed body | None, status code).

        Raises:
            TimeoutError, aiohttp.ClientError: on transport failure
        """
        request_timeout = aiohttp.ClientTimeout(total=timeout or self.timeout)
        headers = dict(headers or {})
        headers.setdefault("Content-Type", "application/json")

        async with (
            self._limiter(),
            aiohttp.ClientSession() as session,
            session.post(url, json=json_body, headers=headers, timeout=request_timeout) as response,
        ):
            status = response.status
            if status != 200:
                logger.warning(f"POST to {url} returned status {status}")
                await response.read()
                return None, status
            try:
                return await response.json(content_type=None), status
            except (json.JSONDecodeError, aiohttp.ContentTypeError) as e:
                logger.warning(f"POST to {url} returned a non-JSON body: {e}")
                return None, status

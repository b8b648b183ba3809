"""
Async Runner Utility - bounded fan-out for pipeline tasks.

Every request fans out to several pipeline tasks per search term. Running them
through gather_bounded keeps the number of simultaneous tasks under a
configured ceiling, no matter how many terms a long query produces. A task may
itself make several upstream calls (a detail fetch makes four, a person search
up to four), so upstream concurrency can reach a small multiple of the limit;
the per-API rate limiters in BaseAPIClient bound the request rate.
"""

import asyncio
from collections.abc import Awaitable, Iterable
from typing import TypeVar

T = TypeVar("T")


async def gather_bounded(
    aws: Iterable[Awaitable[T]],
    limit: int = 8,
    return_exceptions: bool = True,
) -> list[T | BaseException]:
    """
    Await all awaitables with at most `limit` running at once.

    Results are returned in input order. With return_exceptions=True (the
    default) a failing awaitable yields its exception in place of a result,
    matching asyncio.gather semantics.

    Args:
        aws: Coroutines or futures to run
        limit: Maximum number in flight at the same time

    Returns:
        List of results (or exceptions) in the same order as `aws`
    """
    semaphore = asyncio.Semaphore(max(1, limit))

    async def _run(aw: Awaitable[T]) -> T:
        async with semaphore:
            return await aw

    return await asyncio.gather(*(_run(aw) for aw in aws), return_exceptions=return_exceptions)


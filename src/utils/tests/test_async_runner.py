import asyncio

import pytest

from utils.async_runner import gather_bounded

pytestmark = pytest.mark.unit


@pytest.mark.asyncio
async def test_gather_bounded_limits_in_flight_and_keeps_order():
    in_flight = 0
    peak = 0

    async def work(i: int) -> int:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01 * (5 - i % 5))
        in_flight -= 1
        return i

    results = await gather_bounded((work(i) for i in range(12)), limit=3)

    assert results == list(range(12))
    assert peak <= 3


@pytest.mark.asyncio
async def test_gather_bounded_returns_exceptions_in_place():
    async def ok():
        return "ok"

    async def fail():
        raise ValueError("bad")

    results = await gather_bounded([ok(), fail(), ok()], limit=2)

    assert results[0] == "ok"
    assert isinstance(results[1], ValueError)
    assert results[2] == "ok"


@pytest.mark.asyncio
async def test_gather_bounded_limits_tasks_not_their_inner_calls():
    in_flight = 0
    peak = 0

    async def call() -> None:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1

    async def task() -> None:
        await asyncio.gather(call(), call(), call(), call())

    await gather_bounded((task() for _ in range(4)), limit=2)

    assert peak == 8

"""
Tests for ResilientRateLimiter to ensure cross-loop safety.
"""

import pytest

from utils.rate_limiter import ResilientRateLimiter, get_rate_limiter

pytestmark = pytest.mark.unit


class _BaseTestLimiter:
    """Simple AsyncLimiter test double."""

    def __init__(self, max_rate: int, time_period: float) -> None:
        self.max_rate = max_rate
        self.time_period = time_period
        self.acquire_count = 0
        self._fail_next = False

    async def acquire(self, amount: float = 1) -> None:
        if self._fail_next:
            self._fail_next = False
            raise RuntimeError("Future attached to a different loop")
        self.acquire_count += 1


@pytest.mark.asyncio
async def test_resilient_rate_limiter_retries_on_loop_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    created: list[_BaseTestLimiter] = []

    class FlakyLimiter(_BaseTestLimiter):
        fail_calls = 1

        def __init__(self, max_rate: int, time_period: float) -> None:
            super().__init__(max_rate, time_period)
            created.append(self)
            if FlakyLimiter.fail_calls > 0:
                self._fail_next = True
                FlakyLimiter.fail_calls -= 1

    monkeypatch.setattr("utils.rate_limiter.AsyncLimiter", FlakyLimiter)

    limiter = ResilientRateLimiter(3, 1)

    async with limiter:
        pass

    assert len(created) == 2, "Limiter should recreate after loop mismatch"
    assert created[0].acquire_count == 0
    assert created[-1].acquire_count == 1, "Second limiter should successfully acquire"


@pytest.mark.asyncio
async def test_resilient_rate_limiter_reuses_limiter_on_same_loop(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    created: list[_BaseTestLimiter] = []

    class TrackingLimiter(_BaseTestLimiter):
        def __init__(self, max_rate: int, time_period: float) -> None:
            super().__init__(max_rate, time_period)
            created.append(self)

    monkeypatch.setattr("utils.rate_limiter.AsyncLimiter", TrackingLimiter)

    limiter = ResilientRateLimiter(5, 1)
    for _ in range(3):
        async with limiter:
            pass

    assert len(created) == 1
    assert created[0].acquire_count == 3


@pytest.mark.asyncio
async def test_get_rate_limiter_is_shared_per_configuration() -> None:
    first = get_rate_limiter(35, 1)
    second = get_rate_limiter(35, 1)
    other = get_rate_limiter(5, 1)

    assert first is second
    assert first is not other

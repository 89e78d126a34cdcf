"""Bounded concurrency helpers used by bulk operations."""

from __future__ import annotations

import asyncio

import pytest

from juggler.utils import ConcurrencyLimiter, gather_bounded


async def test_gather_bounded_preserves_order_and_limits_concurrency() -> None:
    limiter = ConcurrencyLimiter(3)

    async def work(value: int) -> int:
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        return value * 2

    results = await gather_bounded((work(value) for value in range(10)), limiter=limiter)

    assert results == [value * 2 for value in range(10)]
    assert limiter.snapshot() == {"limit": 3, "active": 0, "peak": 3}


async def test_gather_bounded_with_limit_one_runs_in_input_order() -> None:
    events: list[str] = []

    async def work(name: str) -> None:
        events.append(f"start {name}")
        await asyncio.sleep(0)
        events.append(f"end {name}")

    await gather_bounded([work("a"), work("b")], limit=1)

    assert events == ["start a", "end a", "start b", "end b"]


async def test_gather_bounded_propagates_errors() -> None:
    async def fail() -> None:
        raise KeyError("x")

    with pytest.raises(KeyError):
        await gather_bounded([fail()], limit=2)


async def test_limiter_releases_on_error() -> None:
    limiter = ConcurrencyLimiter(1)

    with pytest.raises(RuntimeError):
        async with limiter:
            assert limiter.active == 1
            raise RuntimeError("inside")

    assert limiter.active == 0
    async with limiter:
        assert limiter.peak == 1


@pytest.mark.parametrize("limit", [0, -1, True, 1.5])
def test_limiter_rejects_invalid_limits(limit: object) -> None:
    with pytest.raises(ValueError):
        ConcurrencyLimiter(limit)  # type: ignore[arg-type]


async def test_gather_bounded_takes_exactly_one_bound() -> None:
    with pytest.raises(ValueError, match="not both"):
        await gather_bounded([], 2, limiter=ConcurrencyLimiter(2))
    with pytest.raises(ValueError, match="needs a limit"):
        await gather_bounded([])

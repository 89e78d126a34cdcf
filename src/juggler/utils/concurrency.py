"""Async concurrency primitives used by bulk data-access operations."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable, Iterable
    from types import TracebackType

T = TypeVar("T")


class ConcurrencyLimiter:
    """``async with`` gate admitting at most ``limit`` holders.

    Tracks the current and highest number of holders for diagnostics.
    """

    def __init__(self, limit: int) -> None:
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ValueError(f"limit must be an integer, got {type(limit).__name__}")
        if limit <= 0:
            raise ValueError("limit must be > 0")
        self.limit = limit
        self.active = 0
        self.peak = 0
        self._gate = asyncio.Semaphore(limit)

    async def __aenter__(self) -> ConcurrencyLimiter:
        await self._gate.acquire()
        self.active += 1
        self.peak = max(self.peak, self.active)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.active -= 1
        self._gate.release()

    def snapshot(self) -> dict[str, int]:
        return {"limit": self.limit, "active": self.active, "peak": self.peak}


async def gather_bounded(
    awaitables: Iterable[Awaitable[T]],
    limit: int | None = None,
    *,
    limiter: ConcurrencyLimiter | None = None,
) -> list[T]:
    """Await ``awaitables`` with at most ``limit`` running at once.

    Results keep input order. With ``limit == 1`` the awaitables run strictly
    one after another in input order. Exceptions propagate as with
    ``asyncio.gather``; callers that need per-item outcomes catch inside each
    awaitable. Give either ``limit`` or a ``limiter`` whose usage can be
    inspected afterwards, not both.
    """

    if limiter is None:
        if limit is None:
            raise ValueError("gather_bounded needs a limit or a limiter")
        limiter = ConcurrencyLimiter(limit)
    elif limit is not None:
        raise ValueError("pass either limit or limiter, not both")
    gate = limiter

    async def run_one(awaitable: Awaitable[T]) -> T:
        async with gate:
            return await awaitable

    return list(await asyncio.gather(*(run_one(item) for item in awaitables)))


__all__ = ["ConcurrencyLimiter", "gather_bounded"]

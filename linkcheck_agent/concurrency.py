from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class Settled(Generic[T]):
    """Outcome of one operation in a :func:`settle_all` join."""

    value: T | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle_all(*aws: Awaitable[Any]) -> list[Settled[Any]]:
    """Run ``aws`` concurrently and tag each result as fulfilled or rejected.

    One operation failing never fails the join. Cancellation still propagates.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    settled: list[Settled[Any]] = []
    for result in results:
        if isinstance(result, Exception):
            settled.append(Settled(error=result))
        elif isinstance(result, BaseException):
            raise result
        else:
            settled.append(Settled(value=result))
    return settled


async def run_in_waves(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    size: int,
) -> list[R]:
    """Process ``items`` in sequential waves of at most ``size`` concurrent calls.

    A wave must finish completely before the next one starts, so one slow item
    holds back its whole wave. Results come back in input order.
    """
    if size < 1:
        raise ValueError("wave size must be at least 1")

    results: list[R] = []
    waves = (len(items) + size - 1) // size
    for index, start in enumerate(range(0, len(items), size), start=1):
        wave = items[start:start + size]
        logger.debug("Starting wave %d/%d (%d items)", index, waves, len(wave))
        results.extend(await asyncio.gather(*(worker(item) for item in wave)))
    return results

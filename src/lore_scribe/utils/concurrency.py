# ABOUTME: Bounded worker pool for cooperative asyncio tasks
# ABOUTME: Every phase (source reads, document writes, downloads) runs its items through run_bounded

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def run_bounded(items: Iterable[T], worker: Callable[[T], Awaitable[R]], limit: int) -> list[R]:
    """Run ``worker`` over every item with at most ``limit`` in flight.

    Results come back in input order, but completion order is not defined.
    The call returns only after every item has finished, so it doubles as a
    phase barrier. Workers are expected to report failures in their return
    value; an exception escaping a worker propagates to the caller.
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")

    semaphore = asyncio.Semaphore(limit)

    async def _run(item: T) -> R:
        async with semaphore:
            return await worker(item)

    return list(await asyncio.gather(*(_run(item) for item in items)))

"""
Bounded Worker Pool

Runs an async worker over a list with a fixed number of concurrent workers
pulling from a shared cursor. Completion order is not guaranteed; results
are returned in input order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def run_with_concurrency(
    items: Sequence[T],
    worker: Callable[[T, int], Awaitable[R]],
    concurrency: int,
) -> list[R]:
    """
    Apply ``worker(item, index)`` to every item, at most ``concurrency`` at once.

    The first worker failure cancels the remaining workers and is re-raised.

    Args:
        items: Items to process
        worker: Coroutine function receiving the item and its index
        concurrency: Pool width (values below 1 are treated as 1)

    Returns:
        Worker results in the same order as ``items``
    """
    if not items:
        return []

    results: list[R | None] = [None] * len(items)
    cursor = 0

    async def _drain() -> None:
        nonlocal cursor
        while cursor < len(items):
            index = cursor
            cursor += 1
            results[index] = await worker(items[index], index)

    width = min(max(1, concurrency), len(items))
    tasks = [asyncio.create_task(_drain()) for _ in range(width)]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    return results  # type: ignore[return-value]

"""
Bounded concurrent fetching.

Independent upstream calls (one per round, one per race page) are issued in
fixed-size batches with a pause between batches so the public APIs are not
hammered.
"""
import asyncio
from typing import Awaitable, Callable, Iterable, TypeVar

from f1_dashboard.config import cfg

T = TypeVar("T")
R = TypeVar("R")


async def gather_in_batches(
    items: Iterable[T],
    fetch: Callable[[T], Awaitable[R]],
    batch_size: int | None = None,
    delay: float | None = None,
) -> list[tuple[T, R]]:
    """
    Run ``fetch`` for every item, ``batch_size`` at a time.

    Args:
        items: Inputs, e.g. round numbers.
        fetch: Coroutine function applied to each item. It is expected to be
            fail-soft; an exception still propagates.
        batch_size: Concurrency window (defaults to config).
        delay: Seconds to sleep between batches (defaults to config).

    Returns:
        ``(item, result)`` pairs in input order.
    """
    batch_size = batch_size or cfg.reconcile.batch_size
    delay = cfg.reconcile.batch_delay if delay is None else delay
    items = list(items)

    pairs: list[tuple[T, R]] = []
    for start in range(0, len(items), batch_size):
        batch = items[start:start + batch_size]
        results = await asyncio.gather(*(fetch(item) for item in batch))
        pairs.extend(zip(batch, results))

        if start + batch_size < len(items) and delay > 0:
            await asyncio.sleep(delay)

    return pairs

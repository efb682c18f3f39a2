"""Bridge blocking HTTP calls onto the event loop.

The Halo client is built on ``requests`` and therefore blocks.  The sync
protocol is cooperative: every network call suspends the current
operation until it completes.  Calls are pushed to worker threads and,
when a semaphore has been installed, at most ``max_parallel`` of them are
in flight at once.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Sequence, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)

# Installed once at server startup; None means unbounded
_semaphore: asyncio.Semaphore | None = None


def init_semaphore(max_parallel: int = 5) -> None:
    """Install the request semaphore. Call once at startup."""
    global _semaphore
    _semaphore = asyncio.Semaphore(max_parallel)
    logger.info(
        "Halo request semaphore initialized: max_parallel=%d",
        max_parallel,
    )


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a blocking function in a worker thread and await its result.

    Used for local file access and one-off calls that should not count
    against the request limit.

    Example:
        post = await run_sync(client.get_post, "my-post")
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def run_sync_limited(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Like ``run_sync`` but waits for a free slot on the request semaphore.

    Falls back to unbounded execution when no semaphore is installed.
    """
    if _semaphore is None:
        return await asyncio.to_thread(func, *args, **kwargs)
    async with _semaphore:
        return await asyncio.to_thread(func, *args, **kwargs)


async def gather_limited(
    coros: Sequence[Coroutine[Any, Any, T]],
) -> list[T]:
    """Await independent coroutines concurrently and collect their results.

    Results come back in the order the coroutines were given, regardless of
    completion order.  The first exception propagates to the caller; no
    partial result list is returned in that case.
    """
    return list(await asyncio.gather(*coros))

"""Concurrency helpers for bounded async I/O batches."""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Sequence, TypeVar

from rivalscope.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class ConcurrencyLimiter:
    """Async context manager over a semaphore."""

    max_concurrent: int
    _semaphore: asyncio.Semaphore = field(init=False)

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self._semaphore = asyncio.Semaphore(self.max_concurrent)

    async def acquire(self) -> None:
        await self._semaphore.acquire()

    def release(self) -> None:
        self._semaphore.release()

    async def __aenter__(self) -> "ConcurrencyLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


async def call_maybe_async(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call a sync or async callable without blocking the event loop.

    Coroutine functions are awaited directly; plain callables run in a worker thread. A
    thread cannot be interrupted, so a timed-out sync call keeps running and its result is
    discarded.
    """

    if inspect.iscoroutinefunction(func):
        return await func(*args, **kwargs)
    result = await asyncio.to_thread(func, *args, **kwargs)
    if inspect.isawaitable(result):
        return await result
    return result


async def bounded_gather(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    *,
    limit: int,
) -> list[R]:
    """Run `worker` over `items` with at most `limit` in flight; results keep input order.

    The worker is responsible for turning its own failures into result values.
    """

    limiter = ConcurrencyLimiter(limit)
    seq: Sequence[T] = list(items)

    async def _run(item: T) -> R:
        async with limiter:
            return await worker(item)

    return list(await asyncio.gather(*(_run(item) for item in seq)))

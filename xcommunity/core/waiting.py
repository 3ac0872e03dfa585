"""Polling wait primitive used instead of fixed sleeps."""

import asyncio
import inspect
import time
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


async def wait_for(
    condition: Callable[[], T | Awaitable[T]],
    timeout_ms: int,
    interval_ms: int = 100,
    backoff: float = 1.0,
    max_interval_ms: int = 1000,
) -> T | None:
    """
    Poll ``condition`` until it returns a truthy value or the timeout elapses.

    Args:
        condition: Sync or async callable; its first truthy result is returned
        timeout_ms: Total time budget; 0 means a single check
        interval_ms: Delay before the second check
        backoff: Multiplier applied to the delay after every check (1.0 = fixed)
        max_interval_ms: Upper bound for the delay

    Returns:
        The truthy result, or None on timeout
    """
    deadline = time.monotonic() + max(timeout_ms, 0) / 1000
    delay = max(interval_ms, 0) / 1000

    while True:
        result = condition()
        if inspect.isawaitable(result):
            result = await result
        if result:
            return result

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return None

        await asyncio.sleep(min(delay, remaining))
        delay = min(delay * backoff, max_interval_ms / 1000)


async def pause(ms: int) -> None:
    """Sleep for ``ms`` milliseconds (no-op for 0)."""
    if ms > 0:
        await asyncio.sleep(ms / 1000)

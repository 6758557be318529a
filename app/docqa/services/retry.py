"""
Bounded retry with a fixed backoff for async callables.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_async(
    func: Callable[[], Awaitable[T]],
    *,
    attempts: int = 2,
    delay: float = 0.8,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Call `func` until it succeeds or `attempts` calls have failed.

    Only exceptions matching `retry_on` are retried; anything else propagates
    immediately. After the last failed attempt the last exception is raised.

    Args:
        func: Zero-argument coroutine function, called once per attempt.
        attempts: Total number of calls, including the first.
        delay: Seconds to wait between attempts.
        retry_on: Exception types that trigger another attempt.
        sleep: Awaitable sleep, injectable for tests.

    Returns:
        Whatever `func` returns on the first successful attempt.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return await func()
        except retry_on as e:
            if attempt == attempts:
                raise
            logger.warning(
                "Attempt %d/%d failed (%s), retrying in %.2fs",
                attempt,
                attempts,
                type(e).__name__,
                delay,
            )
            await sleep(delay)

    raise AssertionError("unreachable")

"""Bounded retry with a fixed delay for coroutine operations."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    attempts: int,
    delay_seconds: float,
    description: str = "operation",
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> T:
    """Await ``operation`` up to ``attempts`` times, sleeping between failures.

    The last error is re-raised once every attempt has failed.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")
    for attempt in range(1, attempts):
        try:
            return await operation()
        except retry_on as exc:
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                description,
                attempt,
                attempts,
                exc,
                delay_seconds,
            )
            await asyncio.sleep(delay_seconds)
    return await operation()

"""
Async Utilities - retry and deadline-bound condition polling.

Provides:
- async_retry: Decorator retrying retryable errors with exponential backoff
- poll_until: Re-evaluate a probe until it yields a value or a deadline passes
"""

from __future__ import annotations

import asyncio
import logging
import time
from functools import wraps
from typing import TYPE_CHECKING, Any, TypeVar

from .exceptions import get_retry_delay, is_retryable_error

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def async_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    retryable_check: Callable[[Exception], bool] = is_retryable_error,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator for async functions with automatic retry.

    Uses exponential backoff with jitter.

    Example:
        @async_retry(max_attempts=3)
        async def launch() -> Browser:
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not retryable_check(e) or attempt == max_attempts - 1:
                        raise
                    delay = get_retry_delay(e, attempt, base_delay)
                    logger.warning(
                        f"Retry {attempt + 1}/{max_attempts} for {func.__name__}: "
                        f"{e} (waiting {delay:.1f}s)"
                    )
                    await asyncio.sleep(delay)
            raise RuntimeError("Unexpected retry loop exit")

        return wrapper

    return decorator


async def poll_until(
    probe: Callable[[], Awaitable[T | None]],
    *,
    timeout: float,
    interval: float = 0.5,
    max_interval: float | None = None,
    backoff: float = 1.0,
    description: str = "condition",
) -> T:
    """
    Await ``probe`` repeatedly until it returns a non-None value.

    The probe is always evaluated at least once. Between evaluations the
    interval grows by ``backoff`` up to ``max_interval``; the final sleep is
    clipped so the deadline is never overshot.

    Raises:
        TimeoutError: If the deadline passes before the probe succeeds.
    """
    deadline = time.monotonic() + timeout
    delay = interval
    while True:
        result = await probe()
        if result is not None:
            return result

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            msg = f"Timed out after {timeout:.1f}s waiting for {description}"
            raise TimeoutError(msg)

        await asyncio.sleep(min(delay, remaining))
        delay *= backoff
        if max_interval is not None:
            delay = min(delay, max_interval)


__all__ = ["async_retry", "poll_until"]

"""Bounded retry with exponential backoff for transient store failures."""

import asyncio
import functools
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

import structlog

from core.config import settings
from core.exceptions import StoreUnavailableError

logger = structlog.get_logger()

P = ParamSpec("P")
T = TypeVar("T")


def retry_transient(
    attempts: int | None = None,
    base_delay_ms: int | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Retry an async operation while it raises StoreUnavailableError.

    The delay doubles after every failed attempt (50ms, 100ms, ...). Once the
    attempts are used up the last error is re-raised so the caller sees a
    503-class failure. Any other exception propagates immediately.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        operation = getattr(func, "__qualname__", repr(func))

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            max_attempts = max(1, attempts or settings.store_retry_attempts)
            delay_ms = (
                base_delay_ms if base_delay_ms is not None else settings.store_retry_base_delay_ms
            )
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except StoreUnavailableError:
                    if attempt == max_attempts:
                        logger.error(
                            "store_retries_exhausted",
                            operation=operation,
                            attempts=attempt,
                        )
                        raise
                    backoff_ms = delay_ms * (2 ** (attempt - 1))
                    logger.warning(
                        "store_transient_failure",
                        operation=operation,
                        attempt=attempt,
                        backoff_ms=backoff_ms,
                    )
                    await asyncio.sleep(backoff_ms / 1000)
            raise AssertionError("unreachable")

        return wrapper

    return decorator

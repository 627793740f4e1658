"""Retry utilities for handling transient errors with exponential backoff.

This module provides utilities for retrying operations that may fail due to
transient errors like network issues, rate limits, or temporary API outages.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import TYPE_CHECKING, TypeVar

from readlater.domain.exceptions.domain_exceptions import TransientIOError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 0.5  # seconds
DEFAULT_MAX_DELAY = 10.0  # seconds
DEFAULT_JITTER = 0.1  # 10% jitter


def is_transient_error(error: Exception) -> bool:
    """Determine if an error is transient and worth retrying.

    Args:
        error: The exception to check

    Returns:
        True if the error appears to be transient, False otherwise

    Transient errors include:
    - TransientIOError raised by our own adapters
    - Network-related errors (connection, timeout, DNS)
    - Rate limiting errors
    - Temporary server errors (5xx)
    """
    if isinstance(error, TransientIOError | TimeoutError | ConnectionError):
        return True

    error_str = str(error).lower()
    transient_keywords = [
        "timeout",
        "timed out",
        "connection",
        "network",
        "rate limit",
        "too many requests",
        "temporary",
        "unavailable",
        "bad gateway",
        "gateway timeout",
        "try again",
    ]
    if any(keyword in error_str for keyword in transient_keywords):
        return True

    exception_type = type(error).__name__.lower()
    transient_types = ["timeout", "connectionerror", "networkerror", "transporterror"]
    return any(exc_type in exception_type for exc_type in transient_types)


def calculate_delay(attempt: int, base_delay: float, max_delay: float, jitter: float) -> float:
    """Exponential backoff delay for a 0-indexed attempt, with random jitter."""
    delay = min(base_delay * (2**attempt), max_delay)
    return delay + delay * jitter * random.random()


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    jitter: float = DEFAULT_JITTER,
    operation_name: str = "operation",
) -> T:
    """Execute an async function, retrying transient failures.

    Non-transient errors are raised immediately. The last transient error is
    re-raised once ``max_retries`` retries are exhausted.

    Example:
        >>> result = await retry_with_backoff(
        ...     lambda: client.archive_item("item-1", archived=True),
        ...     max_retries=3,
        ...     operation_name="archive_item",
        ... )
    """
    for attempt in range(max_retries + 1):
        try:
            return await func()
        except Exception as exc:
            if not is_transient_error(exc):
                raise
            if attempt >= max_retries:
                logger.warning(
                    "retry_exhausted",
                    extra={
                        "operation": operation_name,
                        "attempts": attempt + 1,
                        "error": str(exc),
                    },
                )
                raise

            delay = calculate_delay(attempt, base_delay, max_delay, jitter)
            logger.debug(
                "retrying_after_transient_error",
                extra={
                    "operation": operation_name,
                    "attempt": attempt + 1,
                    "max_retries": max_retries,
                    "delay_seconds": round(delay, 2),
                    "error": str(exc),
                },
            )
            await asyncio.sleep(delay)

    msg = f"{operation_name} failed"
    raise TransientIOError(msg)  # pragma: no cover - loop always returns or raises

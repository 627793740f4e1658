"""Async helper utilities."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

from readlater.domain.exceptions.domain_exceptions import TransientIOError

if TYPE_CHECKING:
    from collections.abc import Awaitable

T = TypeVar("T")


def raise_if_cancelled(exc: BaseException) -> None:
    """Re-raise ``asyncio.CancelledError`` instances to preserve cancellation semantics."""

    if isinstance(exc, asyncio.CancelledError):  # pragma: no cover - simple guard
        raise exc


async def with_timeout(awaitable: Awaitable[T], timeout: float, *, operation: str) -> T:
    """Await ``awaitable`` for at most ``timeout`` seconds.

    Raises:
        TransientIOError: If the call did not finish in time.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except TimeoutError as exc:
        msg = f"{operation} timed out after {timeout:g}s"
        raise TransientIOError(msg, details={"operation": operation, "timeout": timeout}) from exc

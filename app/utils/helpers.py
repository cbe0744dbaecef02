"""
Helper utilities for PDF Watchman.

Common functions used across domains.
"""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger

T = TypeVar("T")

Backoff = Callable[[int], float]


def format_bytes(bytes_count: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024.0:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024.0
    return f"{bytes_count:.1f} PB"


def normalise_path(path: Path) -> Path:
    """Return a resolved version of ``path`` without forcing existence."""
    try:
        return path.expanduser().resolve()
    except (FileNotFoundError, RuntimeError):
        return path.expanduser().absolute()


def linear_backoff(base_delay: float) -> Backoff:
    """Attempt ``k`` waits ``k * base_delay`` seconds."""
    return lambda attempt: attempt * base_delay


def exponential_backoff(base_delay: float) -> Backoff:
    """Attempt ``k`` waits ``base_delay * 2 ** (k - 1)`` seconds."""
    return lambda attempt: base_delay * (2 ** (attempt - 1))


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    backoff: Backoff,
    retry_if: Callable[[BaseException], bool],
    description: str = "operation",
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """
    Run ``operation`` until it succeeds or attempts run out.

    Exceptions rejected by ``retry_if`` propagate immediately. After the
    last failed attempt the final exception is re-raised.

    Args:
        operation: Zero-argument coroutine factory
        max_attempts: Total number of tries (>= 1)
        backoff: Delay in seconds to wait after failed attempt ``k``
        retry_if: Predicate selecting retryable exceptions
        description: Label used in retry warnings
        sleep: Replacement for ``asyncio.sleep`` (tests)

    Returns:
        Whatever ``operation`` returns
    """
    sleep = sleep or asyncio.sleep
    attempt = 1

    while True:
        try:
            return await operation()
        except Exception as e:
            if not retry_if(e) or attempt >= max_attempts:
                raise

            delay = backoff(attempt)
            logger.warning(
                f"{description} failed (attempt {attempt}/{max_attempts}): {e}. "
                f"Retrying in {delay:.1f}s"
            )
            await sleep(delay)
            attempt += 1

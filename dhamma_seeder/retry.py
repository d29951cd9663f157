"""
Retry with backoff for batch writes.
"""

import time
from typing import Any, Callable, Optional, TypeVar

import structlog

from .exceptions import BatchWriteError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, backoff_seconds: float, strategy: str = "linear") -> float:
    """Delay to wait after failed attempt number `attempt` (1-based)."""
    if strategy == "exponential":
        return backoff_seconds * (2 ** (attempt - 1))
    return backoff_seconds * attempt


def run_with_retry(
    operation: Callable[[], T],
    attempts: int,
    backoff_seconds: float = 1.0,
    strategy: str = "linear",
    sleep: Callable[[float], Any] = time.sleep,
    description: str = "batch write",
    **context: Any,
) -> T:
    """
    Call operation until it succeeds or attempts run out.

    Args:
        operation: Zero-argument callable performing the write
        attempts: Maximum number of calls (>= 1)
        backoff_seconds: Base delay between attempts
        strategy: 'linear' (base * n) or 'exponential' (base * 2**(n-1))
        sleep: Sleep function, injectable for tests
        description: Label used in log messages
        **context: Extra key/values for log lines (offset, table, ...)

    Returns:
        Whatever operation returns

    Raises:
        BatchWriteError: If every attempt failed
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    last_error: Optional[BaseException] = None
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except Exception as e:
            last_error = e
            logger.error(f"{description} failed", attempt=attempt, attempts=attempts, error=str(e), **context)
            if attempt < attempts:
                delay = backoff_delay(attempt, backoff_seconds, strategy)
                logger.info(f"Retrying {description}", delay_seconds=delay, **context)
                sleep(delay)

    raise BatchWriteError(
        f"{description} failed after {attempts} attempts: {last_error}",
        attempts=attempts,
        last_error=last_error,
    )

"""Bounded retry with exponential backoff for transient backend failures."""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from src.core.errors import BackendError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Retry configuration
DEFAULT_MAX_RETRIES = 2
DEFAULT_INITIAL_DELAY_MS = 100
DEFAULT_MAX_DELAY_MS = 1000
DEFAULT_JITTER_MS = 50


def is_transient_error(error: BaseException) -> bool:
    """Return True if the error may succeed when the call is repeated."""
    return isinstance(error, BackendError) and error.is_transient


def backoff_delay_ms(attempt: int, initial_delay_ms: int, max_delay_ms: int) -> float:
    """Delay before retry ``attempt`` (0-indexed), excluding jitter."""
    return min(initial_delay_ms * 2**attempt, max_delay_ms)


def _describe(error: BaseException | None) -> str:
    if isinstance(error, BackendError):
        return error.reason
    return type(error).__name__ if error else "unknown"


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    *,
    initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS,
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS,
    jitter_ms: int = DEFAULT_JITTER_MS,
    operation_name: str = "backend call",
    request_id: str | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run an async operation, retrying transient backend failures.

    Only errors classified as transient are retried; anything else is
    re-raised on the first failure without consuming a retry. When every
    attempt fails the last error is re-raised unchanged.

    Args:
        operation: Zero-argument coroutine factory to execute.
        max_retries: Retries after the first attempt (total attempts = max_retries + 1).
        initial_delay_ms: Delay before the first retry.
        max_delay_ms: Upper bound for the exponential part of the delay.
        jitter_ms: Upper bound of the uniform random jitter added to each delay.
        operation_name: Label used in log messages.
        request_id: Request ID included in log records.
        sleep: Awaitable sleep function (replaced in tests).

    Returns:
        The operation's result.

    Raises:
        Exception: The final error from the operation.
    """
    max_attempts = max_retries + 1

    def log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay_ms = (retry_state.next_action.sleep if retry_state.next_action else 0) * 1000
        logger.warning(
            "%s failed on attempt %d/%d, retrying in %.0fms: %s",
            operation_name,
            retry_state.attempt_number,
            max_attempts,
            delay_ms,
            _describe(error),
            extra={
                "request_id": request_id,
                "retry_attempt": retry_state.attempt_number,
                "delay_ms": round(delay_ms, 2),
            },
        )

    retrying = AsyncRetrying(
        sleep=sleep,
        retry=retry_if_exception(is_transient_error),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=initial_delay_ms / 1000,
            exp_base=2,
            max=max_delay_ms / 1000,
        )
        + wait_random(0, jitter_ms / 1000),
        before_sleep=log_retry,
        reraise=True,
    )

    try:
        # Awaited here so callables that merely return a coroutine are retried too
        async for attempt in retrying:
            with attempt:
                return await operation()
    except BackendError as e:
        if e.is_transient:
            logger.error(
                "%s gave up after %d attempts: %s",
                operation_name,
                max_attempts,
                e.reason,
                extra={"request_id": request_id, "status_code": e.status_code},
            )
        raise

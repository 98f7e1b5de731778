"""Retry utilities for asynchronous operations using Tenacity."""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..errors.handling import is_retryable_error

T = TypeVar("T")


class RetryExhaustedError(Exception):
    """Exception raised when all retry attempts have been exhausted."""

    def __init__(self, message: str, attempts: int, final_exception: BaseException | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.final_exception = final_exception


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    *,
    context: str = "operation",
    max_wait: float = 10.0,
    should_retry: Callable[[BaseException], bool] = is_retryable_error,
) -> T:
    """Retry an asynchronous operation with exponential backoff using Tenacity.

    Only exceptions accepted by ``should_retry`` trigger another attempt; any
    other exception propagates unchanged from the first attempt that raised it.

    Args:
        operation: Async callable performing one attempt.
        max_attempts: Maximum number of attempts.
        context: Description used in retry log lines.
        max_wait: Upper bound for the exponential backoff wait in seconds.
        should_retry: Predicate deciding whether an exception is transient.

    Returns:
        The result from operation if successful.

    Raises:
        RetryExhaustedError: If all attempts failed with transient errors.
    """

    def before_sleep(retry_state):
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logging.info(
            f"🔁 Retrying {context} (attempt {retry_state.attempt_number + 1}/{max_attempts}) after {type(exc).__name__}"
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(multiplier=0.5, max=max_wait),
        retry=retry_if_exception(should_retry),
        before_sleep=before_sleep,
    )

    try:
        return await retrying(operation)
    except RetryError as e:
        final = e.last_attempt.exception()
        raise RetryExhaustedError(
            f"{context} failed after {max_attempts} attempts",
            attempts=max_attempts,
            final_exception=final,
        ) from final

from __future__ import annotations

from typing import Any

import aiohttp

from ..logging_config import log_structured_error
from .internal import (
    IllegalStateError,
    InternalError,
    LeaseOperationError,
    PipelineError,
    TransportError,
)


def categorize_error(error: BaseException) -> str:
    """Map an exception to the error category used for aggregation."""
    if isinstance(error, PipelineError):
        return "pipeline"
    if isinstance(error, LeaseOperationError):
        return "lease"
    if isinstance(error, TransportError | aiohttp.ClientError | OSError | TimeoutError):
        return "transport"
    if isinstance(error, IllegalStateError):
        return "state"
    if isinstance(error, InternalError):
        return "internal"
    return "unknown"


def log_error(
    message: str, error: BaseException, context: dict[str, Any] | None = None
) -> None:
    """Logs an error message with the associated exception details.

    This function formats and logs an error message along with the string
    representation of the exception using structured logging for better
    error tracking and aggregation.

    Args:
        message: A descriptive message about the error context.
        error: The exception instance to be logged.
        context: Optional additional context data for debugging.
    """
    merged: dict[str, Any] = {}
    if isinstance(error, InternalError) and error.data:
        merged.update({k: v for k, v in error.data.items() if v is not None})
    if context:
        merged.update(context)
    log_structured_error(
        error_type=categorize_error(error),
        message=f"{message}: {str(error)}",
        exception=error if isinstance(error, Exception) else None,
        context=merged or None,
    )


def is_retryable_error(error: BaseException) -> bool:
    """Check if an exception is a connection-level failure worth another attempt.

    HTTP status failures are never retried here; only I/O problems are.
    """
    if isinstance(error, TransportError):
        return error.status is None
    return isinstance(
        error, aiohttp.ClientConnectionError | TimeoutError | ConnectionError
    )

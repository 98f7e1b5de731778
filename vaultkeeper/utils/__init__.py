"""Utility functions package for vaultkeeper.

Exposed functions:
    format_duration: Formats time durations into human-readable strings.
    retry_async: Retries an awaitable operation on connection-level failures.
"""

from .helpers import format_duration
from .retry import RetryExhaustedError, retry_async

__all__ = ["format_duration", "retry_async", "RetryExhaustedError"]

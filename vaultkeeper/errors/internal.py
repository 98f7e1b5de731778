"""Centralized internal error hierarchy.

These exceptions provide semantic categories for the authentication pipeline
and the lease lifecycle. Raw aiohttp / JSON errors never leave the transport;
they are wrapped into one of these first.

Classes:
  InternalError        – Base for all internal errors.
  TransportError       – Non-2xx response or I/O failure on the transport.
  TokenLookupError     – Self-lookup of a bare token failed.
  PipelineError        – A named authentication step failed.
  LeaseOperationError  – Renew / revoke / rotate call failed.
  IllegalStateError    – Caller misuse (e.g. reading data never fetched).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class InternalError(Exception):
    """Base class for all internal errors with metadata support.

    Attributes:
        data: Dictionary containing arbitrary structured context data.

    Args:
        message: Descriptive error message.
        data: Optional mapping of additional context data.
    """

    data: dict[str, object]

    def __init__(
        self, message: str, *, data: Mapping[str, object] | None = None
    ) -> None:
        super().__init__(message)
        # Copy into a plain dict to avoid unexpected mutations from caller.
        self.data = dict(data) if data else {}


class TransportError(InternalError):
    """Exception raised for transport failures.

    ``status`` and ``body`` are populated when the service answered with a
    non-2xx response; both are ``None`` for connection or timeout failures.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        body: Any = None,
        data: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__(message, data=data)
        self.status = status
        self.body = body


class TokenLookupError(TransportError):
    """Exception raised when a token self-lookup is rejected."""


class PipelineError(InternalError):
    """Exception raised when an authentication step fails.

    Attributes:
        step: Human readable description of the failing step.
        state: The pipeline state value at failure time.
        status: HTTP status when the step was a request, else None.
        body: Response body when the step was a request, else None.
    """

    def __init__(
        self,
        message: str,
        *,
        step: str,
        state: Any = None,
        status: int | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message, data={"step": step, "status": status})
        self.step = step
        self.state = state
        self.status = status
        self.body = body

    @classmethod
    def from_response(
        cls, step: str, state: Any, status: int, body: Any
    ) -> PipelineError:
        return cls(
            f"{step} in state {state} failed with Status {status} and body {body}",
            step=step,
            state=state,
            status=status,
            body=body,
        )

    @classmethod
    def from_cause(cls, step: str, state: Any, cause: BaseException) -> PipelineError:
        return cls(f"{step} in state {state} failed: {cause}", step=step, state=state)


class LeaseOperationError(InternalError):
    """Exception raised when a renew, revoke or rotate call fails.

    Attributes:
        operation: Name of the lease operation ("renew", "revoke", "rotate", "read").
        lease: The lease the operation acted on.
        status: HTTP status if the service answered.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        lease: Any = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message, data={"operation": operation, "status": status})
        self.operation = operation
        self.lease = lease
        self.status = status


class IllegalStateError(InternalError):
    """Exception raised on caller misuse, such as reading unfetched secrets."""


__all__ = [
    "InternalError",
    "TransportError",
    "TokenLookupError",
    "PipelineError",
    "LeaseOperationError",
    "IllegalStateError",
]

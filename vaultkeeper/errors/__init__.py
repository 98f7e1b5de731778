"""Error hierarchy and structured error logging helpers."""

from .internal import (
    IllegalStateError,
    InternalError,
    LeaseOperationError,
    PipelineError,
    TokenLookupError,
    TransportError,
)

__all__ = [
    "InternalError",
    "TransportError",
    "TokenLookupError",
    "PipelineError",
    "LeaseOperationError",
    "IllegalStateError",
]

"""Transport boundary and adapters."""

from .base import Transport, TransportResponse, expand_uri
from .http import AiohttpTransport
from .session import SessionBoundTransport

__all__ = [
    "AiohttpTransport",
    "SessionBoundTransport",
    "Transport",
    "TransportResponse",
    "expand_uri",
]

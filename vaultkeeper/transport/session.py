"""Transport decorator that authenticates every call with the session token."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from ..constants import VAULT_TOKEN_HEADER
from .base import Transport, TransportResponse, UriVariables

if TYPE_CHECKING:
    from ..authentication.session import SessionManager


class SessionBoundTransport:
    """Wraps a transport and injects the current session token header."""

    def __init__(self, delegate: Transport, session_manager: SessionManager) -> None:
        self.delegate = delegate
        self.session_manager = session_manager

    async def send(
        self,
        method: str,
        uri_template: str,
        uri_variables: UriVariables = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> TransportResponse:
        token = await self.session_manager.get_token()
        merged = {**(headers or {}), VAULT_TOKEN_HEADER: token.value}
        return await self.delegate.send(method, uri_template, uri_variables, merged, body)

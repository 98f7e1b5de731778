"""aiohttp-backed transport for the secret-management service."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from typing import Any

import aiohttp

from ..constants import (
    TRANSPORT_BACKOFF_MAX_SECONDS,
    TRANSPORT_MAX_ATTEMPTS,
    TRANSPORT_TIMEOUT_SECONDS,
    VAULT_DEFAULT_HOST,
    VAULT_DEFAULT_PORT,
    VAULT_DEFAULT_SCHEME,
)
from ..errors.internal import TransportError
from ..utils.retry import RetryExhaustedError, retry_async
from .base import TransportResponse, UriVariables, expand_uri

APPLICATION_JSON = "application/json"


class AiohttpTransport:
    """Transport issuing requests through a shared ``aiohttp.ClientSession``.

    Relative URI templates are resolved against
    ``{scheme}://{host}:{port}/v1/``; absolute ``http(s)://`` templates are
    used as-is so pipelines can reach identity endpoints outside the service.
    """

    def __init__(
        self,
        http_session: aiohttp.ClientSession,
        *,
        scheme: str = VAULT_DEFAULT_SCHEME,
        host: str = VAULT_DEFAULT_HOST,
        port: int = VAULT_DEFAULT_PORT,
        timeout: float = TRANSPORT_TIMEOUT_SECONDS,
        max_attempts: int = TRANSPORT_MAX_ATTEMPTS,
        default_headers: Mapping[str, str] | None = None,
    ) -> None:
        if http_session is None:
            raise TypeError("http_session cannot be None")
        self.session = http_session
        self.base_url = f"{scheme}://{host}:{port}/v1/"
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.default_headers = dict(default_headers or {})

    def resolve(self, uri_template: str, uri_variables: UriVariables = None) -> str:
        path = expand_uri(uri_template, uri_variables)
        if path.startswith(("http://", "https://")):
            return path
        return self.base_url + path.lstrip("/")

    async def send(
        self,
        method: str,
        uri_template: str,
        uri_variables: UriVariables = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> TransportResponse:
        """Send one request, retrying connection failures only.

        Raises:
            TransportError: On connection failures or timeouts after all attempts.
            ValueError: If the URI template cannot be expanded.
        """
        url = self.resolve(uri_template, uri_variables)
        merged_headers = {**self.default_headers, **(headers or {})}

        async def attempt() -> TransportResponse:
            return await self._send_once(method.upper(), url, merged_headers, body)

        try:
            return await retry_async(
                attempt,
                self.max_attempts,
                context=f"{method.upper()} {uri_template}",
                max_wait=TRANSPORT_BACKOFF_MAX_SECONDS,
            )
        except RetryExhaustedError as e:
            final = e.final_exception
            if isinstance(final, TransportError):
                raise final
            raise TransportError(str(e)) from final

    async def _send_once(
        self, method: str, url: str, headers: dict[str, str], body: Any
    ) -> TransportResponse:
        kwargs: dict[str, Any] = {
            "headers": headers,
            "timeout": aiohttp.ClientTimeout(total=self.timeout),
        }
        if isinstance(body, str | bytes):
            kwargs["data"] = body
        elif body is not None:
            kwargs["json"] = body

        start_time = time.time()
        try:
            async with self.session.request(method, url, **kwargs) as resp:
                parsed = await self._read_body(resp)
                logging.debug(
                    f"🌐 HTTP {method} {url} -> {resp.status} ({time.time() - start_time:.3f}s)"
                )
                return TransportResponse(resp.status, parsed, dict(resp.headers))
        except TimeoutError as e:
            logging.warning(f"⏱️ HTTP {method} {url} timed out after {self.timeout}s")
            raise TransportError(f"Request to {url} timed out") from e
        except aiohttp.ClientError as e:
            logging.warning(f"💥 HTTP {method} {url} failed: {type(e).__name__}")
            raise TransportError(f"HTTP request failed: {e}") from e

    @staticmethod
    async def _read_body(resp: aiohttp.ClientResponse) -> Any:
        text = await resp.text()
        if not text:
            return None
        if APPLICATION_JSON in (resp.content_type or ""):
            try:
                return json.loads(text)
            except ValueError:
                return text
        return text

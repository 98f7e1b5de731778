"""Transport boundary shared by the executor, session manager and lease container."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable
from urllib.parse import quote

UriVariables = Sequence[Any] | Mapping[str, Any] | None

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


@dataclass(frozen=True)
class TransportResponse:
    """Single request/response exchange result.

    Attributes:
        status: HTTP status code.
        body: Parsed body (JSON object, text, or None when empty).
        headers: Response headers.
    """

    status: int
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300


@runtime_checkable
class Transport(Protocol):
    """Performs one request/response exchange.

    Non-2xx responses are returned; I/O failures raise ``TransportError``.
    """

    async def send(
        self,
        method: str,
        uri_template: str,
        uri_variables: UriVariables = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> TransportResponse: ...


def expand_uri(uri_template: str, uri_variables: UriVariables = None) -> str:
    """Expand ``{name}`` placeholders in a URI template.

    Sequences expand positionally (left to right), mappings by name. Values
    are percent-encoded, keeping ``/`` so mount paths can contain segments.

    Raises:
        ValueError: If a placeholder has no matching variable.
    """
    if not uri_variables:
        if _PLACEHOLDER.search(uri_template):
            raise ValueError(f"Missing URI variables for template {uri_template}")
        return uri_template

    if isinstance(uri_variables, Mapping):
        def by_name(match: re.Match[str]) -> str:
            name = match.group(1)
            if name not in uri_variables:
                raise ValueError(f"Missing URI variable '{name}' for template {uri_template}")
            return quote(str(uri_variables[name]), safe="/")

        return _PLACEHOLDER.sub(by_name, uri_template)

    values = iter(uri_variables)

    def positional(match: re.Match[str]) -> str:
        try:
            return quote(str(next(values)), safe="/")
        except StopIteration:
            raise ValueError(
                f"Not enough URI variables for template {uri_template}"
            ) from None

    return _PLACEHOLDER.sub(positional, uri_template)

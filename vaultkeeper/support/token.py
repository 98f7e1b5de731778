"""Credential value types."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Token:
    """Opaque bearer credential without lifecycle metadata.

    The value is excluded from ``repr`` so tokens never end up in logs.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value:
            raise ValueError("Token must not be empty")

    @classmethod
    def of(cls, value: str) -> Token:
        return cls(value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(value=***)"

    __str__ = __repr__


@dataclass(frozen=True, repr=False)
class LoginToken(Token):
    """Token obtained through a login, carrying TTL and renewal metadata.

    Attributes:
        lease_duration: Time to live in seconds at the time of issue (0 = unknown/none).
        renewable: Whether the token can be renewed.
        explicit_max_ttl: Hard upper bound for the token lifetime, if any.
        accessor: Token accessor reported by the service, if any.
    """

    lease_duration: float = 0
    renewable: bool = False
    explicit_max_ttl: float | None = None
    accessor: str | None = None

    @classmethod
    def of(cls, value: str, lease_duration: float = 0) -> LoginToken:
        return cls(value, lease_duration=lease_duration)

    @classmethod
    def renewable_token(cls, value: str, lease_duration: float) -> LoginToken:
        return cls(value, lease_duration=lease_duration, renewable=True)

    @classmethod
    def from_auth(cls, auth: Mapping[str, Any] | None) -> LoginToken:
        """Build a login token from a service ``auth`` response block.

        Raises:
            ValueError: If the block is missing or has no ``client_token``.
        """
        if not isinstance(auth, Mapping):
            raise ValueError("Auth field must not be null")
        client_token = auth.get("client_token")
        if not client_token:
            raise ValueError("Auth response does not contain a client_token")
        explicit_max_ttl = auth.get("explicit_max_ttl")
        return cls(
            str(client_token),
            lease_duration=float(auth.get("lease_duration") or 0),
            renewable=bool(auth.get("renewable", False)),
            explicit_max_ttl=float(explicit_max_ttl) if explicit_max_ttl else None,
            accessor=auth.get("accessor"),
        )

    def __repr__(self) -> str:
        return (
            f"LoginToken(value=***, lease_duration={self.lease_duration}, "
            f"renewable={self.renewable})"
        )

    __str__ = __repr__

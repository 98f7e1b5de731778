"""Events published by the lifecycle-aware session manager."""

from __future__ import annotations

from dataclasses import dataclass

from ..support.token import Token


@dataclass(frozen=True, eq=False)
class AuthenticationEvent:
    token: Token | None


@dataclass(frozen=True, eq=False)
class AfterLoginEvent(AuthenticationEvent):
    pass


@dataclass(frozen=True, eq=False)
class AfterLoginTokenRenewedEvent(AuthenticationEvent):
    pass


@dataclass(frozen=True, eq=False)
class LoginTokenExpiredEvent(AuthenticationEvent):
    """The token can no longer be renewed; the next access logs in again."""


@dataclass(frozen=True, eq=False)
class BeforeLoginTokenRevocationEvent(AuthenticationEvent):
    pass


@dataclass(frozen=True, eq=False)
class AfterLoginTokenRevocationEvent(AuthenticationEvent):
    pass


@dataclass(frozen=True, eq=False)
class LoginErrorEvent(AuthenticationEvent):
    error: BaseException

"""Protocols implemented by login strategies."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ..support.token import Token

if TYPE_CHECKING:
    from .steps import AuthenticationSteps


@runtime_checkable
class ClientAuthentication(Protocol):
    """Obtains a token, usually by performing a login."""

    async def login(self) -> Token: ...


@runtime_checkable
class AuthenticationStepsFactory(Protocol):
    """Describes a login as a step graph instead of performing it."""

    def get_authentication_steps(self) -> AuthenticationSteps: ...

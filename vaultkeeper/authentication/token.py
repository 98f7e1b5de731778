"""Static token and client certificate authentication."""

from __future__ import annotations

from ..support.token import Token
from ..transport.base import Transport
from .executor import AuthenticationStepsExecutor
from .steps import AuthenticationSteps, HttpRequest


class TokenAuthentication:
    """Uses a pre-issued token; no login request is made."""

    def __init__(self, token: str | Token) -> None:
        if isinstance(token, str):
            token = Token.of(token)
        if not isinstance(token, Token):
            raise ValueError("Token must not be null")
        self.token = token

    @staticmethod
    def create_authentication_steps(token: Token) -> AuthenticationSteps:
        return AuthenticationSteps.just(token)

    def get_authentication_steps(self) -> AuthenticationSteps:
        return self.create_authentication_steps(self.token)

    async def login(self) -> Token:
        return self.token


class ClientCertificateAuthentication:
    """TLS client certificate login.

    The certificate is presented by the transport's TLS context; the login
    request itself carries no body.
    """

    def __init__(self, transport: Transport | None = None, *, path: str = "cert") -> None:
        if not path:
            raise ValueError("Path must not be empty")
        self.transport = transport
        self.path = path

    @staticmethod
    def create_authentication_steps(path: str = "cert") -> AuthenticationSteps:
        return AuthenticationSteps.just(HttpRequest.post("auth/{mount}/login", path))

    def get_authentication_steps(self) -> AuthenticationSteps:
        return self.create_authentication_steps(self.path)

    async def login(self) -> Token:
        if self.transport is None:
            raise ValueError("Transport is required to log in")
        return await AuthenticationStepsExecutor(
            self.get_authentication_steps(), self.transport
        ).login()

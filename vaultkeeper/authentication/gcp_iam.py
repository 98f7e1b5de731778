"""GCP IAM authentication with a self-signed service account JWT."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from ..support.token import Token
from ..transport.base import Transport
from .executor import AuthenticationStepsExecutor
from .steps import AuthenticationSteps

# (service_account_id, claims) -> signed JWT
JwtSigner = Callable[[str, Mapping[str, Any]], str | Awaitable[str]]


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class GcpIamOptions:
    """Settings of a GCP IAM login.

    Attributes:
        role: Role to log in with.
        service_account_id: Service account email or unique id (JWT subject).
        jwt_signer: Signs the claim set, e.g. via ``projects.serviceAccounts.signJwt``.
        jwt_validity: Lifetime of the signed JWT.
        clock: Returns the current time; replaced in tests.
        path: Mount path of the GCP backend.
    """

    role: str
    service_account_id: str
    jwt_signer: JwtSigner
    jwt_validity: timedelta = timedelta(minutes=15)
    clock: Callable[[], datetime] = field(default=_utc_now)
    path: str = "gcp"

    def __post_init__(self) -> None:
        if not self.role:
            raise ValueError("Role must not be empty")
        if not self.service_account_id:
            raise ValueError("Service account id must not be empty")
        if self.jwt_signer is None:
            raise ValueError("JWT signer must not be null")


def create_claims(options: GcpIamOptions) -> dict[str, Any]:
    expires = options.clock() + options.jwt_validity
    return {
        "sub": options.service_account_id,
        "aud": f"vault/{options.role}",
        "exp": int(expires.timestamp()),
    }


class GcpIamAuthentication:
    def __init__(self, options: GcpIamOptions, transport: Transport | None = None) -> None:
        if options is None:
            raise ValueError("GcpIamOptions must not be null")
        self.options = options
        self.transport = transport

    @staticmethod
    def create_authentication_steps(options: GcpIamOptions) -> AuthenticationSteps:
        def claims() -> dict[str, Any]:
            return create_claims(options)

        async def sign_jwt(payload: dict[str, Any]) -> str:
            jwt = options.jwt_signer(options.service_account_id, payload)
            if inspect.isawaitable(jwt):
                jwt = await jwt
            return jwt

        def login_body(jwt: str) -> dict[str, str]:
            return {"role": options.role, "jwt": jwt}

        return (
            AuthenticationSteps.from_supplier(claims)
            .map(sign_jwt)
            .map(login_body)
            .login("auth/{mount}/login", options.path)
        )

    def get_authentication_steps(self) -> AuthenticationSteps:
        return self.create_authentication_steps(self.options)

    async def login(self) -> Token:
        if self.transport is None:
            raise ValueError("Transport is required to log in")
        return await AuthenticationStepsExecutor(
            self.get_authentication_steps(), self.transport
        ).login()

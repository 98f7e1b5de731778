"""AppRole authentication.

RoleId and SecretId are each one of:

* ``Provided(value)``: the identifier is known up front.
* ``Pull(initial_token)``: read from the role endpoints with an initial token.
* ``Wrapped(initial_token)``: unwrapped from a response-wrapping token.

The SecretId may also be ``ABSENT_SECRET_ID`` for roles that bind only a RoleId.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..constants import VAULT_TOKEN_HEADER
from ..support.token import Token
from ..transport.base import Transport
from .executor import AuthenticationStepsExecutor
from .steps import AuthenticationSteps, HttpRequest, Node


@dataclass(frozen=True)
class Provided:
    value: str

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("Value must not be empty")


@dataclass(frozen=True)
class Pull:
    initial_token: Token


@dataclass(frozen=True)
class Wrapped:
    initial_token: Token


class AbsentSecretId:
    """Marker for logins that send no secret_id."""

    def __repr__(self) -> str:
        return "AbsentSecretId"


ABSENT_SECRET_ID = AbsentSecretId()

RoleId = Provided | Pull | Wrapped
SecretId = Provided | Pull | Wrapped | AbsentSecretId


@dataclass(frozen=True)
class AppRoleOptions:
    """Settings of an AppRole login.

    Attributes:
        role_id: How to obtain the RoleId.
        secret_id: How to obtain the SecretId.
        path: Mount path of the AppRole backend.
        app_role: Role name, required when pulling identifiers.
    """

    role_id: RoleId
    secret_id: SecretId = ABSENT_SECRET_ID
    path: str = "approle"
    app_role: str | None = None

    def __post_init__(self) -> None:
        if self.role_id is None:
            raise ValueError("RoleId must not be null")
        if self.secret_id is None:
            raise ValueError("SecretId must not be null")
        if not self.path:
            raise ValueError("Path must not be empty")
        pulls = isinstance(self.role_id, Pull) or isinstance(self.secret_id, Pull)
        if pulls and not self.app_role:
            raise ValueError("AppRole name is required when pulling RoleId or SecretId")

    @classmethod
    def provided(
        cls, role_id: str, secret_id: str | None = None, *, path: str = "approle"
    ) -> AppRoleOptions:
        return cls(
            Provided(role_id),
            Provided(secret_id) if secret_id else ABSENT_SECRET_ID,
            path=path,
        )


def _data_field(name: str):
    def extract(body: Any) -> Any:
        if not isinstance(body, Mapping) or not isinstance(body.get("data"), Mapping):
            raise ValueError(f"Response contains no data block with {name}")
        value = body["data"].get(name)
        if not value:
            raise ValueError(f"Response data contains no {name}")
        return value

    extract.__qualname__ = f"extract_{name}"
    return extract


def _token_header(token: Token) -> dict[str, str]:
    return {VAULT_TOKEN_HEADER: token.value}


def _unwrap(token: Token, field_name: str) -> Node:
    request = HttpRequest.post("sys/wrapping/unwrap").with_headers(_token_header(token))
    return AuthenticationSteps.from_request(request).map(_data_field(field_name))


def role_id_steps(options: AppRoleOptions) -> Node:
    role_id = options.role_id
    if isinstance(role_id, Provided):
        return AuthenticationSteps.from_value(role_id.value)
    if isinstance(role_id, Pull):
        request = HttpRequest.get(
            "auth/{mount}/role/{role}/role-id", options.path, options.app_role
        ).with_headers(_token_header(role_id.initial_token))
        return AuthenticationSteps.from_request(request).map(_data_field("role_id"))
    if isinstance(role_id, Wrapped):
        return _unwrap(role_id.initial_token, "role_id")
    raise ValueError(f"Unknown RoleId configuration: {role_id!r}")


def secret_id_steps(options: AppRoleOptions) -> Node:
    secret_id = options.secret_id
    if isinstance(secret_id, Provided):
        return AuthenticationSteps.from_value(secret_id.value)
    if isinstance(secret_id, Pull):
        request = HttpRequest.post(
            "auth/{mount}/role/{role}/secret-id", options.path, options.app_role
        ).with_headers(_token_header(secret_id.initial_token))
        return AuthenticationSteps.from_request(request).map(_data_field("secret_id"))
    if isinstance(secret_id, Wrapped):
        return _unwrap(secret_id.initial_token, "secret_id")
    raise ValueError(f"Unknown SecretId configuration: {secret_id!r}")


def _role_id_body(role_id: str) -> dict[str, str]:
    return {"role_id": role_id}


def _role_and_secret_id_body(pair: tuple[str, str]) -> dict[str, str]:
    role_id, secret_id = pair
    return {"role_id": role_id, "secret_id": secret_id}


class AppRoleAuthentication:
    """Logs in with a RoleId and an optional SecretId."""

    def __init__(self, options: AppRoleOptions, transport: Transport | None = None) -> None:
        if options is None:
            raise ValueError("AppRoleOptions must not be null")
        self.options = options
        self.transport = transport

    @staticmethod
    def create_authentication_steps(options: AppRoleOptions) -> AuthenticationSteps:
        role_id = role_id_steps(options)
        if isinstance(options.secret_id, AbsentSecretId):
            return role_id.map(_role_id_body).login("auth/{mount}/login", options.path)
        return (
            role_id.zip_with(secret_id_steps(options))
            .map(_role_and_secret_id_body)
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

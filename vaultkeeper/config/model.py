from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from ..constants import (
    LEASE_EXPIRY_THRESHOLD_SECONDS,
    LEASE_MIN_RENEWAL_SECONDS,
    VAULT_DEFAULT_HOST,
    VAULT_DEFAULT_PORT,
    VAULT_DEFAULT_SCHEME,
)
from ..lease.requested import LeaseMode, RequestedSecret


class EndpointConfig(BaseModel):
    """Location of the secret-management service."""

    scheme: Literal["http", "https"] = VAULT_DEFAULT_SCHEME  # type: ignore[assignment]
    host: str = Field(default=VAULT_DEFAULT_HOST, min_length=1)
    port: int = Field(default=VAULT_DEFAULT_PORT, ge=1, le=65535)


class AuthenticationConfig(BaseModel):
    """Login method and its credentials.

    Attributes:
        method: One of ``token``, ``approle`` or ``cert``.
        token: Static token for the ``token`` method.
        role_id: AppRole RoleId.
        secret_id: AppRole SecretId (optional).
        path: Mount path override; the method's default mount when None.
    """

    method: Literal["token", "approle", "cert"] = "token"
    token: str | None = None
    role_id: str | None = None
    secret_id: str | None = None
    path: str | None = None

    @model_validator(mode="after")
    def validate_credentials(self) -> AuthenticationConfig:
        if self.method == "token" and not self.token:
            raise ValueError("token authentication requires a token")
        if self.method == "approle" and not self.role_id:
            raise ValueError("approle authentication requires a role_id")
        return self

    def __repr__(self) -> str:
        return f"AuthenticationConfig(method={self.method!r}, path={self.path!r})"


class SecretConfig(BaseModel):
    path: str = Field(min_length=1)
    mode: LeaseMode = LeaseMode.RENEWABLE

    @field_validator("path", mode="before")
    @classmethod
    def validate_path(cls, v: Any) -> str:
        """Strip surrounding slashes and whitespace."""
        if not isinstance(v, str):
            raise ValueError("path must be a string")
        stripped = v.strip().strip("/")
        if not stripped:
            raise ValueError("path must not be empty")
        return stripped

    def to_requested_secret(self) -> RequestedSecret:
        return RequestedSecret(self.path, self.mode)


class LeaseConfig(BaseModel):
    """Timing knobs for renewal and rotation (seconds)."""

    min_renewal: float = Field(default=LEASE_MIN_RENEWAL_SECONDS, ge=0)
    expiry_threshold: float = Field(default=LEASE_EXPIRY_THRESHOLD_SECONDS, gt=0)
    fetch_on_start: bool = True


class VaultkeeperConfig(BaseModel):
    """Root configuration model.

    Attributes:
        endpoint: Service location.
        authentication: Login method.
        secrets: Secrets to keep alive.
        lease: Renewal timing.
        session_renewal: Renew the login token in the background.
    """

    endpoint: EndpointConfig = Field(default_factory=EndpointConfig)
    authentication: AuthenticationConfig
    secrets: list[SecretConfig] = Field(default_factory=list)
    lease: LeaseConfig = Field(default_factory=LeaseConfig)
    session_renewal: bool = True

    @field_validator("secrets")
    @classmethod
    def validate_unique_paths(cls, v: list[SecretConfig]) -> list[SecretConfig]:
        seen: set[str] = set()
        for secret in v:
            if secret.path in seen:
                raise ValueError(f"duplicate secret path {secret.path}")
            seen.add(secret.path)
        return v

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> VaultkeeperConfig:
        return cls.model_validate(dict(data))

    def requested_secrets(self) -> list[RequestedSecret]:
        return [s.to_requested_secret() for s in self.secrets]

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .lease import Lease


class SecretResponse(BaseModel):
    """Parsed body of a secret read or lease operation.

    Attributes:
        data: Secret payload (key/value pairs).
        lease_id: Lease identifier, empty when the secret is not leased.
        lease_duration: Lease or time-to-live duration in seconds.
        renewable: Whether the lease can be renewed.
        auth: Authentication block for login responses.
        warnings: Service warnings attached to the response.
    """

    model_config = ConfigDict(extra="ignore")

    data: dict[str, Any] = Field(default_factory=dict)
    lease_id: str | None = None
    lease_duration: float = 0
    renewable: bool = False
    auth: dict[str, Any] | None = None
    warnings: list[str] | None = None

    @field_validator("data", mode="before")
    @classmethod
    def validate_data(cls, v: Any) -> dict[str, Any]:
        """Treat a null payload as empty."""
        if v is None:
            return {}
        if not isinstance(v, Mapping):
            raise ValueError("data must be an object")
        return dict(v)

    @field_validator("lease_duration", mode="before")
    @classmethod
    def validate_lease_duration(cls, v: Any) -> float:
        if v is None:
            return 0
        return v

    @classmethod
    def from_body(cls, body: Any) -> SecretResponse:
        """Validate a transport body; non-object bodies are rejected."""
        if not isinstance(body, Mapping):
            raise ValueError(f"Unexpected response body type {type(body).__name__}")
        return cls.model_validate(dict(body))

    def to_lease(self) -> Lease:
        if self.lease_id:
            return Lease.of(self.lease_id, self.lease_duration, self.renewable)
        if self.lease_duration > 0:
            return Lease.from_time_to_live(self.lease_duration)
        return Lease.none()

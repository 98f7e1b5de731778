"""Lifecycle events published by the secret lease container."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..support.lease import Lease
from .requested import RequestedSecret


@dataclass(frozen=True, eq=False)
class SecretLeaseEvent:
    requested_secret: RequestedSecret
    lease: Lease


@dataclass(frozen=True, eq=False)
class SecretLeaseCreatedEvent(SecretLeaseEvent):
    """Secret data was fetched, either initially or through rotation."""

    secrets: Mapping[str, Any]


@dataclass(frozen=True, eq=False)
class SecretLeaseRotatedEvent(SecretLeaseCreatedEvent):
    """New secret data replaced the data held under ``previous_lease``."""

    previous_lease: Lease


@dataclass(frozen=True, eq=False)
class SecretLeaseRenewedEvent(SecretLeaseEvent):
    pass


@dataclass(frozen=True, eq=False)
class SecretLeaseExpiredEvent(SecretLeaseEvent):
    """The lease reached its expiry window and is no longer renewed."""


@dataclass(frozen=True, eq=False)
class BeforeSecretLeaseRevocationEvent(SecretLeaseEvent):
    pass


@dataclass(frozen=True, eq=False)
class AfterSecretLeaseRevocationEvent(SecretLeaseEvent):
    """Fired after a revoke attempt, whether or not it succeeded."""


@dataclass(frozen=True, eq=False)
class SecretLeaseErrorEvent(SecretLeaseEvent):
    error: BaseException


__all__ = [
    "SecretLeaseEvent",
    "SecretLeaseCreatedEvent",
    "SecretLeaseRotatedEvent",
    "SecretLeaseRenewedEvent",
    "SecretLeaseExpiredEvent",
    "BeforeSecretLeaseRevocationEvent",
    "AfterSecretLeaseRevocationEvent",
    "SecretLeaseErrorEvent",
]

"""Secret lease tracking, renewal, rotation and revocation."""

from .container import SecretLeaseContainer, SecretState, TrackedSecret
from .events import (
    AfterSecretLeaseRevocationEvent,
    BeforeSecretLeaseRevocationEvent,
    SecretLeaseCreatedEvent,
    SecretLeaseErrorEvent,
    SecretLeaseEvent,
    SecretLeaseExpiredEvent,
    SecretLeaseRenewedEvent,
    SecretLeaseRotatedEvent,
)
from .publisher import EventPublisher
from .requested import LeaseMode, RequestedSecret
from .scheduler import (
    AsyncioTaskScheduler,
    LeaseRenewalScheduler,
    ScheduledHandle,
    TaskScheduler,
    compute_renewal_delay,
    is_expiring,
)

__all__ = [
    "AfterSecretLeaseRevocationEvent",
    "AsyncioTaskScheduler",
    "BeforeSecretLeaseRevocationEvent",
    "EventPublisher",
    "LeaseMode",
    "LeaseRenewalScheduler",
    "RequestedSecret",
    "ScheduledHandle",
    "SecretLeaseContainer",
    "SecretLeaseCreatedEvent",
    "SecretLeaseErrorEvent",
    "SecretLeaseEvent",
    "SecretLeaseExpiredEvent",
    "SecretLeaseRenewedEvent",
    "SecretLeaseRotatedEvent",
    "SecretState",
    "TaskScheduler",
    "TrackedSecret",
    "compute_renewal_delay",
    "is_expiring",
]

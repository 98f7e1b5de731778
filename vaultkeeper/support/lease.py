"""Server-granted lease value type."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Lease:
    """TTL handle for a secret fetch.

    Attributes:
        lease_id: Server lease identifier; None for time-to-live only leases.
        lease_duration: Remaining duration in seconds at issue time.
        renewable: Whether the lease can be renewed by id.
    """

    lease_id: str | None = None
    lease_duration: float = 0
    renewable: bool = False

    @classmethod
    def of(cls, lease_id: str, lease_duration: float, renewable: bool) -> Lease:
        if not lease_id:
            raise ValueError("Lease id must not be empty")
        if lease_duration < 0:
            raise ValueError("Lease duration must not be negative")
        return cls(lease_id, lease_duration, renewable)

    @classmethod
    def from_time_to_live(cls, lease_duration: float) -> Lease:
        """Lease without id: the data expires but cannot be renewed or revoked."""
        if lease_duration < 0:
            raise ValueError("Lease duration must not be negative")
        return cls(None, lease_duration, False)

    @classmethod
    def none(cls) -> Lease:
        return _NO_LEASE

    @property
    def has_lease_id(self) -> bool:
        return bool(self.lease_id)

    @property
    def is_none(self) -> bool:
        return not self.has_lease_id and self.lease_duration <= 0


_NO_LEASE = Lease()

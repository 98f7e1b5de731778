"""Secret lease container.

Tracks requested secrets, renews their leases before expiry, rotates
rotating secrets once their lease can no longer be renewed and revokes
leases on teardown. Every transition is published to the registered
listeners.

Per secret::

    FETCHING -> STABLE | LEASED | FAILED | NOT_FOUND
    LEASED   -> RENEWING -> LEASED | EXPIRED | FAILED
    EXPIRED  -> ROTATING -> STABLE | LEASED | FAILED     (rotating mode only)
    STABLE | LEASED -> REVOKING -> dropped               (remove / destroy)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..constants import LEASE_EXPIRY_THRESHOLD_SECONDS, LEASE_MIN_RENEWAL_SECONDS
from ..errors.handling import log_error
from ..errors.internal import (
    IllegalStateError,
    InternalError,
    LeaseOperationError,
)
from ..support.lease import Lease
from ..support.response import SecretResponse
from ..transport.base import Transport
from ..utils import format_duration
from .events import (
    AfterSecretLeaseRevocationEvent,
    BeforeSecretLeaseRevocationEvent,
    SecretLeaseCreatedEvent,
    SecretLeaseErrorEvent,
    SecretLeaseExpiredEvent,
    SecretLeaseRenewedEvent,
    SecretLeaseRotatedEvent,
)
from .publisher import EventPublisher
from .requested import LeaseMode, RequestedSecret
from .scheduler import (
    AsyncioTaskScheduler,
    LeaseRenewalScheduler,
    TaskScheduler,
    compute_renewal_delay,
    is_expiring,
)


class SecretState(Enum):
    UNREGISTERED = "unregistered"
    FETCHING = "fetching"
    STABLE = "stable"
    LEASED = "leased"
    RENEWING = "renewing"
    EXPIRED = "expired"
    ROTATING = "rotating"
    FAILED = "failed"
    NOT_FOUND = "not_found"
    REVOKING = "revoking"


@dataclass
class TrackedSecret:
    """Container-owned record of one requested secret.

    Attributes:
        requested: The registered path and lease mode.
        scheduler: Holds the single outstanding renew/rotate task.
        lease: Last known lease.
        secrets: Last fetched data snapshot; None until fetched.
        state: Current lifecycle state.
        rotation_interval: Last positive lease duration seen, reused as the
            rotation cadence when a rotation returns no lease.
        lock: Serializes transitions of this secret.
    """

    requested: RequestedSecret
    scheduler: LeaseRenewalScheduler
    lease: Lease = field(default_factory=Lease.none)
    secrets: dict[str, Any] | None = None
    state: SecretState = SecretState.UNREGISTERED
    rotation_interval: float | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class SecretLeaseContainer:
    """Keeps requested secrets and their leases alive.

    Args:
        transport: Transport authenticated with the session token.
        scheduler: Task scheduler; an ``AsyncioTaskScheduler`` by default.
        min_renewal: Lower bound in seconds for any renew/rotate delay.
        expiry_threshold: Safety margin in seconds subtracted from lease durations.
        fetch_on_start: Fetch every secret on ``start()``; otherwise the first
            ``get_secrets()`` call fetches.
    """

    def __init__(
        self,
        transport: Transport,
        scheduler: TaskScheduler | None = None,
        *,
        min_renewal: float = LEASE_MIN_RENEWAL_SECONDS,
        expiry_threshold: float = LEASE_EXPIRY_THRESHOLD_SECONDS,
        fetch_on_start: bool = True,
    ) -> None:
        if transport is None:
            raise TypeError("transport cannot be None")
        if min_renewal < 0:
            raise ValueError("Minimum renewal must not be negative")
        if expiry_threshold < 0:
            raise ValueError("Expiry threshold must not be negative")
        self.transport = transport
        self.scheduler = scheduler or AsyncioTaskScheduler()
        self.min_renewal = min_renewal
        self.expiry_threshold = expiry_threshold
        self.fetch_on_start = fetch_on_start
        self.running = False
        self.secrets: dict[str, TrackedSecret] = {}
        self.publisher = EventPublisher("SecretLeaseContainer")

    # Listener registration -------------------------------------------------

    def add_lease_listener(self, listener: Callable[[Any], Any]) -> None:
        self.publisher.add_listener(listener)

    def remove_lease_listener(self, listener: Callable[[Any], Any]) -> bool:
        return self.publisher.remove_listener(listener)

    def add_error_listener(self, listener: Callable[[SecretLeaseErrorEvent], Any]) -> None:
        self.publisher.add_error_listener(listener)

    def remove_error_listener(self, listener: Callable[[SecretLeaseErrorEvent], Any]) -> bool:
        return self.publisher.remove_error_listener(listener)

    # Registration ----------------------------------------------------------

    async def add_requested_secret(self, requested: RequestedSecret) -> RequestedSecret:
        """Register a secret; a running container fetches it right away.

        Raises:
            ValueError: If the path is already registered with another mode.
        """
        existing = self.secrets.get(requested.path)
        if existing is not None:
            if existing.requested != requested:
                raise ValueError(
                    f"Path {requested.path} already registered as {existing.requested}"
                )
            return existing.requested
        tracked = TrackedSecret(
            requested, LeaseRenewalScheduler(self.scheduler, str(requested))
        )
        self.secrets[requested.path] = tracked
        logging.debug(f"📝 Registered secret {requested}")
        if self.running and self.fetch_on_start:
            await self._start_secret(tracked)
        return requested

    async def add_renewable_secret(self, path: str) -> RequestedSecret:
        return await self.add_requested_secret(RequestedSecret.renewable(path))

    async def add_rotating_secret(self, path: str) -> RequestedSecret:
        return await self.add_requested_secret(RequestedSecret.rotating(path))

    async def remove_requested_secret(self, path: str) -> bool:
        """Stop tracking ``path``, revoking its lease if it holds one."""
        tracked = self.secrets.pop(path.strip("/"), None)
        if tracked is None:
            return False
        async with tracked.lock:
            tracked.scheduler.disable_schedule()
            await self._revoke(tracked)
            tracked.state = SecretState.UNREGISTERED
        return True

    @property
    def requested_secrets(self) -> list[RequestedSecret]:
        return [t.requested for t in self.secrets.values()]

    # Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Start the container; fetches all secrets unless fetching is lazy."""
        if self.running:
            return
        self.running = True
        logging.info(f"▶️ Starting secret lease container secrets={len(self.secrets)}")
        if self.fetch_on_start:
            for tracked in list(self.secrets.values()):
                await self._start_secret(tracked)

    async def stop(self) -> None:
        """Cancel all outstanding tasks without revoking any lease."""
        if not self.running:
            return
        self.running = False
        for tracked in self.secrets.values():
            tracked.scheduler.disable_schedule()
        logging.info("⏹️ Stopped secret lease container")

    async def destroy(self) -> None:
        """Stop, revoke every held lease and drop all tracked secrets."""
        await self.stop()
        tracked_secrets = list(self.secrets.values())
        self.secrets.clear()
        for tracked in tracked_secrets:
            async with tracked.lock:
                await self._revoke(tracked)
                tracked.state = SecretState.UNREGISTERED
        logging.info(f"🧹 Destroyed secret lease container released={len(tracked_secrets)}")

    # Access ----------------------------------------------------------------

    def _tracked(self, path: str) -> TrackedSecret:
        tracked = self.secrets.get(path.strip("/"))
        if tracked is None:
            raise IllegalStateError(f"No secret registered for path {path}")
        return tracked

    async def get_secrets(self, path: str) -> Mapping[str, Any]:
        """Return the current data snapshot of ``path``.

        Raises:
            IllegalStateError: If the path is not registered or was never fetched.
        """
        tracked = self._tracked(path)
        if tracked.secrets is None and not self.fetch_on_start and self.running:
            await self._start_secret(tracked)
        if tracked.secrets is None:
            raise IllegalStateError(f"Secret {path} has not been fetched")
        return tracked.secrets

    def get_lease(self, path: str) -> Lease:
        return self._tracked(path).lease

    def get_state(self, path: str) -> SecretState:
        return self._tracked(path).state

    async def renew(self, path: str) -> bool:
        """Renew the lease of ``path`` now.

        Returns:
            True if the lease was renewed, False if it failed or expired.

        Raises:
            IllegalStateError: If the secret holds no renewable lease.
        """
        tracked = self._tracked(path)
        async with tracked.lock:
            lease = tracked.lease
            if not (lease.has_lease_id and lease.renewable):
                raise IllegalStateError(f"Secret {path} holds no renewable lease")
            return await self._renew_and_reschedule(tracked, lease)

    async def rotate(self, path: str) -> None:
        """Fetch ``path`` again and replace its data snapshot."""
        tracked = self._tracked(path)
        async with tracked.lock:
            tracked.scheduler.disable_schedule()
            await self._rotate(tracked, tracked.lease)

    # Transitions (callers hold tracked.lock unless noted) ------------------

    async def _start_secret(self, tracked: TrackedSecret) -> None:
        async with tracked.lock:
            tracked.state = SecretState.FETCHING
            try:
                response = await self._read(tracked.requested)
            except LeaseOperationError as e:
                tracked.state = SecretState.FAILED
                self._on_error(tracked, Lease.none(), e)
                return
            if response is None:
                tracked.state = SecretState.NOT_FOUND
                logging.warning(f"❔ Secret {tracked.requested.path} not found")
                return
            lease = response.to_lease()
            self._store(tracked, lease, response.data)
            self.publisher.publish(
                SecretLeaseCreatedEvent(tracked.requested, lease, tracked.secrets)
            )
            self._schedule(tracked, after_renewal=False)

    def _store(self, tracked: TrackedSecret, lease: Lease, data: Mapping[str, Any]) -> None:
        tracked.lease = lease
        tracked.secrets = dict(data)
        tracked.state = SecretState.LEASED if lease.has_lease_id else SecretState.STABLE
        if lease.lease_duration > 0:
            tracked.rotation_interval = lease.lease_duration

    def _schedule(self, tracked: TrackedSecret, *, after_renewal: bool) -> None:
        """Decide the next renew/rotate task for the current lease."""
        if not self.running:
            return
        requested = tracked.requested
        lease = tracked.lease
        if requested.mode is LeaseMode.NONE or lease.is_none:
            return
        renewable = lease.has_lease_id and lease.renewable
        if requested.mode is LeaseMode.RENEWABLE and not renewable:
            logging.debug(f"🔒 Secret {requested.path} lease is not renewable")
            return

        if is_expiring(lease.lease_duration, self.expiry_threshold):
            self._on_expired(tracked, lease)
            if requested.mode is LeaseMode.ROTATING and not after_renewal:
                # Rotation never runs sooner than min_renewal.
                tracked.scheduler.schedule(
                    lease, self._make_action(tracked, self._rotate), self.min_renewal
                )
            return

        delay = compute_renewal_delay(
            lease.lease_duration, self.min_renewal, self.expiry_threshold
        )
        if renewable:
            action = self._make_action(tracked, self._renew_and_reschedule)
        else:
            action = self._make_action(tracked, self._rotate)
        tracked.scheduler.schedule(lease, action, delay)
        logging.debug(
            f"⏰ Secret {requested.path} next {'renewal' if renewable else 'rotation'} in {format_duration(delay)}"
        )

    def _make_action(
        self,
        tracked: TrackedSecret,
        transition: Callable[[TrackedSecret, Lease], Awaitable[Any]],
    ) -> Callable[[Lease], Awaitable[None]]:
        async def action(lease: Lease) -> None:
            async with tracked.lock:
                if not self.running or tracked.lease is not lease:
                    return
                await transition(tracked, lease)

        return action

    async def _renew_and_reschedule(self, tracked: TrackedSecret, lease: Lease) -> bool:
        tracked.state = SecretState.RENEWING
        try:
            renewed = await self._do_renew(lease)
        except LeaseOperationError as e:
            tracked.state = SecretState.FAILED
            tracked.scheduler.disable_schedule()
            self._on_error(tracked, lease, e)
            return False

        tracked.lease = renewed
        tracked.state = SecretState.LEASED
        self.publisher.publish(SecretLeaseRenewedEvent(tracked.requested, renewed))
        logging.info(
            f"🔄 Renewed lease for {tracked.requested.path} ({format_duration(renewed.lease_duration)} remaining)"
        )

        if is_expiring(renewed.lease_duration, self.expiry_threshold):
            if tracked.requested.mode is LeaseMode.ROTATING:
                await self._rotate(tracked, renewed)
            else:
                self._on_expired(tracked, renewed)
            return False

        self._schedule(tracked, after_renewal=True)
        return True

    def _on_expired(self, tracked: TrackedSecret, lease: Lease) -> None:
        tracked.state = SecretState.EXPIRED
        tracked.scheduler.disable_schedule()
        logging.warning(f"⌛ Lease for {tracked.requested.path} expired")
        self.publisher.publish(SecretLeaseExpiredEvent(tracked.requested, lease))

    async def _rotate(self, tracked: TrackedSecret, previous: Lease) -> None:
        expired_published = tracked.state is SecretState.EXPIRED
        tracked.state = SecretState.ROTATING
        try:
            response = await self._read(tracked.requested)
        except LeaseOperationError as e:
            tracked.state = SecretState.FAILED
            self._on_error(tracked, previous, e)
            return
        if response is None:
            tracked.state = SecretState.NOT_FOUND
            logging.warning(f"❔ Secret {tracked.requested.path} not found during rotation")
            return

        lease = response.to_lease()
        if not expired_published:
            self.publisher.publish(SecretLeaseExpiredEvent(tracked.requested, previous))
        self._store(tracked, lease, response.data)
        self.publisher.publish(
            SecretLeaseRotatedEvent(tracked.requested, lease, tracked.secrets, previous)
        )
        logging.info(f"🔁 Rotated secret {tracked.requested.path}")

        if lease.is_none:
            self._schedule_fixed_rotation(tracked)
        else:
            self._schedule(tracked, after_renewal=False)

    def _schedule_fixed_rotation(self, tracked: TrackedSecret) -> None:
        interval = tracked.rotation_interval
        if not self.running or interval is None:
            return
        if tracked.requested.mode is not LeaseMode.ROTATING:
            return
        delay = compute_renewal_delay(interval, self.min_renewal, self.expiry_threshold)
        tracked.scheduler.schedule(
            tracked.lease, self._make_action(tracked, self._rotate), delay
        )

    async def _revoke(self, tracked: TrackedSecret) -> None:
        lease = tracked.lease
        if not lease.has_lease_id:
            return
        tracked.state = SecretState.REVOKING
        self.publisher.publish(BeforeSecretLeaseRevocationEvent(tracked.requested, lease))
        try:
            await self._do_revoke(lease)
            logging.info(f"🗑️ Revoked lease for {tracked.requested.path}")
        except LeaseOperationError as e:
            log_error("Cannot revoke lease", e, {"path": tracked.requested.path})
        self.publisher.publish(AfterSecretLeaseRevocationEvent(tracked.requested, lease))

    def _on_error(self, tracked: TrackedSecret, lease: Lease, error: BaseException) -> None:
        log_error(
            f"Lease operation failed for {tracked.requested.path}",
            error,
            {"mode": tracked.requested.mode.value},
        )
        self.publisher.publish_error(SecretLeaseErrorEvent(tracked.requested, lease, error))

    # Service calls (no lock requirements) -----------------------------------

    async def _read(self, requested: RequestedSecret) -> SecretResponse | None:
        """Read a secret; None when the service reports it as absent.

        Raises:
            LeaseOperationError: On transport or session login failures, non-2xx
                responses or malformed bodies.
        """
        try:
            response = await self.transport.send("GET", requested.path)
        except InternalError as e:
            raise LeaseOperationError(
                f"Cannot read secret {requested.path}: {e}", operation="read"
            ) from e
        if response.status == 404:
            return None
        if not response.is_success:
            raise LeaseOperationError(
                f"Cannot read secret {requested.path}: Status {response.status} {response.body}",
                operation="read",
                status=response.status,
            )
        try:
            return SecretResponse.from_body(response.body)
        except ValueError as e:
            raise LeaseOperationError(
                f"Malformed response for secret {requested.path}: {e}",
                operation="read",
                status=response.status,
            ) from e

    async def _do_renew(self, lease: Lease) -> Lease:
        body = {"lease_id": lease.lease_id, "increment": int(lease.lease_duration)}
        try:
            response = await self.transport.send("PUT", "sys/leases/renew", body=body)
        except InternalError as e:
            raise LeaseOperationError(
                f"Cannot renew lease: {e}", operation="renew", lease=lease
            ) from e
        if not response.is_success:
            raise LeaseOperationError(
                f"Cannot renew lease: Status {response.status} {response.body}",
                operation="renew",
                lease=lease,
                status=response.status,
            )
        try:
            parsed = SecretResponse.from_body(response.body)
        except ValueError as e:
            raise LeaseOperationError(
                f"Malformed lease renewal response: {e}",
                operation="renew",
                lease=lease,
                status=response.status,
            ) from e
        return Lease.of(
            parsed.lease_id or lease.lease_id, parsed.lease_duration, parsed.renewable
        )

    async def _do_revoke(self, lease: Lease) -> None:
        try:
            response = await self.transport.send(
                "PUT", "sys/leases/revoke", body={"lease_id": lease.lease_id}
            )
        except InternalError as e:
            raise LeaseOperationError(
                f"Cannot revoke lease: {e}", operation="revoke", lease=lease
            ) from e
        if not response.is_success:
            raise LeaseOperationError(
                f"Cannot revoke lease: Status {response.status} {response.body}",
                operation="revoke",
                lease=lease,
                status=response.status,
            )

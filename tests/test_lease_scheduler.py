"""Tests for vaultkeeper/lease/scheduler.py."""

import asyncio

import pytest

from tests.fixtures.transport_fixtures import ManualTaskScheduler
from vaultkeeper.lease.scheduler import (
    AsyncioTaskScheduler,
    LeaseRenewalScheduler,
    compute_renewal_delay,
    is_expiring,
)
from vaultkeeper.support.lease import Lease


class TestRenewalTiming:
    def test_delay_is_duration_minus_threshold(self):
        assert compute_renewal_delay(100, 2, 3) == 97

    def test_delay_floored_at_min_renewal(self):
        assert compute_renewal_delay(4, 10, 3) == 10

    def test_expiring_boundary_is_inclusive(self):
        assert is_expiring(3, 3)
        assert is_expiring(2, 3)
        assert not is_expiring(4, 3)


class TestLeaseRenewalScheduler:
    """Test suite for the single-task-per-entity scheduler."""

    def setup_method(self):
        self.tasks = ManualTaskScheduler()
        self.scheduler = LeaseRenewalScheduler(self.tasks, "test")
        self.fired = []

    async def _record(self, lease):
        self.fired.append(lease)

    @pytest.mark.asyncio
    async def test_schedule_runs_action_with_lease(self):
        # Arrange
        lease = Lease.of("lease-1", 100, True)

        # Act
        self.scheduler.schedule(lease, self._record, 97)
        await self.tasks.fire()

        # Assert
        assert self.fired == [lease]
        assert self.tasks.handles[0].delay == 97
        assert not self.scheduler.is_scheduled

    def test_rescheduling_cancels_previous_task(self):
        # Arrange
        first = Lease.of("lease-1", 100, True)
        second = Lease.of("lease-2", 100, True)

        # Act
        self.scheduler.schedule(first, self._record, 10)
        self.scheduler.schedule(second, self._record, 20)

        # Assert
        assert self.tasks.handles[0].cancelled()
        assert self.tasks.pending == [self.tasks.handles[1]]
        assert self.scheduler.lease is second
        assert self.scheduler.is_scheduled

    @pytest.mark.asyncio
    async def test_stale_task_is_skipped(self):
        first = Lease.of("lease-1", 100, True)
        self.scheduler.schedule(first, self._record, 10)
        stale = self.tasks.handles[0]
        self.scheduler.schedule(Lease.of("lease-2", 100, True), self._record, 10)

        await self.tasks.fire(stale)

        assert self.fired == []

    @pytest.mark.asyncio
    async def test_disable_schedule_forgets_lease(self):
        lease = Lease.of("lease-1", 100, True)
        self.scheduler.schedule(lease, self._record, 10)
        handle = self.tasks.handles[0]

        self.scheduler.disable_schedule()
        await self.tasks.fire(handle)

        assert handle.cancelled()
        assert self.scheduler.lease is None
        assert self.fired == []


class TestAsyncioTaskScheduler:
    """Test suite for the event-loop backed scheduler."""

    @pytest.mark.asyncio
    async def test_action_runs_after_delay(self):
        # Arrange
        scheduler = AsyncioTaskScheduler()
        done = asyncio.Event()

        async def action():
            done.set()

        # Act
        scheduler.schedule(action, 0.01)
        await asyncio.wait_for(done.wait(), timeout=1)

        # Assert
        assert done.is_set()

    @pytest.mark.asyncio
    async def test_cancelled_action_never_runs(self):
        scheduler = AsyncioTaskScheduler()
        ran = []

        async def action():
            ran.append(True)

        handle = scheduler.schedule(action, 0.01)
        handle.cancel()
        await asyncio.sleep(0.05)

        assert ran == []
        assert handle.cancelled()
        assert scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_failing_action_is_contained(self):
        scheduler = AsyncioTaskScheduler()

        async def action():
            raise RuntimeError("renewal bug")

        scheduler.schedule(action, 0)
        await asyncio.sleep(0.02)

        assert scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_shutdown_cancels_outstanding_tasks(self):
        scheduler = AsyncioTaskScheduler()
        ran = []

        async def action():
            ran.append(True)

        scheduler.schedule(action, 60)
        scheduler.schedule(action, 60)
        assert scheduler.pending == 2

        await scheduler.shutdown()

        assert scheduler.pending == 0
        assert ran == []

"""One-shot task scheduling for lease renewal and rotation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from ..support.lease import Lease
from ..utils import format_duration

Action = Callable[[], Awaitable[None]]


@runtime_checkable
class ScheduledHandle(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


@runtime_checkable
class TaskScheduler(Protocol):
    """Runs an action once after ``delay`` seconds."""

    def schedule(self, action: Action, delay: float) -> ScheduledHandle: ...


def compute_renewal_delay(
    lease_duration: float, min_renewal: float, expiry_threshold: float
) -> float:
    """Seconds until a lease should be renewed or rotated.

    The delay is the lease duration minus the expiry threshold, floored at
    ``min_renewal``.
    """
    return max(min_renewal, lease_duration - expiry_threshold)


def is_expiring(lease_duration: float, expiry_threshold: float) -> bool:
    """Whether a duration is already inside the expiry window."""
    return lease_duration <= expiry_threshold


class _TaskHandle:
    """Cancellation handle for ``AsyncioTaskScheduler`` tasks.

    Cancelling before the action started prevents it from running; an action
    that is already executing runs to completion.
    """

    def __init__(self) -> None:
        self.task: asyncio.Task[Any] | None = None
        self.started = False
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        if self.task is not None and not self.started:
            self.task.cancel()

    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioTaskScheduler:
    """Schedules actions as retained asyncio tasks on the running loop."""

    def __init__(self) -> None:
        # Retained until done to prevent premature GC.
        self._tasks: set[asyncio.Task[Any]] = set()

    def schedule(self, action: Action, delay: float) -> ScheduledHandle:
        handle = _TaskHandle()
        task = asyncio.create_task(self._run(action, max(0.0, delay), handle))
        handle.task = task
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return handle

    async def _run(self, action: Action, delay: float, handle: _TaskHandle) -> None:
        await asyncio.sleep(delay)
        if handle.cancelled():
            return
        handle.started = True
        await action()

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logging.error(
                f"💥 Scheduled task failed error={str(exc)} type={type(exc).__name__}"
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def shutdown(self) -> None:
        """Cancel every task that has not finished yet."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logging.debug(f"🛑 Task scheduler shut down cancelled={len(tasks)}")


class LeaseRenewalScheduler:
    """Holds the single outstanding task of one tracked entity.

    Scheduling replaces (and cancels) the previous task. When a task fires for
    a lease that is no longer the current one it does nothing.
    """

    def __init__(self, scheduler: TaskScheduler, name: str = "") -> None:
        self.scheduler = scheduler
        self.name = name
        self._lease: Lease | None = None
        self._handle: ScheduledHandle | None = None

    @property
    def lease(self) -> Lease | None:
        return self._lease

    @property
    def is_scheduled(self) -> bool:
        return self._handle is not None and not self._handle.cancelled()

    def schedule(
        self,
        lease: Lease,
        action: Callable[[Lease], Awaitable[None]],
        delay: float,
    ) -> None:
        """Schedule ``action(lease)`` after ``delay`` seconds."""
        self._cancel_handle()
        self._lease = lease

        async def fire() -> None:
            if self._lease is not lease:
                logging.debug(f"⏭️ Skipping stale scheduled task name={self.name}")
                return
            self._handle = None
            await action(lease)

        logging.debug(
            f"⏰ Scheduling task name={self.name} in {format_duration(int(delay))} ({delay:.1f}s)"
        )
        self._handle = self.scheduler.schedule(fire, delay)

    def disable_schedule(self) -> None:
        """Cancel the outstanding task and forget the current lease."""
        self._cancel_handle()
        self._lease = None

    def _cancel_handle(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

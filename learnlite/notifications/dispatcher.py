import asyncio
import contextlib
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from learnlite.core.config import NotificationSettings
from learnlite.core.exceptions import StoreError
from learnlite.notifications.event_store import ClaimedBatch, OutboxEventStore
from learnlite.notifications.sinks import NotificationSink

log = logging.getLogger(__name__)


class DispatcherState(str, Enum):
    STOPPED = "stopped"
    IDLE = "idle"
    POLLING = "polling"  # Claiming a batch
    DELIVERING = "delivering"  # Handing claimed events to the sink
    COMMITTING = "committing"  # Marking the batch processed and committing


class NotificationDispatcher:
    """
    Turns unprocessed outbox rows into delivered notifications.

    One cycle claims a bounded batch, delivers every event in created_at order,
    then marks the whole batch processed and commits. Any failure aborts the
    batch, which is redelivered in full on a later cycle (at-least-once).
    At most one cycle is in flight per instance; ticks that arrive while one is
    running are dropped, not queued.
    """

    def __init__(self, settings: NotificationSettings, store: OutboxEventStore, sink: NotificationSink):
        self.settings = settings
        self._store = store
        self._sink = sink

        self._state = DispatcherState.STOPPED
        self._state_changed = asyncio.Condition()
        self._timer: Optional[asyncio.Task] = None
        self._cycle: Optional[asyncio.Task] = None

        self._last_run_at: Optional[datetime] = None
        self._pending_estimate = 0

    # ----------- Read-only view (used by the status reporter) -----------

    @property
    def state(self) -> DispatcherState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is not DispatcherState.STOPPED

    @property
    def last_run_at(self) -> Optional[datetime]:
        return self._last_run_at

    @property
    def pending_estimate(self) -> int:
        return self._pending_estimate

    @property
    def sink_name(self) -> str:
        return self._sink.name

    # ----------- Lifecycle -----------

    async def start(self, schedule: bool = True) -> None:
        """
        Validates the sink and begins ticking. Configuration errors propagate
        before any cycle runs. With schedule=False no timer is started and
        cycles only run through run_cycle().
        """
        if self._state is not DispatcherState.STOPPED:
            log.warning("Notifications dispatcher already running")
            return

        self._sink.prepare()

        self._state = DispatcherState.IDLE
        if schedule:
            self._timer = asyncio.create_task(self._tick_forever(), name="notifications-timer")
        log.info(
            f"Notifications dispatcher: enabled, sink={self.sink_name}, "
            f"interval={self.settings.poll_interval_ms}ms, batch_size={self.settings.batch_size}"
        )

    async def stop(self) -> None:
        """
        Stops accepting ticks, then waits for the in-flight cycle (if any) to
        finish. Never interrupts a cycle.
        """
        if self._state is DispatcherState.STOPPED:
            return

        if self._timer is not None:
            self._timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._timer
            self._timer = None

        async with self._state_changed:
            await self._state_changed.wait_for(lambda: self._state is DispatcherState.IDLE)
            self._state = DispatcherState.STOPPED

        if self._cycle is not None:
            # A tick fired just before the timer was cancelled; it sees STOPPED and exits
            await self._cycle
            self._cycle = None

        log.info("Notifications dispatcher stopped")

    async def _tick_forever(self) -> None:
        interval = self.settings.poll_interval
        while True:
            self._tick()
            await asyncio.sleep(interval)

    def _tick(self) -> None:
        if self._state is not DispatcherState.IDLE:
            log.debug(f"Skipping tick, previous cycle still {self._state.value}")
            return
        self._cycle = asyncio.create_task(self.run_cycle(), name="notifications-cycle")

    # ----------- One poll/claim/deliver/commit cycle -----------

    async def run_cycle(self) -> Optional[int]:
        """
        Runs one cycle. Returns the number of events processed (0 when the
        outbox was empty or the batch was aborted), or None when the cycle was
        skipped because another one is in flight or the dispatcher is stopped.
        Per-cycle errors are logged here and never propagate.
        """
        if self._state is not DispatcherState.IDLE:
            log.debug(f"Cycle skipped, dispatcher is {self._state.value}")
            return None

        self._state = DispatcherState.POLLING
        batch: Optional[ClaimedBatch] = None
        try:
            batch = await self._store.claim_batch(self.settings.batch_size)

            if batch.events:
                self._state = DispatcherState.DELIVERING
                for event in batch.events:
                    await self._sink.deliver(event)

                self._state = DispatcherState.COMMITTING
                await self._store.mark_processed(batch, batch.claimed_ids)
                await self._store.commit(batch)
                log.info(f"Processed {len(batch)} notification event(s)")
        except Exception:
            log.exception("Error processing notification events, batch rolled back")
            return 0
        else:
            self._last_run_at = datetime.now(timezone.utc)
            await self._refresh_pending_estimate()
            return len(batch)
        finally:
            # Also reached on cancellation: a claimed batch never outlives its cycle
            if batch is not None and not batch.closed:
                await self._abort(batch)
            await self._enter_idle()

    async def _abort(self, batch: ClaimedBatch) -> None:
        try:
            await self._store.abort(batch)
        except StoreError:
            log.exception("Failed to roll back notification batch")

    async def _refresh_pending_estimate(self) -> None:
        # Best effort: a stale estimate must never abort a committed cycle
        try:
            self._pending_estimate = await self._store.count_unprocessed()
        except Exception as e:
            log.warning(f"Failed to update pending notification count: {e}")

    async def _enter_idle(self) -> None:
        async with self._state_changed:
            self._state = DispatcherState.IDLE
            self._state_changed.notify_all()

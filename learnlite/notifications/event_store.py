import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, FrozenSet, Iterable, Optional, Tuple

from sqlalchemy import Select, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learnlite.core.exceptions import ClaimViolationError, StoreError
from learnlite.models.outbox import OutboxEvent

log = logging.getLogger(__name__)


def claim_query(limit: int) -> Select:
    """Oldest unprocessed rows first; rows locked by another claim are skipped, not waited on."""
    return (
        select(OutboxEvent.id, OutboxEvent.topic, OutboxEvent.payload, OutboxEvent.created_at)
        .where(OutboxEvent.processed.is_(False))
        .order_by(OutboxEvent.created_at.asc(), OutboxEvent.id.asc())
        .limit(limit)
        .with_for_update(skip_locked=True)
    )


@dataclass(frozen=True)
class ClaimedEvent:
    """Read-only snapshot of a claimed outbox row, safe to hand to a sink."""
    id: int
    topic: str
    payload: Any
    created_at: datetime


@dataclass(eq=False)
class ClaimedBatch:
    """
    Handle to the open unit of work a batch was claimed in.
    The row locks live as long as the session's transaction.
    """
    events: Tuple[ClaimedEvent, ...]
    session: Optional[AsyncSession] = field(default=None, repr=False)

    @property
    def claimed_ids(self) -> FrozenSet[int]:
        return frozenset(event.id for event in self.events)

    @property
    def closed(self) -> bool:
        return self.session is None

    def __len__(self) -> int:
        return len(self.events)


class OutboxEventStore:
    """
    Query boundary over the outbox_events table.
    Every write goes through a ClaimedBatch unit of work.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def claim_batch(self, limit: int) -> ClaimedBatch:
        """
        Opens a unit of work and locks up to `limit` unprocessed rows, oldest first.
        Rows locked by a concurrent claim are skipped instead of waited on.
        An empty claim is committed and closed before returning.
        """
        if limit <= 0:
            raise ValueError(f"Batch limit must be positive, got {limit}")

        session = self._session_factory()
        events: Tuple[ClaimedEvent, ...] = ()
        try:
            result = await session.execute(claim_query(limit))
            events = tuple(ClaimedEvent(*row) for row in result.all())
            if not events:
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to claim outbox events: {e}") from e
        finally:
            # Only a non-empty claim keeps its session; close() rolls back anything still open
            if not events:
                await session.close()

        if not events:
            return ClaimedBatch(events=())
        log.debug(f"Claimed {len(events)} outbox event(s).")
        return ClaimedBatch(events=events, session=session)

    async def mark_processed(self, batch: ClaimedBatch, ids: Iterable[int]) -> int:
        """
        Flags the given ids processed within the batch's unit of work.
        Only rows still unprocessed are touched, so processed_at is written once.
        Returns the number of rows changed.
        """
        ids = frozenset(ids)
        if batch.closed:
            raise ClaimViolationError("Cannot mark events processed: unit of work is already closed.")

        foreign = ids - batch.claimed_ids
        if foreign:
            raise ClaimViolationError(f"Events {sorted(foreign)} were not claimed in this unit of work.")
        if not ids:
            return 0

        try:
            result = await batch.session.execute(
                update(OutboxEvent)
                .where(OutboxEvent.id.in_(ids), OutboxEvent.processed.is_(False))
                .values(processed=True, processed_at=func.now())
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to mark outbox events processed: {e}") from e
        return result.rowcount

    async def commit(self, batch: ClaimedBatch) -> None:
        if batch.closed:
            raise StoreError("Cannot commit: unit of work is already closed.")

        session, batch.session = batch.session, None
        try:
            await session.commit()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to commit outbox batch: {e}") from e
        finally:
            await session.close()

    async def abort(self, batch: ClaimedBatch) -> None:
        """Rolls back every write of the batch and releases its row locks. No-op once closed."""
        if batch.closed:
            return

        session, batch.session = batch.session, None
        try:
            await session.rollback()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to roll back outbox batch: {e}") from e
        finally:
            await session.close()

    async def count_unprocessed(self) -> int:
        """Point-in-time count for status reporting. Not part of the delivery path."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(func.count()).select_from(OutboxEvent).where(OutboxEvent.processed.is_(False))
                )
                return int(result.scalar_one())
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to count unprocessed outbox events: {e}") from e

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import select

from learnlite.core.config import NotificationSettings
from learnlite.core.db import close_db, create_engine, create_session_factory, init_db
from learnlite.events.outbox_utility import create_outbox_event
from learnlite.models.outbox import OutboxEvent
from learnlite.notifications.event_store import OutboxEventStore

BASE_TIME = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite database file per test."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'outbox.db'}")
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return OutboxEventStore(session_factory)


@pytest.fixture
def settings(tmp_path):
    return NotificationSettings(
        enabled=True,
        file_path=tmp_path / "var" / "notifications.log",
        poll_interval_ms=5000,
        batch_size=50,
    )


@pytest.fixture
def insert_events(session_factory):
    """
    Inserts (topic, payload) pairs in one producer transaction.
    Offsets in seconds from BASE_TIME may be given to control created_at.
    """
    async def _insert(events, offsets=None):
        ids = []
        async with session_factory() as session:
            async with session.begin():
                for index, (topic, payload) in enumerate(events):
                    offset = offsets[index] if offsets is not None else index
                    event = await create_outbox_event(
                        session, topic, payload, created_at=BASE_TIME + timedelta(seconds=offset)
                    )
                    ids.append(event.id)
        return ids
    return _insert


@pytest.fixture
def fetch_rows(session_factory):
    """Reads outbox rows as {id: (processed, processed_at)}."""
    async def _fetch():
        async with session_factory() as session:
            result = await session.execute(
                select(OutboxEvent.id, OutboxEvent.processed, OutboxEvent.processed_at).order_by(OutboxEvent.id)
            )
            return {row.id: (row.processed, row.processed_at) for row in result}
    return _fetch

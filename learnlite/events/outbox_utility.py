from datetime import datetime
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from learnlite.models.outbox import OutboxEvent

MAX_TOPIC_LENGTH = 100


async def create_outbox_event(
    session: AsyncSession,
    topic: str,
    payload: Any,
    created_at: Optional[datetime] = None,
) -> OutboxEvent:
    """
    Adds a new Outbox event to the caller's session (transaction) and flushes it to get an id.

    CRITICAL: Nothing is committed here. The event only exists if the caller's
    business transaction commits, and vice versa.
    """
    if not isinstance(topic, str) or not topic.strip():
        raise ValueError("Outbox event topic must be a non-empty string.")
    if len(topic) > MAX_TOPIC_LENGTH:
        raise ValueError(f"Outbox event topic exceeds {MAX_TOPIC_LENGTH} characters: {topic[:20]}...")

    event = OutboxEvent(topic=topic, payload=payload, processed=False, processed_at=None)
    if created_at is not None:
        event.created_at = created_at

    session.add(event)
    await session.flush()
    return event

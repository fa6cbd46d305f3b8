# scripts/seed_data.py
import asyncio
import logging

from learnlite.core.config import DB_URL, LOG_LEVEL
from learnlite.core.db import close_db, create_engine, create_session_factory, init_db
from learnlite.core.logging import configure_logging
from learnlite.events.outbox_utility import create_outbox_event

log = logging.getLogger("seed_data")

DEMO_EVENTS = [
    ("enrollment.created", {"enrollment_id": 1, "user_id": 2, "course_id": 1}),
    ("cert.issued", {"certificate_id": 1, "user_id": 2, "course_id": 1, "code": "CERT-DEMO-0001"}),
]


async def seed(session_factory) -> None:
    # One transaction, like a business change emitting several events
    async with session_factory() as session:
        async with session.begin():
            for topic, payload in DEMO_EVENTS:
                event = await create_outbox_event(session, topic, payload)
                log.info(f"Outbox event {event.id} queued: {topic}")


async def main():
    configure_logging(LOG_LEVEL)
    engine = create_engine(DB_URL)
    try:
        await init_db(engine)
        await seed(create_session_factory(engine))
    finally:
        await close_db(engine)


if __name__ == "__main__":
    asyncio.run(main())

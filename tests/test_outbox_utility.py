import pytest

from learnlite.events.outbox_utility import create_outbox_event
from learnlite.scripts.seed_data import DEMO_EVENTS, seed


class BusinessFailure(Exception):
    pass


@pytest.mark.asyncio
async def test_event_commits_with_business_transaction(session_factory, store):
    async with session_factory() as session:
        async with session.begin():
            event = await create_outbox_event(session, "enrollment.created", {"enrollment_id": 4})
            assert event.id is not None
            assert event.processed is False

    assert await store.count_unprocessed() == 1


@pytest.mark.asyncio
async def test_event_rolls_back_with_business_transaction(session_factory, store):
    with pytest.raises(BusinessFailure):
        async with session_factory() as session:
            async with session.begin():
                await create_outbox_event(session, "enrollment.created", {"enrollment_id": 4})
                raise BusinessFailure("enrollment rejected")

    assert await store.count_unprocessed() == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("topic", ["", "   ", "x" * 101])
async def test_invalid_topic_rejected(session_factory, topic):
    async with session_factory() as session:
        with pytest.raises(ValueError):
            await create_outbox_event(session, topic, {})


@pytest.mark.asyncio
async def test_seed_queues_demo_events(session_factory, store):
    await seed(session_factory)

    batch = await store.claim_batch(50)
    assert [e.topic for e in batch.events] == [topic for topic, _ in DEMO_EVENTS]
    await store.abort(batch)

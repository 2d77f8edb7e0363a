import asyncio

import pytest

from newsletter_service.delivery.infrastructure.queue_repository import DeliveryQueueRepository
from newsletter_service.idempotency import IdempotencyKey, IdempotencyStore, Started
from newsletter_service.identity.infrastructure.user_repository import UserRepository
from newsletter_service.models import Base
from newsletter_service.newsletters.infrastructure.issue_repository import NewsletterIssueRepository
from newsletter_service.shared.database import DatabaseSessionFactory
from newsletter_service.shared.exceptions import IdempotencyInProgressError


@pytest.fixture
async def pg_database(pg_database_url):
    db = DatabaseSessionFactory(pg_database_url)
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield db
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await db.dispose()


async def test_skip_locked_hands_different_tasks_to_concurrent_workers(pg_database):
    async with pg_database.get_session() as session:
        issue = await NewsletterIssueRepository(session).add("T", "t", "<p>t</p>")
        await DeliveryQueueRepository(session).enqueue(issue.id, ["a@example.com", "b@example.com"])
        await session.commit()

    async with pg_database.get_session() as first, pg_database.get_session() as second:
        task_a = await DeliveryQueueRepository(first).claim_next()
        task_b = await DeliveryQueueRepository(second).claim_next()
        assert task_a is not None and task_b is not None
        assert task_a.id != task_b.id
        await first.rollback()
        await second.rollback()


async def test_same_key_waits_for_the_first_request(pg_database):
    async with pg_database.get_session() as session:
        user_id = await UserRepository(session).add("admin", "$argon2id$placeholder")
        await session.commit()

    store = IdempotencyStore(pg_database)
    key = IdempotencyKey.parse("race")
    first = await store.try_begin(user_id, key)
    assert isinstance(first, Started)

    # The second insert blocks on the unique index until the first commits
    second = asyncio.create_task(store.try_begin(user_id, key))
    await asyncio.sleep(0.2)
    assert not second.done()
    async with first:
        await first.session.commit()

    with pytest.raises(IdempotencyInProgressError):
        await second

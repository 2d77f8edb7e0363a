import asyncio

from sqlalchemy import func, select

from newsletter_service.delivery.infrastructure.models import IssueDeliveryQueueModel
from newsletter_service.newsletters.infrastructure.models import NewsletterIssueModel
from newsletter_service.subscriptions.domain import SubscriptionStatus

PUBLISHED = "The newsletter issue has been published!"


def newsletter_form(key="abc123"):
    return {
        "title": "T",
        "text_content": "t",
        "html_content": "<p>t</p>",
        "idempotency_key": key,
    }


async def count(database, model) -> int:
    async with database.get_session() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


def comparable_headers(response):
    return [(k, v) for k, v in response.headers.multi_items() if k != "x-request-id"]


async def test_publish_redirects_flashes_and_delivers_to_every_confirmed_subscriber(
    logged_in_client, add_subscriber, worker, email_client
):
    for i in range(3):
        await add_subscriber(f"reader{i}@example.com")

    r = await logged_in_client.post("/admin/newsletters", data=newsletter_form())
    assert r.status_code == 303
    assert r.headers["location"] == "/admin/newsletters"

    page = await logged_in_client.get("/admin/newsletters")
    assert PUBLISHED in page.text
    # one-shot
    page = await logged_in_client.get("/admin/newsletters")
    assert PUBLISHED not in page.text

    await worker.drain()
    assert sorted(e.recipient for e in email_client.sent) == [
        "reader0@example.com",
        "reader1@example.com",
        "reader2@example.com",
    ]
    assert {e.subject for e in email_client.sent} == {"T"}


async def test_same_request_twice_is_processed_once_and_replayed_verbatim(
    logged_in_client, add_subscriber, database, worker, email_client
):
    await add_subscriber("reader@example.com")

    first = await logged_in_client.post("/admin/newsletters", data=newsletter_form())
    second = await logged_in_client.post("/admin/newsletters", data=newsletter_form())

    assert first.status_code == second.status_code == 303
    assert first.content == second.content
    assert comparable_headers(first) == comparable_headers(second)

    assert await count(database, NewsletterIssueModel) == 1
    assert await count(database, IssueDeliveryQueueModel) == 1

    await worker.drain()
    assert [e.recipient for e in email_client.sent] == ["reader@example.com"]


async def test_one_task_per_confirmed_subscriber(logged_in_client, add_subscriber, database):
    for i in range(5):
        await add_subscriber(f"confirmed{i}@example.com")
    for i in range(2):
        await add_subscriber(f"pending{i}@example.com", status=SubscriptionStatus.PENDING_CONFIRMATION)

    r = await logged_in_client.post("/admin/newsletters", data=newsletter_form("n-subscribers"))
    assert r.status_code == 303

    async with database.get_session() as session:
        emails = (await session.execute(select(IssueDeliveryQueueModel.subscriber_email))).scalars().all()
    assert sorted(emails) == [f"confirmed{i}@example.com" for i in range(5)]


async def test_concurrent_requests_with_the_same_key_enqueue_once(
    logged_in_client, add_subscriber, database, worker, email_client
):
    for i in range(3):
        await add_subscriber(f"reader{i}@example.com")

    responses = await asyncio.gather(
        logged_in_client.post("/admin/newsletters", data=newsletter_form("same-key")),
        logged_in_client.post("/admin/newsletters", data=newsletter_form("same-key")),
    )

    # the second insert waits on the first transaction, then replays its response
    first, second = responses
    assert [first.status_code, second.status_code] == [303, 303]
    assert first.content == second.content
    assert comparable_headers(first) == comparable_headers(second)
    assert await count(database, NewsletterIssueModel) == 1
    assert await count(database, IssueDeliveryQueueModel) == 3

    await worker.drain()
    assert sorted(email_client.attempts) == [f"reader{i}@example.com" for i in range(3)]


async def test_empty_idempotency_key_is_rejected_without_side_effects(
    logged_in_client, add_subscriber, database, worker, email_client
):
    await add_subscriber("reader@example.com")

    r = await logged_in_client.post("/admin/newsletters", data=newsletter_form(key=""))

    assert r.status_code == 400
    assert r.json()["code"] == "invalid_idempotency_key"
    assert await count(database, NewsletterIssueModel) == 0
    await worker.drain()
    assert email_client.attempts == []


async def test_too_long_idempotency_key_is_rejected(logged_in_client, database):
    r = await logged_in_client.post("/admin/newsletters", data=newsletter_form(key="k" * 51))
    assert r.status_code == 400
    assert await count(database, NewsletterIssueModel) == 0


async def test_publish_form_carries_a_fresh_idempotency_key(logged_in_client):
    first = await logged_in_client.get("/admin/newsletters")
    second = await logged_in_client.get("/admin/newsletters")
    assert first.status_code == 200
    assert 'name="idempotency_key"' in first.text
    assert first.text != second.text


async def test_anonymous_users_are_redirected_to_login(client, database):
    r = await client.get("/admin/newsletters")
    assert r.status_code == 303
    assert r.headers["location"] == "/login"

    r = await client.post("/admin/newsletters", data=newsletter_form())
    assert r.status_code == 303
    assert r.headers["location"] == "/login"
    assert await count(database, NewsletterIssueModel) == 0

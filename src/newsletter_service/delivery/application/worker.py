"""
Delivery Worker
Drains the issue delivery queue, one task per transaction

Each iteration claims the oldest due task with ``FOR UPDATE SKIP LOCKED``,
sends it while the row stays locked, then deletes or reschedules it in the
same transaction. Several workers can run side by side without sending the
same task twice.
"""
from __future__ import annotations

import asyncio
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from newsletter_service.delivery.domain import (
    DeliveryTask,
    EmailTransport,
    ExecutionOutcome,
    RetryPolicy,
)
from newsletter_service.delivery.infrastructure.queue_repository import DeliveryQueueRepository
from newsletter_service.newsletters.infrastructure.issue_repository import (
    NewsletterIssueRepository,
)
from newsletter_service.shared.config import Settings
from newsletter_service.shared.database import DatabaseSessionFactory
from newsletter_service.shared.exceptions import (
    TransientDeliveryError,
    ValidationError,
    error_chain,
)
from newsletter_service.shared.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
)
from newsletter_service.subscriptions.domain import SubscriberEmail

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeliveryWorker:
    def __init__(
        self,
        database: DatabaseSessionFactory,
        email_client: EmailTransport,
        retry_policy: Optional[RetryPolicy] = None,
        idle_interval: float = 10.0,
        error_interval: float = 1.0,
    ) -> None:
        self.database = database
        self.email_client = email_client
        self.retry_policy = retry_policy or RetryPolicy()
        self.idle_interval = idle_interval
        self.error_interval = error_interval
        self._stop = asyncio.Event()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        database: DatabaseSessionFactory,
        email_client: EmailTransport,
        idle_interval: Optional[float] = None,
    ) -> "DeliveryWorker":
        return cls(
            database=database,
            email_client=email_client,
            retry_policy=RetryPolicy.from_settings(settings),
            idle_interval=(
                idle_interval if idle_interval is not None else settings.DELIVERY_IDLE_INTERVAL_SECONDS
            ),
            error_interval=settings.DELIVERY_ERROR_INTERVAL_SECONDS,
        )

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    async def run(self) -> None:
        """Poll until ``stop()`` is called; never busy-spins on an empty queue."""
        logger.info(
            "Delivery worker starting",
            idle_interval=self.idle_interval,
            max_retries=self.retry_policy.max_retries,
        )
        try:
            while not self._stop.is_set():
                try:
                    outcome = await self.try_execute_task()
                except Exception as e:
                    logger.error(
                        "Delivery worker iteration failed",
                        cause_chain=error_chain(e),
                        exc_info=e,
                    )
                    await self._wait(self.error_interval)
                    continue
                if outcome is ExecutionOutcome.EMPTY_QUEUE:
                    await self._wait(self.idle_interval)
        finally:
            logger.info("Delivery worker stopped")

    async def drain(self) -> Counter:
        """Execute due tasks until none is left. Returns a count per outcome."""
        outcomes: Counter = Counter()
        while True:
            outcome = await self.try_execute_task()
            if outcome is ExecutionOutcome.EMPTY_QUEUE:
                return outcomes
            outcomes[outcome] += 1

    async def try_execute_task(self) -> ExecutionOutcome:
        async with self.database.get_session() as session:
            queue = DeliveryQueueRepository(session)
            task = await queue.claim_next(_utcnow())
            if task is None:
                await session.rollback()
                return ExecutionOutcome.EMPTY_QUEUE

            bind_request_context(
                extras={
                    "newsletter_issue_id": str(task.newsletter_issue_id),
                    "delivery_task_id": str(task.id),
                }
            )
            try:
                outcome = await self._deliver(session, queue, task)
                await session.commit()
            finally:
                clear_request_context()
            return outcome

    async def _deliver(
        self,
        session: AsyncSession,
        queue: DeliveryQueueRepository,
        task: DeliveryTask,
    ) -> ExecutionOutcome:
        try:
            recipient = SubscriberEmail.parse(task.subscriber_email)
        except ValidationError as e:
            logger.error(
                "Dropping delivery task with an invalid recipient",
                cause_chain=error_chain(e),
            )
            await queue.dead_letter(task)
            return ExecutionOutcome.DEAD_LETTERED

        issue = await NewsletterIssueRepository(session).get(task.newsletter_issue_id)
        if issue is None:
            logger.error("Dropping delivery task for a missing newsletter issue")
            await queue.dead_letter(task)
            return ExecutionOutcome.DEAD_LETTERED

        try:
            await self.email_client.send_email(
                recipient, issue.title, issue.html_content, issue.text_content
            )
        except TransientDeliveryError as e:
            return await self._handle_failure(queue, task, e)
        except Exception as e:
            logger.error(
                "Email transport raised an unexpected error",
                cause_chain=error_chain(e),
                exc_info=e,
            )
            return await self._handle_failure(queue, task, e)

        await queue.complete(task)
        logger.info("Delivered newsletter issue", attempt=task.n_retries + 1)
        return ExecutionOutcome.TASK_COMPLETED

    async def _handle_failure(
        self,
        queue: DeliveryQueueRepository,
        task: DeliveryTask,
        error: Exception,
    ) -> ExecutionOutcome:
        attempts = task.n_retries + 1
        if self.retry_policy.is_exhausted(task.n_retries):
            await queue.dead_letter(task)
            logger.error(
                "Delivery dead-lettered after exhausting retries",
                subscriber_email=task.subscriber_email,
                attempts=attempts,
                cause_chain=error_chain(error),
            )
            return ExecutionOutcome.DEAD_LETTERED

        delay = self.retry_policy.backoff_seconds(attempts)
        await queue.reschedule(task, _utcnow() + timedelta(seconds=delay))
        logger.warning(
            "Delivery failed, retry scheduled",
            attempts=attempts,
            retry_in_seconds=delay,
            cause_chain=error_chain(error),
        )
        return ExecutionOutcome.RETRY_SCHEDULED

    async def _wait(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

"""
Delivery Queue Repository
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import UUID, uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from newsletter_service.delivery.domain import DeliveryTask
from newsletter_service.delivery.infrastructure.models import IssueDeliveryQueueModel
from newsletter_service.shared.database import insert_or_do_nothing
from newsletter_service.shared.logging import get_logger

logger = get_logger(__name__)


class DeliveryQueueRepository:
    """
    Session-bound access to the issue_delivery_queue table.

    The caller owns the transaction: a task claimed with ``claim_next`` stays
    locked until the session commits or rolls back.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(model: IssueDeliveryQueueModel) -> DeliveryTask:
        return DeliveryTask(
            id=model.id,
            newsletter_issue_id=model.newsletter_issue_id,
            subscriber_email=model.subscriber_email,
            n_retries=model.n_retries,
            execute_after=model.execute_after,
        )

    async def enqueue(self, issue_id: UUID, recipients: Iterable[str]) -> int:
        """
        Insert one task per distinct recipient for ``issue_id``.

        Existing (issue, recipient) pairs are left untouched.

        Returns:
            Number of tasks inserted
        """
        unique = list(dict.fromkeys(recipients))
        if not unique:
            logger.info("No recipients to enqueue", newsletter_issue_id=str(issue_id))
            return 0

        now = datetime.now(timezone.utc)
        stmt = insert_or_do_nothing(
            self.session,
            IssueDeliveryQueueModel,
            ["newsletter_issue_id", "subscriber_email"],
        ).values(
            [
                {
                    "id": uuid4(),
                    "newsletter_issue_id": issue_id,
                    "subscriber_email": email,
                    "n_retries": 0,
                    "execute_after": now,
                    "created_at": now,
                    "updated_at": now,
                }
                for email in unique
            ]
        )
        result = await self.session.execute(stmt)
        inserted = result.rowcount
        logger.info(
            "Enqueued delivery tasks",
            newsletter_issue_id=str(issue_id),
            count=inserted,
        )
        return inserted

    async def claim_next(self, now: Optional[datetime] = None) -> Optional[DeliveryTask]:
        """Lock the oldest due task, skipping rows other workers hold."""
        now = now or datetime.now(timezone.utc)
        stmt = (
            select(IssueDeliveryQueueModel)
            .where(IssueDeliveryQueueModel.execute_after <= now)
            .order_by(IssueDeliveryQueueModel.execute_after, IssueDeliveryQueueModel.created_at)
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def complete(self, task: DeliveryTask) -> None:
        await self._delete(task.id)

    async def dead_letter(self, task: DeliveryTask) -> None:
        await self._delete(task.id)

    async def reschedule(self, task: DeliveryTask, execute_after: datetime) -> None:
        await self.session.execute(
            update(IssueDeliveryQueueModel)
            .where(IssueDeliveryQueueModel.id == task.id)
            .values(
                n_retries=IssueDeliveryQueueModel.n_retries + 1,
                execute_after=execute_after,
                updated_at=datetime.now(timezone.utc),
            )
        )

    async def count_pending(self, issue_id: Optional[UUID] = None) -> int:
        stmt = select(func.count()).select_from(IssueDeliveryQueueModel)
        if issue_id is not None:
            stmt = stmt.where(IssueDeliveryQueueModel.newsletter_issue_id == issue_id)
        return int((await self.session.execute(stmt)).scalar_one())

    async def _delete(self, task_id: UUID) -> None:
        await self.session.execute(
            delete(IssueDeliveryQueueModel).where(IssueDeliveryQueueModel.id == task_id)
        )

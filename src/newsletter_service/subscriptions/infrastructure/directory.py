from __future__ import annotations

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from newsletter_service.shared.exceptions import ValidationError, error_chain
from newsletter_service.shared.logging import get_logger
from newsletter_service.subscriptions.domain import (
    ConfirmedSubscriber,
    SubscriberEmail,
    SubscriptionStatus,
)
from newsletter_service.subscriptions.infrastructure.models import SubscriptionModel

logger = get_logger(__name__)


class SubscriberDirectory:
    """Read side of the subscriptions table used when publishing."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_confirmed(self) -> List[ConfirmedSubscriber]:
        """
        Confirmed subscribers with a valid email.

        Rows whose stored email no longer parses are skipped with a warning;
        the rest of the batch is returned.
        """
        stmt = (
            select(SubscriptionModel.email)
            .where(SubscriptionModel.status == SubscriptionStatus.CONFIRMED.value)
            .order_by(SubscriptionModel.subscribed_at)
        )
        confirmed: List[ConfirmedSubscriber] = []
        for email in (await self.session.execute(stmt)).scalars():
            try:
                confirmed.append(ConfirmedSubscriber(SubscriberEmail.parse(email)))
            except ValidationError as e:
                logger.warning(
                    "Skipping a confirmed subscriber. Their stored contact details are invalid",
                    cause_chain=error_chain(e),
                )
        return confirmed

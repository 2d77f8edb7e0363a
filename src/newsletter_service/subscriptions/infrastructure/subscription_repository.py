"""
Subscription Repository
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from newsletter_service.subscriptions.domain import NewSubscriber, SubscriptionStatus
from newsletter_service.subscriptions.infrastructure.models import (
    SubscriptionModel,
    SubscriptionTokenModel,
)


class SubscriptionRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert_pending(self, subscriber: NewSubscriber) -> UUID:
        """
        Store a new subscriber awaiting confirmation.

        Subscribing again with a known email keeps the existing row (and its
        status) so a fresh confirmation link can be issued.
        """
        existing = (
            await self.session.execute(
                select(SubscriptionModel.id).where(SubscriptionModel.email == str(subscriber.email))
            )
        ).scalar_one_or_none()
        if existing is not None:
            return existing

        now = datetime.now(timezone.utc)
        model = SubscriptionModel(
            id=uuid4(),
            email=str(subscriber.email),
            name=str(subscriber.name),
            subscribed_at=now,
            status=SubscriptionStatus.PENDING_CONFIRMATION.value,
            created_at=now,
            updated_at=now,
        )
        self.session.add(model)
        await self.session.flush()
        return model.id

    async def store_token(self, subscriber_id: UUID, token: str) -> None:
        now = datetime.now(timezone.utc)
        self.session.add(
            SubscriptionTokenModel(
                id=uuid4(),
                subscription_token=token,
                subscriber_id=subscriber_id,
                created_at=now,
                updated_at=now,
            )
        )
        await self.session.flush()

    async def get_subscriber_id_from_token(self, token: str) -> Optional[UUID]:
        stmt = select(SubscriptionTokenModel.subscriber_id).where(
            SubscriptionTokenModel.subscription_token == token
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def confirm(self, subscriber_id: UUID) -> None:
        await self.session.execute(
            update(SubscriptionModel)
            .where(SubscriptionModel.id == subscriber_id)
            .values(
                status=SubscriptionStatus.CONFIRMED.value,
                updated_at=datetime.now(timezone.utc),
            )
        )

    async def get_status(self, email: str) -> Optional[str]:
        stmt = select(SubscriptionModel.status).where(SubscriptionModel.email == email)
        return (await self.session.execute(stmt)).scalar_one_or_none()

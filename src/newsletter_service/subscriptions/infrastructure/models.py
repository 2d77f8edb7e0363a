"""
Subscription ORM Models
Map to the subscriptions and subscription_tokens tables
"""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from newsletter_service.shared.database import Base


class SubscriptionModel(Base):
    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("email", name="uq_subscriptions_email"),
        Index("ix_subscriptions_status", "status"),
    )

    # Stored as submitted; re-validated whenever it is read back for delivery
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    subscribed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)

    def __repr__(self) -> str:
        return f"<SubscriptionModel(id={self.id}, status={self.status})>"


class SubscriptionTokenModel(Base):
    __tablename__ = "subscription_tokens"
    __table_args__ = (
        UniqueConstraint("subscription_token", name="uq_subscription_tokens_token"),
        Index("ix_subscription_tokens_subscriber_id", "subscriber_id"),
    )

    subscription_token: Mapped[str] = mapped_column(String(25), nullable=False)
    subscriber_id: Mapped[UUID] = mapped_column(
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
    )

"""
IssueDeliveryQueue ORM Model
Maps to the issue_delivery_queue table
"""
from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from newsletter_service.shared.database import Base


class IssueDeliveryQueueModel(Base):
    """
    One pending send of an issue to a subscriber.

    Rows are deleted once delivered or dead-lettered.
    """

    __tablename__ = "issue_delivery_queue"
    __table_args__ = (
        UniqueConstraint(
            "newsletter_issue_id", "subscriber_email", name="uq_delivery_issue_email"
        ),
        Index("ix_delivery_execute_after", "execute_after"),
    )

    newsletter_issue_id: Mapped[UUID] = mapped_column(
        ForeignKey("newsletter_issues.id", ondelete="CASCADE"),
        nullable=False,
    )
    subscriber_email: Mapped[str] = mapped_column(String(320), nullable=False)
    n_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    execute_after: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<IssueDeliveryQueueModel(issue={self.newsletter_issue_id}, "
            f"n_retries={self.n_retries})>"
        )

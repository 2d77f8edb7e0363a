"""
Idempotency ORM Model
Maps to the idempotency table
"""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, Integer, LargeBinary, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from newsletter_service.shared.database import Base


class IdempotencyModel(Base):
    """
    One row per (user, idempotency key).

    A row without a response is a placeholder owned by the in-flight request;
    once the response columns are filled the row is replayed verbatim.
    """

    __tablename__ = "idempotency"
    __table_args__ = (
        UniqueConstraint("user_id", "idempotency_key", name="uq_idempotency_user_key"),
        Index("ix_idempotency_created_at", "created_at"),
    )

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    idempotency_key: Mapped[str] = mapped_column(String(255), nullable=False)

    # Saved response; NULL while the request is in progress
    response_status_code: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    response_headers: Mapped[Optional[List[List[str]]]] = mapped_column(JSON, nullable=True)
    response_body: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)

    @property
    def is_completed(self) -> bool:
        return self.response_status_code is not None

    def __repr__(self) -> str:
        return f"<IdempotencyModel(user_id={self.user_id}, key={self.idempotency_key})>"

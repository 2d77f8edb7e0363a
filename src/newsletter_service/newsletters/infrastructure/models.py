"""
NewsletterIssue ORM Model
Maps to the newsletter_issues table
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from newsletter_service.shared.database import Base


class NewsletterIssueModel(Base):
    __tablename__ = "newsletter_issues"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    text_content: Mapped[str] = mapped_column(Text, nullable=False)
    html_content: Mapped[str] = mapped_column(Text, nullable=False)
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<NewsletterIssueModel(id={self.id}, title={self.title!r})>"

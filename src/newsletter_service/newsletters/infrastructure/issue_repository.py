"""
Newsletter Issue Repository
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from newsletter_service.newsletters.domain import NewsletterIssue
from newsletter_service.newsletters.infrastructure.models import NewsletterIssueModel


class NewsletterIssueRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(model: NewsletterIssueModel) -> NewsletterIssue:
        return NewsletterIssue(
            id=model.id,
            title=model.title,
            text_content=model.text_content,
            html_content=model.html_content,
            published_at=model.published_at,
        )

    async def add(self, title: str, text_content: str, html_content: str) -> NewsletterIssue:
        now = datetime.now(timezone.utc)
        model = NewsletterIssueModel(
            id=uuid4(),
            title=title,
            text_content=text_content,
            html_content=html_content,
            published_at=now,
            created_at=now,
            updated_at=now,
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_entity(model)

    async def get(self, issue_id: UUID) -> Optional[NewsletterIssue]:
        model = await self.session.get(NewsletterIssueModel, issue_id)
        return self._to_entity(model) if model else None

    async def count(self) -> int:
        stmt = select(func.count()).select_from(NewsletterIssueModel)
        return int((await self.session.execute(stmt)).scalar_one())

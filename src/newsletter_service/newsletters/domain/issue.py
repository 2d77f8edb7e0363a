from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class NewsletterIssue:
    id: UUID
    title: str
    text_content: str
    html_content: str
    published_at: datetime


@dataclass(frozen=True)
class PublishNewsletterCommand:
    """Form input for a publish request; the key is validated by the publisher."""

    title: str
    text_content: str
    html_content: str
    idempotency_key: str

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol
from uuid import UUID

from newsletter_service.shared.config import Settings
from newsletter_service.subscriptions.domain import SubscriberEmail


class ExecutionOutcome(str, Enum):
    TASK_COMPLETED = "task_completed"
    RETRY_SCHEDULED = "retry_scheduled"
    DEAD_LETTERED = "dead_lettered"
    EMPTY_QUEUE = "empty_queue"


@dataclass(frozen=True)
class DeliveryTask:
    id: UUID
    newsletter_issue_id: UUID
    subscriber_email: str
    n_retries: int
    execute_after: datetime


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retries with capped exponential backoff.

    A task is attempted at most ``max_retries + 1`` times; the failure seen
    with ``n_retries == max_retries`` dead-letters it.
    """

    max_retries: int = 5
    backoff_base_seconds: float = 2.0
    backoff_max_seconds: float = 60.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.DELIVERY_MAX_RETRIES,
            backoff_base_seconds=settings.DELIVERY_BACKOFF_BASE_SECONDS,
            backoff_max_seconds=settings.DELIVERY_BACKOFF_MAX_SECONDS,
        )

    def backoff_seconds(self, attempts: int) -> float:
        delay = self.backoff_base_seconds * (2 ** max(0, attempts - 1))
        return min(delay, self.backoff_max_seconds)

    def is_exhausted(self, n_retries: int) -> bool:
        return n_retries >= self.max_retries


class EmailTransport(Protocol):
    async def send_email(
        self,
        recipient: SubscriberEmail,
        subject: str,
        html_content: str,
        text_content: str,
    ) -> None:
        """Raises TransientDeliveryError when the message was not accepted."""
        ...

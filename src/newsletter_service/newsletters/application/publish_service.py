"""
Newsletter Publisher
Stores an issue and queues one delivery per confirmed subscriber, exactly
once per idempotency key

The issue insert, the queued deliveries and the saved response commit in the
idempotency transaction. Sending is left to the delivery worker.
"""
from __future__ import annotations

from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import Response

from newsletter_service.delivery.infrastructure.queue_repository import DeliveryQueueRepository
from newsletter_service.idempotency import AlreadyCompleted, IdempotencyKey, IdempotencyStore
from newsletter_service.newsletters.domain import PublishNewsletterCommand
from newsletter_service.newsletters.infrastructure.issue_repository import (
    NewsletterIssueRepository,
)
from newsletter_service.shared.exceptions import UnexpectedError
from newsletter_service.shared.http.flash import FlashMessage, FlashMessages
from newsletter_service.shared.http.responses import see_other
from newsletter_service.shared.logging import get_logger
from newsletter_service.subscriptions.infrastructure.directory import SubscriberDirectory

logger = get_logger(__name__)

PUBLISHED_MESSAGE = "The newsletter issue has been published!"
NEWSLETTERS_PAGE = "/admin/newsletters"


class NewsletterPublisher:
    def __init__(
        self,
        idempotency_store: IdempotencyStore,
        flash: FlashMessages,
        key_max_length: int = IdempotencyKey.MAX_LENGTH,
    ) -> None:
        self.idempotency_store = idempotency_store
        self.flash = flash
        self.key_max_length = key_max_length

    async def publish(self, user_id: UUID, command: PublishNewsletterCommand) -> Response:
        """
        Publish ``command`` on behalf of ``user_id``.

        A repeated key returns the response saved by the first request,
        byte for byte, without touching the queue again.

        Raises:
            ValidationError: the idempotency key is empty or too long
            IdempotencyInProgressError: the same key is being processed
            UnexpectedError: storage failed; nothing was committed
        """
        key = IdempotencyKey.parse(command.idempotency_key, self.key_max_length)
        try:
            outcome = await self.idempotency_store.try_begin(user_id, key)
        except SQLAlchemyError as e:
            raise UnexpectedError("Failed to claim the idempotency key.") from e

        if isinstance(outcome, AlreadyCompleted):
            return outcome.response.to_response()

        async with outcome as transaction:
            try:
                session = transaction.session
                issue = await NewsletterIssueRepository(session).add(
                    title=command.title,
                    text_content=command.text_content,
                    html_content=command.html_content,
                )
                subscribers = await SubscriberDirectory(session).list_confirmed()
                queued = await DeliveryQueueRepository(session).enqueue(
                    issue.id, [str(s.email) for s in subscribers]
                )

                response = see_other(NEWSLETTERS_PAGE)
                self.flash.send(response, FlashMessage.info(PUBLISHED_MESSAGE))
                response = await transaction.save_response(response)
            except SQLAlchemyError as e:
                raise UnexpectedError("Failed to store the newsletter issue.") from e

        logger.info(
            "Newsletter issue published",
            newsletter_issue_id=str(issue.id),
            queued=queued,
        )
        return response

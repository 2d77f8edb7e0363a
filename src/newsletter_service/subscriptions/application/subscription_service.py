"""
Subscription Service
Double opt-in: store a pending subscriber, email a confirmation link,
confirm on click
"""
from __future__ import annotations

import secrets
import string
from urllib.parse import urlencode

from sqlalchemy.exc import SQLAlchemyError

from newsletter_service.delivery.domain import EmailTransport
from newsletter_service.shared.database import DatabaseSessionFactory
from newsletter_service.shared.exceptions import (
    AuthenticationError,
    TransientDeliveryError,
    UnexpectedError,
    ValidationError,
)
from newsletter_service.shared.logging import get_logger
from newsletter_service.subscriptions.domain import NewSubscriber, SubscriberEmail
from newsletter_service.subscriptions.infrastructure.subscription_repository import (
    SubscriptionRepository,
)

logger = get_logger(__name__)

TOKEN_LENGTH = 25
_TOKEN_ALPHABET = string.ascii_letters + string.digits


def generate_subscription_token() -> str:
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


def parse_subscription_token(raw: str) -> str:
    if len(raw) != TOKEN_LENGTH or any(c not in _TOKEN_ALPHABET for c in raw):
        raise ValidationError(
            "The subscription token is malformed.",
            details={"field": "subscription_token"},
        )
    return raw


class SubscriptionService:
    def __init__(
        self,
        database: DatabaseSessionFactory,
        email_client: EmailTransport,
        base_url: str,
    ) -> None:
        self.database = database
        self.email_client = email_client
        self.base_url = base_url.rstrip("/")

    def confirmation_link(self, token: str) -> str:
        return f"{self.base_url}/subscriptions/confirm?{urlencode({'subscription_token': token})}"

    async def subscribe(self, subscriber: NewSubscriber) -> None:
        """
        Raises:
            UnexpectedError: the subscriber could not be stored or the
                confirmation email could not be sent
        """
        token = generate_subscription_token()
        try:
            async with self.database.get_session() as session:
                repo = SubscriptionRepository(session)
                subscriber_id = await repo.insert_pending(subscriber)
                await repo.store_token(subscriber_id, token)
                await session.commit()
        except SQLAlchemyError as e:
            raise UnexpectedError("Failed to store a new subscriber.") from e

        logger.info("Stored pending subscriber", subscriber_id=str(subscriber_id))
        try:
            await self.send_confirmation_email(subscriber.email, token)
        except TransientDeliveryError as e:
            raise UnexpectedError("Failed to send a confirmation email.") from e

    async def send_confirmation_email(self, recipient: SubscriberEmail, token: str) -> None:
        link = self.confirmation_link(token)
        html_body = (
            "Welcome to our newsletter!<br />"
            f'Click <a href="{link}">here</a> to confirm your subscription.'
        )
        text_body = f"Welcome to our newsletter!\nVisit {link} to confirm your subscription."
        await self.email_client.send_email(recipient, "Welcome!", html_body, text_body)

    async def confirm(self, raw_token: str) -> None:
        """
        Raises:
            ValidationError: malformed token
            AuthenticationError: no subscriber holds this token
        """
        token = parse_subscription_token(raw_token)
        try:
            async with self.database.get_session() as session:
                repo = SubscriptionRepository(session)
                subscriber_id = await repo.get_subscriber_id_from_token(token)
                if subscriber_id is not None:
                    await repo.confirm(subscriber_id)
                    await session.commit()
        except SQLAlchemyError as e:
            raise UnexpectedError("Failed to confirm a subscriber.") from e
        if subscriber_id is None:
            raise AuthenticationError(code="unknown_subscription_token")
        logger.info("Subscriber confirmed", subscriber_id=str(subscriber_id))

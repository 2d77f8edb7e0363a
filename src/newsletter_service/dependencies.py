# src/newsletter_service/dependencies.py
"""
Service wiring and FastAPI dependencies.

``build_services`` assembles every collaborator once per application; routes
reach them through the ``get_*`` dependencies below, which read
``request.app.state``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Request

from newsletter_service.delivery.domain import EmailTransport
from newsletter_service.delivery.infrastructure.email_client import EmailClient
from newsletter_service.identity.application.auth_service import AuthService
from newsletter_service.identity.infrastructure.password_service import PasswordService
from newsletter_service.idempotency import IdempotencyStore
from newsletter_service.newsletters.application.publish_service import NewsletterPublisher
from newsletter_service.shared.config import Settings
from newsletter_service.shared.database import DatabaseSessionFactory
from newsletter_service.shared.exceptions import LoginRequiredError
from newsletter_service.shared.http.flash import FlashMessages
from newsletter_service.shared.http.session import TypedSession
from newsletter_service.shared.security import TokenSigner
from newsletter_service.subscriptions.application.subscription_service import (
    SubscriptionService,
)


@dataclass
class Services:
    settings: Settings
    database: DatabaseSessionFactory
    email_client: EmailTransport
    passwords: PasswordService
    auth: AuthService
    subscriptions: SubscriptionService
    idempotency: IdempotencyStore
    publisher: NewsletterPublisher
    flash: FlashMessages
    sessions: TypedSession


def build_database(settings: Settings) -> DatabaseSessionFactory:
    return DatabaseSessionFactory(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
    )


def build_services(
    settings: Settings,
    database: Optional[DatabaseSessionFactory] = None,
    email_client: Optional[EmailTransport] = None,
) -> Services:
    database = database or build_database(settings)
    email_client = email_client or EmailClient.from_settings(settings)
    signer = TokenSigner(settings)
    flash = FlashMessages(signer)
    passwords = PasswordService.from_settings(settings)
    idempotency = IdempotencyStore(database)
    return Services(
        settings=settings,
        database=database,
        email_client=email_client,
        passwords=passwords,
        auth=AuthService(
            database,
            passwords,
            min_password_length=settings.PASSWORD_MIN_LENGTH,
            max_password_length=settings.PASSWORD_MAX_LENGTH,
        ),
        subscriptions=SubscriptionService(database, email_client, settings.APP_BASE_URL),
        idempotency=idempotency,
        publisher=NewsletterPublisher(
            idempotency, flash, key_max_length=settings.IDEMPOTENCY_KEY_MAX_LENGTH
        ),
        flash=flash,
        sessions=TypedSession(signer, settings),
    )


# ---------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------

def get_services(request: Request) -> Services:
    return request.app.state.services


def get_flash(request: Request) -> FlashMessages:
    return get_services(request).flash


def get_sessions(request: Request) -> TypedSession:
    return get_services(request).sessions


def get_auth_service(request: Request) -> AuthService:
    return get_services(request).auth


def get_subscription_service(request: Request) -> SubscriptionService:
    return get_services(request).subscriptions


def get_publisher(request: Request) -> NewsletterPublisher:
    return get_services(request).publisher


def require_user_id(request: Request) -> UUID:
    """User id from the session cookie; anonymous callers are sent to the login form."""
    user_id = getattr(request.state, "user_id", None)
    if user_id is None:
        raise LoginRequiredError("You must be logged in.")
    return user_id

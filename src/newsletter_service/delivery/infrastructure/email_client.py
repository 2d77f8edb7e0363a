"""
Email Client
Postmark-compatible HTTP transport for outgoing mail
"""
from __future__ import annotations

from datetime import timedelta
from typing import Optional

import httpx
from pydantic import SecretStr

from newsletter_service.shared.config import Settings
from newsletter_service.shared.exceptions import TransientDeliveryError
from newsletter_service.shared.logging import get_logger
from newsletter_service.subscriptions.domain import SubscriberEmail

logger = get_logger(__name__)


class EmailClient:
    """
    Sends one email per call through the provider's ``/email`` endpoint.

    Network errors, timeouts and non-2xx answers all surface as
    ``TransientDeliveryError``.
    """

    def __init__(
        self,
        base_url: str,
        sender: SubscriberEmail,
        authorization_token: SecretStr,
        timeout: timedelta,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.sender = sender
        self._authorization_token = authorization_token
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout.total_seconds(),
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "EmailClient":
        return cls(
            base_url=settings.EMAIL_BASE_URL,
            sender=SubscriberEmail.parse(settings.EMAIL_SENDER),
            authorization_token=settings.EMAIL_AUTHORIZATION_TOKEN,
            timeout=settings.email_timeout,
            transport=transport,
        )

    async def send_email(
        self,
        recipient: SubscriberEmail,
        subject: str,
        html_content: str,
        text_content: str,
    ) -> None:
        payload = {
            "From": str(self.sender),
            "To": str(recipient),
            "Subject": subject,
            "HtmlBody": html_content,
            "TextBody": text_content,
        }
        headers = {"X-Postmark-Server-Token": self._authorization_token.get_secret_value()}
        try:
            response = await self._http.post("/email", json=payload, headers=headers)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise TransientDeliveryError(
                "Timed out waiting for the email provider.",
                details={"recipient": str(recipient)},
            ) from e
        except httpx.HTTPStatusError as e:
            raise TransientDeliveryError(
                f"The email provider answered {e.response.status_code}.",
                details={"recipient": str(recipient), "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise TransientDeliveryError(
                "Could not reach the email provider.",
                details={"recipient": str(recipient)},
            ) from e
        logger.debug("Email accepted by provider", recipient=str(recipient))

    async def aclose(self) -> None:
        await self._http.aclose()

import json
from datetime import timedelta

import httpx
import pytest
from pydantic import SecretStr

from newsletter_service.delivery.infrastructure.email_client import EmailClient
from newsletter_service.shared.exceptions import TransientDeliveryError
from newsletter_service.subscriptions.domain import SubscriberEmail

RECIPIENT = SubscriberEmail.parse("reader@example.com")


def make_client(handler) -> EmailClient:
    return EmailClient(
        base_url="https://mail.example.com",
        sender=SubscriberEmail.parse("newsletter@example.com"),
        authorization_token=SecretStr("server-token"),
        timeout=timedelta(milliseconds=200),
        transport=httpx.MockTransport(handler),
    )


async def test_send_email_posts_the_expected_request():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200)

    client = make_client(handler)
    await client.send_email(RECIPIENT, "Subject", "<p>html</p>", "text")
    await client.aclose()

    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert request.url == "https://mail.example.com/email"
    assert request.headers["X-Postmark-Server-Token"] == "server-token"
    assert json.loads(request.content) == {
        "From": "newsletter@example.com",
        "To": "reader@example.com",
        "Subject": "Subject",
        "HtmlBody": "<p>html</p>",
        "TextBody": "text",
    }


async def test_server_error_is_transient():
    client = make_client(lambda request: httpx.Response(500))
    with pytest.raises(TransientDeliveryError) as exc:
        await client.send_email(RECIPIENT, "s", "h", "t")
    assert exc.value.details["status_code"] == 500
    assert isinstance(exc.value.__cause__, httpx.HTTPStatusError)


async def test_client_error_is_transient():
    client = make_client(lambda request: httpx.Response(422))
    with pytest.raises(TransientDeliveryError):
        await client.send_email(RECIPIENT, "s", "h", "t")


async def test_timeout_is_transient():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = make_client(handler)
    with pytest.raises(TransientDeliveryError) as exc:
        await client.send_email(RECIPIENT, "s", "h", "t")
    assert isinstance(exc.value.__cause__, httpx.TimeoutException)


async def test_network_error_is_transient():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    with pytest.raises(TransientDeliveryError):
        await client.send_email(RECIPIENT, "s", "h", "t")


def test_from_settings_uses_configured_timeout(settings):
    client = EmailClient.from_settings(settings)
    assert client.sender.value == settings.EMAIL_SENDER
    assert client._http.timeout.read == settings.email_timeout.total_seconds()

"""
One-shot notifications rendered on the next page view.

Messages travel in a signed cookie set directly on the outgoing response, so
a response saved for idempotent replay already carries its notification.
Flash tokens carry no expiry; the cookie lives until the next page view
consumes it.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List

from starlette.requests import Request
from starlette.responses import Response

from newsletter_service.shared.exceptions import AuthenticationError
from newsletter_service.shared.logging import get_logger
from newsletter_service.shared.security import TokenSigner

logger = get_logger(__name__)

FLASH_COOKIE_NAME = "_flash"
_TOKEN_TYPE = "flash"


class Level(str, Enum):
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class FlashMessage:
    level: Level
    text: str

    @classmethod
    def info(cls, text: str) -> "FlashMessage":
        return cls(Level.INFO, text)

    @classmethod
    def error(cls, text: str) -> "FlashMessage":
        return cls(Level.ERROR, text)


class FlashMessages:
    def __init__(self, signer: TokenSigner) -> None:
        self._signer = signer

    def send(self, response: Response, *messages: FlashMessage) -> None:
        token = self._signer.encode(
            _TOKEN_TYPE,
            {"messages": [{"level": m.level.value, "text": m.text} for m in messages]},
        )
        response.set_cookie(FLASH_COOKIE_NAME, token, httponly=True, samesite="lax", path="/")

    def incoming(self, request: Request) -> List[FlashMessage]:
        token = request.cookies.get(FLASH_COOKIE_NAME)
        if not token:
            return []
        try:
            claims = self._signer.decode(_TOKEN_TYPE, token)
        except AuthenticationError:
            logger.info("Discarding an invalid flash cookie")
            return []
        return [
            FlashMessage(Level(m["level"]), m["text"])
            for m in claims.get("messages", [])
            if m.get("level") in {lvl.value for lvl in Level}
        ]

    @staticmethod
    def consume(request: Request, response: Response) -> None:
        """Drop the flash cookie once its messages have been rendered."""
        if FLASH_COOKIE_NAME in request.cookies:
            response.delete_cookie(FLASH_COOKIE_NAME, path="/")

from __future__ import annotations

from datetime import timedelta
from typing import Optional
from uuid import UUID

from starlette.requests import Request
from starlette.responses import Response

from newsletter_service.shared.config import Settings
from newsletter_service.shared.exceptions import AuthenticationError
from newsletter_service.shared.security import TokenSigner

SESSION_COOKIE_NAME = "session"
_TOKEN_TYPE = "session"


class TypedSession:
    """Session state kept in a signed, HTTP-only cookie holding the user id."""

    def __init__(self, signer: TokenSigner, settings: Settings) -> None:
        self._signer = signer
        self._ttl = timedelta(minutes=settings.SESSION_EXPIRE_MINUTES)
        self._secure = settings.SESSION_COOKIE_SECURE

    def start(self, response: Response, user_id: UUID) -> None:
        token = self._signer.encode(_TOKEN_TYPE, {"sub": str(user_id)}, expires_delta=self._ttl)
        response.set_cookie(
            SESSION_COOKIE_NAME,
            token,
            max_age=int(self._ttl.total_seconds()),
            httponly=True,
            secure=self._secure,
            samesite="lax",
            path="/",
        )

    def user_id(self, request: Request) -> Optional[UUID]:
        token = request.cookies.get(SESSION_COOKIE_NAME)
        if not token:
            return None
        try:
            claims = self._signer.decode(_TOKEN_TYPE, token)
            return UUID(claims["sub"])
        except (AuthenticationError, KeyError, ValueError):
            return None

    @staticmethod
    def end(response: Response) -> None:
        response.delete_cookie(SESSION_COOKIE_NAME, path="/")

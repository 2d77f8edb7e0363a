# src/newsletter_service/shared/security.py

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from newsletter_service.shared.config import Settings
from newsletter_service.shared.exceptions import AuthenticationError
from newsletter_service.shared.logging import get_logger

logger = get_logger(__name__)


class TokenSigner:
    """
    Signs and verifies the short JWTs carried in session and flash cookies.

    Every token carries a ``typ`` claim so a flash cookie can never be
    replayed as a session cookie.
    """

    def __init__(self, settings: Settings) -> None:
        self._secret = settings.get_jwt_secret()
        self._algorithm = settings.JWT_ALGORITHM

    def encode(
        self,
        typ: str,
        claims: Dict[str, Any],
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = dict(claims, typ=typ, iat=now)
        if expires_delta is not None:
            payload["exp"] = now + expires_delta
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode(self, typ: str, token: str) -> Dict[str, Any]:
        """
        Decode and verify a token.

        Raises:
            AuthenticationError: bad signature, expired or wrong token type
        """
        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Token has expired.", code="unauthorized") from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationError("Token is invalid.", code="unauthorized") from e
        if claims.get("typ") != typ:
            raise AuthenticationError("Token is invalid.", code="unauthorized")
        return claims

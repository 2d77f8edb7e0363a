from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional

from newsletter_service.shared.exceptions import ValidationError


@dataclass(frozen=True)
class IdempotencyKey:
    """Caller-supplied key identifying one logical mutating request."""

    value: str

    MAX_LENGTH: ClassVar[int] = 50

    @classmethod
    def parse(cls, raw: Optional[str], max_length: Optional[int] = None) -> "IdempotencyKey":
        limit = max_length or cls.MAX_LENGTH
        if raw is None or raw == "":
            raise ValidationError(
                "The idempotency key cannot be empty.",
                code="invalid_idempotency_key",
            )
        if len(raw) > limit:
            raise ValidationError(
                f"The idempotency key must be at most {limit} characters long.",
                code="invalid_idempotency_key",
                details={"max_length": limit},
            )
        return cls(raw)

    def __str__(self) -> str:
        return self.value

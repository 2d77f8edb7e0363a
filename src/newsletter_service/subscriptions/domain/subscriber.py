"""
Subscriber value objects.

Both parse from untrusted form input and are immutable afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, FrozenSet

from email_validator import EmailNotValidError, validate_email

from newsletter_service.shared.exceptions import ValidationError


class SubscriptionStatus(str, Enum):
    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class SubscriberEmail:
    value: str

    @classmethod
    def parse(cls, raw: str) -> "SubscriberEmail":
        try:
            result = validate_email(raw, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError(
                f"{raw!r} is not a valid subscriber email.",
                code="invalid_subscriber",
                details={"field": "email"},
            ) from e
        return cls(result.normalized)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SubscriberName:
    value: str

    MAX_LENGTH: ClassVar[int] = 256
    FORBIDDEN_CHARACTERS: ClassVar[FrozenSet[str]] = frozenset('/()"<>\\{}')

    @classmethod
    def parse(cls, raw: str) -> "SubscriberName":
        is_empty = raw.strip() == ""
        is_too_long = len(raw) > cls.MAX_LENGTH
        has_forbidden = any(c in cls.FORBIDDEN_CHARACTERS for c in raw)
        if is_empty or is_too_long or has_forbidden:
            raise ValidationError(
                f"{raw!r} is not a valid subscriber name.",
                code="invalid_subscriber",
                details={"field": "name"},
            )
        return cls(raw)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NewSubscriber:
    email: SubscriberEmail
    name: SubscriberName

    @classmethod
    def parse(cls, email: str, name: str) -> "NewSubscriber":
        return cls(email=SubscriberEmail.parse(email), name=SubscriberName.parse(name))


@dataclass(frozen=True)
class ConfirmedSubscriber:
    email: SubscriberEmail

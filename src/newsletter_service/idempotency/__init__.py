from newsletter_service.idempotency.key import IdempotencyKey
from newsletter_service.idempotency.store import (
    AlreadyCompleted,
    IdempotencyStore,
    SavedHttpResponse,
    Started,
)

__all__ = [
    "AlreadyCompleted",
    "IdempotencyKey",
    "IdempotencyStore",
    "SavedHttpResponse",
    "Started",
]

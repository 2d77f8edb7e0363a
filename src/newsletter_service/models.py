"""All ORM models, imported for their side effect of registering on ``Base.metadata``."""
from newsletter_service.delivery.infrastructure.models import IssueDeliveryQueueModel
from newsletter_service.idempotency.models import IdempotencyModel
from newsletter_service.identity.infrastructure.models import UserModel
from newsletter_service.newsletters.infrastructure.models import NewsletterIssueModel
from newsletter_service.shared.database import Base
from newsletter_service.subscriptions.infrastructure.models import (
    SubscriptionModel,
    SubscriptionTokenModel,
)

__all__ = [
    "Base",
    "IdempotencyModel",
    "IssueDeliveryQueueModel",
    "NewsletterIssueModel",
    "SubscriptionModel",
    "SubscriptionTokenModel",
    "UserModel",
]

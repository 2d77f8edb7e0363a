from newsletter_service.subscriptions.domain.subscriber import (
    ConfirmedSubscriber,
    NewSubscriber,
    SubscriberEmail,
    SubscriberName,
    SubscriptionStatus,
)

__all__ = [
    "ConfirmedSubscriber",
    "NewSubscriber",
    "SubscriberEmail",
    "SubscriberName",
    "SubscriptionStatus",
]

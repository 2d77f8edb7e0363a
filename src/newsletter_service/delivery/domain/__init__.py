from newsletter_service.delivery.domain.task import (
    DeliveryTask,
    EmailTransport,
    ExecutionOutcome,
    RetryPolicy,
)

__all__ = ["DeliveryTask", "EmailTransport", "ExecutionOutcome", "RetryPolicy"]

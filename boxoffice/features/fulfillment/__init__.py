"""Payment event fulfillment feature"""

from boxoffice.features.fulfillment.domain import (
    AuthenticationError,
    EventType,
    FulfillmentError,
    MissingMetadataError,
    NotFoundError,
    NotificationConfigError,
    NotificationResult,
    TransientDeliveryError,
)
from boxoffice.features.fulfillment.events import (
    InvoiceSnapshot,
    PaymentIntentSnapshot,
    SubscriptionSnapshot,
    WebhookEvent,
)

__all__ = [
    "AuthenticationError",
    "EventType",
    "FulfillmentError",
    "MissingMetadataError",
    "NotFoundError",
    "NotificationConfigError",
    "NotificationResult",
    "TransientDeliveryError",
    "InvoiceSnapshot",
    "PaymentIntentSnapshot",
    "SubscriptionSnapshot",
    "WebhookEvent",
]

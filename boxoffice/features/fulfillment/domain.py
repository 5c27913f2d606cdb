"""Domain types for payment event fulfillment"""

import secrets
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional
from urllib.parse import quote

from pydantic import BaseModel

VIEW_TOKEN_BYTES = 32  # 256 bits
VIEW_TOKEN_LIFETIME_YEARS = 2
DEFAULT_EMAIL_SUBJECT = "Thank you for your order!"


class EventType(str, Enum):
    """Stripe event types the pipeline acts on"""
    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_INTENT_FAILED = "payment_intent.payment_failed"
    CHARGE_DISPUTE_CREATED = "charge.dispute.created"
    ACCOUNT_UPDATED = "account.updated"
    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"


class MetadataKey(str, Enum):
    """PaymentIntent metadata keys written by the storefront checkout"""
    ORDER_ID = "orderId"
    SELLER_ID = "sellerId"
    PRODUCTION_ID = "productionId"
    PERFORMANCE_ID = "performanceId"
    CUSTOMER_EMAIL = "customerEmail"
    BASE_URL = "baseUrl"
    VENUE_NAME = "venueName"
    VENUE_ADDRESS = "venueAddress"
    VENUE_CITY = "venueCity"
    VENUE_STATE = "venueState"
    VENUE_ZIP_CODE = "venueZipCode"
    PERFORMANCE_DATE = "performanceDate"
    PERFORMANCE_TIME = "performanceTime"
    TICKETS = "tickets"
    USER_ID = "userId"


class SubscriptionOverlay(str, Enum):
    """Statuses written locally on top of the provider's vocabulary"""
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class FulfillmentError(Exception):
    """Base error for the fulfillment pipeline"""


class AuthenticationError(FulfillmentError):
    """Webhook signature is missing or invalid"""


class MissingMetadataError(FulfillmentError):
    """An order cannot be synthesized because required metadata is absent"""

    def __init__(self, missing_fields: Iterable[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(
            "Cannot create order: missing required fields in PaymentIntent metadata: "
            + ", ".join(self.missing_fields)
        )


class NotFoundError(FulfillmentError):
    """A referenced record does not exist"""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class TransientDeliveryError(FulfillmentError):
    """The notification sender failed to deliver"""


class NotificationConfigError(TransientDeliveryError):
    """The notification sender is not configured"""


class NotificationResult(BaseModel):
    """Outcome of one notification attempt; failures are values, not exceptions"""
    success: bool
    order_id: str
    recipient: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def ok(cls, order_id: str, recipient: str) -> "NotificationResult":
        return cls(success=True, order_id=order_id, recipient=recipient)

    @classmethod
    def failed(cls, order_id: str, recipient: Optional[str], error: Exception) -> "NotificationResult":
        return cls(
            success=False,
            order_id=order_id,
            recipient=recipient,
            error=str(error),
            error_type=type(error).__name__,
        )


def generate_view_token() -> str:
    """URL-safe random credential for token-based order access"""
    return secrets.token_urlsafe(VIEW_TOKEN_BYTES)


def generate_record_id() -> str:
    return secrets.token_hex(16)


def view_token_expiry(now: Optional[datetime] = None) -> datetime:
    """Expiry two calendar years from now (Feb 29 rolls to Feb 28)"""
    now = now or datetime.now(timezone.utc)
    try:
        return now.replace(year=now.year + VIEW_TOKEN_LIFETIME_YEARS)
    except ValueError:
        return now.replace(year=now.year + VIEW_TOKEN_LIFETIME_YEARS, day=28)


def build_order_url(base_url: str, order_id: str, view_token: str) -> str:
    """Customer-facing order link; the token grants read access without login"""
    return f"{base_url.rstrip('/')}/orders/{order_id}?token={quote(view_token, safe='')}"

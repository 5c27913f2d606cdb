"""Typed Stripe webhook events

Only the fields the pipeline reads are modelled; everything else in the
provider payload is ignored. Each event type maps to one payload snapshot.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .domain import EventType, MetadataKey


def _object_id(value: Any) -> Any:
    """Stripe references are either an id string or an expanded object"""
    if isinstance(value, dict):
        return value.get("id")
    return value


def _timestamp(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


class _StripeSnapshot(BaseModel):
    id: str
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def metadata_or_empty(cls, value: Any) -> Any:
        return value or {}

    @field_validator("customer", "subscription", mode="before", check_fields=False)
    @classmethod
    def expand_reference(cls, value: Any) -> Any:
        return _object_id(value)

    def meta(self, key: MetadataKey) -> Optional[str]:
        """Metadata value with blanks treated as missing"""
        value = self.metadata.get(key.value)
        if value is None:
            return None
        value = str(value).strip()
        return value or None


class PaymentIntentSnapshot(_StripeSnapshot):
    amount: Optional[int] = None
    amount_received: Optional[int] = None
    customer: Optional[str] = None
    payment_method_types: List[str] = Field(default_factory=list)

    @property
    def captured_amount(self) -> Optional[int]:
        """Amount actually charged, in minor units"""
        if self.amount_received:
            return self.amount_received
        return self.amount or None

    @property
    def order_id(self) -> Optional[str]:
        return self.meta(MetadataKey.ORDER_ID)


class SubscriptionSnapshot(_StripeSnapshot):
    customer: Optional[str] = None
    status: Optional[str] = None
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None
    cancel_at_period_end: bool = False
    items: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("items", mode="before")
    @classmethod
    def items_or_empty(cls, value: Any) -> Any:
        return value or {}

    def _first_item(self) -> Dict[str, Any]:
        data = self.items.get("data") or []
        return data[0] if data else {}

    @property
    def period_start(self) -> Optional[datetime]:
        # Newer API versions moved the billing period onto subscription items
        return _timestamp(self.current_period_start or self._first_item().get("current_period_start"))

    @property
    def period_end(self) -> Optional[datetime]:
        return _timestamp(self.current_period_end or self._first_item().get("current_period_end"))


class InvoiceSnapshot(_StripeSnapshot):
    customer: Optional[str] = None
    subscription: Optional[str] = None
    parent: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("parent", mode="before")
    @classmethod
    def parent_or_empty(cls, value: Any) -> Any:
        return value or {}

    @property
    def subscription_id(self) -> Optional[str]:
        # New API: invoice.parent.subscription_details.subscription; legacy: invoice.subscription
        details = self.parent.get("subscription_details") or {}
        return _object_id(details.get("subscription")) or self.subscription


Payload = Union[PaymentIntentSnapshot, SubscriptionSnapshot, InvoiceSnapshot]

PAYLOAD_TYPES = {
    EventType.PAYMENT_INTENT_SUCCEEDED.value: PaymentIntentSnapshot,
    EventType.PAYMENT_INTENT_FAILED.value: PaymentIntentSnapshot,
    EventType.SUBSCRIPTION_CREATED.value: SubscriptionSnapshot,
    EventType.SUBSCRIPTION_UPDATED.value: SubscriptionSnapshot,
    EventType.SUBSCRIPTION_DELETED.value: SubscriptionSnapshot,
    EventType.INVOICE_PAYMENT_SUCCEEDED.value: InvoiceSnapshot,
    EventType.INVOICE_PAYMENT_FAILED.value: InvoiceSnapshot,
}


class EventData(BaseModel):
    object: Dict[str, Any] = Field(default_factory=dict)


class WebhookEvent(BaseModel):
    """A verified Stripe event envelope"""
    id: str = "unknown"
    type: str
    account: Optional[str] = None  # connected account that emitted the event
    created: Optional[int] = None
    livemode: Optional[bool] = None
    data: EventData = Field(default_factory=EventData)

    @property
    def object(self) -> Dict[str, Any]:
        return self.data.object

    @property
    def is_connected_account(self) -> bool:
        return bool(self.account)

    def payload(self) -> Optional[Payload]:
        """Typed snapshot of data.object, or None for types without one"""
        payload_type = PAYLOAD_TYPES.get(self.type)
        if payload_type is None:
            return None
        return payload_type.model_validate(self.object)

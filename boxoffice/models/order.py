"""Order domain model"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class OrderStatus(str, Enum):
    """Order lifecycle status"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    """Order payment status"""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class Order(BaseModel):
    """Complete order model from database

    Venue and performance fields are snapshots taken at order time so the
    order stays self-describing when the venue record later changes.
    """
    id: str
    user_id: Optional[str] = None  # holder reference; legacy rows may hold an email
    seller_id: Optional[str] = None
    production_id: Optional[str] = None
    performance_id: Optional[str] = None
    venue_id: Optional[str] = None
    total_amount: int = 0  # minor currency units
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: Optional[str] = None
    customer_email: Optional[str] = None
    email: Optional[str] = None  # legacy customer email field
    base_url: Optional[str] = None
    view_token: Optional[str] = None
    view_token_expires_at: Optional[datetime] = None
    venue_name: Optional[str] = None
    venue_address: Optional[str] = None
    venue_city: Optional[str] = None
    venue_state: Optional[str] = None
    venue_zip_code: Optional[str] = None
    performance_date: Optional[str] = None
    performance_time: Optional[str] = None
    stripe_payment_intent_id: Optional[str] = None
    tickets: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def has_venue_snapshot(self) -> bool:
        return bool(self.venue_name or self.venue_address or self.venue_city)


class OrderUpdate(BaseModel):
    """Order update model - all fields optional"""
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    base_url: Optional[str] = None
    view_token: Optional[str] = None
    view_token_expires_at: Optional[datetime] = None
    tickets: Optional[List[str]] = None
    updated_at: Optional[datetime] = None

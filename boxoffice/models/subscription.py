"""Subscription domain model"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Subscription(BaseModel):
    """Local mirror of a provider subscription, one per user"""
    user_id: str
    plan_id: Optional[str] = None
    plan_name: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    status: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[datetime] = None
    last_payment_date: Optional[datetime] = None
    last_payment_failed_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubscriptionUpdate(BaseModel):
    """Subscription overlay - only set fields are written"""
    stripe_subscription_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    status: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: Optional[bool] = None
    canceled_at: Optional[datetime] = None
    last_payment_date: Optional[datetime] = None
    last_payment_failed_date: Optional[datetime] = None
    updated_at: Optional[datetime] = None

"""Stripe events repository"""
from datetime import datetime, timezone
from typing import Optional

from supabase import Client  # type: ignore

from boxoffice.models.stripe_event import StripeEvent, StripeEventCreate, StripeEventUpdate

from .base import BaseRepository


class StripeEventRepository(BaseRepository[StripeEvent, StripeEventCreate, StripeEventUpdate]):
    """Repository for the received-event ledger"""

    def __init__(self, client: Client):
        super().__init__(client, "stripe_events", StripeEvent)

    async def find_by_stripe_event_id(self, stripe_event_id: str) -> Optional[StripeEvent]:
        """Find Stripe event by Stripe event ID (for idempotency checking)"""
        return await self.find_one_by_field("stripe_event_id", stripe_event_id)

    async def record(self, data: StripeEventCreate) -> StripeEvent:
        """Record a received event unless it is already in the ledger"""
        existing = await self.find_by_stripe_event_id(data.stripe_event_id)
        if existing:
            return existing
        return await self.create(data)

    async def mark_as_processed(self, stripe_event_id: str, error: Optional[str] = None) -> Optional[StripeEvent]:
        """Stamp processed_at; a handler error is kept for operators"""
        event = await self.find_by_stripe_event_id(stripe_event_id)
        if not event:
            return None

        update_data = StripeEventUpdate(processed_at=datetime.now(timezone.utc), error=error)
        return await self.update(event.id, update_data)

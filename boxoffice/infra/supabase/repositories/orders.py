"""Orders repository"""
from datetime import datetime, timezone
from typing import List, Optional

from supabase import Client  # type: ignore

from boxoffice.models.order import Order, OrderUpdate

from .base import BaseRepository


class OrderRepository(BaseRepository[Order, Order, OrderUpdate]):
    """Repository for order operations"""

    def __init__(self, client: Client):
        super().__init__(client, "orders", Order)

    async def find_by_payment_intent_id(self, payment_intent_id: str) -> Optional[Order]:
        """Find the order materialized for a Stripe PaymentIntent"""
        return await self.find_one_by_field("stripe_payment_intent_id", payment_intent_id)

    async def update_fields(self, order_id: str, data: OrderUpdate) -> Optional[Order]:
        """Merge fields into an order, stamping updated_at"""
        if data.updated_at is None:
            data.updated_at = datetime.now(timezone.utc)
        return await self.update(order_id, data)

    async def set_tickets(self, order_id: str, ticket_ids: List[str]) -> Optional[Order]:
        return await self.update_fields(order_id, OrderUpdate(tickets=ticket_ids))

"""Tickets repository"""
from typing import List

from supabase import Client  # type: ignore

from boxoffice.models.ticket import Ticket

from .base import BaseRepository


class TicketRepository(BaseRepository[Ticket, Ticket, Ticket]):
    """Repository for tickets, each owned by one order"""

    def __init__(self, client: Client):
        super().__init__(client, "tickets", Ticket)

    async def upsert_ticket(self, order_id: str, ticket: Ticket) -> Ticket:
        if ticket.order_id != order_id:
            raise ValueError(f"Ticket {ticket.id} does not belong to order {order_id}")
        return await self.upsert(ticket)

    async def find_by_order(self, order_id: str) -> List[Ticket]:
        return await self.find_by_filters({"order_id": order_id})

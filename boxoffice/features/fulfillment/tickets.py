"""Ticket issuance for a materialized order"""
import json
import logging
import math
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ValidationError, field_validator

from boxoffice.infra.supabase.repositories.orders import OrderRepository
from boxoffice.infra.supabase.repositories.tickets import TicketRepository
from boxoffice.models.order import Order
from boxoffice.models.ticket import Ticket, TicketStatus

from .domain import MetadataKey, build_order_url, generate_record_id
from .events import PaymentIntentSnapshot

logger = logging.getLogger(__name__)


class TicketRequest(BaseModel):
    """One requested seat allocation, as sent by the storefront"""
    seatId: Optional[str] = None
    section: Optional[str] = None
    row: Optional[str] = None
    seatNumber: Optional[str] = None
    price: Optional[int] = None

    @field_validator("seatId", "section", "row", "seatNumber", mode="before")
    @classmethod
    def stringify(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("price", mode="before")
    @classmethod
    def price_as_int(cls, value: Any) -> Any:
        """Prices are minor units; anything else is logged and coerced"""
        if value is None or value == "":
            return None
        try:
            price = float(value)
        except (TypeError, ValueError):
            price = math.nan
        if not math.isfinite(price):
            logger.warning(f"TicketIssuer: Unparseable ticket price {value!r}, using 0")
            return 0
        if not price.is_integer():
            logger.warning(f"TicketIssuer: Ticket price {value!r} is not in minor units, truncating to {int(price)}")
        return int(price)


def parse_ticket_requests(payment_intent: PaymentIntentSnapshot) -> List[TicketRequest]:
    """Seat allocations from metadata['tickets']; malformed input yields none"""
    raw = payment_intent.metadata.get(MetadataKey.TICKETS.value)
    if not raw:
        return []

    try:
        items = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError as e:
        logger.error(f"TicketIssuer: Failed to parse tickets from PaymentIntent {payment_intent.id} metadata: {e}")
        return []

    if not isinstance(items, list):
        logger.warning(f"TicketIssuer: Tickets metadata on {payment_intent.id} is not an array, skipping")
        return []

    requests = []
    for item in items:
        try:
            requests.append(TicketRequest.model_validate(item))
        except ValidationError as e:
            logger.error(f"TicketIssuer: Skipping malformed ticket request {item!r}: {e}")
    return requests


class TicketIssuer:
    """Creates ticket records under an order"""

    def __init__(self, ticket_repo: TicketRepository, order_repo: OrderRepository, default_base_url: str):
        self.ticket_repo = ticket_repo
        self.order_repo = order_repo
        self.default_base_url = default_base_url

    async def issue_tickets(self, order: Order, ticket_requests: List[TicketRequest]) -> List[str]:
        """
        Issue one ticket per request and record the issued ids on the order

        A ticket that fails to persist is logged and skipped; the order keeps
        exactly the tickets that were written.
        """
        if not ticket_requests:
            logger.warning(f"TicketIssuer: No ticket data for order {order.id} - order created without tickets")
            return []

        logger.info(f"TicketIssuer: Creating {len(ticket_requests)} tickets for order {order.id}")
        access_link = build_order_url(order.base_url or self.default_base_url, order.id, order.view_token or "")
        now = datetime.now(timezone.utc)
        ticket_ids: List[str] = []

        for request in ticket_requests:
            ticket = Ticket(
                id=generate_record_id(),
                order_id=order.id,
                seat_id=request.seatId,
                section=request.section,
                row=request.row,
                seat_number=request.seatNumber,
                price=request.price or 0,
                status=TicketStatus.VALID,
                qr_code=access_link,
                created_at=now,
            )
            try:
                await self.ticket_repo.upsert_ticket(order.id, ticket)
                ticket_ids.append(ticket.id)
            except Exception as e:
                logger.error(
                    f"TicketIssuer: Failed to create ticket for seat {request.seatId} on order {order.id}: {e}",
                    exc_info=True,
                )

        await self.order_repo.set_tickets(order.id, ticket_ids)
        order.tickets = ticket_ids
        logger.info(f"TicketIssuer: Order {order.id} now has {len(ticket_ids)} of {len(ticket_requests)} tickets")
        return ticket_ids

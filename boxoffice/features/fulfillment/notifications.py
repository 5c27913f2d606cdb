"""Order summary notification: view-model assembly and delivery"""
import logging
from typing import List, Optional, Protocol

from pydantic import BaseModel

from boxoffice.infra.supabase.repositories.catalog import (
    PerformanceRepository,
    ProductionRepository,
    VenueRepository,
)
from boxoffice.infra.supabase.repositories.tickets import TicketRepository
from boxoffice.infra.supabase.repositories.users import UserRepository
from boxoffice.models import Order, Performance, Ticket, User, Venue

from .domain import DEFAULT_EMAIL_SUBJECT, NotificationResult

logger = logging.getLogger(__name__)


class NotificationSender(Protocol):
    async def send(
        self,
        to: str,
        subject: str,
        order: Order,
        tickets: List[Ticket],
        performance: Optional[Performance] = None,
        venue: Optional[Venue] = None,
        seller: Optional[User] = None,
    ) -> None: ...


class OrderSummary(BaseModel):
    """Everything the sender needs for one order email"""
    order: Order
    tickets: List[Ticket]
    performance: Optional[Performance] = None
    venue: Optional[Venue] = None
    seller: Optional[User] = None


def _start_time(order: Order) -> Optional[str]:
    if order.performance_date and order.performance_time:
        return f"{order.performance_date}T{order.performance_time}:00"
    if order.performance_date:
        return f"{order.performance_date}T00:00:00"
    return None


def performance_from_snapshot(order: Order) -> Performance:
    """Minimal performance built from the order's own date/time snapshot"""
    return Performance(
        id=order.performance_id or "",
        production_id=order.production_id,
        date=order.performance_date,
        start_time=_start_time(order),
    )


def venue_from_snapshot(order: Order) -> Venue:
    return Venue(
        name=order.venue_name,
        address=order.venue_address,
        city=order.venue_city,
        state=order.venue_state,
        zip_code=order.venue_zip_code,
    )


class NotificationDispatcher:
    """Builds the order summary and hands it to the sender; never raises"""

    def __init__(
        self,
        sender: NotificationSender,
        ticket_repo: TicketRepository,
        user_repo: UserRepository,
        performance_repo: PerformanceRepository,
        venue_repo: VenueRepository,
        production_repo: ProductionRepository,
    ):
        self.sender = sender
        self.ticket_repo = ticket_repo
        self.user_repo = user_repo
        self.performance_repo = performance_repo
        self.venue_repo = venue_repo
        self.production_repo = production_repo

    async def notify(self, order: Order, recipient: str, subject: str = DEFAULT_EMAIL_SUBJECT) -> NotificationResult:
        """Send the order summary email to recipient"""
        try:
            summary = await self.build_summary(order)
            logger.info(f"NotificationDispatcher: Sending order summary for order {order.id} to {recipient}")
            await self.sender.send(
                to=recipient,
                subject=subject,
                order=summary.order,
                tickets=summary.tickets,
                performance=summary.performance,
                venue=summary.venue,
                seller=summary.seller,
            )
        except Exception as e:
            logger.error(
                f"NotificationDispatcher: Failed to send order summary for order {order.id} to {recipient}: "
                f"{type(e).__name__}: {e}",
                exc_info=True,
            )
            return NotificationResult.failed(order.id, recipient, e)

        return NotificationResult.ok(order.id, recipient)

    async def build_summary(self, order: Order) -> OrderSummary:
        tickets = await self.ticket_repo.find_by_order(order.id)
        performance = await self._load_performance(order)
        venue = await self._load_venue(order, performance)
        seller = await self._load_seller(order)
        return OrderSummary(order=order, tickets=tickets, performance=performance, venue=venue, seller=seller)

    async def _load_performance(self, order: Order) -> Optional[Performance]:
        performance = None
        if order.performance_id:
            try:
                performance = await self.performance_repo.find_by_id(order.performance_id)
            except Exception as e:
                logger.error(f"NotificationDispatcher: Failed to fetch performance {order.performance_id}: {e}")
        elif not order.performance_date:
            logger.warning(f"NotificationDispatcher: Order {order.id} has no performance reference or date")
            return None

        if performance is None:
            logger.warning(
                f"NotificationDispatcher: Performance {order.performance_id} unavailable, using order snapshot"
            )
            performance = performance_from_snapshot(order)

        if not performance.start_time and not performance.date:
            performance.start_time = _start_time(order)
            performance.date = order.performance_date

        if not performance.production_name and not performance.title and order.production_id:
            try:
                production = await self.production_repo.find_by_id(order.production_id)
                if production:
                    performance.production_name = production.name or production.title
            except Exception as e:
                logger.error(f"NotificationDispatcher: Failed to fetch production {order.production_id}: {e}")

        return performance

    async def _load_venue(self, order: Order, performance: Optional[Performance]) -> Optional[Venue]:
        venue = await self._fetch_venue(order.venue_id)
        if venue:
            return venue

        if order.has_venue_snapshot:
            return venue_from_snapshot(order)

        if performance and performance.venue_id:
            venue = await self._fetch_venue(performance.venue_id)
            if venue:
                return venue

        logger.warning(f"NotificationDispatcher: No venue information for order {order.id}")
        return None

    async def _fetch_venue(self, venue_id: Optional[str]) -> Optional[Venue]:
        if not venue_id or not venue_id.strip():
            return None
        try:
            return await self.venue_repo.find_by_id(venue_id.strip())
        except Exception as e:
            logger.error(f"NotificationDispatcher: Failed to fetch venue {venue_id}: {e}")
            return None

    async def _load_seller(self, order: Order) -> Optional[User]:
        if not order.seller_id:
            return None
        try:
            return await self.user_repo.find_by_id(order.seller_id)
        except Exception as e:
            logger.error(f"NotificationDispatcher: Could not fetch seller {order.seller_id}: {e}")
            return None

"""Record models for the document store"""
from .order import Order, OrderUpdate, OrderStatus, PaymentStatus
from .ticket import Ticket, TicketStatus
from .subscription import Subscription, SubscriptionUpdate
from .user import User
from .catalog import Performance, Venue, Production
from .stripe_event import StripeEvent, StripeEventCreate, StripeEventUpdate

__all__ = [
    "Order",
    "OrderUpdate",
    "OrderStatus",
    "PaymentStatus",
    "Ticket",
    "TicketStatus",
    "Subscription",
    "SubscriptionUpdate",
    "User",
    "Performance",
    "Venue",
    "Production",
    "StripeEvent",
    "StripeEventCreate",
    "StripeEventUpdate",
]

"""Recipient email resolution for order notifications"""
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from boxoffice.infra.stripe import StripeGateway
from boxoffice.infra.supabase.repositories.users import UserRepository
from boxoffice.models.order import Order

from .domain import MetadataKey
from .events import PaymentIntentSnapshot

logger = logging.getLogger(__name__)

Resolver = Callable[[PaymentIntentSnapshot, Order, Optional[str]], Awaitable[Optional[str]]]


def _clean(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    value = value.strip()
    return value or None


class RecipientResolver:
    """
    Picks the notification address from a fixed priority chain.

    1. PaymentIntent metadata customerEmail (fixed at charge time)
    2. Order customer_email, then the legacy email field
    3. Order holder: used directly if it is an email, else looked up as a user id
    4. Stripe customer email, fetched live

    The first non-empty answer wins. A source that errors counts as empty.
    """

    def __init__(self, user_repo: UserRepository, stripe_gateway: StripeGateway):
        self.user_repo = user_repo
        self.stripe_gateway = stripe_gateway
        self.resolvers: List[Tuple[str, Resolver]] = [
            ("payment_metadata", self.from_payment_metadata),
            ("order_email", self.from_order_email),
            ("order_holder", self.from_order_holder),
            ("stripe_customer", self.from_stripe_customer),
        ]

    async def resolve(
        self,
        payment_intent: PaymentIntentSnapshot,
        order: Order,
        stripe_account: Optional[str] = None,
    ) -> Optional[str]:
        checked: List[str] = []
        for source, resolver in self.resolvers:
            checked.append(source)
            try:
                email = _clean(await resolver(payment_intent, order, stripe_account))
            except Exception as e:
                logger.error(f"RecipientResolver: Source {source} failed for order {order.id}: {e}")
                continue
            if email:
                logger.debug(f"RecipientResolver: Order {order.id} recipient from {source}")
                return email

        logger.error(
            f"RecipientResolver: No recipient email found for order {order.id} "
            f"(checked: {', '.join(checked)}; holder={order.user_id!r}, "
            f"customer={payment_intent.customer!r})"
        )
        return None

    async def from_payment_metadata(self, payment_intent: PaymentIntentSnapshot, order: Order, stripe_account: Optional[str]) -> Optional[str]:
        return payment_intent.meta(MetadataKey.CUSTOMER_EMAIL)

    async def from_order_email(self, payment_intent: PaymentIntentSnapshot, order: Order, stripe_account: Optional[str]) -> Optional[str]:
        return _clean(order.customer_email) or _clean(order.email)

    async def from_order_holder(self, payment_intent: PaymentIntentSnapshot, order: Order, stripe_account: Optional[str]) -> Optional[str]:
        holder = _clean(order.user_id)
        if not holder:
            return None
        if "@" in holder:
            return holder

        user = await self.user_repo.find_by_id(holder)
        return user.email if user else None

    async def from_stripe_customer(self, payment_intent: PaymentIntentSnapshot, order: Order, stripe_account: Optional[str]) -> Optional[str]:
        if not payment_intent.customer:
            return None
        customer = await self.stripe_gateway.retrieve_customer(payment_intent.customer, stripe_account)
        return customer.get("email")

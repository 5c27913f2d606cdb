"""Order materialization for successful payments"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel

from boxoffice.infra.stripe import StripeGateway
from boxoffice.infra.supabase.repositories.orders import OrderRepository
from boxoffice.models.order import Order, OrderStatus, PaymentStatus

from .domain import (
    MetadataKey,
    MissingMetadataError,
    NotFoundError,
    generate_record_id,
    generate_view_token,
    view_token_expiry,
)
from .events import PaymentIntentSnapshot

logger = logging.getLogger(__name__)


class MaterializedOrder(BaseModel):
    order: Order
    created: bool  # True only when this call synthesized the order


class OrderMaterializer:
    """Guarantees an order exists for a succeeded PaymentIntent"""

    def __init__(self, order_repo: OrderRepository, stripe_gateway: StripeGateway, default_base_url: str):
        self.order_repo = order_repo
        self.stripe_gateway = stripe_gateway
        self.default_base_url = default_base_url

    async def ensure_order(
        self,
        payment_intent: PaymentIntentSnapshot,
        stripe_account: Optional[str] = None,
    ) -> MaterializedOrder:
        """
        Return the order for this payment, creating it from metadata if needed

        Lookup order: metadata orderId, then the PaymentIntent id join, then
        synthesis. Only synthesis creates anything.

        Raises:
            NotFoundError: metadata names an order that does not exist
            MissingMetadataError: no order exists and metadata cannot build one
        """
        order_id = payment_intent.order_id
        if order_id:
            order = await self.order_repo.find_by_id(order_id)
            if not order:
                raise NotFoundError("Order", order_id)
            logger.info(f"OrderMaterializer: PaymentIntent {payment_intent.id} already linked to order {order_id}")
            return MaterializedOrder(order=order, created=False)

        # The metadata write-back may have failed on an earlier delivery
        existing = await self.order_repo.find_by_payment_intent_id(payment_intent.id)
        if existing:
            logger.info(
                f"OrderMaterializer: Found order {existing.id} by PaymentIntent {payment_intent.id}, "
                f"retrying metadata link"
            )
            await self._link_payment_intent(payment_intent, existing.id, stripe_account)
            return MaterializedOrder(order=existing, created=False)

        logger.warning(
            f"OrderMaterializer: PaymentIntent {payment_intent.id} has no orderId - creating order from metadata"
        )
        order = self.build_order(payment_intent)
        created = await self.order_repo.upsert(order)
        logger.info(f"OrderMaterializer: Created order {created.id} from PaymentIntent {payment_intent.id}")

        await self._link_payment_intent(payment_intent, created.id, stripe_account)
        return MaterializedOrder(order=created, created=True)

    def build_order(self, payment_intent: PaymentIntentSnapshot, now: Optional[datetime] = None) -> Order:
        """Synthesize a paid order from PaymentIntent metadata"""
        meta = payment_intent.meta
        seller_id = meta(MetadataKey.SELLER_ID)
        production_id = meta(MetadataKey.PRODUCTION_ID)
        performance_id = meta(MetadataKey.PERFORMANCE_ID)
        # Never trust an amount from metadata; the PaymentIntent holds what was charged
        total_amount = payment_intent.captured_amount

        missing: List[str] = []
        if not seller_id:
            missing.append(MetadataKey.SELLER_ID.value)
        if not production_id:
            missing.append(MetadataKey.PRODUCTION_ID.value)
        if not performance_id:
            missing.append(MetadataKey.PERFORMANCE_ID.value)
        if not total_amount:
            missing.append("amount")
        if missing:
            raise MissingMetadataError(missing)

        now = now or datetime.now(timezone.utc)
        return Order(
            id=generate_record_id(),
            user_id=seller_id,
            seller_id=seller_id,
            production_id=production_id,
            performance_id=performance_id,
            total_amount=int(total_amount),
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PAID,
            payment_method=(payment_intent.payment_method_types or ["card"])[0],
            customer_email=meta(MetadataKey.CUSTOMER_EMAIL),
            base_url=meta(MetadataKey.BASE_URL) or self.default_base_url,
            view_token=generate_view_token(),
            view_token_expires_at=view_token_expiry(now),
            venue_name=meta(MetadataKey.VENUE_NAME),
            venue_address=_venue_address(payment_intent),
            venue_city=meta(MetadataKey.VENUE_CITY),
            venue_state=meta(MetadataKey.VENUE_STATE),
            venue_zip_code=meta(MetadataKey.VENUE_ZIP_CODE),
            performance_date=meta(MetadataKey.PERFORMANCE_DATE),
            performance_time=meta(MetadataKey.PERFORMANCE_TIME),
            stripe_payment_intent_id=payment_intent.id,
            tickets=[],
            created_at=now,
            updated_at=now,
        )

    async def _link_payment_intent(
        self,
        payment_intent: PaymentIntentSnapshot,
        order_id: str,
        stripe_account: Optional[str],
    ) -> None:
        """Best-effort: the order already exists whether or not this succeeds"""
        try:
            await self.stripe_gateway.update_payment_intent_metadata(
                payment_intent.id,
                {MetadataKey.ORDER_ID.value: order_id},
                stripe_account,
            )
            logger.info(f"OrderMaterializer: Updated PaymentIntent {payment_intent.id} metadata with orderId {order_id}")
        except Exception as e:
            logger.error(
                f"OrderMaterializer: Failed to update PaymentIntent {payment_intent.id} metadata "
                f"with orderId {order_id}: {e}",
                exc_info=True,
            )


def _venue_address(payment_intent: PaymentIntentSnapshot) -> Optional[str]:
    """Single address line, derived from city/state/zip only when none was given"""
    address = payment_intent.meta(MetadataKey.VENUE_ADDRESS)
    if address:
        return address

    parts = [
        payment_intent.meta(MetadataKey.VENUE_CITY),
        payment_intent.meta(MetadataKey.VENUE_STATE),
        payment_intent.meta(MetadataKey.VENUE_ZIP_CODE),
    ]
    parts = [part for part in parts if part]
    return ", ".join(parts) if parts else None

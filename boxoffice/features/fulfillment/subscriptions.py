"""Mirror of Stripe subscription state into local subscription records

Stripe drives every status change. Locally we only overlay `canceled`,
`active` and `past_due` (with timestamps) in response to deletion and
invoice events.
"""
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Tuple

from boxoffice.infra.stripe import StripeGateway
from boxoffice.infra.supabase.repositories.subscriptions import SubscriptionRepository
from boxoffice.infra.supabase.repositories.users import UserRepository
from boxoffice.models.subscription import Subscription, SubscriptionUpdate

from .domain import MetadataKey, SubscriptionOverlay
from .events import InvoiceSnapshot, SubscriptionSnapshot

logger = logging.getLogger(__name__)

UserIdSource = Callable[[], Awaitable[Optional[str]]]


class SubscriptionSynchronizer:
    """Handles customer.subscription.* and invoice.payment_* events"""

    def __init__(
        self,
        subscription_repo: SubscriptionRepository,
        user_repo: UserRepository,
        stripe_gateway: StripeGateway,
    ):
        self.subscription_repo = subscription_repo
        self.user_repo = user_repo
        self.stripe_gateway = stripe_gateway

    # ------------------------------------------------------------------
    # User id resolution
    # ------------------------------------------------------------------

    async def resolve_user_id(
        self,
        customer_id: Optional[str],
        metadata_source: UserIdSource,
        stripe_account: Optional[str] = None,
    ) -> Optional[str]:
        """Customer metadata userId, then event metadata userId, then directory lookup"""

        async def from_customer() -> Optional[str]:
            if not customer_id:
                return None
            customer = await self.stripe_gateway.retrieve_customer(customer_id, stripe_account)
            return (customer.get("metadata") or {}).get(MetadataKey.USER_ID.value)

        async def from_directory() -> Optional[str]:
            if not customer_id:
                return None
            user = await self.user_repo.find_by_stripe_customer_id(customer_id)
            return user.id if user else None

        sources: List[Tuple[str, UserIdSource]] = [
            ("customer_metadata", from_customer),
            ("event_metadata", metadata_source),
            ("directory", from_directory),
        ]
        for name, source in sources:
            try:
                user_id = await source()
            except Exception as e:
                logger.error(f"SubscriptionSynchronizer: User id source {name} failed for customer {customer_id}: {e}")
                continue
            if user_id:
                return user_id

        logger.warning(
            f"SubscriptionSynchronizer: Could not resolve user for customer {customer_id}; dropping event"
        )
        return None

    async def _user_for_subscription(self, subscription: SubscriptionSnapshot, stripe_account: Optional[str]) -> Optional[str]:
        async def from_subscription_metadata() -> Optional[str]:
            return subscription.meta(MetadataKey.USER_ID)

        return await self.resolve_user_id(subscription.customer, from_subscription_metadata, stripe_account)

    async def _user_for_invoice(self, invoice: InvoiceSnapshot, stripe_account: Optional[str]) -> Optional[str]:
        async def from_invoice_metadata() -> Optional[str]:
            user_id = invoice.meta(MetadataKey.USER_ID)
            if user_id:
                return user_id
            subscription = await self.stripe_gateway.retrieve_subscription(invoice.subscription_id, stripe_account)
            return (subscription.get("metadata") or {}).get(MetadataKey.USER_ID.value)

        return await self.resolve_user_id(invoice.customer, from_invoice_metadata, stripe_account)

    # ------------------------------------------------------------------
    # Subscription lifecycle
    # ------------------------------------------------------------------

    def _snapshot_record(self, user_id: str, subscription: SubscriptionSnapshot, now: datetime) -> Subscription:
        return Subscription(
            user_id=user_id,
            plan_id=subscription.metadata.get("planId"),
            plan_name=subscription.metadata.get("planName"),
            stripe_subscription_id=subscription.id,
            stripe_customer_id=subscription.customer,
            status=subscription.status,
            current_period_start=subscription.period_start,
            current_period_end=subscription.period_end,
            cancel_at_period_end=subscription.cancel_at_period_end,
            updated_at=now,
        )

    async def handle_subscription_created(self, subscription: SubscriptionSnapshot, stripe_account: Optional[str] = None) -> None:
        user_id = await self._user_for_subscription(subscription, stripe_account)
        if not user_id:
            return

        now = datetime.now(timezone.utc)
        record = self._snapshot_record(user_id, subscription, now)
        existing = await self.subscription_repo.find_by_id(user_id)
        if not existing:
            record.created_at = now
        await self.subscription_repo.upsert(record)
        logger.info(
            f"SubscriptionSynchronizer: Stored subscription {subscription.id} for user {user_id} "
            f"(status={subscription.status})"
        )

    async def handle_subscription_updated(self, subscription: SubscriptionSnapshot, stripe_account: Optional[str] = None) -> None:
        user_id = await self._user_for_subscription(subscription, stripe_account)
        if not user_id:
            return

        existing = await self.subscription_repo.find_by_id(user_id)
        if not existing:
            # Update delivered before create; take the full snapshot
            logger.warning(
                f"SubscriptionSynchronizer: No local subscription for user {user_id} on update, creating it"
            )
            await self.handle_subscription_created(subscription, stripe_account)
            return

        update_data = SubscriptionUpdate(
            status=subscription.status,
            current_period_start=subscription.period_start,
            current_period_end=subscription.period_end,
            cancel_at_period_end=subscription.cancel_at_period_end,
            updated_at=datetime.now(timezone.utc),
        )
        await self.subscription_repo.update(user_id, update_data)
        logger.info(
            f"SubscriptionSynchronizer: Updated subscription for user {user_id} "
            f"(status={subscription.status}, cancel_at_period_end={subscription.cancel_at_period_end})"
        )

    async def handle_subscription_deleted(self, subscription: SubscriptionSnapshot, stripe_account: Optional[str] = None) -> None:
        user_id = await self._user_for_subscription(subscription, stripe_account)
        if not user_id:
            return

        now = datetime.now(timezone.utc)
        await self._overlay(
            user_id,
            SubscriptionUpdate(status=SubscriptionOverlay.CANCELED.value, canceled_at=now, updated_at=now),
        )

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    async def handle_invoice_payment_succeeded(self, invoice: InvoiceSnapshot, stripe_account: Optional[str] = None) -> None:
        if not invoice.subscription_id:
            logger.info(f"SubscriptionSynchronizer: Invoice {invoice.id} has no subscription (one-time payment), skipping")
            return

        user_id = await self._user_for_invoice(invoice, stripe_account)
        if not user_id:
            return

        now = datetime.now(timezone.utc)
        await self._overlay(
            user_id,
            SubscriptionUpdate(status=SubscriptionOverlay.ACTIVE.value, last_payment_date=now, updated_at=now),
        )

    async def handle_invoice_payment_failed(self, invoice: InvoiceSnapshot, stripe_account: Optional[str] = None) -> None:
        if not invoice.subscription_id:
            logger.info(f"SubscriptionSynchronizer: Invoice {invoice.id} has no subscription, skipping")
            return

        user_id = await self._user_for_invoice(invoice, stripe_account)
        if not user_id:
            return

        now = datetime.now(timezone.utc)
        await self._overlay(
            user_id,
            SubscriptionUpdate(status=SubscriptionOverlay.PAST_DUE.value, last_payment_failed_date=now, updated_at=now),
        )

    async def _overlay(self, user_id: str, update_data: SubscriptionUpdate) -> None:
        """Merge fields into an existing record; no record means nothing to do"""
        existing = await self.subscription_repo.find_by_id(user_id)
        if not existing:
            logger.warning(f"SubscriptionSynchronizer: No local subscription for user {user_id}, skipping {update_data.status}")
            return

        await self.subscription_repo.update(user_id, update_data)
        logger.info(f"SubscriptionSynchronizer: Set subscription for user {user_id} to {update_data.status}")

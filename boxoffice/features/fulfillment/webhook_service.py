"""Webhook service: routes verified Stripe events to fulfillment handlers

Runs after the webhook has been acknowledged, so nothing here can change the
HTTP response. Every event is handled independently; a failure is logged
(and recorded in the event ledger when one is configured) and never escapes
process_event.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from boxoffice.infra.stripe import StripeGateway
from boxoffice.infra.supabase.repositories.orders import OrderRepository
from boxoffice.infra.supabase.repositories.stripe_events import StripeEventRepository
from boxoffice.models.order import Order, OrderStatus, OrderUpdate, PaymentStatus
from boxoffice.models.stripe_event import StripeEventCreate

from .domain import EventType, MetadataKey, generate_view_token, view_token_expiry
from .events import InvoiceSnapshot, PaymentIntentSnapshot, SubscriptionSnapshot, WebhookEvent
from .notifications import NotificationDispatcher
from .orders import OrderMaterializer
from .recipients import RecipientResolver
from .subscriptions import SubscriptionSynchronizer
from .tickets import TicketIssuer, parse_ticket_requests

logger = logging.getLogger(__name__)

Handler = Callable[[WebhookEvent], Awaitable[None]]


class FulfillmentWebhookService:
    """Dispatches payment provider events by type"""

    def __init__(
        self,
        order_repo: OrderRepository,
        stripe_gateway: StripeGateway,
        materializer: OrderMaterializer,
        ticket_issuer: TicketIssuer,
        recipient_resolver: RecipientResolver,
        notifier: NotificationDispatcher,
        subscription_sync: SubscriptionSynchronizer,
        stripe_event_repo: Optional[StripeEventRepository] = None,
    ):
        self.order_repo = order_repo
        self.stripe_gateway = stripe_gateway
        self.materializer = materializer
        self.ticket_issuer = ticket_issuer
        self.recipient_resolver = recipient_resolver
        self.notifier = notifier
        self.subscription_sync = subscription_sync
        self.stripe_event_repo = stripe_event_repo

        self._handlers: Dict[str, Handler] = {
            EventType.PAYMENT_INTENT_SUCCEEDED.value: self.handle_payment_intent_succeeded,
            EventType.PAYMENT_INTENT_FAILED.value: self.handle_payment_intent_failed,
            EventType.CHARGE_DISPUTE_CREATED.value: self.handle_acknowledged_only,
            EventType.ACCOUNT_UPDATED.value: self.handle_acknowledged_only,
            EventType.SUBSCRIPTION_CREATED.value: self.handle_subscription_created,
            EventType.SUBSCRIPTION_UPDATED.value: self.handle_subscription_updated,
            EventType.SUBSCRIPTION_DELETED.value: self.handle_subscription_deleted,
            EventType.INVOICE_PAYMENT_SUCCEEDED.value: self.handle_invoice_payment_succeeded,
            EventType.INVOICE_PAYMENT_FAILED.value: self.handle_invoice_payment_failed,
        }

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def process_event(self, event: WebhookEvent) -> None:
        """Handle one event to completion. Never raises."""
        logger.info(
            f"FulfillmentWebhookService: Processing {event.type} (ID: {event.id}, "
            f"account: {event.account or 'platform'})"
        )

        if await self._already_processed(event):
            logger.info(f"FulfillmentWebhookService: Event {event.id} already processed, skipping")
            return

        handler = self._handlers.get(event.type)
        error: Optional[str] = None
        if handler is None:
            logger.debug(f"FulfillmentWebhookService: Unhandled event type {event.type}, ignoring")
        else:
            try:
                await handler(event)
            except Exception as e:
                error = f"{type(e).__name__}: {e}"
                logger.error(
                    f"FulfillmentWebhookService: Error handling {event.type} (ID: {event.id}): {e}",
                    exc_info=True,
                )

        await self._mark_processed(event, error)

    async def _already_processed(self, event: WebhookEvent) -> bool:
        """Record the event in the ledger and report whether it was handled before"""
        if self.stripe_event_repo is None or not event.id.startswith("evt_"):
            return False
        try:
            recorded = await self.stripe_event_repo.record(
                StripeEventCreate(
                    stripe_event_id=event.id,
                    type=event.type,
                    account=event.account,
                    payload=event.model_dump(mode="json"),
                )
            )
        except Exception:
            logger.error(f"FulfillmentWebhookService: Failed to record event {event.id} in ledger", exc_info=True)
            return False
        # A failed attempt stays eligible for manual redelivery
        return recorded.processed_at is not None and recorded.error is None

    async def _mark_processed(self, event: WebhookEvent, error: Optional[str]) -> None:
        if self.stripe_event_repo is None or not event.id.startswith("evt_"):
            return
        try:
            await self.stripe_event_repo.mark_as_processed(event.id, error=error)
        except Exception:
            logger.error(f"FulfillmentWebhookService: Failed to mark event {event.id} as processed", exc_info=True)

    async def _step(self, name: str, order_id: str, step: Awaitable[Any]) -> Any:
        """Run one side effect in isolation; failure is logged and yields None"""
        try:
            return await step
        except Exception as e:
            logger.error(f"FulfillmentWebhookService: {name} failed for order {order_id}: {e}", exc_info=True)
            return None

    # ------------------------------------------------------------------
    # Payment intents
    # ------------------------------------------------------------------

    async def _with_platform_metadata(self, event: WebhookEvent, payment_intent: PaymentIntentSnapshot) -> PaymentIntentSnapshot:
        """Connected-account events may arrive without metadata; re-read from the platform"""
        if not event.is_connected_account or payment_intent.order_id:
            return payment_intent
        try:
            platform_copy = await self.stripe_gateway.retrieve_payment_intent(payment_intent.id)
            return PaymentIntentSnapshot.model_validate(platform_copy)
        except Exception as e:
            logger.error(
                f"FulfillmentWebhookService: Failed to fetch PaymentIntent {payment_intent.id} "
                f"from platform account: {e}"
            )
            return payment_intent

    async def handle_payment_intent_succeeded(self, event: WebhookEvent) -> None:
        """
        Materialize the order, issue tickets, confirm payment and email the buyer

        Only a materialization failure aborts the flow; later steps fail alone.
        """
        payment_intent = await self._with_platform_metadata(event, event.payload())
        account = event.account

        logger.debug(
            f"FulfillmentWebhookService: PaymentIntent {payment_intent.id} succeeded "
            f"(orderId={payment_intent.order_id!r}, metadata keys={sorted(payment_intent.metadata)})"
        )

        materialized = await self.materializer.ensure_order(payment_intent, account)
        order = materialized.order

        if materialized.created:
            await self._step(
                "Ticket issuance",
                order.id,
                self.ticket_issuer.issue_tickets(order, parse_ticket_requests(payment_intent)),
            )

        confirmed = await self._step("Payment confirmation", order.id, self.confirm_payment(order, payment_intent))
        if confirmed is not None:
            order = confirmed

        recipient = await self._step(
            "Recipient resolution",
            order.id,
            self.recipient_resolver.resolve(payment_intent, order, account),
        )
        if not recipient:
            logger.error(f"FulfillmentWebhookService: No recipient for order {order.id}, skipping notification")
            return

        result = await self.notifier.notify(order, recipient)
        if result.success:
            logger.info(f"FulfillmentWebhookService: Order summary sent to {recipient} for order {order.id}")
        else:
            logger.error(
                f"FulfillmentWebhookService: Order summary NOT delivered for order {order.id} "
                f"to {recipient}: {result.error_type}: {result.error}"
            )

    async def confirm_payment(self, order: Order, payment_intent: PaymentIntentSnapshot) -> Order:
        """Mark the order paid and confirmed, backfilling a view token if it has none"""
        update_data = OrderUpdate(payment_status=PaymentStatus.PAID)
        if order.status != OrderStatus.COMPLETED:
            update_data.status = OrderStatus.CONFIRMED
        if not order.view_token:
            # Orders created before view tokens existed
            update_data.view_token = generate_view_token()
            update_data.view_token_expires_at = view_token_expiry()
        base_url = payment_intent.meta(MetadataKey.BASE_URL)
        if base_url and base_url != order.base_url:
            update_data.base_url = base_url

        updated = await self.order_repo.update_fields(order.id, update_data)
        if updated is None:
            return order.model_copy(update=update_data.model_dump(exclude_unset=True))
        return updated

    async def handle_payment_intent_failed(self, event: WebhookEvent) -> None:
        payment_intent = await self._with_platform_metadata(event, event.payload())
        order_id = payment_intent.order_id
        if not order_id:
            logger.info(f"FulfillmentWebhookService: Failed PaymentIntent {payment_intent.id} has no order, nothing to do")
            return

        order = await self.order_repo.find_by_id(order_id)
        if not order:
            logger.warning(f"FulfillmentWebhookService: Order {order_id} for failed PaymentIntent not found")
            return
        if order.payment_status == PaymentStatus.PAID:
            # A later attempt on the same PaymentIntent already succeeded
            logger.info(f"FulfillmentWebhookService: Order {order_id} already paid, ignoring stale failure")
            return

        await self.order_repo.update_fields(
            order_id,
            OrderUpdate(payment_status=PaymentStatus.FAILED, status=OrderStatus.CANCELLED),
        )
        logger.info(f"FulfillmentWebhookService: Order {order_id} marked failed/cancelled")

    async def handle_acknowledged_only(self, event: WebhookEvent) -> None:
        if event.type == EventType.CHARGE_DISPUTE_CREATED.value:
            logger.warning(
                f"FulfillmentWebhookService: Dispute opened (event {event.id}, account: {event.account or 'platform'}); "
                "seller must respond with evidence in the Stripe dashboard"
            )
            return
        logger.info(f"FulfillmentWebhookService: {event.type} acknowledged, no action")

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    async def handle_subscription_created(self, event: WebhookEvent) -> None:
        await self.subscription_sync.handle_subscription_created(self._subscription(event), event.account)

    async def handle_subscription_updated(self, event: WebhookEvent) -> None:
        await self.subscription_sync.handle_subscription_updated(self._subscription(event), event.account)

    async def handle_subscription_deleted(self, event: WebhookEvent) -> None:
        await self.subscription_sync.handle_subscription_deleted(self._subscription(event), event.account)

    async def handle_invoice_payment_succeeded(self, event: WebhookEvent) -> None:
        await self.subscription_sync.handle_invoice_payment_succeeded(self._invoice(event), event.account)

    async def handle_invoice_payment_failed(self, event: WebhookEvent) -> None:
        await self.subscription_sync.handle_invoice_payment_failed(self._invoice(event), event.account)

    @staticmethod
    def _subscription(event: WebhookEvent) -> SubscriptionSnapshot:
        return SubscriptionSnapshot.model_validate(event.object)

    @staticmethod
    def _invoice(event: WebhookEvent) -> InvoiceSnapshot:
        return InvoiceSnapshot.model_validate(event.object)

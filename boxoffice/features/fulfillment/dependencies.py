"""Construction of the fulfillment pipeline and its FastAPI dependencies"""
from functools import lru_cache
from typing import Callable, Optional

from fastapi import Request
from pydantic import BaseModel
from supabase import Client  # type: ignore

from boxoffice import config
from boxoffice.infra.email import EmailSender
from boxoffice.infra.stripe import StripeGateway
from boxoffice.infra.supabase import get_supabase_client
from boxoffice.infra.supabase.repositories import RepositoryFactory

from .notifications import NotificationDispatcher, NotificationSender
from .orders import OrderMaterializer
from .recipients import RecipientResolver
from .scheduler import BackgroundDispatcher
from .subscriptions import SubscriptionSynchronizer
from .tickets import TicketIssuer
from .webhook_service import FulfillmentWebhookService


class WebhookSettings(BaseModel):
    webhook_secret: str = ""
    is_production: bool = True


def build_webhook_service(
    client: Client,
    stripe_gateway: StripeGateway,
    sender: NotificationSender,
    base_url: str,
) -> FulfillmentWebhookService:
    """Wire every pipeline component from explicit clients"""
    repos = RepositoryFactory(client)
    return FulfillmentWebhookService(
        order_repo=repos.orders,
        stripe_gateway=stripe_gateway,
        materializer=OrderMaterializer(repos.orders, stripe_gateway, base_url),
        ticket_issuer=TicketIssuer(repos.tickets, repos.orders, base_url),
        recipient_resolver=RecipientResolver(repos.users, stripe_gateway),
        notifier=NotificationDispatcher(
            sender=sender,
            ticket_repo=repos.tickets,
            user_repo=repos.users,
            performance_repo=repos.performances,
            venue_repo=repos.venues,
            production_repo=repos.productions,
        ),
        subscription_sync=SubscriptionSynchronizer(repos.subscriptions, repos.users, stripe_gateway),
        stripe_event_repo=repos.stripe_events,
    )


@lru_cache(maxsize=1)
def default_webhook_service() -> FulfillmentWebhookService:
    return build_webhook_service(
        client=get_supabase_client(),
        stripe_gateway=StripeGateway(config.STRIPE_SECRET_KEY, config.STRIPE_API_VERSION),
        sender=EmailSender(
            api_key=config.SENDGRID_API_KEY,
            from_email=config.SENDGRID_FROM_EMAIL,
            template_id=config.SENDGRID_TEMPLATE_ID,
            api_url=config.SENDGRID_API_URL,
        ),
        base_url=config.APP_BASE_URL,
    )


def get_webhook_settings() -> WebhookSettings:
    return WebhookSettings(
        webhook_secret=config.STRIPE_WEBHOOK_SECRET,
        is_production=config.IS_PRODUCTION,
    )


def get_webhook_service_factory() -> Callable[[], FulfillmentWebhookService]:
    """Service construction is deferred so it never runs on the acknowledgment path"""
    return default_webhook_service


def get_background_dispatcher(request: Request) -> BackgroundDispatcher:
    dispatcher: Optional[BackgroundDispatcher] = getattr(request.app.state, "background_dispatcher", None)
    if dispatcher is None:
        dispatcher = BackgroundDispatcher(config.WEBHOOK_MAX_CONCURRENCY)
        request.app.state.background_dispatcher = dispatcher
    return dispatcher

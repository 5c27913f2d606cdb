"""Payment provider webhook endpoints"""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import PlainTextResponse, Response

from .dependencies import (
    WebhookSettings,
    get_background_dispatcher,
    get_webhook_service_factory,
    get_webhook_settings,
)
from .domain import AuthenticationError
from .events import WebhookEvent
from .scheduler import BackgroundDispatcher
from .signature import verify_event
from .webhook_service import FulfillmentWebhookService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/payments", tags=["webhooks"])


async def process_in_background(
    service_factory: Callable[[], FulfillmentWebhookService],
    event: WebhookEvent,
) -> None:
    service = service_factory()
    await service.process_event(event)


@router.post("/events")
async def receive_payment_event(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    settings: WebhookSettings = Depends(get_webhook_settings),
    service_factory: Callable[[], FulfillmentWebhookService] = Depends(get_webhook_service_factory),
    dispatcher: BackgroundDispatcher = Depends(get_background_dispatcher),
):
    """
    Stripe webhook endpoint

    Verifies the signature, schedules processing and acknowledges at once.
    Stripe gets a 200 whatever happens downstream; only a failed verification
    (in production, or an unparseable body anywhere) gets a 400.
    """
    payload = await request.body()
    logger.info(f"Received Stripe webhook request (payload size: {len(payload)} bytes)")

    try:
        event = verify_event(
            payload,
            stripe_signature,
            settings.webhook_secret,
            allow_unverified=not settings.is_production,
        )
    except AuthenticationError as e:
        return PlainTextResponse(f"Webhook Error: {e}", status_code=400)

    try:
        dispatcher.submit(process_in_background, service_factory, event, name=f"{event.type}:{event.id}")
    except Exception as e:
        logger.error(f"Failed to schedule webhook event {event.type} (ID: {event.id}): {e}", exc_info=True)

    return Response(status_code=200)


@router.get("/events/test")
async def webhook_diagnostics(settings: WebhookSettings = Depends(get_webhook_settings)):
    """Operational check that the webhook route is reachable and configured"""
    return {
        "status": "ok",
        "message": "Webhook endpoint is accessible",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "webhookSecretSet": bool(settings.webhook_secret),
    }

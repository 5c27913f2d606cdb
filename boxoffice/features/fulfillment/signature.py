"""Stripe webhook signature verification"""
import logging
from typing import Optional

import stripe
from pydantic import ValidationError

from .domain import AuthenticationError
from .events import WebhookEvent

logger = logging.getLogger(__name__)


def _parse_event(payload: bytes) -> WebhookEvent:
    try:
        return WebhookEvent.model_validate_json(payload)
    except ValidationError as e:
        raise AuthenticationError(f"Invalid payload: {e.error_count()} validation error(s)") from e


def verify_event(
    payload: bytes,
    signature: Optional[str],
    secret: Optional[str],
    allow_unverified: bool = False,
    tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE,
) -> WebhookEvent:
    """
    Verify a webhook delivery and return the typed event

    Args:
        payload: Raw request body, exactly as received
        signature: Value of the Stripe-Signature header
        secret: Endpoint signing secret (whsec_...)
        allow_unverified: Accept an unsigned JSON body when verification fails.
            Only ever true outside production.

    Raises:
        AuthenticationError: Signature missing or invalid (and no fallback),
            or the body is not a Stripe event
    """
    try:
        if not secret:
            raise AuthenticationError(
                "STRIPE_WEBHOOK_SECRET not set. When using 'stripe listen', copy the webhook "
                "signing secret (whsec_...) and set it as STRIPE_WEBHOOK_SECRET"
            )
        if not signature:
            raise AuthenticationError("No Stripe signature header present")

        try:
            stripe.WebhookSignature.verify_header(payload.decode("utf-8"), signature, secret, tolerance)
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            raise AuthenticationError(str(e)) from e

        event = _parse_event(payload)
        logger.info(f"Stripe webhook signature verified for event {event.id}")
        return event

    except AuthenticationError as e:
        logger.error(f"Webhook signature verification failed: {e}")
        if not allow_unverified:
            raise

        # Development fallback: trust the body as-is
        logger.warning("Accepting UNVERIFIED webhook body (non-production fallback)")
        return _parse_event(payload)

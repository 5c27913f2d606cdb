"""Stripe API client used by the webhook pipeline

Every call accepts an optional connected-account id. ``None`` addresses the
platform account. Results are returned as plain nested dicts.
"""
import asyncio
from typing import Any, Dict, Optional

import stripe


def _as_dict(obj: stripe.StripeObject) -> Dict[str, Any]:
    # StripeObject is not a dict subclass in current SDK releases
    return obj.to_dict()


class StripeGateway:
    """Thin async wrapper around the Stripe resource API"""

    def __init__(self, api_key: str, api_version: Optional[str] = None):
        self._api_key = api_key
        self._api_version = api_version

    def _request_options(self, stripe_account: Optional[str]) -> Dict[str, Any]:
        options: Dict[str, Any] = {"api_key": self._api_key}
        if self._api_version:
            options["stripe_version"] = self._api_version
        if stripe_account:
            options["stripe_account"] = stripe_account
        return options

    async def retrieve_payment_intent(self, payment_intent_id: str, stripe_account: Optional[str] = None) -> Dict[str, Any]:
        payment_intent = await asyncio.to_thread(
            stripe.PaymentIntent.retrieve,
            payment_intent_id,
            **self._request_options(stripe_account),
        )
        return _as_dict(payment_intent)

    async def update_payment_intent_metadata(
        self,
        payment_intent_id: str,
        metadata: Dict[str, str],
        stripe_account: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Merge keys into a PaymentIntent's metadata (Stripe merges per key)"""
        payment_intent = await asyncio.to_thread(
            stripe.PaymentIntent.modify,
            payment_intent_id,
            metadata=metadata,
            **self._request_options(stripe_account),
        )
        return _as_dict(payment_intent)

    async def retrieve_customer(self, customer_id: str, stripe_account: Optional[str] = None) -> Dict[str, Any]:
        customer = await asyncio.to_thread(
            stripe.Customer.retrieve,
            customer_id,
            **self._request_options(stripe_account),
        )
        return _as_dict(customer)

    async def retrieve_subscription(self, subscription_id: str, stripe_account: Optional[str] = None) -> Dict[str, Any]:
        subscription = await asyncio.to_thread(
            stripe.Subscription.retrieve,
            subscription_id,
            **self._request_options(stripe_account),
        )
        return _as_dict(subscription)

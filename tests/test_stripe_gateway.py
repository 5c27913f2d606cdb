from unittest.mock import patch

import pytest
import stripe

from boxoffice.features.fulfillment.events import InvoiceSnapshot
from boxoffice.features.fulfillment.recipients import RecipientResolver
from boxoffice.features.fulfillment.subscriptions import SubscriptionSynchronizer
from boxoffice.infra.stripe import StripeGateway

from tests.factories import make_event, make_order, make_payment_intent, payment_intent_data

API_KEY = "sk_test_123"


def stripe_customer(**values):
    return stripe.Customer.construct_from({"id": "cus_1", "object": "customer", **values}, API_KEY)


@pytest.fixture
def stripe_gateway():
    return StripeGateway(API_KEY, "2024-06-20")


class TestStripeGateway:
    @pytest.mark.asyncio
    async def test_results_are_plain_dicts(self, stripe_gateway):
        customer = stripe_customer(email="customer@x.com", metadata={"userId": "user_9"})

        with patch.object(stripe.Customer, "retrieve", return_value=customer) as retrieve:
            result = await stripe_gateway.retrieve_customer("cus_1", "acct_1")

        assert isinstance(result, dict)
        assert isinstance(result["metadata"], dict)
        assert result["metadata"]["userId"] == "user_9"
        retrieve.assert_called_once_with(
            "cus_1", api_key=API_KEY, stripe_version="2024-06-20", stripe_account="acct_1"
        )

    @pytest.mark.asyncio
    async def test_platform_calls_carry_no_account(self, stripe_gateway):
        payment_intent = stripe.PaymentIntent.construct_from(payment_intent_data({"orderId": "o1"}), API_KEY)

        with patch.object(stripe.PaymentIntent, "retrieve", return_value=payment_intent) as retrieve:
            await stripe_gateway.retrieve_payment_intent("pi_123")

        assert "stripe_account" not in retrieve.call_args.kwargs

    @pytest.mark.asyncio
    async def test_recipient_from_stripe_customer(self, stores, stripe_gateway):
        resolver = RecipientResolver(stores.users, stripe_gateway)
        pi = make_payment_intent({}, customer="cus_1")

        with patch.object(stripe.Customer, "retrieve", return_value=stripe_customer(email="customer@x.com")):
            recipient = await resolver.resolve(pi, make_order(user_id=None))

        assert recipient == "customer@x.com"

    @pytest.mark.asyncio
    async def test_user_id_from_customer_metadata(self, stores, stripe_gateway):
        sync = SubscriptionSynchronizer(stores.subscriptions, stores.users, stripe_gateway)

        async def from_event():
            return "from_event"

        with patch.object(stripe.Customer, "retrieve", return_value=stripe_customer(metadata={"userId": "user_9"})):
            assert await sync.resolve_user_id("cus_1", from_event) == "user_9"

    @pytest.mark.asyncio
    async def test_invoice_user_id_from_retrieved_subscription(self, stores, stripe_gateway):
        sync = SubscriptionSynchronizer(stores.subscriptions, stores.users, stripe_gateway)
        subscription = stripe.Subscription.construct_from(
            {"id": "sub_1", "object": "subscription", "metadata": {"userId": "user_9"}}, API_KEY
        )
        invoice = InvoiceSnapshot.model_validate({"id": "in_1", "customer": None, "subscription": "sub_1"})

        with patch.object(stripe.Subscription, "retrieve", return_value=subscription):
            assert await sync._user_for_invoice(invoice, None) == "user_9"

    @pytest.mark.asyncio
    async def test_connected_account_refetch_reads_platform_metadata(self, service, stripe_gateway):
        service.stripe_gateway = stripe_gateway
        platform_copy = stripe.PaymentIntent.construct_from(payment_intent_data({"orderId": "order_9"}), API_KEY)
        event = make_event("payment_intent.succeeded", payment_intent_data({}), account="acct_seller")

        with patch.object(stripe.PaymentIntent, "retrieve", return_value=platform_copy):
            payment_intent = await service._with_platform_metadata(event, event.payload())

        assert payment_intent.order_id == "order_9"

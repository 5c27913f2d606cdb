from types import SimpleNamespace

import pytest

from boxoffice.features.fulfillment.notifications import NotificationDispatcher
from boxoffice.features.fulfillment.orders import OrderMaterializer
from boxoffice.features.fulfillment.recipients import RecipientResolver
from boxoffice.features.fulfillment.subscriptions import SubscriptionSynchronizer
from boxoffice.features.fulfillment.tickets import TicketIssuer
from boxoffice.features.fulfillment.webhook_service import FulfillmentWebhookService

from tests.factories import BASE_URL
from tests.fakes import (
    FakeOrderRepository,
    FakeSender,
    FakeStripeEventRepository,
    FakeStripeGateway,
    FakeSubscriptionRepository,
    FakeTicketRepository,
    FakeUserRepository,
    InMemoryRepository,
)


@pytest.fixture
def stores():
    return SimpleNamespace(
        orders=FakeOrderRepository(),
        tickets=FakeTicketRepository(),
        users=FakeUserRepository(),
        subscriptions=FakeSubscriptionRepository(),
        performances=InMemoryRepository(),
        venues=InMemoryRepository(),
        productions=InMemoryRepository(),
        stripe_events=FakeStripeEventRepository(),
    )


@pytest.fixture
def gateway():
    return FakeStripeGateway()


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def notifier(stores, sender):
    return NotificationDispatcher(
        sender=sender,
        ticket_repo=stores.tickets,
        user_repo=stores.users,
        performance_repo=stores.performances,
        venue_repo=stores.venues,
        production_repo=stores.productions,
    )


@pytest.fixture
def materializer(stores, gateway):
    return OrderMaterializer(stores.orders, gateway, BASE_URL)


@pytest.fixture
def ticket_issuer(stores):
    return TicketIssuer(stores.tickets, stores.orders, BASE_URL)


@pytest.fixture
def recipient_resolver(stores, gateway):
    return RecipientResolver(stores.users, gateway)


@pytest.fixture
def subscription_sync(stores, gateway):
    return SubscriptionSynchronizer(stores.subscriptions, stores.users, gateway)


@pytest.fixture
def service(stores, gateway, materializer, ticket_issuer, recipient_resolver, notifier, subscription_sync):
    return FulfillmentWebhookService(
        order_repo=stores.orders,
        stripe_gateway=gateway,
        materializer=materializer,
        ticket_issuer=ticket_issuer,
        recipient_resolver=recipient_resolver,
        notifier=notifier,
        subscription_sync=subscription_sync,
        stripe_event_repo=stores.stripe_events,
    )

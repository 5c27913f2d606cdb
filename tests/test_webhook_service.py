import logging

import pytest

from boxoffice.models import OrderStatus, PaymentStatus, Subscription

from tests.factories import checkout_metadata, make_event, make_order, payment_intent_data

SUCCEEDED = "payment_intent.succeeded"
FAILED = "payment_intent.payment_failed"


def succeeded_event(metadata=None, event_id="evt_1", account=None, **overrides):
    metadata = checkout_metadata() if metadata is None else metadata
    return make_event(SUCCEEDED, payment_intent_data(metadata, **overrides), event_id=event_id, account=account)


class TestPaymentIntentSucceeded:
    @pytest.mark.asyncio
    async def test_synthesizes_order_issues_tickets_and_emails(self, stores, gateway, sender, service):
        await service.process_event(succeeded_event())

        assert len(stores.orders.records) == 1
        order = next(iter(stores.orders.records.values()))
        assert order.payment_status == PaymentStatus.PAID
        assert order.status == OrderStatus.CONFIRMED
        assert len(order.tickets) == 2
        assert set(order.tickets) == set(stores.tickets.records)
        assert gateway.metadata_updates[0]["metadata"] == {"orderId": order.id}
        assert sender.sent[0]["to"] == "buyer@example.com"
        assert len(sender.sent[0]["tickets"]) == 2

    @pytest.mark.asyncio
    async def test_redelivery_is_idempotent(self, stores, service):
        await service.process_event(succeeded_event(event_id="evt_a"))
        # Same PaymentIntent, new event id, and the metadata link never made it back
        await service.process_event(succeeded_event(event_id="evt_b"))

        assert len(stores.orders.records) == 1
        assert len(stores.tickets.records) == 2

    @pytest.mark.asyncio
    async def test_same_event_id_is_processed_once(self, stores, sender, service):
        event = succeeded_event(event_id="evt_once")

        await service.process_event(event)
        await service.process_event(event)

        assert len(sender.sent) == 1
        assert stores.stripe_events.records[1].processed_at is not None
        assert stores.stripe_events.records[1].error is None

    @pytest.mark.asyncio
    async def test_existing_order_is_confirmed_without_new_tickets(self, stores, sender, service):
        stores.orders.add(make_order(id="order_9", customer_email="buyer@x.com"))

        await service.process_event(succeeded_event({"orderId": "order_9"}))

        order = stores.orders.records["order_9"]
        assert order.payment_status == PaymentStatus.PAID
        assert order.status == OrderStatus.CONFIRMED
        assert stores.tickets.records == {}
        assert sender.sent[0]["to"] == "buyer@x.com"

    @pytest.mark.asyncio
    async def test_completed_order_stays_completed(self, stores, service):
        stores.orders.add(make_order(id="order_9", status=OrderStatus.COMPLETED, customer_email="b@x.com"))

        await service.process_event(succeeded_event({"orderId": "order_9"}))

        assert stores.orders.records["order_9"].status == OrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_view_token_backfilled_and_base_url_updated(self, stores, service):
        stores.orders.add(make_order(id="order_9", view_token=None, customer_email="b@x.com"))

        await service.process_event(
            succeeded_event({"orderId": "order_9", "baseUrl": "https://box.example.org"})
        )

        order = stores.orders.records["order_9"]
        assert order.view_token
        assert order.view_token_expires_at is not None
        assert order.base_url == "https://box.example.org"

    @pytest.mark.asyncio
    async def test_missing_metadata_is_recorded_as_error(self, stores, sender, service):
        await service.process_event(succeeded_event({"customerEmail": "buyer@x.com"}, event_id="evt_bad"))

        assert stores.orders.records == {}
        assert sender.sent == []
        ledger_entry = stores.stripe_events.records[1]
        assert "MissingMetadataError" in ledger_entry.error
        assert "sellerId" in ledger_entry.error

    @pytest.mark.asyncio
    async def test_failed_event_is_retried_on_redelivery(self, stores, service):
        event = succeeded_event({"orderId": "order_late"}, event_id="evt_retry")
        await service.process_event(event)
        assert stores.stripe_events.records[1].error

        stores.orders.add(make_order(id="order_late", customer_email="b@x.com"))
        await service.process_event(event)

        assert stores.orders.records["order_late"].payment_status == PaymentStatus.PAID
        assert stores.stripe_events.records[1].error is None

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_order(self, stores, sender, service):
        sender.error = RuntimeError("smtp down")

        await service.process_event(succeeded_event())

        assert len(stores.orders.records) == 1
        assert stores.stripe_events.records[1].error is None

    @pytest.mark.asyncio
    async def test_no_recipient_skips_email(self, stores, sender, service):
        metadata = checkout_metadata()
        del metadata["customerEmail"]

        await service.process_event(succeeded_event(metadata))

        assert len(stores.orders.records) == 1
        assert sender.sent == []

    @pytest.mark.asyncio
    async def test_connected_account_refetches_platform_metadata(self, stores, gateway, service):
        stores.orders.add(make_order(id="order_9", customer_email="b@x.com"))
        gateway.payment_intents["pi_123"] = payment_intent_data({"orderId": "order_9"})

        await service.process_event(succeeded_event({}, account="acct_seller"))

        assert gateway.retrieved_payment_intents == [{"id": "pi_123", "stripe_account": None}]
        assert stores.orders.records["order_9"].payment_status == PaymentStatus.PAID
        assert len(stores.orders.records) == 1

    @pytest.mark.asyncio
    async def test_platform_event_with_order_id_does_not_refetch(self, stores, gateway, service):
        stores.orders.add(make_order(id="order_9", customer_email="b@x.com"))

        await service.process_event(succeeded_event({"orderId": "order_9"}, account="acct_seller"))

        assert gateway.retrieved_payment_intents == []


class TestPaymentIntentFailed:
    @pytest.mark.asyncio
    async def test_marks_order_failed_and_cancelled(self, stores, service):
        stores.orders.add(make_order(id="order_9"))

        await service.process_event(make_event(FAILED, payment_intent_data({"orderId": "order_9"})))

        order = stores.orders.records["order_9"]
        assert order.payment_status == PaymentStatus.FAILED
        assert order.status == OrderStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_paid_order_is_not_regressed(self, stores, service):
        stores.orders.add(make_order(id="order_9", payment_status=PaymentStatus.PAID, status=OrderStatus.CONFIRMED))

        await service.process_event(make_event(FAILED, payment_intent_data({"orderId": "order_9"})))

        assert stores.orders.records["order_9"].payment_status == PaymentStatus.PAID

    @pytest.mark.asyncio
    async def test_without_order_is_noop(self, stores, service):
        await service.process_event(make_event(FAILED, payment_intent_data({})))

        assert stores.orders.records == {}
        assert stores.stripe_events.records[1].error is None


class TestOtherEvents:
    @pytest.mark.asyncio
    async def test_dispute_is_logged_for_the_seller(self, stores, service, caplog):
        caplog.set_level(logging.WARNING)

        await service.process_event(make_event("charge.dispute.created", {"id": "dp_1"}, account="acct_seller"))

        assert "Dispute opened" in caplog.text
        assert "acct_seller" in caplog.text
        assert stores.orders.records == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("event_type", ["charge.dispute.created", "account.updated", "customer.created"])
    async def test_acknowledged_without_side_effects(self, stores, sender, service, event_type):
        await service.process_event(make_event(event_type, {"id": "obj_1"}))

        assert stores.orders.records == {}
        assert sender.sent == []
        assert stores.stripe_events.records[1].processed_at is not None

    @pytest.mark.asyncio
    async def test_subscription_deleted_routed_to_synchronizer(self, stores, service):
        stores.subscriptions.add(Subscription(user_id="user_1", status="active", plan_id="plan_pro"))

        await service.process_event(
            make_event(
                "customer.subscription.deleted",
                {"id": "sub_1", "customer": "cus_1", "status": "canceled", "metadata": {"userId": "user_1"}},
            )
        )

        assert stores.subscriptions.records["user_1"].status == "canceled"

    @pytest.mark.asyncio
    async def test_events_without_provider_id_skip_ledger(self, stores, service):
        await service.process_event(make_event("account.updated", {}, event_id="unknown"))

        assert stores.stripe_events.records == {}

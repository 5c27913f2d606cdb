import pytest

from boxoffice.models import User

from tests.factories import make_order, make_payment_intent


class TestRecipientResolver:
    @pytest.mark.asyncio
    async def test_payment_metadata_wins_over_order_email(self, recipient_resolver):
        pi = make_payment_intent({"customerEmail": "a@x.com"})
        order = make_order(customer_email="b@x.com")

        assert await recipient_resolver.resolve(pi, order) == "a@x.com"

    @pytest.mark.asyncio
    async def test_order_customer_email_then_legacy_email(self, recipient_resolver):
        pi = make_payment_intent({})

        assert await recipient_resolver.resolve(pi, make_order(customer_email="b@x.com", email="c@x.com")) == "b@x.com"
        assert await recipient_resolver.resolve(pi, make_order(customer_email="  ", email="c@x.com")) == "c@x.com"

    @pytest.mark.asyncio
    async def test_holder_that_looks_like_email_is_used_directly(self, recipient_resolver):
        order = make_order(user_id="holder@x.com")

        assert await recipient_resolver.resolve(make_payment_intent({}), order) == "holder@x.com"

    @pytest.mark.asyncio
    async def test_holder_id_is_looked_up(self, stores, recipient_resolver):
        stores.users.add(User(id="seller_1", email="seller@x.com"))

        assert await recipient_resolver.resolve(make_payment_intent({}), make_order()) == "seller@x.com"

    @pytest.mark.asyncio
    async def test_stripe_customer_is_last_resort(self, gateway, recipient_resolver):
        gateway.customers["cus_1"] = {"id": "cus_1", "email": "customer@x.com"}
        pi = make_payment_intent({}, customer="cus_1")

        assert await recipient_resolver.resolve(pi, make_order(user_id=None)) == "customer@x.com"

    @pytest.mark.asyncio
    async def test_failing_source_is_skipped(self, gateway, recipient_resolver):
        async def broken(*args):
            raise RuntimeError("directory down")

        recipient_resolver.resolvers.insert(0, ("broken", broken))
        pi = make_payment_intent({"customerEmail": "a@x.com"})

        assert await recipient_resolver.resolve(pi, make_order()) == "a@x.com"

    @pytest.mark.asyncio
    async def test_exhausted_chain_returns_none(self, recipient_resolver):
        pi = make_payment_intent({}, customer="cus_unknown")

        assert await recipient_resolver.resolve(pi, make_order(user_id="ghost")) is None

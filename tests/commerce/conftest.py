from uuid import uuid4

import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain

from commerce.catalog.pricing_option import RegisterPricingOption
from commerce.gateway import reset_gateways, set_gateway
from commerce.gateway.fake_adapter import FakeGateway
from commerce.notifications import reset_mailer, set_mailer
from commerce.notifications.fake_email import FakeEmailAdapter


@pytest.fixture(scope="session")
def commerce_bed():
    from commerce.domain import commerce

    bed = DomainFixture(commerce)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(commerce_bed):
    """Run every test inside the domain context and clean up after it."""
    with commerce_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()

    reset_gateways()
    reset_mailer()


@pytest.fixture()
def mailer():
    adapter = FakeEmailAdapter()
    set_mailer(adapter)
    return adapter


@pytest.fixture()
def stripe_gateway():
    gateway = FakeGateway(family="stripe")
    set_gateway("stripe", gateway)
    return gateway


@pytest.fixture()
def user_id():
    return f"user-{uuid4().hex[:8]}"


@pytest.fixture()
def make_option():
    """Register a pricing option and return its id."""

    def _make(name="Starter", price=100.0, **terms):
        return current_domain.process(RegisterPricingOption(name=name, price=price, **terms), asynchronous=False)

    return _make


@pytest.fixture()
def make_subscription_option(make_option):
    def _make(name="Pro Monthly", price=30.0, frequency="month", interval=1, **terms):
        return make_option(
            name=name,
            price=price,
            pricing_model="subscription",
            billing_frequency=frequency,
            billing_interval=interval,
            **terms,
        )

    return _make


def stripe_payment_meta(amount, email="buyer@example.com", intent_id=None):
    """Checkout payment metadata carrying a succeeded Stripe payment intent."""
    intent_id = intent_id or f"pi_{uuid4().hex[:12]}"
    return {
        "gateway": "stripe",
        "customer_email": email,
        "payment_data": {
            "id": intent_id,
            "paymentIntentId": intent_id,
            "amount": round(amount * 100),
            "currency": "usd",
            "status": "succeeded",
            "payment_method_types": ["card"],
            "latest_charge": {"id": f"ch_{uuid4().hex[:12]}"},
        },
    }


@pytest.fixture()
def checkout(user_id):
    """Fill a cart with ``(pricing_option_id, quantity)`` lines and check it out."""
    from commerce.cart.services import add_to_cart, get_cart
    from commerce.order.checkout import process_order_after_payment

    def _checkout(*lines, buyer=None, billing_address=None):
        buyer = buyer or user_id
        for option_id, quantity in lines:
            added = add_to_cart(buyer, option_id, quantity)
            assert added.success, added.message
        cart = get_cart(user_id=buyer).data
        return process_order_after_payment(
            buyer,
            str(cart.id),
            billing_address or {"name": "Ada Lovelace", "email": "ada@example.com"},
            stripe_payment_meta(cart.grand_total),
        )

    return _checkout


@pytest.fixture()
def stripe_meta():
    return stripe_payment_meta

"""Shared BDD fixtures and step definitions for the commerce domain."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then

from commerce.shared.billing import add_billing_period, as_utc
from commerce.subscription.services import pause_subscription
from commerce.subscription.subscription import Subscription


@pytest.fixture()
def outcome():
    """Container for the result of the last When step."""
    return {"result": None}


def load_subscription(subscription_id):
    return current_domain.repository_for(Subscription).get(subscription_id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a customer subscribed to "{name}" at {price:f} per {frequency}'),
    target_fixture="subscription_id",
)
def subscribed_customer(make_subscription_option, checkout, name, price, frequency):
    result = checkout((make_subscription_option(name=name, price=price, frequency=frequency), 1))
    assert result.success, result.message
    return result.data["subscriptions"][0]["subscription_id"]


@given("the subscription was paused")
def paused_subscription(subscription_id):
    assert pause_subscription(subscription_id, paused_by="admin-1").success


@given("the subscription is due for renewal", target_fixture="billing_date")
def due_subscription(subscription_id):
    repo = current_domain.repository_for(Subscription)
    subscription = repo.get(subscription_id)
    subscription.next_billing_date = datetime.now(UTC) - timedelta(days=1)
    repo.add(subscription)
    return subscription.next_billing_date


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the operation fails with "{message}"'))
def operation_failed(outcome, message):
    assert not outcome["result"].success
    assert outcome["result"].message == message


@then(parsers.cfparse('the subscription status is "{status}"'))
def subscription_status(subscription_id, status):
    assert load_subscription(subscription_id).effective_status == status


@then("the next billing date is one month from now")
def billed_next_month(subscription_id):
    expected = add_billing_period(datetime.now(UTC), "month", 1)
    actual = as_utc(load_subscription(subscription_id).next_billing_date)
    assert abs(actual - expected) < timedelta(minutes=1)

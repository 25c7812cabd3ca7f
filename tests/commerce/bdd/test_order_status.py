"""BDD tests for order status changes and their subscriptions."""

from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

from commerce.order.status import update_order_status
from commerce.subscription.subscription import Subscription

scenarios("features/order_status.feature")


def _subscriptions(order_id):
    return current_domain.repository_for(Subscription).for_order(order_id)


@given(
    parsers.cfparse('a paid order with subscriptions "{first}" and "{second}"'),
    target_fixture="order_id",
)
def order_with_subscriptions(make_subscription_option, checkout, first, second):
    result = checkout((make_subscription_option(name=first, price=20.0), 1), (make_subscription_option(name=second), 1))
    assert len(result.data["subscriptions"]) == 2
    return result.data["order_id"]


@given(parsers.cfparse('the order status was changed to "{status}"'))
def status_changed_before(order_id, status):
    assert update_order_status(order_id, status).success


@when(parsers.cfparse('the order status is changed to "{status}"'))
def change_status(order_id, outcome, status):
    outcome["result"] = update_order_status(order_id, status, reason="Changed by support", changed_by="admin-1")


@then(parsers.cfparse("{count:d} subscriptions were processed"))
def processed_count(outcome, count):
    assert outcome["result"].data["subscriptions_processed"] == count


@then("the order has no subscriptions")
def no_subscriptions(order_id):
    assert _subscriptions(order_id) == []


@then(parsers.cfparse('every subscription of the order is "{status}"'))
def every_subscription(order_id, status):
    subscriptions = _subscriptions(order_id)
    assert subscriptions
    assert {subscription.status for subscription in subscriptions} == {status}

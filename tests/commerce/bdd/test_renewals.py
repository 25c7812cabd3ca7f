"""BDD tests for subscription renewals."""

from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

from commerce.renewal import services as renewals
from commerce.renewal.renewal_order import RenewalOrder
from commerce.shared.billing import as_utc
from commerce.subscription.subscription import Subscription

scenarios("features/renewals.feature")


def _renewal(outcome):
    renewal_id = outcome["result"].data["renewal_order"]["renewal_order_id"]
    return current_domain.repository_for(RenewalOrder).get(renewal_id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the payment gateway declines charges with "{reason}"'))
def declining_gateway(stripe_gateway, reason):
    stripe_gateway.configure(should_succeed=False, failure_reason=reason)


@given("the payment gateway accepts charges")
def accepting_gateway(stripe_gateway):
    stripe_gateway.configure(should_succeed=True)


@given("the subscription was renewed")
def renewed_before(subscription_id):
    renewals.renew_subscription(subscription_id)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the subscription is renewed")
def renew(stripe_gateway, subscription_id, outcome):
    outcome["result"] = renewals.renew_subscription(subscription_id)


@when("the renewal is retried")
def retry(subscription_id, outcome):
    outcome["result"] = renewals.retry_renewal(subscription_id, retried_by="admin-1")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the renewal order status is "{status}"'))
def renewal_status(outcome, status):
    assert _renewal(outcome).status == status


@then(parsers.cfparse('the renewal order number ends with "{suffix}"'))
def renewal_number(outcome, suffix):
    assert _renewal(outcome).renewal_order_number.endswith(suffix)


@then("the next billing date is unchanged")
def billing_date_unchanged(subscription_id, billing_date):
    subscription = current_domain.repository_for(Subscription).get(subscription_id)
    assert as_utc(subscription.next_billing_date) == as_utc(billing_date)

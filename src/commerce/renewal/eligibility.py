"""Which subscriptions may be renewed, and why."""

from datetime import UTC, datetime

from commerce.subscription.subscription import SubscriptionStatus

_ALWAYS_RENEWABLE = {
    SubscriptionStatus.PAST_DUE.value,
    SubscriptionStatus.FAILED.value,
    SubscriptionStatus.CANCELED.value,
}


def can_renew_subscription(subscription, as_of=None) -> bool:
    now = as_of or datetime.now(UTC)
    if subscription.status == SubscriptionStatus.ACTIVE.value:
        return subscription.is_due(now)
    if subscription.status == SubscriptionStatus.TRIALING.value:
        return subscription.is_due(now) or subscription.trial_has_ended(now)
    return subscription.status in _ALWAYS_RENEWABLE


def get_renewal_reason(subscription, as_of=None) -> str:
    now = as_of or datetime.now(UTC)
    status = subscription.status
    if status == SubscriptionStatus.ACTIVE.value and subscription.is_due(now):
        return "Automatic renewal - billing date passed"
    if status == SubscriptionStatus.PAST_DUE.value:
        return "Payment retry for past due subscription"
    if status == SubscriptionStatus.FAILED.value:
        return "Recovery renewal for failed subscription"
    if status == SubscriptionStatus.CANCELED.value:
        return "Reactivation of canceled subscription"
    if status == SubscriptionStatus.TRIALING.value:
        return "Trial to paid conversion"
    return "Subscription renewal"

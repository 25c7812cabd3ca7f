"""Subscription operations exposed to callers.

Administrative decisions notify the subscriber by email, best effort.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from commerce.notifications.emails import send_subscription_status_email
from commerce.order.order import Order
from commerce.shared.result import DOMAIN_ERRORS, Result, dispatch, error_message, load
from commerce.subscription.change import SubscriptionChange
from commerce.subscription.lifecycle import (
    ApproveCancellation,
    ApprovePause,
    CancelSubscription,
    ChangeSubscriptionFrequency,
    ChangeSubscriptionPlan,
    DeleteSubscription,
    PauseSubscription,
    RejectCancellation,
    RejectPause,
    RequestCancellation,
    RequestPause,
    ResumeSubscription,
    UpdateAutoRenewal,
)
from commerce.subscription.subscription import Subscription

logger = structlog.get_logger(__name__)


def subscriber_email(subscription) -> str | None:
    try:
        order = current_domain.repository_for(Order).get(subscription.order_id)
    except ObjectNotFoundError:
        return None
    return order.customer_email


def send_subscription_notification(subscription_id, action_type, reason=None) -> Result:
    """Email the subscriber about ``action_type``; never fails the caller's operation."""
    try:
        subscription = load(Subscription, subscription_id, "Subscription")
    except DOMAIN_ERRORS as exc:
        return Result.fail(error_message(exc))
    sent = send_subscription_status_email(subscriber_email(subscription), subscription, action_type, reason)
    return Result.ok(sent) if sent else Result.fail("Subscription email was not sent")


def _transition(command_cls, subscription_id, notify_as=None, **kwargs) -> Result:
    result = dispatch(command_cls, subscription_id=subscription_id, **kwargs)
    if result.success and notify_as:
        send_subscription_notification(subscription_id, notify_as, kwargs.get("reason"))
    return result


def request_cancel(subscription_id, requested_by=None, reason=None) -> Result:
    return _transition(RequestCancellation, subscription_id, actor=requested_by, reason=reason)


def approve_cancel(subscription_id, approved_by=None, reason=None, is_admin=False) -> Result:
    return _transition(
        ApproveCancellation,
        subscription_id,
        notify_as="Cancellation approved",
        actor=approved_by,
        reason=reason,
        is_admin=is_admin,
    )


def reject_cancel(subscription_id, rejected_by=None, reason=None, is_admin=False) -> Result:
    return _transition(
        RejectCancellation,
        subscription_id,
        notify_as="Cancellation request declined",
        actor=rejected_by,
        reason=reason,
        is_admin=is_admin,
    )


def cancel_subscription(subscription_id, canceled_by=None, reason=None) -> Result:
    return _transition(CancelSubscription, subscription_id, notify_as="Canceled", actor=canceled_by, reason=reason)


def request_pause(subscription_id, requested_by=None, reason=None) -> Result:
    return _transition(RequestPause, subscription_id, actor=requested_by, reason=reason)


def approve_pause(subscription_id, approved_by=None, reason=None, is_admin=False) -> Result:
    return _transition(
        ApprovePause,
        subscription_id,
        notify_as="Pause approved",
        actor=approved_by,
        reason=reason,
        is_admin=is_admin,
    )


def reject_pause(subscription_id, rejected_by=None, reason=None, is_admin=False) -> Result:
    return _transition(
        RejectPause,
        subscription_id,
        notify_as="Pause request declined",
        actor=rejected_by,
        reason=reason,
        is_admin=is_admin,
    )


def pause_subscription(subscription_id, paused_by=None, reason=None) -> Result:
    return _transition(PauseSubscription, subscription_id, actor=paused_by, reason=reason)


def resume_subscription(subscription_id, resumed_by=None, reason=None) -> Result:
    return _transition(ResumeSubscription, subscription_id, actor=resumed_by, reason=reason)


def update_auto_renewal(subscription_id, auto_renew) -> Result:
    if not isinstance(auto_renew, bool):
        return Result.fail("Auto renewal must be true or false")
    return dispatch(UpdateAutoRenewal, subscription_id=subscription_id, auto_renew=auto_renew)


def change_subscription_plan(subscription_id, new_pricing_id, changed_by=None, reason=None, notes=None) -> Result:
    if not new_pricing_id:
        return Result.fail("New pricing ID is required")
    return dispatch(
        ChangeSubscriptionPlan,
        subscription_id=subscription_id,
        new_pricing_id=new_pricing_id,
        actor=changed_by,
        reason=reason,
        notes=notes,
    )


def change_subscription_frequency(subscription_id, frequency, interval=None, changed_by=None, reason=None) -> Result:
    return dispatch(
        ChangeSubscriptionFrequency,
        subscription_id=subscription_id,
        frequency=frequency,
        interval=interval,
        actor=changed_by,
        reason=reason,
    )


def delete_subscription(subscription_id) -> Result:
    """Administrative delete; change records of the subscription are kept."""
    return dispatch(DeleteSubscription, subscription_id=subscription_id)


def get_subscription(subscription_id) -> Result:
    try:
        return Result.ok(load(Subscription, subscription_id, "Subscription"))
    except DOMAIN_ERRORS as exc:
        return Result.fail(error_message(exc))


def get_user_subscriptions(user_id, status=None) -> Result:
    if not user_id:
        return Result.fail("User ID is required")
    return Result.ok(current_domain.repository_for(Subscription).search(status=status, user_id=user_id))


def get_subscriptions(status=None, user_id=None) -> Result:
    return Result.ok(current_domain.repository_for(Subscription).search(status=status, user_id=user_id))


def get_subscription_changes(subscription_id) -> Result:
    if not subscription_id:
        return Result.fail("Subscription ID is required")
    return Result.ok(current_domain.repository_for(SubscriptionChange).for_subscription(subscription_id))

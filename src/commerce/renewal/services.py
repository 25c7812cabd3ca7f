"""Renewal operations exposed to callers.

A renewal opens a Pending renewal order and, when a payment is supplied,
settles it right away:

    payment registered  → renewal Completed, subscription Active (Reactivate)
    payment failed      → renewal Failed, an Active subscription goes PastDue
"""

from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from commerce.gateway import get_gateway
from commerce.payment.services import register_renewal_payment
from commerce.renewal.eligibility import can_renew_subscription, get_renewal_reason
from commerce.renewal.renewal_order import RenewalOrder, RenewalStatus
from commerce.renewal.scheduling import (
    CreateRenewalOrder,
    DeleteRenewalOrder,
    IncrementRenewalAttempt,
    UpdateRenewalOrderStatus,
)
from commerce.shared.billing import DEFAULT_CURRENCY, as_utc
from commerce.shared.listing import ListingFilters
from commerce.shared.result import DOMAIN_ERRORS, Result, dispatch, error_message, load
from commerce.subscription.lifecycle import MarkSubscriptionPastDue, ReactivateSubscription
from commerce.subscription.subscription import Subscription, SubscriptionStatus

logger = structlog.get_logger(__name__)

RENEWAL_COMPLETED_REASON = "Automatic subscription renewal completed"
DEFAULT_FAILURE_REASON = "Payment processing failed"


def _load_subscription(subscription_id):
    try:
        return load(Subscription, subscription_id, "Subscription"), None
    except DOMAIN_ERRORS as exc:
        return None, Result.fail(error_message(exc))


def create_renewal_order(subscription_id, gateway="stripe", payment_method_id=None, notes=None) -> Result:
    if not subscription_id:
        return Result.fail("Subscription ID is required")
    return dispatch(
        CreateRenewalOrder,
        subscription_id=subscription_id,
        gateway=gateway,
        payment_method_id=payment_method_id,
        notes=notes,
    )


def _complete_renewal(subscription, renewal, payment) -> Result:
    renewal_order = renewal["renewal_order"]
    completed = dispatch(
        UpdateRenewalOrderStatus,
        renewal_order_id=renewal_order["renewal_order_id"],
        status=RenewalStatus.COMPLETED.value,
    )
    if not completed.success:
        logger.error("Renewal paid but not completed", renewal=renewal_order["renewal_order_number"])

    reactivated = dispatch(
        ReactivateSubscription,
        subscription_id=str(subscription.id),
        actor=subscription.user_id,
        reason=RENEWAL_COMPLETED_REASON,
        next_billing_date=renewal["next_renewal_date"],
        notes=f"Renewal order {renewal_order['renewal_order_number']} completed successfully",
    )
    if not reactivated.success:
        logger.error("Renewal paid but subscription not reactivated", subscription_id=str(subscription.id))

    logger.info(
        "Subscription renewed",
        subscription_id=str(subscription.id),
        renewal_order_number=renewal_order["renewal_order_number"],
    )
    return Result.ok(
        {
            **renewal,
            "renewal_order": completed.data if completed.success else renewal_order,
            "subscription": reactivated.data,
            "payment": payment,
        },
        message="Subscription renewal processed successfully",
    )


def _fail_renewal(subscription, renewal, reason) -> Result:
    reason = reason or DEFAULT_FAILURE_REASON
    renewal_order = renewal["renewal_order"]
    dispatch(
        UpdateRenewalOrderStatus,
        renewal_order_id=renewal_order["renewal_order_id"],
        status=RenewalStatus.FAILED.value,
        failure_reason=reason,
    )
    if subscription.status == SubscriptionStatus.ACTIVE.value:
        dispatch(MarkSubscriptionPastDue, subscription_id=str(subscription.id), actor="system", reason=reason)

    logger.warning(
        "Subscription renewal failed",
        subscription_id=str(subscription.id),
        renewal_order_number=renewal_order["renewal_order_number"],
        reason=reason,
    )
    return Result.fail(reason, data=renewal)


def process_subscription_renewal(subscription_id, payment_data=None, gateway="stripe") -> Result:
    """Open a renewal order and settle it with ``payment_data`` when given."""
    subscription, failure = _load_subscription(subscription_id)
    if failure:
        return failure

    created = create_renewal_order(subscription_id, gateway=gateway, notes="Automatic subscription renewal")
    if not created.success:
        return created
    renewal = created.data

    if not payment_data:
        return Result.ok(renewal, message="Subscription renewal processed successfully")

    payment = register_renewal_payment(
        renewal["renewal_order"]["renewal_order_id"],
        payment_data,
        gateway,
        subscription.user_id,
        fallback_amount=renewal["renewal_order"]["total_amount"],
    )
    if not payment.success:
        return _fail_renewal(subscription, renewal, payment.message)
    return _complete_renewal(subscription, renewal, payment.data)


def _charge_and_settle(subscription, gateway, reason, payment_method_id=None) -> Result:
    created = create_renewal_order(
        str(subscription.id),
        gateway=gateway,
        payment_method_id=payment_method_id,
        notes=reason,
    )
    if not created.success:
        return created
    renewal = created.data
    renewal_order = renewal["renewal_order"]

    charge = get_gateway(gateway).create_charge(
        amount_minor_units=round(renewal_order["total_amount"] * 100),
        currency=DEFAULT_CURRENCY,
        customer_reference=subscription.user_id,
        idempotency_key=renewal_order["renewal_order_number"],
        metadata={"subscription_id": str(subscription.id), "renewal_order_id": renewal_order["renewal_order_id"]},
    )
    if not charge.success:
        failed = _fail_renewal(subscription, renewal, charge.failure_reason)
        return Result.fail(f"Payment processing failed: {failed.message}", data=renewal)

    payment = register_renewal_payment(
        renewal_order["renewal_order_id"],
        charge.payload,
        gateway,
        subscription.user_id,
        fallback_amount=renewal_order["total_amount"],
    )
    if not payment.success:
        return _fail_renewal(subscription, renewal, payment.message)

    settled = _complete_renewal(subscription, renewal, payment.data)
    return Result.ok(settled.data, message="Subscription renewed successfully with payment processing")


def renew_subscription(
    subscription_id, process_payment=True, renewed_by=None, reason=None, gateway="stripe", payment_method_id=None
) -> Result:
    """Renew an eligible subscription, charging the gateway unless ``process_payment`` is False."""
    subscription, failure = _load_subscription(subscription_id)
    if failure:
        return failure
    if not can_renew_subscription(subscription):
        return Result.fail(f"Subscription with status '{subscription.effective_status}' cannot be renewed")

    reason = reason or get_renewal_reason(subscription)
    if process_payment:
        return _charge_and_settle(subscription, gateway, reason, payment_method_id)

    renewed = dispatch(
        ReactivateSubscription,
        subscription_id=subscription_id,
        actor=renewed_by or subscription.user_id,
        reason=reason,
        notes="Subscription renewed manually",
    )
    if not renewed.success:
        return renewed
    return Result.ok(
        {"subscription": renewed.data, "renewal_order": None, "payment": None},
        message="Subscription renewed successfully (manual renewal without payment)",
    )


def renew_subscription_manually(subscription_id, renewed_by=None, reason=None) -> Result:
    return renew_subscription(subscription_id, process_payment=False, renewed_by=renewed_by, reason=reason)


def retry_renewal(subscription_id, retried_by=None, gateway="stripe", process_payment=True) -> Result:
    subscription, failure = _load_subscription(subscription_id)
    if failure:
        return failure
    if subscription.status not in (SubscriptionStatus.PAST_DUE.value, SubscriptionStatus.FAILED.value):
        return Result.fail(f"Cannot retry renewal for subscription with status '{subscription.effective_status}'")
    return renew_subscription(
        subscription_id,
        process_payment=process_payment,
        renewed_by=retried_by,
        reason=f"Retry renewal attempt - Previous status: {subscription.status}",
        gateway=gateway,
    )


# ---------------------------------------------------------------------------
# Renewal order queries and maintenance
# ---------------------------------------------------------------------------
def get_renewal_orders(filters=None, parent_order_id=None, user_id=None) -> Result:
    listing = filters if isinstance(filters, ListingFilters) else ListingFilters.from_options(filters)
    renewals, total = current_domain.repository_for(RenewalOrder).search(
        listing, parent_order_id=parent_order_id, user_id=user_id
    )
    return Result.ok({"renewal_orders": renewals, "total": total})


def get_renewal_order(renewal_order_id) -> Result:
    try:
        return Result.ok(load(RenewalOrder, renewal_order_id, "Renewal order"))
    except DOMAIN_ERRORS as exc:
        return Result.fail(error_message(exc))


def get_renewal_orders_by_parent(parent_order_id) -> Result:
    if not parent_order_id:
        return Result.fail("Parent order ID is required", data=[])
    return Result.ok(current_domain.repository_for(RenewalOrder).by_parent(parent_order_id))


def update_renewal_order_status(renewal_order_id, status, failure_reason=None, notes=None) -> Result:
    return dispatch(
        UpdateRenewalOrderStatus,
        renewal_order_id=renewal_order_id,
        status=status,
        failure_reason=failure_reason,
        notes=notes,
    )


def delete_renewal_order(renewal_order_id) -> Result:
    result = dispatch(DeleteRenewalOrder, renewal_order_id=renewal_order_id)
    if result.success:
        return Result.ok(result.data, message="Renewal order deleted successfully")
    return result


def get_due_renewal_orders(as_of=None) -> Result:
    as_of = as_utc(as_of) if as_of else datetime.now(UTC)
    return Result.ok(current_domain.repository_for(RenewalOrder).due(as_of))


def increment_renewal_attempt(renewal_order_id) -> Result:
    return dispatch(IncrementRenewalAttempt, renewal_order_id=renewal_order_id)

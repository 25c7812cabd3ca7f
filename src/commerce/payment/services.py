"""Payment operations exposed to callers."""

import structlog
from protean.utils.globals import current_domain

from commerce.order.materialization import MarkOrderPaid
from commerce.payment.normalizers import is_supported
from commerce.payment.payment import OrderPayment
from commerce.payment.refunds import RefundPayment
from commerce.payment.registration import RegisterPayment, RegisterRenewalPayment
from commerce.shared.result import DOMAIN_ERRORS, Result, dispatch, error_message, load

logger = structlog.get_logger(__name__)


def register_payment(order_id, gateway_payload, gateway="stripe", user_id=None) -> Result:
    """Record the payment, then move the order to Processing.

    A failure to update the order is logged; the payment stays recorded.
    """
    if not is_supported(gateway):
        return Result.fail(f"Unsupported payment gateway: {gateway}")

    result = dispatch(
        RegisterPayment,
        order_id=order_id,
        user_id=user_id,
        gateway=gateway,
        payment_data=gateway_payload,
    )
    if not result.success:
        return result

    marked = dispatch(MarkOrderPaid, order_id=order_id)
    if not marked.success:
        logger.error("Payment recorded but order was not updated", order_id=order_id, reason=marked.message)
    return result


def register_renewal_payment(renewal_order_id, payment_data, gateway="stripe", user_id=None, fallback_amount=0.0):
    if not is_supported(gateway):
        return Result.fail(f"Unsupported payment gateway: {gateway}")
    return dispatch(
        RegisterRenewalPayment,
        renewal_order_id=renewal_order_id,
        user_id=user_id,
        gateway=gateway,
        payment_data=payment_data,
        fallback_amount=fallback_amount,
    )


def process_payment_refund(payment_id, amount, reason=None, partial=False) -> Result:
    if not payment_id:
        return Result.fail("Payment ID is required")
    try:
        load(OrderPayment, payment_id, "Payment record")
    except DOMAIN_ERRORS as exc:
        return Result.fail(error_message(exc))

    result = dispatch(RefundPayment, payment_id=payment_id, amount=amount, reason=reason, partial=partial)
    if not result.success:
        return result

    kind = "Partial refund" if partial else "Full refund"
    return Result.ok(result.data, message=f"{kind} of ${amount:.2f} processed successfully")


def get_payment(payment_id) -> Result:
    try:
        return Result.ok(load(OrderPayment, payment_id, "Payment record"))
    except DOMAIN_ERRORS as exc:
        return Result.fail(error_message(exc))


def get_order_payments(order_id) -> Result:
    if not order_id:
        return Result.fail("Order ID is required")
    return Result.ok(current_domain.repository_for(OrderPayment).for_order(order_id))

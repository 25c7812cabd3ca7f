"""Checkout workflow: turns a paid cart into an order.

Order, items and subscriptions are materialized as a saga: every committed
stage registers the command that reverses it, and a failing stage unwinds
the stages before it. Everything after materialization (download access,
payment record, final status, cart completion, confirmation email) is
best effort and only logged when it fails.
"""

import structlog
from protean.utils.globals import current_domain

from commerce.cart.adjustments import ClearCart
from commerce.downloads.grant import access_reference
from commerce.downloads.services import create_plan_download_access
from commerce.notifications.emails import send_order_confirmation_email
from commerce.order.materialization import (
    CreateOrder,
    CreateOrderItems,
    CreateSubscriptions,
    DeleteOrder,
    FinalizeOrder,
    RemoveOrderItems,
    RemoveOrderSubscriptions,
)
from commerce.order.order import Order, OrderStatus, OrderType
from commerce.payment.services import register_payment
from commerce.shared.result import DOMAIN_ERRORS, Result, dispatch, error_message, load

logger = structlog.get_logger(__name__)

# Gateways whose payment can be verified before an order is created
CHECKOUT_GATEWAYS = {
    "stripe": ("paymentIntentId", "Stripe payment intent ID is missing"),
    "paypal": ("transactionId", "PayPal transaction ID is missing"),
}


class CheckoutSaga:
    """Runs materialization stages and remembers how to reverse them."""

    def __init__(self, cart_id):
        self.cart_id = cart_id
        self._reversals = []

    def step(self, command, reversal=None):
        data = current_domain.process(command, asynchronous=False)
        if reversal is not None:
            self.reverse_with(reversal)
        return data

    def reverse_with(self, reversal):
        self._reversals.append(reversal)

    def unwind(self):
        while self._reversals:
            reversal = self._reversals.pop()
            try:
                current_domain.process(reversal, asynchronous=False)
            except DOMAIN_ERRORS as exc:
                logger.error(
                    "Checkout reversal failed",
                    cart_id=self.cart_id,
                    reversal=type(reversal).__name__,
                    error=error_message(exc),
                )


def verify_payment_meta(payment_meta) -> str | None:
    """Return why ``payment_meta`` cannot back an order, or None when it can."""
    if not payment_meta or not payment_meta.get("payment_data"):
        return "Payment data is missing or incomplete"
    rule = CHECKOUT_GATEWAYS.get(payment_meta.get("gateway", "stripe"))
    if rule is None:
        return "Unsupported payment gateway"
    key, message = rule
    if not payment_meta["payment_data"].get(key):
        return message
    return None


def _grant_downloads(user_id, order_id, order_number, order_items, subscriptions) -> list[dict]:
    items_by_id = {item["item_id"]: item for item in order_items}
    outcomes = []

    for subscription in subscriptions:
        item = items_by_id.get(subscription["order_item_id"], {})
        if item.get("plan_downloadable") and item.get("plan_id"):
            result = create_plan_download_access(
                user_id,
                item["plan_id"],
                order_id,
                subscription["subscription_id"],
                access_reference(order_number, for_subscription=True),
            )
            outcomes.append({"plan_id": item["plan_id"], **result.as_dict()})

    for item in order_items:
        if item.get("plan_downloadable") and item.get("plan_id") and item["pricing_model"] == "one-off":
            result = create_plan_download_access(
                user_id,
                item["plan_id"],
                order_id,
                None,
                access_reference(order_number, for_subscription=False),
            )
            outcomes.append({"plan_id": item["plan_id"], **result.as_dict()})

    for outcome in outcomes:
        if not outcome["success"]:
            logger.warning("Download access not granted", order_id=order_id, plan_id=outcome["plan_id"])
    return outcomes


def process_order_after_payment(user_id, cart_id, billing_address=None, payment_meta=None) -> Result:
    """Materialize an order for a cart whose payment already went through.

    ``payment_meta`` is ``{"gateway": ..., "payment_data": {...}, "customer_email": ...}``
    where ``payment_data`` is the gateway's own payload.
    """
    if not user_id or not cart_id:
        return Result.fail("User ID and Cart ID are required")
    problem = verify_payment_meta(payment_meta)
    if problem:
        logger.warning("Checkout rejected", user_id=user_id, cart_id=cart_id, reason=problem)
        return Result.fail(problem)

    gateway = payment_meta.get("gateway", "stripe")
    payment_data = payment_meta["payment_data"]
    billing_address = billing_address or {}

    saga = CheckoutSaga(cart_id)
    try:
        created = saga.step(
            CreateOrder(
                user_id=user_id,
                cart_id=cart_id,
                billing_address=billing_address,
                payment_gateway=gateway,
                payment_reference=payment_data.get(CHECKOUT_GATEWAYS[gateway][0]),
            )
        )
        order_id, order_number = created["order_id"], created["order_number"]
        saga.reverse_with(DeleteOrder(order_id=order_id))

        items = saga.step(
            CreateOrderItems(order_id=order_id, cart_id=cart_id),
            RemoveOrderItems(order_id=order_id),
        )
        subscriptions = []
        if items["subscription_items"]:
            subscriptions = saga.step(
                CreateSubscriptions(
                    order_id=order_id,
                    item_ids=[item["item_id"] for item in items["subscription_items"]],
                ),
                RemoveOrderSubscriptions(order_id=order_id),
            )
    except DOMAIN_ERRORS as exc:
        message = error_message(exc)
        logger.error("Order materialization failed", user_id=user_id, cart_id=cart_id, error=message)
        saga.unwind()
        return Result.fail(message)

    _grant_downloads(user_id, order_id, order_number, items["order_items"], subscriptions)

    payment = register_payment(order_id, payment_data, gateway, user_id)
    if not payment.success:
        logger.error("Failed to register payment record", order_id=order_id, reason=payment.message)

    order_status, order_type = OrderStatus.PROCESSING.value, OrderType.ORDER.value
    if subscriptions:
        order_type = OrderType.SUBSCRIPTION.value
    finalized = dispatch(FinalizeOrder, order_id=order_id)
    if finalized.success:
        order_status, order_type = finalized.data["order_status"], finalized.data["order_type"]
    else:
        logger.error("Failed to update order status", order_id=order_id, reason=finalized.message)

    cleared = dispatch(ClearCart, cart_id=cart_id)
    if not cleared.success:
        logger.error("Failed to clear cart", cart_id=cart_id, reason=cleared.message)

    _send_confirmation(order_id, billing_address, payment_meta)

    logger.info("Order processed", order_id=order_id, order_number=order_number, order_type=order_type)
    return Result.ok(
        {
            "order_id": order_id,
            "order_number": order_number,
            "order_status": order_status,
            "order_type": order_type,
            "order_items": items["order_items"],
            "subscriptions": subscriptions,
            "payment": payment.data if payment.success else None,
        }
    )


def _send_confirmation(order_id, billing_address, payment_meta) -> bool:
    try:
        order = load(Order, order_id, "Order")
    except DOMAIN_ERRORS as exc:
        logger.warning("Confirmation email skipped", order_id=order_id, reason=error_message(exc))
        return False

    recipient = payment_meta.get("customer_email") or billing_address.get("email") or order.customer_email
    if not recipient:
        logger.warning("Could not send order confirmation email: customer email not found", order_id=order_id)
        return False
    return send_order_confirmation_email(recipient, order.summary())

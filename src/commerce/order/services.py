"""Order operations exposed to callers."""

from protean.utils.globals import current_domain

from commerce.order.materialization import CreateOrder, CreateOrderItems, CreateSubscriptions, DeleteOrder
from commerce.order.order import Order
from commerce.shared.listing import ListingFilters
from commerce.shared.result import DOMAIN_ERRORS, Result, dispatch, error_message, load


def create_order(user_id, cart_id, billing_address=None, payment_meta=None) -> Result:
    if not user_id or not cart_id:
        return Result.fail("User ID and Cart ID are required")
    payment_meta = payment_meta or {}
    payment_data = payment_meta.get("payment_data") or {}
    return dispatch(
        CreateOrder,
        user_id=user_id,
        cart_id=cart_id,
        billing_address=billing_address or {},
        payment_gateway=payment_meta.get("gateway"),
        payment_reference=payment_data.get("paymentIntentId") or payment_data.get("transactionId"),
    )


def create_order_items(order_id, cart_id) -> Result:
    return dispatch(CreateOrderItems, order_id=order_id, cart_id=cart_id)


def create_subscriptions(order_id, subscription_items=None) -> Result:
    """Start a subscription for each recurring item; all of them when ``subscription_items`` is empty."""
    item_ids = [item["item_id"] if isinstance(item, dict) else str(item) for item in subscription_items or []]
    return dispatch(CreateSubscriptions, order_id=order_id, item_ids=item_ids)


def delete_order(order_id) -> Result:
    return dispatch(DeleteOrder, order_id=order_id)


def get_order(order_id) -> Result:
    try:
        return Result.ok(load(Order, order_id, "Order"))
    except DOMAIN_ERRORS as exc:
        return Result.fail(error_message(exc))


def _listing(filters, user_id=None) -> Result:
    listing = filters if isinstance(filters, ListingFilters) else ListingFilters.from_options(filters)
    orders, total = current_domain.repository_for(Order).search(listing, user_id=user_id)
    return Result.ok({"orders": orders, "total": total})


def get_user_orders(user_id, filters=None) -> Result:
    if not user_id:
        return Result.fail("User ID is required")
    return _listing(filters, user_id=user_id)


def get_orders(filters=None) -> Result:
    return _listing(filters)

"""FastAPI routes for the commerce domain.

Routes are thin: they call the application services and hand back the
result envelope. A failed operation answers 404 when something was not
found and 400 otherwise.
"""

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from commerce.api.schemas import (
    AddToCartRequest,
    ApplyCouponRequest,
    AutoRenewalRequest,
    ChangeFrequencyRequest,
    ChangeOrderStatusRequest,
    ChangePlanRequest,
    CheckoutRequest,
    CreateCouponRequest,
    DiscountRequest,
    ProcessRenewalRequest,
    RefundRequest,
    RegisterPaymentRequest,
    RegisterPricingOptionRequest,
    RenewalStatusRequest,
    RenewSubscriptionRequest,
    SubscriptionActionRequest,
    TipRequest,
    UpdateCouponRequest,
    UpdateQuantityRequest,
)
from commerce.cart import services as carts
from commerce.catalog.pricing_option import RegisterPricingOption
from commerce.coupon import services as coupons
from commerce.downloads import services as downloads
from commerce.order import services as orders
from commerce.order.checkout import process_order_after_payment
from commerce.order.status import update_order_status
from commerce.payment import services as payments
from commerce.pricing.engine import get_cart_total
from commerce.renewal import services as renewals
from commerce.shared.listing import DEFAULT_PAGE_SIZE, ListingFilters
from commerce.shared.result import Result, dispatch
from commerce.subscription import services as subscriptions


def _plain(value):
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def respond(result: Result, created: bool = False) -> JSONResponse:
    """Render a ``Result`` as a JSON envelope with a matching status code."""
    if result.success:
        status_code = 201 if created else 200
    elif (result.message or "").lower().endswith("not found"):
        status_code = 404
    else:
        status_code = 400
    return JSONResponse(status_code=status_code, content=jsonable_encoder(_plain(result.as_dict())))


def listing_filters(
    search: str | None = None,
    status: str | None = None,
    order_type: str | None = None,
    time_filter: str | None = None,
    sort_field: str = "created_at",
    sort_order: str = "desc",
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> ListingFilters:
    return ListingFilters(
        search=search,
        status=status,
        order_type=order_type,
        time_filter=time_filter,
        sort_field=sort_field,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )


# ---------------------------------------------------------------------------
# Pricing option Router
# ---------------------------------------------------------------------------
pricing_option_router = APIRouter(prefix="/pricing-options", tags=["catalog"])


@pricing_option_router.post("", status_code=201)
async def register_pricing_option(body: RegisterPricingOptionRequest) -> JSONResponse:
    """Register the price and billing terms a plan is sold under."""
    return respond(dispatch(RegisterPricingOption, **body.model_dump(exclude_none=True)), created=True)


# ---------------------------------------------------------------------------
# User Router (the user's own cart, orders, subscriptions and downloads)
# ---------------------------------------------------------------------------
user_router = APIRouter(prefix="/users/{user_id}", tags=["users"])


@user_router.get("/cart")
async def get_user_cart(user_id: str) -> JSONResponse:
    return respond(carts.get_cart(user_id=user_id))


@user_router.get("/cart/count")
async def get_user_cart_count(user_id: str) -> JSONResponse:
    return respond(carts.get_cart_item_count(user_id))


@user_router.post("/cart/items", status_code=201)
async def add_to_cart(user_id: str, body: AddToCartRequest) -> JSONResponse:
    """Add a pricing option to the user's Active cart, creating the cart if needed."""
    return respond(carts.add_to_cart(user_id, body.pricing_option_id, body.quantity, body.notes), created=True)


@user_router.post("/cart/coupon")
async def apply_coupon(user_id: str, body: ApplyCouponRequest) -> JSONResponse:
    return respond(coupons.apply_coupon(user_id, body.code, cart_id=body.cart_id))


@user_router.get("/orders")
async def get_user_orders(user_id: str, filters: ListingFilters = Depends(listing_filters)) -> JSONResponse:
    return respond(orders.get_user_orders(user_id, filters))


@user_router.get("/subscriptions")
async def get_user_subscriptions(user_id: str, status: str | None = None) -> JSONResponse:
    return respond(subscriptions.get_user_subscriptions(user_id, status=status))


@user_router.get("/downloads")
async def get_user_downloads(user_id: str) -> JSONResponse:
    return respond(downloads.get_user_downloads(user_id))


@user_router.get("/downloads/{plan_id}")
async def check_download_access(user_id: str, plan_id: str) -> JSONResponse:
    return respond(downloads.check_download_access(user_id, plan_id))


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/{cart_id}")
async def get_cart(cart_id: str) -> JSONResponse:
    return respond(carts.get_cart(cart_id=cart_id))


@cart_router.get("/{cart_id}/totals")
async def get_totals(cart_id: str) -> JSONResponse:
    """Recompute and return the cart's totals."""
    return respond(get_cart_total(cart_id))


@cart_router.patch("/{cart_id}/items/{item_id}")
async def update_item_quantity(cart_id: str, item_id: str, body: UpdateQuantityRequest) -> JSONResponse:
    return respond(carts.update_cart_item_quantity(cart_id, item_id, body.quantity))


@cart_router.delete("/{cart_id}/items/{item_id}")
async def remove_item(cart_id: str, item_id: str) -> JSONResponse:
    return respond(carts.remove_cart_item(cart_id, item_id))


@cart_router.put("/{cart_id}/tip")
async def add_tip(cart_id: str, body: TipRequest) -> JSONResponse:
    return respond(carts.add_tip(cart_id, body.amount, body.tip_type))


@cart_router.delete("/{cart_id}/tip")
async def remove_tip(cart_id: str) -> JSONResponse:
    return respond(carts.remove_tip(cart_id))


@cart_router.put("/{cart_id}/discount")
async def add_discount(cart_id: str, body: DiscountRequest) -> JSONResponse:
    return respond(carts.add_discount(cart_id, body.amount))


@cart_router.delete("/{cart_id}/discount")
async def remove_discount(cart_id: str) -> JSONResponse:
    return respond(carts.remove_discount(cart_id))


@cart_router.delete("/{cart_id}/coupon")
async def remove_coupon(cart_id: str) -> JSONResponse:
    return respond(coupons.remove_coupon(cart_id))


@cart_router.post("/{cart_id}/clear")
async def clear_cart(cart_id: str) -> JSONResponse:
    return respond(carts.clear_cart(cart_id))


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("", status_code=201)
async def create_coupon(body: CreateCouponRequest) -> JSONResponse:
    terms = body.model_dump(exclude_none=True, exclude={"codes", "discount_type", "value"})
    return respond(coupons.create_coupon(body.codes, body.discount_type, body.value, **terms), created=True)


@coupon_router.patch("/{coupon_id}")
async def update_coupon(coupon_id: str, body: UpdateCouponRequest) -> JSONResponse:
    return respond(coupons.update_coupon(coupon_id, **body.model_dump(exclude_none=True)))


@coupon_router.get("")
async def list_coupons(status: str | None = None, user_id: str | None = None, code: str | None = None) -> JSONResponse:
    return respond(coupons.get_coupons(status=status, user_id=user_id, code=code))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("/checkout", status_code=201)
async def checkout(body: CheckoutRequest) -> JSONResponse:
    """Turn a paid cart into an order with its items, subscriptions, payment and downloads."""
    payment_meta = body.payment_meta.model_dump() if body.payment_meta else None
    result = process_order_after_payment(body.user_id, body.cart_id, body.billing_address, payment_meta)
    return respond(result, created=True)


@order_router.get("")
async def list_orders(filters: ListingFilters = Depends(listing_filters)) -> JSONResponse:
    return respond(orders.get_orders(filters))


@order_router.get("/{order_id}")
async def get_order(order_id: str) -> JSONResponse:
    return respond(orders.get_order(order_id))


@order_router.put("/{order_id}/status")
async def change_order_status(order_id: str, body: ChangeOrderStatusRequest) -> JSONResponse:
    """Change an order's status, cascading to its subscriptions."""
    return respond(update_order_status(order_id, body.status, reason=body.reason, changed_by=body.changed_by))


@order_router.delete("/{order_id}")
async def delete_order(order_id: str) -> JSONResponse:
    return respond(orders.delete_order(order_id))


@order_router.get("/{order_id}/payments")
async def get_order_payments(order_id: str) -> JSONResponse:
    return respond(payments.get_order_payments(order_id))


@order_router.get("/{order_id}/renewals")
async def get_order_renewals(order_id: str) -> JSONResponse:
    return respond(renewals.get_renewal_orders_by_parent(order_id))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("", status_code=201)
async def register_payment(body: RegisterPaymentRequest) -> JSONResponse:
    """Record a gateway payment against an order and mark the order paid."""
    result = payments.register_payment(body.order_id, body.payment_data, gateway=body.gateway, user_id=body.user_id)
    return respond(result, created=True)


@payment_router.get("/{payment_id}")
async def get_payment(payment_id: str) -> JSONResponse:
    return respond(payments.get_payment(payment_id))


@payment_router.post("/{payment_id}/refunds", status_code=201)
async def refund_payment(payment_id: str, body: RefundRequest) -> JSONResponse:
    result = payments.process_payment_refund(payment_id, body.amount, reason=body.reason, partial=body.partial)
    return respond(result, created=True)


# ---------------------------------------------------------------------------
# Subscription Router
# ---------------------------------------------------------------------------
subscription_router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])

_REQUESTS = {
    "request-cancel": subscriptions.request_cancel,
    "cancel": subscriptions.cancel_subscription,
    "request-pause": subscriptions.request_pause,
    "pause": subscriptions.pause_subscription,
    "resume": subscriptions.resume_subscription,
}

_DECISIONS = {
    "approve-cancel": subscriptions.approve_cancel,
    "reject-cancel": subscriptions.reject_cancel,
    "approve-pause": subscriptions.approve_pause,
    "reject-pause": subscriptions.reject_pause,
}


@subscription_router.get("")
async def list_subscriptions(status: str | None = None, user_id: str | None = None) -> JSONResponse:
    return respond(subscriptions.get_subscriptions(status=status, user_id=user_id))


@subscription_router.get("/{subscription_id}")
async def get_subscription(subscription_id: str) -> JSONResponse:
    return respond(subscriptions.get_subscription(subscription_id))


@subscription_router.get("/{subscription_id}/changes")
async def get_subscription_changes(subscription_id: str) -> JSONResponse:
    return respond(subscriptions.get_subscription_changes(subscription_id))


@subscription_router.post("/{subscription_id}/actions/{action}")
async def transition_subscription(subscription_id: str, action: str, body: SubscriptionActionRequest) -> JSONResponse:
    """Run a lifecycle action such as ``request-cancel``, ``approve-pause`` or ``resume``."""
    if action in _DECISIONS:
        return respond(_DECISIONS[action](subscription_id, body.actor, body.reason, is_admin=body.is_admin))
    if action in _REQUESTS:
        return respond(_REQUESTS[action](subscription_id, body.actor, body.reason))
    return respond(Result.fail(f"Unknown subscription action: {action}"))


@subscription_router.put("/{subscription_id}/auto-renew")
async def update_auto_renewal(subscription_id: str, body: AutoRenewalRequest) -> JSONResponse:
    return respond(subscriptions.update_auto_renewal(subscription_id, body.auto_renew))


@subscription_router.put("/{subscription_id}/plan")
async def change_plan(subscription_id: str, body: ChangePlanRequest) -> JSONResponse:
    result = subscriptions.change_subscription_plan(
        subscription_id, body.new_pricing_id, changed_by=body.changed_by, reason=body.reason, notes=body.notes
    )
    return respond(result)


@subscription_router.put("/{subscription_id}/frequency")
async def change_frequency(subscription_id: str, body: ChangeFrequencyRequest) -> JSONResponse:
    result = subscriptions.change_subscription_frequency(
        subscription_id, body.frequency, body.interval, changed_by=body.changed_by, reason=body.reason
    )
    return respond(result)


@subscription_router.delete("/{subscription_id}")
async def delete_subscription(subscription_id: str) -> JSONResponse:
    return respond(subscriptions.delete_subscription(subscription_id))


@subscription_router.post("/{subscription_id}/renew")
async def renew_subscription(subscription_id: str, body: RenewSubscriptionRequest) -> JSONResponse:
    result = renewals.renew_subscription(
        subscription_id,
        process_payment=body.process_payment,
        renewed_by=body.renewed_by,
        reason=body.reason,
        gateway=body.gateway,
        payment_method_id=body.payment_method_id,
    )
    return respond(result)


@subscription_router.post("/{subscription_id}/renewals", status_code=201)
async def process_renewal(subscription_id: str, body: ProcessRenewalRequest) -> JSONResponse:
    """Open a renewal order and settle it with the supplied gateway payment."""
    result = renewals.process_subscription_renewal(subscription_id, body.payment_data, gateway=body.gateway)
    return respond(result, created=True)


@subscription_router.post("/{subscription_id}/retry-renewal")
async def retry_renewal(subscription_id: str, body: RenewSubscriptionRequest) -> JSONResponse:
    result = renewals.retry_renewal(
        subscription_id, retried_by=body.renewed_by, gateway=body.gateway, process_payment=body.process_payment
    )
    return respond(result)


# ---------------------------------------------------------------------------
# Renewal order Router
# ---------------------------------------------------------------------------
renewal_router = APIRouter(prefix="/renewals", tags=["renewals"])


@renewal_router.get("")
async def list_renewals(
    parent_order_id: str | None = None,
    user_id: str | None = None,
    filters: ListingFilters = Depends(listing_filters),
) -> JSONResponse:
    return respond(renewals.get_renewal_orders(filters, parent_order_id=parent_order_id, user_id=user_id))


@renewal_router.get("/due")
async def list_due_renewals() -> JSONResponse:
    return respond(renewals.get_due_renewal_orders())


@renewal_router.get("/{renewal_order_id}")
async def get_renewal(renewal_order_id: str) -> JSONResponse:
    return respond(renewals.get_renewal_order(renewal_order_id))


@renewal_router.put("/{renewal_order_id}/status")
async def update_renewal_status(renewal_order_id: str, body: RenewalStatusRequest) -> JSONResponse:
    result = renewals.update_renewal_order_status(
        renewal_order_id, body.status, failure_reason=body.failure_reason, notes=body.notes
    )
    return respond(result)


@renewal_router.post("/{renewal_order_id}/attempts")
async def record_renewal_attempt(renewal_order_id: str) -> JSONResponse:
    return respond(renewals.increment_renewal_attempt(renewal_order_id))


@renewal_router.delete("/{renewal_order_id}")
async def delete_renewal(renewal_order_id: str) -> JSONResponse:
    return respond(renewals.delete_renewal_order(renewal_order_id))

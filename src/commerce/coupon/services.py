"""Coupon operations exposed to callers."""

import structlog
from protean.utils.globals import current_domain

from commerce.cart.services import find_active_cart
from commerce.coupon.application import ApplyCoupon, RemoveCoupon
from commerce.coupon.coupon import Coupon, CouponExpiredError
from commerce.coupon.management import CreateCoupon, ExpireCoupon, UpdateCoupon
from commerce.shared.result import DOMAIN_ERRORS, Result, dispatch, error_message

logger = structlog.get_logger(__name__)


def apply_coupon(user_id, code, cart_id=None) -> Result:
    """Validate ``code`` against the cart and attach its discount.

    An expired coupon is flipped to Expired even though the application fails.
    """
    if not cart_id:
        cart = find_active_cart(user_id)
        if cart is None:
            return Result.fail("No active cart found")
        cart_id = str(cart.id)

    try:
        data = current_domain.process(ApplyCoupon(cart_id=cart_id, user_id=user_id, code=code), asynchronous=False)
    except CouponExpiredError as exc:
        expired = dispatch(ExpireCoupon, coupon_id=exc.coupon_id)
        if not expired.success:
            logger.warning("Could not mark coupon expired", coupon_id=exc.coupon_id, reason=expired.message)
        return Result.fail(error_message(exc))
    except DOMAIN_ERRORS as exc:
        return Result.fail(error_message(exc))

    return Result.ok(data, message="Coupon applied successfully")


def remove_coupon(cart_id) -> Result:
    result = dispatch(RemoveCoupon, cart_id=cart_id)
    if result.success:
        return Result.ok(result.data, message="Coupon removed")
    return result


def create_coupon(codes, discount_type, value, **terms) -> Result:
    if isinstance(codes, str):
        codes = [codes]
    return dispatch(CreateCoupon, codes=codes, discount_type=discount_type, value=value, **terms)


def update_coupon(coupon_id, **changes) -> Result:
    if isinstance(changes.get("codes"), str):
        changes["codes"] = [changes["codes"]]
    return dispatch(UpdateCoupon, coupon_id=coupon_id, **changes)


def get_coupons(status=None, user_id=None, code=None) -> Result:
    try:
        coupons = current_domain.repository_for(Coupon).search(status=status, user_id=user_id, code=code)
    except DOMAIN_ERRORS as exc:
        return Result.fail(error_message(exc))
    return Result.ok(coupons)

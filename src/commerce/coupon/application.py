"""Applying coupons to carts."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.cart.cart import Cart, CartStatus
from commerce.coupon.coupon import Coupon, CouponExpiredError
from commerce.domain import commerce
from commerce.pricing.engine import price_cart
from commerce.shared.result import load

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Cart")
class ApplyCoupon:
    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    code = String(required=True, max_length=100)


@commerce.command(part_of="Cart")
class RemoveCoupon:
    cart_id = Identifier(required=True)


@commerce.command_handler(part_of=Cart)
class CartCouponHandler:
    @handle(ApplyCoupon)
    def apply_coupon(self, command):
        cart_repo = current_domain.repository_for(Cart)
        coupon_repo = current_domain.repository_for(Coupon)

        try:
            cart = cart_repo.get(command.cart_id)
        except ObjectNotFoundError:
            cart = None
        if cart is None or cart.status != CartStatus.ACTIVE.value:
            raise ValidationError({"cart": ["No active cart found"]})
        if cart.is_empty:
            raise ValidationError({"cart": ["Cart is empty"]})

        coupon = coupon_repo.active_by_code(command.code)
        if coupon is None:
            raise ValidationError({"code": ["Invalid or expired coupon code"]})
        if coupon.is_expired():
            raise CouponExpiredError(str(coupon.id))
        if coupon.usage_limit_reached():
            raise ValidationError({"code": ["Coupon usage limit has been reached"]})
        if not coupon.is_valid_for_user(command.user_id):
            raise ValidationError({"code": ["This coupon is not valid for your account"]})

        order_total = price_cart(cart).subtotal
        if not coupon.meets_minimum(order_total):
            raise ValidationError(
                {"code": [f"Order must be at least ${coupon.minimum_order_amount:.2f} to use this coupon"]}
            )

        discount = coupon.discount_for(order_total)
        cart.attach_coupon(str(coupon.id), command.code.strip().upper(), discount)
        coupon.record_use()
        totals = price_cart(cart)

        cart_repo.add(cart)
        coupon_repo.add(coupon)
        logger.info("Coupon applied", cart_id=str(cart.id), coupon_id=str(coupon.id), discount=discount)
        return {"discount_amount": discount, "coupon_code": cart.coupon_code, "totals": totals}

    @handle(RemoveCoupon)
    def remove_coupon(self, command):
        repo = current_domain.repository_for(Cart)
        cart = load(Cart, command.cart_id, "Cart")
        cart.detach_coupon()
        totals = price_cart(cart)
        repo.add(cart)
        return totals

"""Cart operations exposed to callers.

Each function returns a ``Result``; a user's cart is created lazily on the
first add-to-cart.
"""

import structlog
from protean.utils.globals import current_domain

from commerce.cart.adjustments import AddDiscount, AddTip, ClearCart, RemoveDiscount, RemoveTip
from commerce.cart.cart import Cart, TipType
from commerce.cart.items import AddToCart, CreateCart, RemoveCartItem, UpdateCartItemQuantity
from commerce.shared.result import DOMAIN_ERRORS, Result, dispatch, error_message, load

logger = structlog.get_logger(__name__)


def find_active_cart(user_id) -> Cart | None:
    if not user_id:
        return None
    return current_domain.repository_for(Cart).active_for_user(user_id)


def get_or_create_cart(user_id, tax_percentage: float = 0.0) -> Result:
    """Return the user's Active cart, creating one when none exists."""
    if not user_id:
        return Result.fail("User ID is required")

    cart = find_active_cart(user_id)
    if cart is not None:
        return Result.ok(cart)

    created = dispatch(CreateCart, user_id=user_id, tax_percentage=tax_percentage)
    if not created.success:
        return created
    logger.info("Cart created", user_id=user_id, cart_id=created.data)
    return Result.ok(load(Cart, created.data, "Cart"))


def get_cart(user_id=None, cart_id=None) -> Result:
    """Fetch a cart by id, or the user's Active cart."""
    try:
        cart = load(Cart, cart_id, "Cart") if cart_id else find_active_cart(user_id)
    except DOMAIN_ERRORS as exc:
        return Result.fail(error_message(exc))
    if cart is None:
        return Result.fail("No active cart found")
    return Result.ok(cart)


def add_to_cart(user_id, pricing_option_id, quantity: int = 1, notes: str | None = None) -> Result:
    cart_result = get_or_create_cart(user_id)
    if not cart_result.success:
        return cart_result

    cart_id = str(cart_result.data.id)
    added = dispatch(
        AddToCart,
        cart_id=cart_id,
        pricing_option_id=pricing_option_id,
        quantity=quantity,
        notes=notes,
    )
    if not added.success:
        return added
    return Result.ok({"cart_id": cart_id, "item_id": added.data}, message="Item added to cart")


def update_cart_item_quantity(cart_id, item_id, quantity: int) -> Result:
    """Change a line's quantity; a quantity of zero or less removes the line."""
    return dispatch(UpdateCartItemQuantity, cart_id=cart_id, item_id=item_id, quantity=quantity)


def remove_cart_item(cart_id, item_id) -> Result:
    return dispatch(RemoveCartItem, cart_id=cart_id, item_id=item_id)


def add_tip(cart_id, amount: float, tip_type: str = TipType.FIXED.value) -> Result:
    return dispatch(AddTip, cart_id=cart_id, amount=amount, tip_type=tip_type)


def remove_tip(cart_id) -> Result:
    return dispatch(RemoveTip, cart_id=cart_id)


def add_discount(cart_id, amount: float) -> Result:
    return dispatch(AddDiscount, cart_id=cart_id, amount=amount)


def remove_discount(cart_id) -> Result:
    return dispatch(RemoveDiscount, cart_id=cart_id)


def clear_cart(cart_id) -> Result:
    """Close the cart; the next add-to-cart starts a fresh one."""
    return dispatch(ClearCart, cart_id=cart_id)


def get_cart_item_count(user_id) -> Result:
    cart = find_active_cart(user_id)
    return Result.ok(cart.item_count if cart else 0)

"""Domain events for the Cart aggregate."""

from protean.fields import Float, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Cart")
class CartItemAdded:
    """A pricing option was added to the cart, or its line quantity grew."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    pricing_option_id = Identifier(required=True)
    quantity = Integer(required=True)


@commerce.event(part_of="Cart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


@commerce.event(part_of="Cart")
class CartCouponApplied:
    """A coupon passed validation and its discount now applies to the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=100)
    discount_amount = Float(required=True)


@commerce.event(part_of="Cart")
class CartCheckedOut:
    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)

"""Cart aggregate (CQRS) — a user's mutable, priced pre-checkout basket.

Line items reference pricing options by id; every mutation is followed by a
totals recomputation so the stored totals always reflect the current items.
A user's cart is the oldest Active cart found for them.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from commerce.cart.events import CartCheckedOut, CartCouponApplied, CartItemAdded, CartItemRemoved
from commerce.domain import commerce

DEFAULT_TRANSACTION_FEE_PERCENTAGE = 5.0


class CartStatus(Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"
    ABANDONED = "Abandoned"


class TipType(Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"


@commerce.entity(part_of="Cart")
class CartItem:
    pricing_option_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    notes = Text()
    added_at = DateTime()


@commerce.aggregate
class Cart:
    user_id = Identifier(required=True)
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    items = HasMany(CartItem)

    # Cart-level settings
    discount_amount = Float(default=0.0)
    tip_amount = Float()  # Explicit fixed tip; None when the tip is a percentage
    tip_percentage = Float()
    transaction_fee_percentage = Float(default=DEFAULT_TRANSACTION_FEE_PERCENTAGE)
    tax_percentage = Float(default=0.0)
    coupon_id = Identifier()
    coupon_code = String(max_length=100)

    # Totals written back by the pricing engine
    subtotal = Float(default=0.0)
    item_count = Integer(default=0)
    tip_total = Float(default=0.0)
    transaction_fee_amount = Float(default=0.0)
    tax_amount = Float(default=0.0)
    grand_total = Float(default=0.0)

    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def discount_cannot_be_negative(self):
        if self.discount_amount is not None and self.discount_amount < 0:
            raise ValidationError({"discount_amount": ["Discount cannot be negative"]})

    @classmethod
    def create(cls, user_id, tax_percentage=0.0):
        now = datetime.now(UTC)
        return cls(
            user_id=user_id,
            status=CartStatus.ACTIVE.value,
            transaction_fee_percentage=DEFAULT_TRANSACTION_FEE_PERCENTAGE,
            tax_percentage=tax_percentage or 0.0,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_empty(self) -> bool:
        return not self.items

    def _assert_active(self, action):
        if CartStatus(self.status) != CartStatus.ACTIVE:
            raise ValidationError({"status": [f"Cannot {action} a cart that is {self.status}"]})

    def _find_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})
        return item

    def _touch(self):
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------
    def add_item(self, pricing_option_id, quantity=1, notes=None):
        """Add a line, or increase the quantity of the line with the same pricing option."""
        self._assert_active("add items to")
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        existing = next((i for i in self.items if str(i.pricing_option_id) == str(pricing_option_id)), None)
        if existing:
            existing.quantity += quantity
            if notes:
                existing.notes = notes
            item_id = str(existing.id)
        else:
            item = CartItem(
                pricing_option_id=pricing_option_id,
                quantity=quantity,
                notes=notes,
                added_at=datetime.now(UTC),
            )
            self.add_items(item)
            item_id = str(item.id)

        self._touch()
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=item_id,
                pricing_option_id=str(pricing_option_id),
                quantity=quantity,
            )
        )
        return item_id

    def update_item_quantity(self, item_id, quantity):
        """Set a line's quantity; zero or less removes the line."""
        self._assert_active("update items in")
        item = self._find_item(item_id)
        if quantity is None or quantity <= 0:
            self.remove_item(item_id)
            return

        item.quantity = quantity
        self._touch()

    def remove_item(self, item_id):
        self._assert_active("remove items from")
        item = self._find_item(item_id)
        self.remove_items(item)
        self._touch()
        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item_id)))

    # -------------------------------------------------------------------
    # Tip, discount and coupon settings
    # -------------------------------------------------------------------
    def set_tip(self, amount, tip_type=TipType.FIXED.value):
        self._assert_active("tip on")
        if amount is None or amount < 0:
            raise ValidationError({"tip_amount": ["Tip must be zero or more"]})

        if tip_type == TipType.PERCENTAGE.value:
            self.tip_percentage = amount
            self.tip_amount = None
        elif tip_type == TipType.FIXED.value:
            self.tip_amount = amount
            self.tip_percentage = None
        else:
            raise ValidationError({"tip_type": [f"Unknown tip type: {tip_type}"]})
        self._touch()

    def clear_tip(self):
        self.tip_amount = None
        self.tip_percentage = None
        self._touch()

    def set_discount(self, amount):
        self._assert_active("discount")
        self.discount_amount = max(amount or 0.0, 0.0)
        self._touch()

    def clear_discount(self):
        self.discount_amount = 0.0
        self._touch()

    def attach_coupon(self, coupon_id, coupon_code, discount_amount):
        self._assert_active("apply a coupon to")
        self.coupon_id = coupon_id
        self.coupon_code = coupon_code
        self.discount_amount = max(discount_amount, 0.0)
        self._touch()
        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_id=str(coupon_id),
                coupon_code=coupon_code,
                discount_amount=self.discount_amount,
            )
        )

    def detach_coupon(self):
        self.coupon_id = None
        self.coupon_code = None
        self.discount_amount = 0.0
        self._touch()

    # -------------------------------------------------------------------
    # Totals and lifecycle
    # -------------------------------------------------------------------
    def apply_totals(self, totals):
        """Write a pricing engine result back onto the cart."""
        self.subtotal = totals.subtotal
        self.item_count = totals.item_count
        self.tip_total = totals.tip_amount
        self.transaction_fee_percentage = totals.transaction_fee_percentage
        self.transaction_fee_amount = totals.transaction_fee_amount
        self.tax_amount = totals.tax_amount
        self.grand_total = totals.grand_total

    def complete(self):
        """Close the cart once its contents became an order."""
        self._assert_active("complete")
        self.status = CartStatus.COMPLETED.value
        self._touch()
        self.raise_(CartCheckedOut(cart_id=str(self.id), user_id=str(self.user_id)))

    def abandon(self):
        self._assert_active("abandon")
        self.status = CartStatus.ABANDONED.value
        self._touch()

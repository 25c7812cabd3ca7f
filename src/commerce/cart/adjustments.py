"""Cart-level adjustments: tips, manual discounts and clearing the cart."""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from commerce.cart.cart import Cart, TipType
from commerce.domain import commerce
from commerce.pricing.engine import price_cart
from commerce.shared.result import load


@commerce.command(part_of="Cart")
class AddTip:
    cart_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    tip_type = String(choices=TipType, default=TipType.FIXED.value)


@commerce.command(part_of="Cart")
class RemoveTip:
    cart_id = Identifier(required=True)


@commerce.command(part_of="Cart")
class AddDiscount:
    cart_id = Identifier(required=True)
    amount = Float(required=True)


@commerce.command(part_of="Cart")
class RemoveDiscount:
    cart_id = Identifier(required=True)


@commerce.command(part_of="Cart")
class ClearCart:
    cart_id = Identifier(required=True)


@commerce.command_handler(part_of=Cart)
class CartAdjustmentsHandler:
    def _update(self, cart_id, mutate):
        repo = current_domain.repository_for(Cart)
        cart = load(Cart, cart_id, "Cart")
        mutate(cart)
        totals = price_cart(cart)
        repo.add(cart)
        return totals

    @handle(AddTip)
    def add_tip(self, command):
        return self._update(command.cart_id, lambda cart: cart.set_tip(command.amount, command.tip_type))

    @handle(RemoveTip)
    def remove_tip(self, command):
        return self._update(command.cart_id, lambda cart: cart.clear_tip())

    @handle(AddDiscount)
    def add_discount(self, command):
        return self._update(command.cart_id, lambda cart: cart.set_discount(command.amount))

    @handle(RemoveDiscount)
    def remove_discount(self, command):
        return self._update(command.cart_id, lambda cart: cart.clear_discount())

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = load(Cart, command.cart_id, "Cart")
        cart.complete()
        repo.add(cart)
        return str(cart.id)

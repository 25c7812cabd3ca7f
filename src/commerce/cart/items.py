"""Cart creation and line-item commands."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, Text
from protean.utils.globals import current_domain

from commerce.cart.cart import Cart
from commerce.catalog.pricing_option import PricingOption
from commerce.domain import commerce
from commerce.pricing.engine import price_cart
from commerce.shared.result import load


@commerce.command(part_of="Cart")
class CreateCart:
    user_id = Identifier(required=True)
    tax_percentage = Float(default=0.0)


@commerce.command(part_of="Cart")
class AddToCart:
    cart_id = Identifier(required=True)
    pricing_option_id = Identifier(required=True)
    quantity = Integer(default=1)
    notes = Text()


@commerce.command(part_of="Cart")
class UpdateCartItemQuantity:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)


@commerce.command(part_of="Cart")
class RemoveCartItem:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


@commerce.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        cart = Cart.create(user_id=command.user_id, tax_percentage=command.tax_percentage)
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    @handle(AddToCart)
    def add_to_cart(self, command):
        if command.quantity is not None and command.quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        load(PricingOption, command.pricing_option_id, "Pricing option")

        repo = current_domain.repository_for(Cart)
        cart = load(Cart, command.cart_id, "Cart")
        item_id = cart.add_item(
            pricing_option_id=command.pricing_option_id,
            quantity=command.quantity or 1,
            notes=command.notes,
        )
        price_cart(cart)
        repo.add(cart)
        return item_id

    @handle(UpdateCartItemQuantity)
    def update_quantity(self, command):
        repo = current_domain.repository_for(Cart)
        cart = load(Cart, command.cart_id, "Cart")
        cart.update_item_quantity(item_id=command.item_id, quantity=command.quantity)
        totals = price_cart(cart)
        repo.add(cart)
        return totals

    @handle(RemoveCartItem)
    def remove_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = load(Cart, command.cart_id, "Cart")
        cart.remove_item(item_id=command.item_id)
        totals = price_cart(cart)
        repo.add(cart)
        return totals

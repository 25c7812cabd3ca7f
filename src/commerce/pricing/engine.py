"""Cart pricing engine.

``calculate_totals`` is a pure function over a cart and the pricing options
its lines reference. ``price_cart`` resolves those options and writes the
result back onto the cart; the cart handlers call it after every mutation,
and ``RecalculateCartTotals`` runs it on demand. Recomputing without a
mutation in between always yields the same totals.
"""

from dataclasses import asdict, dataclass

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from commerce.cart.cart import DEFAULT_TRANSACTION_FEE_PERCENTAGE, Cart
from commerce.catalog.pricing_option import PricingOption
from commerce.domain import commerce
from commerce.shared.billing import money
from commerce.shared.result import DOMAIN_ERRORS, Result, error_message, load

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartTotals:
    subtotal: float = 0.0
    item_count: int = 0
    discount_amount: float = 0.0
    tip_amount: float = 0.0
    tip_percentage: float = 0.0
    transaction_fee_percentage: float = DEFAULT_TRANSACTION_FEE_PERCENTAGE
    transaction_fee_amount: float = 0.0
    tax_percentage: float = 0.0
    tax_amount: float = 0.0
    grand_total: float = 0.0

    @classmethod
    def zero(cls) -> "CartTotals":
        return cls()

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_totals(cart, pricing_options: dict) -> CartTotals:
    """Compute the totals of ``cart`` given its pricing options keyed by id.

    Lines whose pricing option is missing contribute nothing. Each component
    is rounded to cents and the grand total is summed from the rounded
    components, so the grand-total identity holds exactly.
    """
    subtotal = 0.0
    item_count = 0
    for item in cart.items:
        option = pricing_options.get(str(item.pricing_option_id))
        if option is None:
            continue
        subtotal += option.unit_price() * item.quantity
        item_count += item.quantity

    subtotal = money(subtotal)
    discount = money(cart.discount_amount)
    fee_percentage = cart.transaction_fee_percentage
    if fee_percentage is None:
        fee_percentage = DEFAULT_TRANSACTION_FEE_PERCENTAGE
    tax_percentage = cart.tax_percentage or 0.0
    tip_percentage = cart.tip_percentage or 0.0

    transaction_fee = money(subtotal * fee_percentage / 100)
    tax = money((subtotal - discount) * tax_percentage / 100)
    if cart.tip_amount is not None:
        tip = money(cart.tip_amount)
    elif tip_percentage > 0:
        tip = money(subtotal * tip_percentage / 100)
    else:
        tip = 0.0

    return CartTotals(
        subtotal=subtotal,
        item_count=item_count,
        discount_amount=discount,
        tip_amount=tip,
        tip_percentage=tip_percentage,
        transaction_fee_percentage=fee_percentage,
        transaction_fee_amount=transaction_fee,
        tax_percentage=tax_percentage,
        tax_amount=tax,
        grand_total=money(subtotal - discount + tip + transaction_fee + tax),
    )


def resolve_pricing_options(cart) -> dict:
    repo = current_domain.repository_for(PricingOption)
    options = {}
    for item in cart.items:
        key = str(item.pricing_option_id)
        if key in options:
            continue
        try:
            options[key] = repo.get(key)
        except ObjectNotFoundError:
            logger.warning("Pricing option missing for cart item", cart_id=str(cart.id), pricing_option_id=key)
    return options


def price_cart(cart) -> CartTotals:
    """Recompute and apply totals on ``cart`` (the caller persists it)."""
    totals = calculate_totals(cart, resolve_pricing_options(cart))
    cart.apply_totals(totals)
    return totals


@commerce.command(part_of="Cart")
class RecalculateCartTotals:
    cart_id = Identifier(required=True)


@commerce.command_handler(part_of=Cart)
class RecalculateCartTotalsHandler:
    @handle(RecalculateCartTotals)
    def recalculate(self, command):
        cart = load(Cart, command.cart_id, "Cart")
        totals = price_cart(cart)
        current_domain.repository_for(Cart).add(cart)
        return totals


def get_cart_total(cart_id) -> Result:
    """Recompute and persist a cart's totals.

    A missing cart yields all-zero totals with ``success=False``.
    """
    try:
        totals = current_domain.process(RecalculateCartTotals(cart_id=cart_id), asynchronous=False)
    except DOMAIN_ERRORS as exc:
        logger.info("Cart totals unavailable", cart_id=cart_id, reason=error_message(exc))
        return Result(success=False, data=CartTotals.zero(), message=error_message(exc))
    return Result.ok(totals)

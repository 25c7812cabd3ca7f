"""Domain tests for cart totals computation."""

from commerce.cart.cart import Cart
from commerce.catalog.pricing_option import PricingOption
from commerce.pricing.engine import CartTotals, calculate_totals


def _option(price, discount_type=None, discount_amount=0.0):
    return PricingOption(name="Option", price=price, discount_type=discount_type, discount_amount=discount_amount)


def _cart_with(*lines, **settings):
    cart = Cart.create(user_id="user-001", tax_percentage=settings.pop("tax_percentage", 0.0))
    options = {}
    for option, quantity in lines:
        cart.add_item(pricing_option_id=str(option.id), quantity=quantity)
        options[str(option.id)] = option
    for name, value in settings.items():
        setattr(cart, name, value)
    return cart, options


def _identity_holds(totals: CartTotals) -> bool:
    expected = round(
        totals.subtotal
        - totals.discount_amount
        + totals.tip_amount
        + totals.transaction_fee_amount
        + totals.tax_amount,
        2,
    )
    return totals.grand_total == expected


class TestSubtotal:
    def test_item_level_percentage_discount(self):
        cart, options = _cart_with((_option(100.0, "percentage", 10.0), 2))
        totals = calculate_totals(cart, options)
        assert totals.subtotal == 180.00
        assert totals.item_count == 2

    def test_item_level_fixed_discount(self):
        cart, options = _cart_with((_option(40.0, "fixed", 15.0), 3))
        assert calculate_totals(cart, options).subtotal == 75.00

    def test_fixed_discount_never_goes_below_zero(self):
        cart, options = _cart_with((_option(10.0, "fixed", 25.0), 1))
        assert calculate_totals(cart, options).subtotal == 0.0

    def test_lines_with_missing_option_contribute_nothing(self):
        cart, options = _cart_with((_option(20.0), 1), (_option(30.0), 2))
        missing = next(iter(options))
        del options[missing]
        totals = calculate_totals(cart, options)
        assert totals.subtotal == 60.0
        assert totals.item_count == 2

    def test_empty_cart_totals_are_zero(self):
        cart, options = _cart_with()
        totals = calculate_totals(cart, options)
        assert totals.subtotal == 0.0
        assert totals.grand_total == 0.0


class TestFeesTaxAndTip:
    def test_default_transaction_fee_is_five_percent(self):
        cart, options = _cart_with((_option(50.0), 1))
        totals = calculate_totals(cart, options)
        assert totals.transaction_fee_percentage == 5.0
        assert totals.transaction_fee_amount == 2.50
        assert totals.grand_total == 52.50

    def test_tax_applies_after_discount(self):
        cart, options = _cart_with((_option(100.0), 1), tax_percentage=10.0, discount_amount=20.0)
        totals = calculate_totals(cart, options)
        assert totals.tax_amount == 8.00

    def test_fixed_tip(self):
        cart, options = _cart_with((_option(100.0), 1), tip_amount=7.5)
        assert calculate_totals(cart, options).tip_amount == 7.50

    def test_percentage_tip(self):
        cart, options = _cart_with((_option(80.0), 1), tip_amount=None, tip_percentage=15.0)
        assert calculate_totals(cart, options).tip_amount == 12.00

    def test_fixed_tip_wins_over_percentage(self):
        cart, options = _cart_with((_option(80.0), 1), tip_amount=3.0, tip_percentage=15.0)
        assert calculate_totals(cart, options).tip_amount == 3.00


class TestGrandTotal:
    def test_fixed_coupon_reduces_grand_total_by_its_amount(self):
        cart, options = _cart_with((_option(50.0), 1))
        before = calculate_totals(cart, options)
        cart.discount_amount = 20.0
        after = calculate_totals(cart, options)
        assert after.discount_amount == 20.0
        assert round(before.grand_total - after.grand_total, 2) == 20.0

    def test_grand_total_identity_with_awkward_amounts(self):
        cart, options = _cart_with(
            (_option(19.99, "percentage", 12.5), 3),
            (_option(0.33), 7),
            tax_percentage=8.875,
            discount_amount=4.44,
            tip_amount=None,
            tip_percentage=12.0,
        )
        assert _identity_holds(calculate_totals(cart, options))

    def test_recomputing_without_mutation_is_stable(self):
        cart, options = _cart_with((_option(12.34, "percentage", 7.0), 5), tax_percentage=6.5)
        assert calculate_totals(cart, options) == calculate_totals(cart, options)

    def test_zero_totals_helper(self):
        totals = CartTotals.zero()
        assert totals.grand_total == 0.0
        assert totals.to_dict()["transaction_fee_percentage"] == 5.0

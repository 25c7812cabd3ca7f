"""BDD tests for cart pricing and coupons."""

from datetime import UTC, datetime, timedelta

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from commerce.cart.services import add_to_cart, get_cart
from commerce.coupon.services import apply_coupon, create_coupon

scenarios("features/cart_pricing.feature")


@pytest.fixture()
def options():
    """Pricing option ids by name."""
    return {}


def _cart(user_id):
    return get_cart(user_id=user_id).data


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a pricing option "{name}" priced {price:f} with a {discount:d} percent discount'))
def discounted_option(make_option, options, name, price, discount):
    options[name] = make_option(name=name, price=price, discount_type="percentage", discount_amount=float(discount))


@given(parsers.cfparse('a pricing option "{name}" priced {price:f}'))
def plain_option(make_option, options, name, price):
    options[name] = make_option(name=name, price=price)


@given(parsers.cfparse('a fixed coupon "{code}" worth {value:f}'))
def fixed_coupon(code, value):
    assert create_coupon(code, "fixed", value).success


@given(parsers.cfparse('a percentage coupon "{code}" worth {value:d} capped at {cap:f}'))
def capped_coupon(code, value, cap):
    assert create_coupon(code, "percentage", float(value), maximum_discount_amount=cap).success


@given(parsers.cfparse('an expired fixed coupon "{code}" worth {value:f}'))
def expired_coupon(code, value):
    assert create_coupon(code, "fixed", value, expiration_date=datetime.now(UTC) - timedelta(days=1)).success


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the customer adds {quantity:d} of "{name}" to the cart'))
def add_item(user_id, options, quantity, name):
    assert add_to_cart(user_id, options[name], quantity).success


@when(parsers.cfparse('the customer applies coupon "{code}"'))
def apply(user_id, outcome, code):
    outcome["result"] = apply_coupon(user_id, code)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the cart subtotal is {amount:f}"))
def cart_subtotal(user_id, amount):
    assert _cart(user_id).subtotal == amount


@then(parsers.cfparse("the cart item count is {count:d}"))
def cart_item_count(user_id, count):
    assert _cart(user_id).item_count == count


@then(parsers.cfparse("the cart discount is {amount:f}"))
def cart_discount(user_id, amount):
    assert _cart(user_id).discount_amount == amount


@then(parsers.cfparse("the cart grand total is {amount:f}"))
def cart_grand_total(user_id, amount):
    assert _cart(user_id).grand_total == amount

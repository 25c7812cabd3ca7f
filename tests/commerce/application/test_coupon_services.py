"""Application tests for coupon management and application."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain

from commerce.cart.cart import Cart
from commerce.cart.services import add_to_cart
from commerce.coupon import services as coupons
from commerce.coupon.coupon import Coupon, CouponStatus


@pytest.fixture()
def cart_id(user_id, make_option):
    def _fill(price):
        return add_to_cart(user_id, make_option(price=price), 1).data["cart_id"]

    return _fill


def _coupon(code="SAVE", discount_type="fixed", value=20.0, **terms):
    result = coupons.create_coupon(code, discount_type, value, **terms)
    assert result.success, result.message
    return result.data


class TestCouponManagement:
    def test_create_normalizes_codes(self):
        coupon_id = _coupon("spring")
        coupon = current_domain.repository_for(Coupon).get(coupon_id)
        assert coupon.codes == ["SPRING"]

    def test_duplicate_code_is_rejected(self):
        _coupon("SPRING")
        result = coupons.create_coupon(["other", "spring"], "fixed", 5.0)
        assert not result.success
        assert result.message == "Coupon code SPRING already exists"

    def test_update_coupon(self):
        coupon_id = _coupon()
        assert coupons.update_coupon(coupon_id, value=25.0, status=CouponStatus.INACTIVE.value).success
        coupon = current_domain.repository_for(Coupon).get(coupon_id)
        assert coupon.value == 25.0
        assert coupon.status == CouponStatus.INACTIVE.value

    def test_active_listing_hides_expired(self):
        _coupon("LIVE")
        _coupon("OLD", expiration_date=datetime.now(UTC) - timedelta(days=1))
        listed = coupons.get_coupons(status=CouponStatus.ACTIVE.value).data
        assert [coupon.codes for coupon in listed] == [["LIVE"]]

    def test_lookup_by_code(self):
        _coupon("ONE")
        _coupon("TWO")
        assert len(coupons.get_coupons(code="two").data) == 1


class TestApplyCoupon:
    def test_fixed_coupon(self, user_id, cart_id):
        cart = cart_id(50.0)
        _coupon("TWENTY", "fixed", 20.0)
        result = coupons.apply_coupon(user_id, "twenty")
        assert result.success
        assert result.message == "Coupon applied successfully"
        assert result.data["discount_amount"] == 20.0

        stored = current_domain.repository_for(Cart).get(cart)
        assert stored.coupon_code == "TWENTY"
        assert stored.grand_total == round(50.0 - 20.0 + 2.5, 2)

    def test_percentage_coupon_respects_cap(self, user_id, cart_id):
        cart_id(10.0)
        _coupon("HALF", "percentage", 50.0, maximum_discount_amount=3.0)
        assert coupons.apply_coupon(user_id, "HALF").data["discount_amount"] == 3.0

    def test_use_is_counted(self, user_id, cart_id):
        cart_id(10.0)
        coupon_id = _coupon("COUNT", "fixed", 1.0)
        coupons.apply_coupon(user_id, "COUNT")
        assert current_domain.repository_for(Coupon).get(coupon_id).used_count == 1

    def test_unknown_code(self, user_id, cart_id):
        cart_id(10.0)
        result = coupons.apply_coupon(user_id, "NOPE")
        assert result.message == "Invalid or expired coupon code"

    def test_expired_coupon_is_flipped_to_expired(self, user_id, cart_id):
        cart_id(10.0)
        coupon_id = _coupon("LATE", expiration_date=datetime.now(UTC) - timedelta(minutes=5))
        result = coupons.apply_coupon(user_id, "LATE")
        assert not result.success
        assert result.message == "Coupon has expired"
        assert current_domain.repository_for(Coupon).get(coupon_id).status == CouponStatus.EXPIRED.value

    def test_usage_limit(self, user_id, cart_id):
        cart_id(10.0)
        _coupon("ONCE", "fixed", 1.0, usage_limit=1)
        assert coupons.apply_coupon(user_id, "ONCE").success
        result = coupons.apply_coupon(user_id, "ONCE")
        assert result.message == "Coupon usage limit has been reached"

    def test_user_specific(self, user_id, cart_id):
        cart_id(10.0)
        _coupon("VIP", "fixed", 1.0, is_user_specific=True, user_id="someone-else")
        result = coupons.apply_coupon(user_id, "VIP")
        assert result.message == "This coupon is not valid for your account"

    def test_minimum_order_amount(self, user_id, cart_id):
        cart_id(10.0)
        _coupon("BIG", "fixed", 5.0, minimum_order_amount=25.0)
        result = coupons.apply_coupon(user_id, "BIG")
        assert result.message == "Order must be at least $25.00 to use this coupon"

    def test_no_active_cart(self, user_id):
        _coupon("SAVE")
        assert coupons.apply_coupon(user_id, "SAVE").message == "No active cart found"

    def test_remove_coupon(self, user_id, cart_id):
        cart = cart_id(50.0)
        _coupon("TWENTY", "fixed", 20.0)
        coupons.apply_coupon(user_id, "TWENTY")
        result = coupons.remove_coupon(cart)
        assert result.success
        assert result.data.discount_amount == 0.0
        assert result.data.grand_total == 52.5


class TestLargeCatalog:
    @pytest.fixture()
    def many_coupons(self):
        for index in range(120):
            _coupon(f"BULK{index}", "fixed", 2.0)

    def test_late_code_still_applies(self, many_coupons, user_id, cart_id):
        cart_id(10.0)
        result = coupons.apply_coupon(user_id, "BULK119")
        assert result.success, result.message
        assert result.data["discount_amount"] == 2.0

    def test_late_code_stays_unique(self, many_coupons):
        result = coupons.create_coupon(["BULK119"], "fixed", 2.0)
        assert result.message == "Coupon code BULK119 already exists"

    def test_listing_returns_every_coupon(self, many_coupons):
        assert len(coupons.get_coupons().data) == 120

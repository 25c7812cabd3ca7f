"""Coupon aggregate: a discount reachable through one or more codes.

A coupon is validated in a fixed order when applied to a cart: existence,
expiry, usage limit, user restriction, then minimum order amount. The first
failing check decides the message the shopper sees.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, List, String, Text

from commerce.domain import commerce
from commerce.shared.billing import as_utc, money


class CouponDiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CouponStatus(Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    EXPIRED = "Expired"


class CouponExpiredError(ValidationError):
    """Raised when an expired coupon is applied; the coupon still needs expiring."""

    def __init__(self, coupon_id):
        super().__init__({"code": ["Coupon has expired"]})
        self.coupon_id = coupon_id


def normalize_code(code) -> str:
    return str(code or "").strip().upper()


def check_terms(codes, discount_type, value, is_user_specific=False, user_id=None):
    """Validate coupon terms before they are stored."""
    if not codes:
        raise ValidationError({"codes": ["At least one coupon code is required"]})
    if discount_type not in {t.value for t in CouponDiscountType}:
        raise ValidationError({"discount_type": ["Discount type must be percentage or fixed"]})
    if value is None or value <= 0:
        raise ValidationError({"value": ["Discount value must be greater than 0"]})
    if discount_type == CouponDiscountType.PERCENTAGE.value and value > 100:
        raise ValidationError({"value": ["Percentage discount cannot exceed 100%"]})
    if is_user_specific and not user_id:
        raise ValidationError({"user_id": ["User ID is required for user-specific coupons"]})


@commerce.aggregate
class Coupon:
    codes = List(content_type=String, required=True)
    description = Text()
    discount_type = String(choices=CouponDiscountType, required=True)
    value = Float(required=True)
    expiration_date = DateTime()
    usage_limit = Integer()
    used_count = Integer(default=0)
    minimum_order_amount = Float()
    maximum_discount_amount = Float()
    is_user_specific = Boolean(default=False)
    user_id = Identifier()
    status = String(choices=CouponStatus, default=CouponStatus.ACTIVE.value)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, codes, discount_type, value, **terms):
        codes = [normalize_code(code) for code in codes or [] if normalize_code(code)]
        check_terms(codes, discount_type, value, terms.get("is_user_specific"), terms.get("user_id"))
        now = datetime.now(UTC)
        return cls(
            codes=codes,
            discount_type=discount_type,
            value=value,
            used_count=0,
            status=CouponStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
            **terms,
        )

    def update_terms(self, **changes):
        """Apply administrative changes; ``None`` values leave a term untouched."""
        changes = {name: value for name, value in changes.items() if value is not None}
        if "codes" in changes:
            changes["codes"] = [normalize_code(code) for code in changes["codes"] if normalize_code(code)]

        check_terms(
            changes.get("codes", self.codes),
            changes.get("discount_type", self.discount_type),
            changes.get("value", self.value),
            changes.get("is_user_specific", self.is_user_specific),
            changes.get("user_id", self.user_id),
        )
        for field_name, value in changes.items():
            setattr(self, field_name, value)
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Eligibility checks
    # -------------------------------------------------------------------
    def matches(self, code) -> bool:
        return normalize_code(code) in (self.codes or [])

    def is_expired(self, as_of=None) -> bool:
        if self.expiration_date is None:
            return False
        return as_utc(self.expiration_date) < (as_of or datetime.now(UTC))

    def usage_limit_reached(self) -> bool:
        return bool(self.usage_limit) and (self.used_count or 0) >= self.usage_limit

    def is_valid_for_user(self, user_id) -> bool:
        return not self.is_user_specific or str(self.user_id) == str(user_id)

    def meets_minimum(self, order_total) -> bool:
        return not self.minimum_order_amount or order_total >= self.minimum_order_amount

    def discount_for(self, order_total) -> float:
        """Discount granted on ``order_total``; never more than the total or the cap."""
        if self.discount_type == CouponDiscountType.PERCENTAGE.value:
            discount = order_total * self.value / 100
            if self.maximum_discount_amount:
                discount = min(discount, self.maximum_discount_amount)
        else:
            discount = self.value
        return money(max(min(discount, order_total), 0.0))

    # -------------------------------------------------------------------
    # State changes
    # -------------------------------------------------------------------
    def record_use(self):
        self.used_count = (self.used_count or 0) + 1
        self.updated_at = datetime.now(UTC)

    def expire(self):
        self.status = CouponStatus.EXPIRED.value
        self.updated_at = datetime.now(UTC)

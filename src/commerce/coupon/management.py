"""Coupon administration — commands and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, List, String, Text
from protean.utils.globals import current_domain

from commerce.coupon.coupon import Coupon
from commerce.domain import commerce
from commerce.shared.result import load


@commerce.command(part_of="Coupon")
class CreateCoupon:
    codes = List(content_type=String, required=True)
    discount_type = String(required=True, max_length=20)
    value = Float(required=True)
    description = Text()
    expiration_date = DateTime()
    usage_limit = Integer()
    minimum_order_amount = Float()
    maximum_discount_amount = Float()
    is_user_specific = Boolean(default=False)
    user_id = Identifier()


@commerce.command(part_of="Coupon")
class UpdateCoupon:
    coupon_id = Identifier(required=True)
    codes = List(content_type=String)
    discount_type = String(max_length=20)
    value = Float()
    description = Text()
    expiration_date = DateTime()
    usage_limit = Integer()
    minimum_order_amount = Float()
    maximum_discount_amount = Float()
    is_user_specific = Boolean()
    user_id = Identifier()
    status = String(max_length=20)


@commerce.command(part_of="Coupon")
class ExpireCoupon:
    coupon_id = Identifier(required=True)


_TERMS = (
    "description",
    "expiration_date",
    "usage_limit",
    "minimum_order_amount",
    "maximum_discount_amount",
    "is_user_specific",
    "user_id",
)


@commerce.command_handler(part_of=Coupon)
class ManageCouponsHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = Coupon.create(
            codes=command.codes,
            discount_type=command.discount_type,
            value=command.value,
            **{name: getattr(command, name) for name in _TERMS},
        )
        clash = repo.code_in_use(coupon.codes)
        if clash:
            raise ValidationError({"codes": [f"Coupon code {clash} already exists"]})
        repo.add(coupon)
        return str(coupon.id)

    @handle(UpdateCoupon)
    def update_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = load(Coupon, command.coupon_id, "Coupon")
        if command.codes:
            clash = repo.code_in_use(command.codes, exclude_id=coupon.id)
            if clash:
                raise ValidationError({"codes": [f"Coupon code {clash} already exists"]})

        coupon.update_terms(
            codes=command.codes or None,
            discount_type=command.discount_type,
            value=command.value,
            status=command.status,
            **{name: getattr(command, name) for name in _TERMS},
        )
        repo.add(coupon)
        return str(coupon.id)

    @handle(ExpireCoupon)
    def expire_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = load(Coupon, command.coupon_id, "Coupon")
        coupon.expire()
        repo.add(coupon)
        return str(coupon.id)

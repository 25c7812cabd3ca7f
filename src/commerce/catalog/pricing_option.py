"""PricingOption aggregate — the price and billing terms a plan is sold under.

Carts and orders reference a pricing option by id and copy what they need at
checkout, so later catalog edits never reach an existing order.
"""

from enum import Enum

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.shared.billing import DEFAULT_CURRENCY, BillingFrequency


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PricingModel(Enum):
    ONE_OFF = "one-off"
    SUBSCRIPTION = "subscription"
    USAGE_BASED = "usage-based"


@commerce.aggregate
class PricingOption:
    product_id = Identifier()
    product_name = String(max_length=255)
    plan_id = Identifier()
    plan_name = String(max_length=255)
    plan_downloadable = Boolean(default=False)
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    discount_type = String(choices=DiscountType)
    discount_amount = Float(default=0.0, min_value=0.0)
    pricing_model = String(choices=PricingModel, default=PricingModel.ONE_OFF.value)
    billing_frequency = String(choices=BillingFrequency)
    billing_interval = Integer(default=1, min_value=1)
    billing_cycle = String(max_length=50, default="UntilCanceled")
    currency = String(max_length=3, default=DEFAULT_CURRENCY)

    @property
    def is_subscription(self) -> bool:
        return self.pricing_model == PricingModel.SUBSCRIPTION.value

    def unit_price(self) -> float:
        """Price of one unit after the option's own discount."""
        discount = self.discount_amount or 0.0
        if not discount:
            return self.price
        if self.discount_type == DiscountType.PERCENTAGE.value:
            return self.price - self.price * discount / 100
        if self.discount_type == DiscountType.FIXED.value:
            return max(self.price - discount, 0.0)
        return self.price

    def unit_discount(self) -> float:
        return self.price - self.unit_price()


@commerce.command(part_of="PricingOption")
class RegisterPricingOption:
    product_id = Identifier()
    product_name = String(max_length=255)
    plan_id = Identifier()
    plan_name = String(max_length=255)
    plan_downloadable = Boolean(default=False)
    name = String(required=True, max_length=255)
    price = Float(required=True, min_value=0.0)
    discount_type = String(max_length=20)
    discount_amount = Float(default=0.0)
    pricing_model = String(max_length=20, default=PricingModel.ONE_OFF.value)
    billing_frequency = String(max_length=10)
    billing_interval = Integer(default=1)
    billing_cycle = String(max_length=50, default="UntilCanceled")


@commerce.command_handler(part_of=PricingOption)
class PricingOptionHandler:
    @handle(RegisterPricingOption)
    def register(self, command):
        if command.pricing_model == PricingModel.SUBSCRIPTION.value and not command.billing_frequency:
            raise ValidationError({"billing_frequency": ["Subscription pricing requires a billing frequency"]})

        option = PricingOption(
            product_id=command.product_id,
            product_name=command.product_name,
            plan_id=command.plan_id,
            plan_name=command.plan_name,
            plan_downloadable=command.plan_downloadable,
            name=command.name,
            price=command.price,
            discount_type=command.discount_type,
            discount_amount=command.discount_amount or 0.0,
            pricing_model=command.pricing_model,
            billing_frequency=command.billing_frequency,
            billing_interval=command.billing_interval or 1,
            billing_cycle=command.billing_cycle,
        )
        current_domain.repository_for(PricingOption).add(option)
        return str(option.id)

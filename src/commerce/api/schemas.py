"""Pydantic request schemas for the commerce API.

External contracts only. Every route answers with the result envelope
``{"success": ..., "data": ..., "message": ...}``.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
class RegisterPricingOptionRequest(BaseModel):
    product_id: str | None = None
    product_name: str | None = None
    plan_id: str | None = None
    plan_name: str | None = None
    plan_downloadable: bool = False
    name: str
    price: float = Field(ge=0)
    discount_type: str | None = None  # fixed, percentage
    discount_amount: float = 0.0
    pricing_model: str = "one-off"  # one-off, subscription, usage-based
    billing_frequency: str | None = None  # day, week, month, year
    billing_interval: int = Field(default=1, ge=1)
    billing_cycle: str = "UntilCanceled"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_name": "Design Toolkit",
                    "plan_name": "Pro",
                    "plan_downloadable": True,
                    "name": "Pro Monthly",
                    "price": 30.0,
                    "pricing_model": "subscription",
                    "billing_frequency": "month",
                    "billing_interval": 1,
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    pricing_option_id: str
    quantity: int = Field(default=1, ge=1)
    notes: str | None = None


class UpdateQuantityRequest(BaseModel):
    quantity: int  # zero or less removes the line


class TipRequest(BaseModel):
    amount: float = Field(ge=0)
    tip_type: str = "fixed"  # fixed, percentage


class DiscountRequest(BaseModel):
    amount: float = Field(ge=0)


class ApplyCouponRequest(BaseModel):
    code: str
    cart_id: str | None = None


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------
class CouponTerms(BaseModel):
    description: str | None = None
    expiration_date: datetime | None = None
    usage_limit: int | None = Field(default=None, ge=1)
    minimum_order_amount: float | None = Field(default=None, ge=0)
    maximum_discount_amount: float | None = Field(default=None, ge=0)
    is_user_specific: bool | None = None
    user_id: str | None = None


class CreateCouponRequest(CouponTerms):
    codes: list[str] = Field(min_length=1)
    discount_type: str  # fixed, percentage
    value: float

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "codes": ["WELCOME10"],
                    "discount_type": "percentage",
                    "value": 10,
                    "usage_limit": 100,
                    "maximum_discount_amount": 25,
                }
            ]
        }
    }


class UpdateCouponRequest(CouponTerms):
    codes: list[str] | None = None
    discount_type: str | None = None
    value: float | None = None
    status: str | None = None  # Active, Inactive, Expired


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PaymentMetaSchema(BaseModel):
    gateway: str  # stripe, paypal
    payment_data: dict[str, Any] = Field(default_factory=dict)
    customer_email: str | None = None


class CheckoutRequest(BaseModel):
    user_id: str
    cart_id: str
    billing_address: dict[str, Any] | None = None
    payment_meta: PaymentMetaSchema | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "user-001",
                    "cart_id": "cart-001",
                    "billing_address": {"firstName": "Ada", "email": "ada@example.com"},
                    "payment_meta": {
                        "gateway": "stripe",
                        "payment_data": {"paymentIntentId": "pi_123", "amount": 3000, "status": "succeeded"},
                        "customer_email": "ada@example.com",
                    },
                }
            ]
        }
    }


class ChangeOrderStatusRequest(BaseModel):
    status: str  # Pending, Processing, Completed, Canceled, Failed, Refunded
    reason: str | None = None
    changed_by: str | None = None


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class RegisterPaymentRequest(BaseModel):
    order_id: str
    gateway: str = "stripe"
    payment_data: dict[str, Any]
    user_id: str | None = None


class RefundRequest(BaseModel):
    amount: float = Field(gt=0)
    reason: str | None = None
    partial: bool = False


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------
class SubscriptionActionRequest(BaseModel):
    actor: str | None = None
    reason: str | None = None
    is_admin: bool = False


class AutoRenewalRequest(BaseModel):
    auto_renew: bool


class ChangePlanRequest(BaseModel):
    new_pricing_id: str
    changed_by: str | None = None
    reason: str | None = None
    notes: str | None = None


class ChangeFrequencyRequest(BaseModel):
    frequency: str  # day, week, month, year
    interval: int | None = Field(default=None, ge=1)
    changed_by: str | None = None
    reason: str | None = None


class RenewSubscriptionRequest(BaseModel):
    process_payment: bool = True
    renewed_by: str | None = None
    reason: str | None = None
    gateway: str = "stripe"
    payment_method_id: str | None = None


class ProcessRenewalRequest(BaseModel):
    gateway: str = "stripe"
    payment_data: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Renewal orders
# ---------------------------------------------------------------------------
class RenewalStatusRequest(BaseModel):
    status: str  # Pending, Completed, Failed
    failure_reason: str | None = None
    notes: str | None = None

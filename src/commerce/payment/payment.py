"""OrderPayment aggregate (CQRS): a gateway payment recorded against an order.

A payment belongs either to an order or to a renewal order. Gateway payloads
are normalized before they reach the aggregate, so every field here uses the
internal vocabulary regardless of which gateway took the money.

Status:  Pending | Completed | Failed | Refunded | Partially_Refunded
Refunds: appended as entities; refunded_amount never exceeds amount.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, String, Text

from commerce.domain import commerce
from commerce.payment.events import PaymentRecorded, PaymentRefunded
from commerce.payment.normalizers import Gateway, PaymentStatus
from commerce.shared.billing import DEFAULT_CURRENCY, money

REFUND_PROCESSOR = "admin_panel"


@commerce.entity(part_of="OrderPayment")
class Refund:
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    reason = Text()
    status = String(max_length=30, default=PaymentStatus.PENDING.value)
    gateway_refund_id = String(max_length=255)
    failure_reason = String(max_length=500)
    processed_by = String(max_length=50, default=REFUND_PROCESSOR)
    gateway_response = Text()
    refunded_at = DateTime(required=True)


@commerce.aggregate
class OrderPayment:
    order_id = Identifier()
    renewal_order_id = Identifier()
    user_id = Identifier()
    gateway = String(required=True, choices=Gateway)
    payment_method = String(max_length=20)
    amount = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    transaction_id = String(max_length=255)
    customer_email = String(max_length=255)

    stripe_payment_intent_id = String(max_length=255)
    stripe_payment_method_id = String(max_length=255)
    stripe_customer_id = String(max_length=255)
    payment_method_details = String(max_length=255)
    receipt_url = String(max_length=1000)
    paypal_transaction_id = String(max_length=255)
    paypal_payer_id = String(max_length=255)
    braintree_transaction_id = String(max_length=255)
    payment_method_token = String(max_length=255)
    reference_number = String(max_length=255)
    bank_name = String(max_length=255)

    is_refunded = Boolean(default=False)
    refunded_amount = Float(default=0.0)
    refunded_at = DateTime()
    refunds = HasMany(Refund)

    paid_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def record(cls, fields: dict, user_id=None, order_id=None, renewal_order_id=None):
        """Create a payment from normalized gateway fields."""
        if not order_id and not renewal_order_id:
            raise ValidationError({"order_id": ["Order ID is required"]})

        now = datetime.now(UTC)
        payment = cls(
            order_id=order_id,
            renewal_order_id=renewal_order_id,
            user_id=user_id,
            paid_at=now if fields.get("status") == PaymentStatus.COMPLETED.value else None,
            created_at=now,
            updated_at=now,
            **fields,
        )
        payment.raise_(
            PaymentRecorded(
                payment_id=str(payment.id),
                order_id=order_id,
                renewal_order_id=renewal_order_id,
                gateway=payment.gateway,
                amount=payment.amount,
                currency=payment.currency,
                status=payment.status,
                recorded_at=now,
            )
        )
        return payment

    @property
    def available_balance(self) -> float:
        return money((self.amount or 0.0) - (self.refunded_amount or 0.0))

    def refund_reference(self) -> str:
        """The gateway reference a refund must be issued against."""
        if self.gateway == Gateway.STRIPE.value:
            if not self.stripe_payment_intent_id:
                raise ValidationError({"payment": ["No Stripe payment intent ID found for this payment"]})
            return self.stripe_payment_intent_id
        if self.gateway == Gateway.PAYPAL.value:
            if not self.paypal_transaction_id:
                raise ValidationError({"payment": ["No PayPal transaction ID found for this payment"]})
            return self.paypal_transaction_id
        if self.gateway == Gateway.BRAINTREE.value:
            raise ValidationError({"gateway": ["Braintree refunds are not yet implemented"]})
        raise ValidationError({"gateway": [f"Refunds for {self.gateway} are not supported"]})

    def check_refund_amount(self, amount) -> None:
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Refund amount must be greater than 0"]})
        if money(amount) > self.available_balance:
            raise ValidationError(
                {"amount": [f"Refund amount cannot exceed available balance of ${self.available_balance:.2f}"]}
            )

    def add_refund(self, amount, reason, status, gateway_refund_id=None, failure_reason=None, gateway_response=None):
        """Record a gateway-confirmed refund and roll the payment status forward."""
        self.check_refund_amount(amount)

        now = datetime.now(UTC)
        refund = Refund(
            amount=money(amount),
            currency=self.currency,
            reason=reason,
            status=status,
            gateway_refund_id=gateway_refund_id,
            failure_reason=failure_reason,
            gateway_response=gateway_response,
            refunded_at=now,
        )
        self.add_refunds(refund)

        self.refunded_amount = money((self.refunded_amount or 0.0) + amount)
        self.is_refunded = True
        self.refunded_at = now
        self.status = (
            PaymentStatus.REFUNDED.value
            if self.refunded_amount >= (self.amount or 0.0)
            else PaymentStatus.PARTIALLY_REFUNDED.value
        )
        self.updated_at = now

        self.raise_(
            PaymentRefunded(
                payment_id=str(self.id),
                refund_id=str(refund.id),
                amount=refund.amount,
                refunded_amount=self.refunded_amount,
                payment_status=self.status,
                refunded_at=now,
            )
        )
        return refund

"""Domain events for the OrderPayment aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from commerce.domain import commerce


@commerce.event(part_of="OrderPayment")
class PaymentRecorded:
    """A gateway payment was normalized and stored against an order."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier()
    renewal_order_id = Identifier()
    gateway = String(required=True, max_length=20)
    amount = Float(required=True)
    currency = String(max_length=3, default="USD")
    status = String(required=True, max_length=30)
    recorded_at = DateTime(required=True)


@commerce.event(part_of="OrderPayment")
class PaymentRefunded:
    __version__ = 1

    payment_id = Identifier(required=True)
    refund_id = Identifier(required=True)
    amount = Float(required=True)
    refunded_amount = Float(required=True)
    payment_status = String(required=True, max_length=30)
    refunded_at = DateTime(required=True)

"""Stripe payment gateway adapter (production stub).

Placeholder for the stripe-python integration: PaymentIntents for renewal
charges and the Refunds API for full and partial refunds.
"""

from commerce.gateway.port import ChargeResult, PaymentGateway, RefundResult


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter. Not yet implemented."""

    family = "stripe"

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key

    def create_charge(self, amount_minor_units, currency, customer_reference, idempotency_key, metadata=None) -> ChargeResult:
        raise NotImplementedError("StripeGateway.create_charge() is not yet implemented. Integrate stripe-python SDK here.")

    def create_refund(self, transaction_ref, amount_minor_units, reason_code, metadata=None) -> RefundResult:
        raise NotImplementedError("StripeGateway.create_refund() is not yet implemented. Integrate stripe-python SDK here.")

    def create_partial_refund(self, transaction_ref, amount_minor_units, reason_code, metadata=None) -> RefundResult:
        raise NotImplementedError(
            "StripeGateway.create_partial_refund() is not yet implemented. Integrate stripe-python SDK here."
        )

"""Configurable fake payment gateway for development and testing.

Simulates a gateway family without any external calls. Payloads mimic the
shape and vocabulary of the family named at construction, so normalization
code sees what it would see in production.
"""

from uuid import uuid4

from commerce.gateway.port import ChargeResult, PaymentGateway, RefundResult

_SUCCESS_STATUS = {"stripe": "succeeded", "paypal": "COMPLETED", "braintree": "settled"}
_FAILURE_STATUS = {"stripe": "failed", "paypal": "FAILED", "braintree": "failed"}


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, family: str = "stripe") -> None:
        self.family = family
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def _charge_payload(self, transaction_id, amount_minor_units, currency, customer_reference, status):
        if self.family == "stripe":
            return {
                "id": transaction_id,
                "amount": amount_minor_units,
                "currency": currency.lower(),
                "status": status,
                "customer": customer_reference,
                "payment_method": f"pm_{uuid4().hex[:12]}",
                "payment_method_types": ["card"],
                "latest_charge": {"id": f"ch_{uuid4().hex[:12]}"},
            }
        return {
            "transactionId": transaction_id,
            "amount": amount_minor_units / 100,
            "currency": currency,
            "status": status,
            "payerId": customer_reference,
        }

    def create_charge(
        self,
        amount_minor_units: int,
        currency: str,
        customer_reference: str | None,
        idempotency_key: str,
        metadata: dict | None = None,
    ) -> ChargeResult:
        self.calls.append(
            {
                "method": "create_charge",
                "amount_minor_units": amount_minor_units,
                "currency": currency,
                "customer_reference": customer_reference,
                "idempotency_key": idempotency_key,
                "metadata": metadata or {},
            }
        )

        transaction_id = f"fake_txn_{uuid4().hex[:12]}"
        if self.should_succeed:
            status = _SUCCESS_STATUS.get(self.family, "succeeded")
            return ChargeResult(
                success=True,
                gateway_transaction_id=transaction_id,
                gateway_status=status,
                payload=self._charge_payload(transaction_id, amount_minor_units, currency, customer_reference, status),
            )

        status = _FAILURE_STATUS.get(self.family, "failed")
        return ChargeResult(
            success=False,
            gateway_transaction_id=transaction_id,
            gateway_status=status,
            failure_reason=self.failure_reason,
            payload=self._charge_payload(transaction_id, amount_minor_units, currency, customer_reference, status),
        )

    def _refund(self, method, transaction_ref, amount_minor_units, reason_code, metadata) -> RefundResult:
        self.calls.append(
            {
                "method": method,
                "transaction_ref": transaction_ref,
                "amount_minor_units": amount_minor_units,
                "reason_code": reason_code,
                "metadata": metadata or {},
            }
        )
        if not self.should_succeed:
            return RefundResult(success=False, failure_reason=self.failure_reason)

        refund_id = f"fake_ref_{uuid4().hex[:12]}"
        status = _SUCCESS_STATUS.get(self.family, "succeeded")
        return RefundResult(
            success=True,
            gateway_refund_id=refund_id,
            gateway_status=status,
            payload={"id": refund_id, "status": status, "amount": amount_minor_units},
        )

    def create_refund(self, transaction_ref, amount_minor_units, reason_code, metadata=None) -> RefundResult:
        return self._refund("create_refund", transaction_ref, amount_minor_units, reason_code, metadata)

    def create_partial_refund(self, transaction_ref, amount_minor_units, reason_code, metadata=None) -> RefundResult:
        return self._refund("create_partial_refund", transaction_ref, amount_minor_units, reason_code, metadata)

"""Domain tests for gateway payload normalization and the OrderPayment aggregate."""

import pytest
from protean.exceptions import ValidationError

from commerce.payment.events import PaymentRecorded, PaymentRefunded
from commerce.payment.normalizers import PaymentStatus, normalize_payment, refund_status
from commerce.payment.payment import OrderPayment

STRIPE_INTENT = {
    "id": "pi_123",
    "amount": 4999,
    "currency": "usd",
    "status": "succeeded",
    "customer": "cus_1",
    "payment_method": "pm_1",
    "payment_method_types": ["card"],
    "latest_charge": {
        "id": "ch_1",
        "receipt_url": "https://pay.example.com/receipts/ch_1",
        "payment_method_details": {"card": {"brand": "visa", "last4": "4242"}},
    },
}


class TestNormalization:
    def test_stripe_amount_is_in_minor_units(self):
        fields = normalize_payment("stripe", STRIPE_INTENT)
        assert fields["amount"] == 49.99
        assert fields["currency"] == "USD"
        assert fields["status"] == PaymentStatus.COMPLETED.value
        assert fields["transaction_id"] == "ch_1"
        assert fields["stripe_payment_intent_id"] == "pi_123"
        assert fields["payment_method"] == "creditCard"
        assert fields["payment_method_details"] == "visa ending in 4242"

    def test_stripe_without_charge_uses_intent_id(self):
        fields = normalize_payment("stripe", {"id": "pi_9", "amount": 100, "status": "processing"})
        assert fields["transaction_id"] == "pi_9"
        assert fields["status"] == PaymentStatus.PENDING.value
        assert fields["payment_method"] == "other"

    def test_paypal(self):
        fields = normalize_payment(
            "paypal", {"transactionId": "PP-1", "amount": "12.50", "status": "COMPLETED", "payerId": "P1"}
        )
        assert fields["amount"] == 12.50
        assert fields["status"] == PaymentStatus.COMPLETED.value
        assert fields["paypal_transaction_id"] == "PP-1"
        assert fields["payment_method"] == "digitalWallet"

    def test_braintree_settled(self):
        fields = normalize_payment("braintree", {"transactionId": "bt-1", "amount": 5, "status": "settled"})
        assert fields["status"] == PaymentStatus.COMPLETED.value

    def test_bank_transfer_is_pending_with_generated_reference(self):
        fields = normalize_payment("bankTransfer", {"amount": 80})
        assert fields["status"] == PaymentStatus.PENDING.value
        assert fields["transaction_id"].startswith("BT-")

    def test_missing_payload(self):
        with pytest.raises(ValidationError) as exc:
            normalize_payment("stripe", {})
        assert exc.value.messages["payment_data"] == ["Payment data is required"]

    def test_unsupported_gateway(self):
        with pytest.raises(ValidationError) as exc:
            normalize_payment("bitcoin", {"amount": 1})
        assert exc.value.messages["gateway"] == ["Unsupported payment gateway: bitcoin"]

    @pytest.mark.parametrize(
        "gateway, status, expected",
        [
            ("stripe", "succeeded", "Completed"),
            ("stripe", "failed", "Failed"),
            ("stripe", "pending", "Pending"),
            ("paypal", "COMPLETED", "Completed"),
            ("paypal", "UNKNOWN", "Pending"),
        ],
    )
    def test_refund_status(self, gateway, status, expected):
        assert refund_status(gateway, status) == expected


@pytest.fixture()
def payment():
    return OrderPayment.record(normalize_payment("stripe", STRIPE_INTENT), user_id="user-001", order_id="ord-001")


class TestOrderPayment:
    def test_record_requires_an_order(self):
        with pytest.raises(ValidationError):
            OrderPayment.record(normalize_payment("stripe", STRIPE_INTENT))

    def test_record_raises_event(self, payment):
        event = next(e for e in payment._events if isinstance(e, PaymentRecorded))
        assert event.amount == 49.99
        assert payment.paid_at is not None

    def test_partial_then_full_refund(self, payment):
        payment.add_refund(20.0, "Damaged", PaymentStatus.COMPLETED.value)
        assert payment.status == PaymentStatus.PARTIALLY_REFUNDED.value
        assert payment.available_balance == 29.99

        payment.add_refund(29.99, "Rest", PaymentStatus.COMPLETED.value)
        assert payment.status == PaymentStatus.REFUNDED.value
        assert payment.is_refunded
        assert len(payment.refunds) == 2
        assert any(isinstance(e, PaymentRefunded) for e in payment._events)

    def test_refund_cannot_exceed_balance(self, payment):
        with pytest.raises(ValidationError) as exc:
            payment.check_refund_amount(50.0)
        assert exc.value.messages["amount"] == ["Refund amount cannot exceed available balance of $49.99"]

    def test_refund_reference_per_gateway(self, payment):
        assert payment.refund_reference() == "pi_123"

        braintree = OrderPayment.record(
            normalize_payment("braintree", {"transactionId": "bt-1", "amount": 5}), order_id="ord-001"
        )
        with pytest.raises(ValidationError) as exc:
            braintree.refund_reference()
        assert exc.value.messages["gateway"] == ["Braintree refunds are not yet implemented"]

        transfer = OrderPayment.record(normalize_payment("bankTransfer", {"amount": 5}), order_id="ord-001")
        with pytest.raises(ValidationError) as exc:
            transfer.refund_reference()
        assert exc.value.messages["gateway"] == ["Refunds for bankTransfer are not supported"]

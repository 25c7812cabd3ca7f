"""Gateway payload normalization.

Each gateway family reports amounts, statuses and identifiers differently;
``normalize_payment`` maps a raw payload onto the uniform payment fields.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError

from commerce.shared.billing import DEFAULT_CURRENCY, money


class Gateway(Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    BRAINTREE = "braintree"
    BANK_TRANSFER = "bankTransfer"


class PaymentMethodKind(Enum):
    CREDIT_CARD = "creditCard"
    DIGITAL_WALLET = "digitalWallet"
    BANK_TRANSFER = "bankTransfer"
    OTHER = "other"


class PaymentStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    REFUNDED = "Refunded"
    PARTIALLY_REFUNDED = "Partially_Refunded"


_BRAINTREE_SETTLED = {"succeeded", "settled", "submitted_for_settlement"}


def _amount(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _stripe(payload: dict) -> dict:
    latest_charge = payload.get("latest_charge") or {}
    if not isinstance(latest_charge, dict):
        latest_charge = {"id": latest_charge}
    card = ((latest_charge.get("payment_method_details") or {}).get("card")) or {}
    method_types = payload.get("payment_method_types") or []

    return {
        "payment_method": (
            PaymentMethodKind.CREDIT_CARD.value
            if method_types and method_types[0] == "card"
            else PaymentMethodKind.OTHER.value
        ),
        "amount": money(_amount(payload.get("amount")) / 100),
        "status": PaymentStatus.COMPLETED.value if payload.get("status") == "succeeded" else PaymentStatus.PENDING.value,
        "transaction_id": latest_charge.get("id") or payload.get("id"),
        "stripe_payment_intent_id": payload.get("id"),
        "stripe_payment_method_id": payload.get("payment_method"),
        "stripe_customer_id": payload.get("customer"),
        "payment_method_details": f"{card['brand']} ending in {card.get('last4', '')}" if card.get("brand") else None,
        "receipt_url": latest_charge.get("receipt_url"),
        "customer_email": payload.get("receipt_email") or payload.get("email"),
    }


def _paypal(payload: dict) -> dict:
    return {
        "payment_method": PaymentMethodKind.DIGITAL_WALLET.value,
        "amount": money(_amount(payload.get("amount"))),
        "status": PaymentStatus.COMPLETED.value if payload.get("status") == "COMPLETED" else PaymentStatus.PENDING.value,
        "transaction_id": payload.get("transactionId"),
        "paypal_transaction_id": payload.get("transactionId"),
        "paypal_payer_id": payload.get("payerId"),
        "customer_email": payload.get("email"),
    }


def _braintree(payload: dict) -> dict:
    return {
        "payment_method": PaymentMethodKind.OTHER.value,
        "amount": money(_amount(payload.get("amount"))),
        "status": (
            PaymentStatus.COMPLETED.value if payload.get("status") in _BRAINTREE_SETTLED else PaymentStatus.PENDING.value
        ),
        "transaction_id": payload.get("transactionId") or payload.get("id"),
        "braintree_transaction_id": payload.get("transactionId"),
        "payment_method_token": payload.get("paymentMethodToken"),
        "customer_email": payload.get("email"),
    }


def _bank_transfer(payload: dict) -> dict:
    reference = payload.get("referenceNumber")
    return {
        "payment_method": PaymentMethodKind.BANK_TRANSFER.value,
        "amount": money(_amount(payload.get("amount"))),
        # Transfers settle out of band
        "status": PaymentStatus.PENDING.value,
        "transaction_id": reference or f"BT-{int(datetime.now(UTC).timestamp() * 1000)}",
        "reference_number": reference,
        "bank_name": payload.get("bankName"),
        "customer_email": payload.get("email"),
    }


_NORMALIZERS = {
    Gateway.STRIPE.value: _stripe,
    Gateway.PAYPAL.value: _paypal,
    Gateway.BRAINTREE.value: _braintree,
    Gateway.BANK_TRANSFER.value: _bank_transfer,
}


def is_supported(gateway) -> bool:
    return gateway in _NORMALIZERS


def normalize_payment(gateway, payload) -> dict:
    """Map a raw gateway payload onto uniform payment fields.

    Raises:
        ValidationError: for a missing payload or an unsupported gateway.
    """
    if not payload:
        raise ValidationError({"payment_data": ["Payment data is required"]})
    normalizer = _NORMALIZERS.get(gateway)
    if normalizer is None:
        raise ValidationError({"gateway": [f"Unsupported payment gateway: {gateway}"]})

    fields = normalizer(payload)
    fields["gateway"] = gateway
    fields["currency"] = (payload.get("currency") or DEFAULT_CURRENCY).upper()
    return fields


def refund_status(gateway, gateway_status) -> str:
    """Map a gateway's refund status onto the internal vocabulary."""
    if gateway == Gateway.PAYPAL.value:
        return {
            "COMPLETED": PaymentStatus.COMPLETED.value,
            "PENDING": PaymentStatus.PENDING.value,
            "FAILED": PaymentStatus.FAILED.value,
        }.get(gateway_status, PaymentStatus.PENDING.value)
    if gateway_status in ("succeeded", "settled"):
        return PaymentStatus.COMPLETED.value
    if gateway_status == "failed":
        return PaymentStatus.FAILED.value
    return PaymentStatus.PENDING.value

"""Payment gateway port (abstract interface).

One adapter per gateway family (stripe, paypal, ...). Adapters return the
gateway's raw payload alongside a summary so the payment registrar can
normalize each family's units and status vocabulary itself.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ChargeResult:
    """Result of a payment charge attempt."""

    success: bool
    gateway_transaction_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None
    payload: dict = field(default_factory=dict)


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt."""

    success: bool
    gateway_refund_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None
    payload: dict = field(default_factory=dict)


class PaymentGateway(ABC):
    """Abstract payment gateway interface. Amounts are integers in minor units (cents)."""

    family: str = ""

    @abstractmethod
    def create_charge(
        self,
        amount_minor_units: int,
        currency: str,
        customer_reference: str | None,
        idempotency_key: str,
        metadata: dict | None = None,
    ) -> ChargeResult:
        """Charge the customer's stored payment method."""
        ...

    @abstractmethod
    def create_refund(
        self,
        transaction_ref: str,
        amount_minor_units: int,
        reason_code: str,
        metadata: dict | None = None,
    ) -> RefundResult:
        """Refund a previous charge in full."""
        ...

    @abstractmethod
    def create_partial_refund(
        self,
        transaction_ref: str,
        amount_minor_units: int,
        reason_code: str,
        metadata: dict | None = None,
    ) -> RefundResult:
        """Refund part of a previous charge."""
        ...

"""RenewalOrder aggregate (CQRS): one billing cycle of a subscription.

Renewal orders hang off the order that started the subscription. Their
numbers extend the parent's: ``ORD001001-R01``, ``ORD001001-R02``, ... with a
sequence that only grows per parent.

Status:  Pending → Completed | Failed
"""

from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from commerce.domain import commerce
from commerce.shared.billing import DEFAULT_CURRENCY, money

MINIMUM_RENEWAL_PRICE = 0.50
RETRY_DELAY = timedelta(hours=24)


class RenewalStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"


def format_renewal_number(parent_order_number: str, sequence: int) -> str:
    return f"{parent_order_number}-R{sequence:02d}"


@dataclass(frozen=True)
class RenewalPricing:
    base_price: float
    discount_amount: float
    discount_percentage: float
    final_price: float
    currency: str = DEFAULT_CURRENCY

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_renewal_pricing(price, discount=0.0) -> RenewalPricing:
    """Price one renewal: the subscription discount applies, but never below the minimum charge."""
    base = price or 0.0
    discount = discount or 0.0
    final = base - discount
    if final < MINIMUM_RENEWAL_PRICE:
        final = MINIMUM_RENEWAL_PRICE
        discount = base - MINIMUM_RENEWAL_PRICE

    final = max(final, 0.0)
    discount = max(discount, 0.0)
    percentage = discount / base * 100 if base > 0 else 0.0
    return RenewalPricing(
        base_price=money(base),
        discount_amount=money(discount),
        discount_percentage=money(percentage),
        final_price=money(final),
    )


@commerce.aggregate
class RenewalOrder:
    parent_order_id = Identifier(required=True)
    parent_order_number = String(max_length=20)
    renewal_order_number = String(required=True, unique=True, max_length=30)
    renewal_sequence = Integer(required=True, min_value=1)
    subscription_id = Identifier(required=True)
    user_id = Identifier()
    status = String(choices=RenewalStatus, default=RenewalStatus.PENDING.value)

    renewal_amount = Float(default=0.0)
    original_amount = Float(default=0.0)
    discount_amount = Float(default=0.0)
    discount_percentage = Float(default=0.0)
    tax_amount = Float(default=0.0)
    total_amount = Float(default=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)

    renewal_date = DateTime()
    next_renewal_date = DateTime()
    attempt_count = Integer(default=0)
    last_attempt_at = DateTime()
    next_attempt_at = DateTime()
    completed_at = DateTime()
    failed_at = DateTime()
    failure_reason = Text()
    payment_gateway = String(max_length=20)
    payment_method_id = String(max_length=255)
    notes = Text()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, subscription, parent_order, sequence, pricing, next_renewal_date, gateway=None, notes=None):
        """A Pending renewal for the next billing cycle of ``subscription``."""
        now = datetime.now(UTC)
        return cls(
            parent_order_id=str(parent_order.id),
            parent_order_number=parent_order.order_number,
            renewal_order_number=format_renewal_number(parent_order.order_number, sequence),
            renewal_sequence=sequence,
            subscription_id=str(subscription.id),
            user_id=subscription.user_id,
            status=RenewalStatus.PENDING.value,
            renewal_amount=pricing.final_price,
            original_amount=pricing.base_price,
            discount_amount=pricing.discount_amount,
            discount_percentage=pricing.discount_percentage,
            tax_amount=0.0,
            total_amount=pricing.final_price,
            currency=DEFAULT_CURRENCY,
            renewal_date=now,
            next_renewal_date=next_renewal_date,
            attempt_count=1,
            last_attempt_at=now,
            payment_gateway=gateway or "stripe",
            notes=notes or f"Automatic renewal for subscription {subscription.pricing_name}",
            created_at=now,
            updated_at=now,
        )

    def set_status(self, status, failure_reason=None, notes=None):
        if status not in {s.value for s in RenewalStatus}:
            raise ValidationError({"status": [f"Invalid status: {status}"]})

        now = datetime.now(UTC)
        self.status = status
        if status == RenewalStatus.COMPLETED.value:
            self.completed_at = now
        elif status == RenewalStatus.FAILED.value:
            self.failed_at = now
            self.failure_reason = failure_reason or self.failure_reason
        if notes:
            self.notes = notes
        self.updated_at = now

    def record_attempt(self):
        now = datetime.now(UTC)
        self.attempt_count = (self.attempt_count or 0) + 1
        self.last_attempt_at = now
        self.next_attempt_at = now + RETRY_DELAY
        self.updated_at = now

    def summary(self) -> dict:
        return {
            "renewal_order_id": str(self.id),
            "renewal_order_number": self.renewal_order_number,
            "renewal_sequence": self.renewal_sequence,
            "subscription_id": self.subscription_id,
            "status": self.status,
            "total_amount": self.total_amount,
            "next_renewal_date": self.next_renewal_date,
        }

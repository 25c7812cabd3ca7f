"""Order aggregate (CQRS) — the priced snapshot of a checked-out cart.

Monetary fields are copied from the cart when the order is created and never
recomputed. Status changes are administrative: any valid status may follow
any other, and every change is appended to an ordered status log.

Status:  Pending | Processing | Completed | Canceled | Failed
Type:    Order | Subscription (once a recurring item has been materialized)
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from commerce.domain import commerce
from commerce.order.events import OrderPlaced, OrderStatusChanged
from commerce.shared.billing import DEFAULT_CURRENCY, money

ORDER_NUMBER_PREFIX = "ORD"
ORDER_NUMBER_SEED = 1000  # first order is ORD001001
SYSTEM_ACTOR = "system"
LEGACY_NOTE_STATUS = "Unknown"


class OrderStatus(Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    CANCELED = "Canceled"
    FAILED = "Failed"


class OrderType(Enum):
    ORDER = "Order"
    SUBSCRIPTION = "Subscription"


def format_order_number(value: int) -> str:
    return f"{ORDER_NUMBER_PREFIX}{value:06d}"


@commerce.value_object(part_of="Order")
class BillingAddress:
    name = String(max_length=255)
    line1 = String(max_length=255)
    line2 = String(max_length=255)
    city = String(max_length=100)
    state = String(max_length=100)
    postal_code = String(max_length=20)
    country = String(max_length=100)
    email = String(max_length=255)


@commerce.entity(part_of="Order")
class OrderItem:
    """Snapshot of one cart line at checkout."""

    pricing_option_id = Identifier(required=True)
    product_id = Identifier()
    product_name = String(max_length=255)
    plan_id = Identifier()
    plan_name = String(max_length=255)
    plan_downloadable = Boolean(default=False)
    pricing_name = String(max_length=255)
    pricing_model = String(max_length=20, default="one-off")
    price = Float(required=True)
    discount_amount = Float(default=0.0)  # per unit
    quantity = Integer(required=True, min_value=1)
    subtotal = Float(required=True)
    billing_frequency = String(max_length=10, default="one-off")
    billing_interval = Integer(default=1)
    billing_cycle = String(max_length=50, default="UntilCanceled")
    notes = Text()
    download_reference = String(max_length=100)

    @property
    def is_subscription(self) -> bool:
        return self.pricing_model == "subscription"


@commerce.entity(part_of="Order")
class StatusNote:
    """One entry of the order's status log."""

    position = Integer(required=True)
    user = String(max_length=255, default=SYSTEM_ACTOR)
    time = DateTime(required=True)
    note = Text()
    status = String(max_length=20, required=True)


@commerce.aggregate
class Order:
    order_number = String(required=True, unique=True, max_length=20)
    user_id = Identifier(required=True)
    cart_id = Identifier()
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    order_type = String(choices=OrderType, default=OrderType.ORDER.value)
    items = HasMany(OrderItem)
    status_notes = HasMany(StatusNote)

    subtotal = Float(default=0.0)
    discount_amount = Float(default=0.0)
    tip_percentage = Float(default=0.0)
    tip_amount = Float(default=0.0)
    transaction_fee_percentage = Float(default=0.0)
    transaction_fee_amount = Float(default=0.0)
    tax_percentage = Float(default=0.0)
    tax_amount = Float(default=0.0)
    total_amount = Float(default=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    coupon_code = String(max_length=100)

    billing_address = ValueObject(BillingAddress)
    customer_email = String(max_length=255)
    payment_gateway = String(max_length=20)
    payment_reference = String(max_length=255)
    change_reason = Text()  # free-text reason written by older tooling; folded into status_notes

    paid_at = DateTime()
    completed_at = DateTime()
    canceled_at = DateTime()
    failed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, order_number, user_id, cart, billing_address=None, payment_gateway=None, payment_reference=None):
        """Snapshot a priced cart into a new Pending order."""
        now = datetime.now(UTC)
        address = BillingAddress(**billing_address) if billing_address else None
        order = cls(
            order_number=order_number,
            user_id=user_id,
            cart_id=str(cart.id),
            status=OrderStatus.PENDING.value,
            order_type=OrderType.ORDER.value,
            subtotal=money(cart.subtotal),
            discount_amount=money(cart.discount_amount),
            tip_percentage=cart.tip_percentage or 0.0,
            tip_amount=money(cart.tip_total),
            transaction_fee_percentage=cart.transaction_fee_percentage or 0.0,
            transaction_fee_amount=money(cart.transaction_fee_amount),
            tax_percentage=cart.tax_percentage or 0.0,
            tax_amount=money(cart.tax_amount),
            total_amount=money(cart.grand_total),
            currency=DEFAULT_CURRENCY,
            coupon_code=cart.coupon_code,
            billing_address=address,
            customer_email=address.email if address else None,
            payment_gateway=payment_gateway,
            payment_reference=payment_reference,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                user_id=str(user_id),
                total_amount=order.total_amount,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------
    def add_line(self, option, quantity, notes=None):
        """Append an item snapshot built from a pricing option."""
        discount = money(option.unit_discount())
        item = OrderItem(
            pricing_option_id=str(option.id),
            product_id=option.product_id,
            product_name=option.product_name,
            plan_id=option.plan_id,
            plan_name=option.plan_name,
            plan_downloadable=bool(option.plan_downloadable),
            pricing_name=option.name,
            pricing_model=option.pricing_model or "one-off",
            price=money(option.price),
            discount_amount=discount,
            quantity=quantity,
            subtotal=money((option.price - discount) * quantity),
            billing_frequency=option.billing_frequency or "one-off",
            billing_interval=option.billing_interval or 1,
            billing_cycle=option.billing_cycle or "UntilCanceled",
            notes=notes,
        )
        self.add_items(item)
        self.updated_at = datetime.now(UTC)
        return item

    def clear_lines(self):
        for item in list(self.items):
            self.remove_items(item)

    def find_item(self, item_id):
        return next((item for item in self.items if str(item.id) == str(item_id)), None)

    @property
    def subscription_items(self):
        return [item for item in self.items if item.is_subscription]

    # -------------------------------------------------------------------
    # Payment and type
    # -------------------------------------------------------------------
    def mark_paid(self, paid_at=None):
        self.status = OrderStatus.PROCESSING.value
        self.paid_at = paid_at or datetime.now(UTC)
        self.updated_at = datetime.now(UTC)

    def mark_subscription(self):
        self.order_type = OrderType.SUBSCRIPTION.value
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Status log
    # -------------------------------------------------------------------
    def status_history(self):
        return sorted(self.status_notes, key=lambda note: note.position)

    def _append_note(self, status, note, user, time):
        self.add_status_notes(
            StatusNote(
                position=len(self.status_notes),
                user=user or SYSTEM_ACTOR,
                time=time,
                note=note,
                status=status,
            )
        )

    def change_status(self, new_status, note=None, changed_by=None):
        """Set a new status, stamp its timestamp and log the change.

        Returns:
            The previous status.
        """
        if new_status not in {s.value for s in OrderStatus}:
            raise ValidationError({"status": [f"Invalid status: {new_status}"]})

        now = datetime.now(UTC)
        previous = self.status

        if self.change_reason:
            self._append_note(LEGACY_NOTE_STATUS, self.change_reason, SYSTEM_ACTOR, self.updated_at or now)
            self.change_reason = None

        self.status = new_status
        if new_status == OrderStatus.COMPLETED.value:
            self.completed_at = now
        elif new_status == OrderStatus.CANCELED.value:
            self.canceled_at = now
        elif new_status == OrderStatus.FAILED.value:
            self.failed_at = now

        self._append_note(new_status, note, changed_by, now)
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=new_status,
                changed_by=changed_by or SYSTEM_ACTOR,
                changed_at=now,
            )
        )
        return previous

    def summary(self) -> dict:
        """Plain payload used by emails and API responses."""
        return {
            "order_id": str(self.id),
            "order_number": self.order_number,
            "status": self.status,
            "order_type": self.order_type,
            "total_amount": self.total_amount,
            "currency": self.currency,
            "items": [
                {
                    "item_id": str(item.id),
                    "pricing_name": item.pricing_name,
                    "product_name": item.product_name,
                    "quantity": item.quantity,
                    "subtotal": item.subtotal,
                }
                for item in self.items
            ],
        }

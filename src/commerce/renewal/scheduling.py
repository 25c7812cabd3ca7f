"""Commands that create and settle renewal orders."""

from datetime import UTC, datetime
from functools import partial

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.order.order import Order
from commerce.renewal.renewal_order import RenewalOrder, calculate_renewal_pricing, format_renewal_number
from commerce.sequence.counter import claim_next
from commerce.shared.billing import add_billing_period
from commerce.shared.result import load
from commerce.subscription.subscription import Subscription

logger = structlog.get_logger(__name__)


def renewal_sequence_name(parent_order_id) -> str:
    return f"renewal:{parent_order_id}"


@commerce.command(part_of="RenewalOrder")
class CreateRenewalOrder:
    subscription_id = Identifier(required=True)
    gateway = String(max_length=20, default="stripe")
    payment_method_id = String(max_length=255)
    notes = Text()


@commerce.command(part_of="RenewalOrder")
class UpdateRenewalOrderStatus:
    renewal_order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    failure_reason = Text()
    notes = Text()


@commerce.command(part_of="RenewalOrder")
class IncrementRenewalAttempt:
    renewal_order_id = Identifier(required=True)


@commerce.command(part_of="RenewalOrder")
class DeleteRenewalOrder:
    renewal_order_id = Identifier(required=True)


@commerce.command_handler(part_of=RenewalOrder)
class RenewalOrderHandler:
    @handle(CreateRenewalOrder)
    def create_renewal_order(self, command):
        subscription = load(Subscription, command.subscription_id, "Subscription")
        parent = load(Order, subscription.order_id, "Parent order")
        repo = current_domain.repository_for(RenewalOrder)

        sequence, _ = claim_next(
            renewal_sequence_name(parent.id),
            0,
            partial(format_renewal_number, parent.order_number),
            repo.number_taken,
        )
        pricing = calculate_renewal_pricing(subscription.price, subscription.discount_amount)
        next_renewal_date = add_billing_period(
            datetime.now(UTC), subscription.billing_frequency, subscription.billing_interval
        )

        renewal = RenewalOrder.open(
            subscription,
            parent,
            sequence,
            pricing,
            next_renewal_date,
            gateway=command.gateway,
            notes=command.notes,
        )
        renewal.payment_method_id = command.payment_method_id
        repo.add(renewal)

        logger.info(
            "Renewal order created",
            renewal_order_id=str(renewal.id),
            renewal_order_number=renewal.renewal_order_number,
            subscription_id=command.subscription_id,
            amount=renewal.total_amount,
        )
        return {
            "renewal_order": renewal.summary(),
            "parent_order_id": str(parent.id),
            "parent_order_number": parent.order_number,
            "renewal_sequence": sequence,
            "next_renewal_date": next_renewal_date,
            "pricing": pricing.to_dict(),
        }

    @handle(UpdateRenewalOrderStatus)
    def update_status(self, command):
        renewal = load(RenewalOrder, command.renewal_order_id, "Renewal order")
        renewal.set_status(command.status, failure_reason=command.failure_reason, notes=command.notes)
        current_domain.repository_for(RenewalOrder).add(renewal)
        return renewal.summary()

    @handle(IncrementRenewalAttempt)
    def increment_attempt(self, command):
        renewal = load(RenewalOrder, command.renewal_order_id, "Renewal order")
        renewal.record_attempt()
        current_domain.repository_for(RenewalOrder).add(renewal)
        return {
            "renewal_order_id": str(renewal.id),
            "attempt_count": renewal.attempt_count,
            "next_attempt_at": renewal.next_attempt_at,
        }

    @handle(DeleteRenewalOrder)
    def delete_renewal_order(self, command):
        renewal = load(RenewalOrder, command.renewal_order_id, "Renewal order")
        current_domain.repository_for(RenewalOrder)._dao.delete(renewal)
        logger.info("Renewal order deleted", renewal_order_id=command.renewal_order_id)
        return str(renewal.id)

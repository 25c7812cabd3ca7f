"""Administrative order status changes and their effect on subscriptions.

Canceled or Failed    → the order's subscriptions are deleted
Pending               → the order's subscriptions are paused
Pending → Completed   → the order's subscriptions are resumed
"""

from functools import partial

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.notifications.emails import send_order_status_update_email
from commerce.order.order import SYSTEM_ACTOR, Order, OrderStatus
from commerce.shared.result import Result, dispatch, load
from commerce.subscription.services import delete_subscription, pause_subscription, resume_subscription
from commerce.subscription.subscription import Subscription

logger = structlog.get_logger(__name__)

PAUSE_REASON = "Order status changed to Pending by admin - subscription paused temporarily"
RESUME_REASON = "Order status changed by admin Pending to Completed - subscription activated"


@commerce.command(part_of="Order")
class ChangeOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    reason = Text()
    changed_by = String(max_length=255)


@commerce.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(ChangeOrderStatus)
    def change_status(self, command):
        order = load(Order, command.order_id, "Order")
        previous = order.change_status(command.status, note=command.reason, changed_by=command.changed_by)
        current_domain.repository_for(Order).add(order)
        return {"previous_status": previous, "order": order.summary(), "customer_email": order.customer_email}


def _cascade(order_id, previous_status, new_status, actor) -> list[dict]:
    subscriptions = current_domain.repository_for(Subscription).for_order(order_id)

    if new_status in (OrderStatus.CANCELED.value, OrderStatus.FAILED.value):
        action = delete_subscription
    elif new_status == OrderStatus.PENDING.value:
        action = partial(pause_subscription, paused_by=actor, reason=PAUSE_REASON)
    elif new_status == OrderStatus.COMPLETED.value and previous_status == OrderStatus.PENDING.value:
        action = partial(resume_subscription, resumed_by=actor, reason=RESUME_REASON)
    else:
        return []

    processed = []
    for subscription in subscriptions:
        subscription_id = str(subscription.id)
        result = action(subscription_id)
        if not result.success:
            logger.warning(
                "Subscription not updated after order status change",
                order_id=order_id,
                subscription_id=subscription_id,
                reason=result.message,
            )
        processed.append({"subscription_id": subscription_id, "success": result.success, "message": result.message})
    return processed


def update_order_status(order_id, new_status, reason=None, changed_by=None) -> Result:
    if not order_id:
        return Result.fail("Order ID is required")
    if new_status not in {status.value for status in OrderStatus}:
        return Result.fail(f"Invalid status: {new_status}")

    actor = changed_by or SYSTEM_ACTOR
    result = dispatch(ChangeOrderStatus, order_id=order_id, status=new_status, reason=reason, changed_by=actor)
    if not result.success:
        return result

    changed = result.data
    previous = changed["previous_status"]
    processed = _cascade(order_id, previous, new_status, actor)

    send_order_status_update_email(changed["customer_email"], changed["order"], previous, reason)

    logger.info(
        "Order status updated",
        order_id=order_id,
        previous_status=previous,
        new_status=new_status,
        subscriptions=len(processed),
    )
    return Result.ok(
        {
            "order_id": order_id,
            "previous_status": previous,
            "status": new_status,
            "subscriptions_processed": len(processed),
            "subscription_results": processed,
        }
    )

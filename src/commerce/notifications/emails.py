"""Order and subscription emails.

Delivery is fire-and-forget: every function reports whether the message went
out, and no delivery problem ever reaches the caller.
"""

import structlog

from commerce.notifications import get_mailer
from commerce.notifications.email_port import EmailMessage

logger = structlog.get_logger(__name__)


def _deliver(recipient, subject, body, kind, **context) -> bool:
    if not recipient:
        logger.info("Email skipped, no recipient", kind=kind, **context)
        return False
    try:
        outcome = get_mailer().deliver(EmailMessage(recipient=recipient, subject=subject, body=body, kind=kind))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Email delivery raised", kind=kind, error=str(exc), **context)
        return False

    if not outcome.delivered:
        logger.warning("Email delivery failed", kind=kind, error=outcome.error, **context)
        return False
    logger.info("Email sent", kind=kind, message_id=outcome.message_id, **context)
    return True


def _item_lines(order_summary) -> str:
    return "\n".join(
        f"  - {item.get('pricing_name') or item.get('product_name')} x{item.get('quantity')}: "
        f"${item.get('subtotal', 0.0):.2f}"
        for item in order_summary.get("items", [])
    )


def send_order_confirmation_email(recipient, order_summary) -> bool:
    number = order_summary.get("order_number")
    body = (
        f"Thank you for your order {number}.\n\n"
        f"{_item_lines(order_summary)}\n\n"
        f"Total: ${order_summary.get('total_amount', 0.0):.2f} {order_summary.get('currency', 'USD')}\n"
    )
    return _deliver(recipient, f"Order confirmation {number}", body, "order_confirmation", order_number=number)


def send_order_status_update_email(recipient, order_summary, previous_status, reason=None) -> bool:
    number = order_summary.get("order_number")
    status = order_summary.get("status")
    body = f"Your order {number} changed from {previous_status} to {status}.\n"
    if reason:
        body += f"\nReason: {reason}\n"
    return _deliver(recipient, f"Order {number} is now {status}", body, "order_status_update", order_number=number)


def send_subscription_status_email(recipient, subscription, action_type, reason=None) -> bool:
    name = subscription.pricing_name or subscription.plan_name or "subscription"
    body = f"Your {name} subscription: {action_type}. Current status: {subscription.effective_status}.\n"
    if reason:
        body += f"\nReason: {reason}\n"
    return _deliver(
        recipient,
        f"Subscription update: {action_type}",
        body,
        "subscription_status",
        subscription_id=str(subscription.id),
    )

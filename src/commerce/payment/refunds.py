"""Payment refunds — command and handler.

The refund is issued through the gateway port first; only a confirmed
gateway refund is recorded on the payment.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.gateway import get_gateway
from commerce.payment.normalizers import refund_status
from commerce.payment.payment import REFUND_PROCESSOR, OrderPayment

logger = structlog.get_logger(__name__)

REFUND_REASON_CODE = "requested_by_customer"


@commerce.command(part_of="OrderPayment")
class RefundPayment:
    payment_id = Identifier(required=True)
    amount = Float(required=True)
    reason = Text()
    partial = Boolean(default=False)


@commerce.command_handler(part_of=OrderPayment)
class RefundHandler:
    @handle(RefundPayment)
    def refund_payment(self, command):
        repo = current_domain.repository_for(OrderPayment)
        payment = repo.get(command.payment_id)

        payment.check_refund_amount(command.amount)
        reference = payment.refund_reference()

        gateway = get_gateway(payment.gateway)
        issue = gateway.create_partial_refund if command.partial else gateway.create_refund
        outcome = issue(
            reference,
            round(command.amount * 100),
            REFUND_REASON_CODE,
            {
                "payment_id": str(payment.id),
                "refund_reason": command.reason,
                "processed_by": REFUND_PROCESSOR,
            },
        )
        if not outcome.success:
            logger.warning("Gateway refund failed", payment_id=str(payment.id), reason=outcome.failure_reason)
            raise ValidationError({"gateway": [f"Gateway refund failed: {outcome.failure_reason}"]})

        refund = payment.add_refund(
            amount=command.amount,
            reason=command.reason,
            status=refund_status(payment.gateway, outcome.gateway_status),
            gateway_refund_id=outcome.gateway_refund_id,
            failure_reason=outcome.payload.get("failure_reason"),
            gateway_response=json.dumps(outcome.payload),
        )
        repo.add(payment)

        logger.info(
            "Refund processed",
            payment_id=str(payment.id),
            refund_id=str(refund.id),
            amount=refund.amount,
            payment_status=payment.status,
        )
        return {
            "refund_id": str(refund.id),
            "gateway_refund_id": refund.gateway_refund_id,
            "refund_status": refund.status,
            "refunded_amount": payment.refunded_amount,
            "payment_status": payment.status,
        }

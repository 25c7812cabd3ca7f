"""Payment registration — commands and handler.

Normalizes a gateway payload and stores it as an OrderPayment. Moving the
order forward is a separate step owned by the caller, so a payment is never
lost because the order could not be updated.
"""

import structlog
from protean import handle
from protean.fields import Dict, Float, Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.payment.normalizers import normalize_payment
from commerce.payment.payment import OrderPayment

logger = structlog.get_logger(__name__)


@commerce.command(part_of="OrderPayment")
class RegisterPayment:
    order_id = Identifier(required=True)
    user_id = Identifier()
    gateway = String(required=True, max_length=20)
    payment_data = Dict()


@commerce.command(part_of="OrderPayment")
class RegisterRenewalPayment:
    """Register the payment of a renewal order.

    ``fallback_amount`` is used when the gateway payload carries no amount.
    """

    renewal_order_id = Identifier(required=True)
    user_id = Identifier()
    gateway = String(required=True, max_length=20)
    payment_data = Dict()
    fallback_amount = Float(default=0.0)


def _summary(payment) -> dict:
    return {
        "payment_id": str(payment.id),
        "gateway": payment.gateway,
        "payment_method": payment.payment_method,
        "amount": payment.amount,
        "currency": payment.currency,
        "status": payment.status,
        "transaction_id": payment.transaction_id,
    }


@commerce.command_handler(part_of=OrderPayment)
class PaymentRegistrationHandler:
    @handle(RegisterPayment)
    def register_payment(self, command):
        fields = normalize_payment(command.gateway, command.payment_data)
        payment = OrderPayment.record(fields, user_id=command.user_id, order_id=command.order_id)
        current_domain.repository_for(OrderPayment).add(payment)

        logger.info(
            "Payment registered",
            payment_id=str(payment.id),
            order_id=command.order_id,
            gateway=payment.gateway,
            status=payment.status,
        )
        return _summary(payment)

    @handle(RegisterRenewalPayment)
    def register_renewal_payment(self, command):
        fields = normalize_payment(command.gateway, command.payment_data)
        if not fields["amount"]:
            fields["amount"] = command.fallback_amount or 0.0

        payment = OrderPayment.record(
            fields,
            user_id=command.user_id,
            renewal_order_id=command.renewal_order_id,
        )
        current_domain.repository_for(OrderPayment).add(payment)

        logger.info(
            "Renewal payment registered",
            payment_id=str(payment.id),
            renewal_order_id=command.renewal_order_id,
            status=payment.status,
        )
        return _summary(payment)

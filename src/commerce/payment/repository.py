from commerce.domain import commerce
from commerce.payment.payment import OrderPayment
from commerce.shared.listing import collect


@commerce.repository(part_of=OrderPayment)
class OrderPaymentRepository:
    def for_order(self, order_id) -> list:
        return collect(self._dao.query.filter(order_id=str(order_id)))

    def for_renewal_order(self, renewal_order_id) -> list:
        return collect(self._dao.query.filter(renewal_order_id=str(renewal_order_id)))

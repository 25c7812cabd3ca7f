"""Order materialization — commands and handler.

Each stage of turning a paid cart into an order is its own command, so the
checkout workflow can commit them one by one and reverse the ones already
committed when a later stage fails:

    CreateOrder          reversed by DeleteOrder
    CreateOrderItems     reversed by RemoveOrderItems
    CreateSubscriptions  reversed by RemoveOrderSubscriptions
    FinalizeOrder        moves the paid order to Processing
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Dict, Identifier, List, String
from protean.utils.globals import current_domain

from commerce.cart.cart import Cart, CartStatus
from commerce.catalog.pricing_option import PricingOption
from commerce.domain import commerce
from commerce.downloads.grant import DownloadGrant
from commerce.order.order import ORDER_NUMBER_SEED, Order, OrderType, format_order_number
from commerce.payment.payment import OrderPayment
from commerce.pricing.engine import price_cart
from commerce.sequence.counter import claim_next
from commerce.shared.result import load
from commerce.subscription.subscription import Subscription

logger = structlog.get_logger(__name__)

ORDER_SEQUENCE = "order"


@commerce.command(part_of="Order")
class CreateOrder:
    user_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    billing_address = Dict()
    payment_gateway = String(max_length=20)
    payment_reference = String(max_length=255)


@commerce.command(part_of="Order")
class CreateOrderItems:
    order_id = Identifier(required=True)
    cart_id = Identifier(required=True)


@commerce.command(part_of="Order")
class CreateSubscriptions:
    order_id = Identifier(required=True)
    item_ids = List(content_type=String)


@commerce.command(part_of="Order")
class RemoveOrderItems:
    order_id = Identifier(required=True)


@commerce.command(part_of="Order")
class RemoveOrderSubscriptions:
    order_id = Identifier(required=True)


@commerce.command(part_of="Order")
class MarkOrderPaid:
    order_id = Identifier(required=True)


@commerce.command(part_of="Order")
class FinalizeOrder:
    order_id = Identifier(required=True)


@commerce.command(part_of="Order")
class DeleteOrder:
    order_id = Identifier(required=True)


def _item_payload(item) -> dict:
    return {
        "item_id": str(item.id),
        "pricing_option_id": item.pricing_option_id,
        "product_id": item.product_id,
        "product_name": item.product_name,
        "plan_id": item.plan_id,
        "plan_name": item.plan_name,
        "plan_downloadable": item.plan_downloadable,
        "pricing_name": item.pricing_name,
        "pricing_model": item.pricing_model,
        "price": item.price,
        "discount_amount": item.discount_amount,
        "quantity": item.quantity,
        "subtotal": item.subtotal,
        "billing_frequency": item.billing_frequency,
        "billing_interval": item.billing_interval,
        "billing_cycle": item.billing_cycle,
    }


def _subscription_payload(subscription) -> dict:
    return {
        "subscription_id": str(subscription.id),
        "order_item_id": subscription.order_item_id,
        "plan_id": subscription.plan_id,
        "pricing_name": subscription.pricing_name,
        "status": subscription.effective_status,
        "next_billing_date": subscription.next_billing_date,
    }


@commerce.command_handler(part_of=Order)
class OrderMaterializationHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        cart = load(Cart, command.cart_id, "Cart")
        if str(cart.user_id) != str(command.user_id):
            raise ObjectNotFoundError("Cart not found")
        if cart.status != CartStatus.ACTIVE.value:
            raise ValidationError({"cart": ["Cart has already been checked out"]})
        if cart.is_empty:
            raise ValidationError({"cart": ["Cart has no items"]})

        price_cart(cart)

        repo = current_domain.repository_for(Order)
        _, order_number = claim_next(ORDER_SEQUENCE, ORDER_NUMBER_SEED, format_order_number, repo.number_taken)

        order = Order.create(
            order_number=order_number,
            user_id=command.user_id,
            cart=cart,
            billing_address=command.billing_address,
            payment_gateway=command.payment_gateway,
            payment_reference=command.payment_reference,
        )
        repo.add(order)

        logger.info("Order created", order_id=str(order.id), order_number=order_number, total=order.total_amount)
        return {"order_id": str(order.id), "order_number": order_number}

    @handle(CreateOrderItems)
    def create_order_items(self, command):
        repo = current_domain.repository_for(Order)
        order = load(Order, command.order_id, "Order")
        cart = load(Cart, command.cart_id, "Cart")
        options = current_domain.repository_for(PricingOption)

        for cart_item in cart.items:
            try:
                option = options.get(cart_item.pricing_option_id)
            except ObjectNotFoundError:
                raise ValidationError(
                    {"items": [f"Failed to create order item: pricing option {cart_item.pricing_option_id} not found"]}
                ) from None
            order.add_line(option, cart_item.quantity, cart_item.notes)

        repo.add(order)

        order_items = [_item_payload(item) for item in order.items]
        return {
            "order_items": order_items,
            "subscription_items": [item for item in order_items if item["pricing_model"] == "subscription"],
        }

    @handle(CreateSubscriptions)
    def create_subscriptions(self, command):
        repo = current_domain.repository_for(Order)
        order = load(Order, command.order_id, "Order")
        wanted = set(command.item_ids or [])
        items = [item for item in order.subscription_items if not wanted or str(item.id) in wanted]

        subscriptions = current_domain.repository_for(Subscription)
        created = []
        for item in items:
            subscription = Subscription.start(order, item)
            subscriptions.add(subscription)
            created.append(subscription)

        if created:
            order.mark_subscription()
            repo.add(order)

        logger.info("Subscriptions created", order_id=str(order.id), count=len(created))
        return [_subscription_payload(subscription) for subscription in created]

    @handle(RemoveOrderItems)
    def remove_order_items(self, command):
        order = load(Order, command.order_id, "Order")
        order.clear_lines()
        current_domain.repository_for(Order).add(order)

    @handle(RemoveOrderSubscriptions)
    def remove_order_subscriptions(self, command):
        order = load(Order, command.order_id, "Order")
        subscriptions = current_domain.repository_for(Subscription)
        removed = subscriptions.for_order(str(order.id))
        for subscription in removed:
            subscriptions._dao.delete(subscription)

        order.order_type = OrderType.ORDER.value
        current_domain.repository_for(Order).add(order)
        return len(removed)

    @handle(MarkOrderPaid)
    def mark_order_paid(self, command):
        order = load(Order, command.order_id, "Order")
        order.mark_paid(order.paid_at)
        current_domain.repository_for(Order).add(order)
        return order.status

    @handle(FinalizeOrder)
    def finalize_order(self, command):
        """Processing status and the final order type once payment is in."""
        order = load(Order, command.order_id, "Order")
        order.mark_paid(order.paid_at)
        if order.subscription_items:
            order.mark_subscription()
        current_domain.repository_for(Order).add(order)
        return {"order_status": order.status, "order_type": order.order_type}

    @handle(DeleteOrder)
    def delete_order(self, command):
        order = load(Order, command.order_id, "Order")
        order_id = str(order.id)

        subscriptions = current_domain.repository_for(Subscription)
        removed_subscriptions = subscriptions.for_order(order_id)
        for subscription in removed_subscriptions:
            subscriptions._dao.delete(subscription)

        payments = current_domain.repository_for(OrderPayment)
        for payment in payments.for_order(order_id):
            payments._dao.delete(payment)

        grants = current_domain.repository_for(DownloadGrant)
        for grant in grants.for_order(order_id):
            grants._dao.delete(grant)

        current_domain.repository_for(Order)._dao.delete(order)

        logger.info("Order deleted", order_id=order_id, subscriptions=len(removed_subscriptions))
        return {"order_id": order_id, "subscriptions_deleted": len(removed_subscriptions)}

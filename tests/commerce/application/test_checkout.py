"""Application tests for turning a paid cart into an order."""

from protean import current_domain

from commerce.cart.cart import Cart, CartStatus
from commerce.cart.services import add_to_cart, get_or_create_cart
from commerce.catalog.pricing_option import PricingOption
from commerce.downloads.grant import DownloadGrant
from commerce.order.checkout import process_order_after_payment, verify_payment_meta
from commerce.order.order import Order, OrderStatus, OrderType
from commerce.order.services import create_order, create_order_items, create_subscriptions, delete_order, get_order
from commerce.payment.payment import OrderPayment
from commerce.subscription.subscription import Subscription, SubscriptionStatus


class TestOneOffCheckout:
    def test_order_is_materialized_and_paid(self, user_id, make_option, checkout):
        result = checkout((make_option(price=100.0, discount_type="percentage", discount_amount=10.0), 2))
        assert result.success, result.message

        data = result.data
        assert data["order_number"] == "ORD001001"
        assert data["order_status"] == OrderStatus.PROCESSING.value
        assert data["order_type"] == OrderType.ORDER.value
        assert data["subscriptions"] == []

        order = current_domain.repository_for(Order).get(data["order_id"])
        assert order.subtotal == 180.0
        assert order.total_amount == 189.0
        assert order.paid_at is not None
        assert len(order.items) == 1
        assert order.items[0].subtotal == 180.0

    def test_payment_is_recorded(self, make_option, checkout):
        data = checkout((make_option(price=40.0), 1)).data
        assert data["payment"]["status"] == "Completed"
        assert data["payment"]["amount"] == 42.0

        payments = current_domain.repository_for(OrderPayment).for_order(data["order_id"])
        assert len(payments) == 1
        assert payments[0].gateway == "stripe"

    def test_cart_is_closed(self, user_id, make_option, checkout):
        checkout((make_option(), 1))
        carts = current_domain.repository_for(Cart)._dao.query.filter(user_id=user_id).all().items
        assert [cart.status for cart in carts] == [CartStatus.COMPLETED.value]

    def test_order_numbers_are_sequential(self, make_option, checkout):
        option_id = make_option()
        first = checkout((option_id, 1))
        second = checkout((option_id, 1))
        assert [first.data["order_number"], second.data["order_number"]] == ["ORD001001", "ORD001002"]

    def test_confirmation_email(self, mailer, make_option, checkout):
        data = checkout((make_option(name="Starter"), 1)).data
        assert len(mailer.sent_emails) == 1
        email = mailer.sent_emails[0]
        assert email["to"] == "buyer@example.com"
        assert data["order_number"] in email["subject"]
        assert "Starter" in email["body"]

    def test_failed_email_does_not_fail_checkout(self, mailer, make_option, checkout):
        mailer.configure(should_succeed=False)
        assert checkout((make_option(), 1)).success


class TestSubscriptionCheckout:
    def test_subscription_items_spawn_subscriptions(self, make_option, make_subscription_option, checkout):
        result = checkout((make_option(price=10.0), 1), (make_subscription_option(price=30.0), 1))
        data = result.data
        assert data["order_type"] == OrderType.SUBSCRIPTION.value
        assert len(data["subscriptions"]) == 1

        subscription = current_domain.repository_for(Subscription).get(data["subscriptions"][0]["subscription_id"])
        assert subscription.status == SubscriptionStatus.ACTIVE.value
        assert subscription.order_id == data["order_id"]
        assert subscription.price == 30.0
        assert subscription.next_billing_date > subscription.start_date

    def test_download_access_references(self, user_id, make_option, make_subscription_option, checkout):
        one_off = make_option(plan_id="plan-a", plan_downloadable=True)
        recurring = make_subscription_option(plan_id="plan-b", plan_downloadable=True)
        data = checkout((one_off, 1), (recurring, 1)).data

        grants = current_domain.repository_for(DownloadGrant).for_user(user_id)
        references = {grant.plan_id: grant.reference for grant in grants}
        assert references == {"plan-a": data["order_number"], "plan-b": f"SUB-{data['order_number']}"}

    def test_non_downloadable_plans_get_no_access(self, user_id, make_option, checkout):
        checkout((make_option(plan_id="plan-c"), 1))
        assert current_domain.repository_for(DownloadGrant).for_user(user_id) == []


class TestCheckoutRejections:
    def test_payment_meta_checks(self):
        assert verify_payment_meta(None) == "Payment data is missing or incomplete"
        assert verify_payment_meta({"gateway": "stripe", "payment_data": {}}) == "Payment data is missing or incomplete"
        assert verify_payment_meta({"gateway": "braintree", "payment_data": {"x": 1}}) == "Unsupported payment gateway"
        assert (
            verify_payment_meta({"gateway": "stripe", "payment_data": {"amount": 1}})
            == "Stripe payment intent ID is missing"
        )
        assert (
            verify_payment_meta({"gateway": "paypal", "payment_data": {"amount": 1}})
            == "PayPal transaction ID is missing"
        )
        assert verify_payment_meta({"gateway": "paypal", "payment_data": {"transactionId": "PP-1"}}) is None

    def test_ids_are_required(self, stripe_meta):
        result = process_order_after_payment(None, "cart-1", {}, stripe_meta(10.0))
        assert result.message == "User ID and Cart ID are required"

    def test_someone_elses_cart(self, user_id, make_option, stripe_meta):
        cart_id = add_to_cart(user_id, make_option(), 1).data["cart_id"]
        result = process_order_after_payment("intruder", cart_id, {}, stripe_meta(10.0))
        assert result.message == "Cart not found"

    def test_empty_cart(self, user_id, stripe_meta):
        cart = get_or_create_cart(user_id).data
        result = process_order_after_payment(user_id, str(cart.id), {}, stripe_meta(10.0))
        assert result.message == "Cart has no items"
        assert current_domain.repository_for(Order)._dao.query.all().items == []

    def test_failed_item_creation_deletes_the_order(self, user_id, make_option, stripe_meta):
        option_id = make_option()
        cart_id = add_to_cart(user_id, option_id, 1).data["cart_id"]
        options = current_domain.repository_for(PricingOption)
        options._dao.delete(options.get(option_id))

        result = process_order_after_payment(user_id, cart_id, {}, stripe_meta(10.0))
        assert not result.success
        assert result.message == f"Failed to create order item: pricing option {option_id} not found"
        assert current_domain.repository_for(Order)._dao.query.all().items == []
        assert current_domain.repository_for(Cart).get(cart_id).status == CartStatus.ACTIVE.value


class TestStagedMaterialization:
    def test_stages_build_the_order(self, user_id, make_option, make_subscription_option):
        add_to_cart(user_id, make_option(price=10.0), 1)
        cart_id = add_to_cart(user_id, make_subscription_option(price=30.0), 1).data["cart_id"]

        created = create_order(user_id, cart_id)
        assert created.success, created.message
        order_id = created.data["order_id"]
        assert created.data["order_number"] == "ORD001001"

        items = create_order_items(order_id, cart_id).data
        assert len(items["order_items"]) == 2
        [recurring] = items["subscription_items"]

        spawned = create_subscriptions(order_id, [recurring]).data
        assert [subscription["order_item_id"] for subscription in spawned] == [recurring["item_id"]]
        assert current_domain.repository_for(Order).get(order_id).order_type == OrderType.SUBSCRIPTION.value

    def test_order_requires_ids(self):
        assert create_order(None, None).message == "User ID and Cart ID are required"

    def test_delete_order_removes_dependents(self, make_subscription_option, checkout):
        data = checkout((make_subscription_option(), 1)).data
        deleted = delete_order(data["order_id"]).data
        assert deleted["subscriptions_deleted"] == 1
        assert current_domain.repository_for(Subscription)._dao.query.all().items == []
        assert get_order(data["order_id"]).message == "Order not found"

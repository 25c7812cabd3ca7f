"""Application tests for the subscription lifecycle services."""

from datetime import UTC, datetime

import pytest
from protean import current_domain

from commerce.shared.billing import as_utc
from commerce.subscription import services as subscriptions
from commerce.subscription.change import SubscriptionChange
from commerce.subscription.subscription import Subscription, SubscriptionStatus


@pytest.fixture()
def subscription_id(make_subscription_option, checkout):
    data = checkout((make_subscription_option(name="Pro Monthly", price=30.0, plan_id="plan-pro"), 1)).data
    return data["subscriptions"][0]["subscription_id"]


def _status(subscription_id):
    return subscriptions.get_subscription(subscription_id).data.effective_status


def _changes(subscription_id):
    return subscriptions.get_subscription_changes(subscription_id).data


class TestCancellationRequests:
    def test_request_then_approve(self, subscription_id):
        requested = subscriptions.request_cancel(subscription_id, requested_by="user-1", reason="Too expensive")
        assert requested.success
        assert requested.data["status"] == SubscriptionStatus.PENDING_CANCELLATION.value
        assert _status(subscription_id) == SubscriptionStatus.PENDING_CANCELLATION.value

        approved = subscriptions.approve_cancel(subscription_id, approved_by="admin-1", is_admin=True)
        assert approved.success
        assert _status(subscription_id) == SubscriptionStatus.CANCELED.value
        assert subscriptions.get_subscription(subscription_id).data.canceled_at is not None

        changes = _changes(subscription_id)
        assert [(c.change_type, c.from_status, c.to_status) for c in changes] == [
            ("Cancel", "Active", "PendingCancellation"),
            ("Cancel", "PendingCancellation", "Canceled"),
        ]
        assert changes[0].immediate_change is False
        assert changes[0].change_reason == "Too expensive"

    def test_reject_returns_to_active(self, subscription_id):
        subscriptions.request_cancel(subscription_id, requested_by="user-1")
        rejected = subscriptions.reject_cancel(subscription_id, rejected_by="admin-1", reason="Contract", is_admin=True)
        assert rejected.success
        assert _status(subscription_id) == SubscriptionStatus.ACTIVE.value
        assert _changes(subscription_id)[-1].change_type == "Reactivate"

    def test_decisions_need_an_administrator(self, subscription_id):
        subscriptions.request_cancel(subscription_id, requested_by="user-1")
        result = subscriptions.approve_cancel(subscription_id, approved_by="user-1")
        assert result.message == "Only administrators can approve cancellations"
        assert _status(subscription_id) == SubscriptionStatus.PENDING_CANCELLATION.value

    def test_approval_without_request(self, subscription_id):
        result = subscriptions.approve_cancel(subscription_id, is_admin=True)
        assert result.message == "Subscription has no pending cancellation request"

    def test_only_one_open_request(self, subscription_id):
        subscriptions.request_cancel(subscription_id)
        result = subscriptions.request_pause(subscription_id)
        assert not result.success
        assert len(_changes(subscription_id)) == 1

    def test_decision_notifies_subscriber(self, mailer, subscription_id):
        subscriptions.request_cancel(subscription_id)
        mailer.sent_emails.clear()
        subscriptions.approve_cancel(subscription_id, is_admin=True, reason="As requested")

        [email] = mailer.sent_emails
        assert email["to"] == "ada@example.com"
        assert email["subject"] == "Subscription update: Cancellation approved"


class TestPauseAndResume:
    def test_request_then_approve_pause(self, subscription_id):
        subscriptions.request_pause(subscription_id, requested_by="user-1")
        assert _status(subscription_id) == SubscriptionStatus.PENDING_PAUSE.value

        subscriptions.approve_pause(subscription_id, approved_by="admin-1", is_admin=True)
        assert _status(subscription_id) == SubscriptionStatus.PAUSED.value
        assert subscriptions.get_subscription(subscription_id).data.paused_at is not None

    def test_reject_pause(self, subscription_id):
        subscriptions.request_pause(subscription_id)
        assert subscriptions.reject_pause(subscription_id, is_admin=True).success
        assert _status(subscription_id) == SubscriptionStatus.ACTIVE.value
        assert subscriptions.reject_pause(subscription_id, is_admin=False).message == (
            "Only administrators can reject pauses"
        )

    def test_resume_recomputes_next_billing(self, subscription_id):
        subscriptions.pause_subscription(subscription_id, paused_by="admin-1")
        before = datetime.now(UTC)
        assert subscriptions.resume_subscription(subscription_id, resumed_by="admin-1").success

        subscription = subscriptions.get_subscription(subscription_id).data
        assert subscription.status == SubscriptionStatus.ACTIVE.value
        assert subscription.paused_at is None
        assert as_utc(subscription.next_billing_date) > before

    def test_resume_requires_paused(self, subscription_id):
        result = subscriptions.resume_subscription(subscription_id)
        assert result.message == "Only paused subscriptions can be resumed"


class TestImmediateCancel:
    def test_cancel(self, subscription_id):
        assert subscriptions.cancel_subscription(subscription_id, canceled_by="admin-1").success
        assert _status(subscription_id) == SubscriptionStatus.CANCELED.value

    def test_cancel_twice(self, subscription_id):
        subscriptions.cancel_subscription(subscription_id)
        assert subscriptions.cancel_subscription(subscription_id).message == "Subscription is already canceled"
        assert len(_changes(subscription_id)) == 1


class TestTerms:
    def test_upgrade(self, make_subscription_option, subscription_id):
        premium = make_subscription_option(name="Premium Monthly", price=50.0, plan_id="plan-premium")
        assert subscriptions.change_subscription_plan(subscription_id, premium, changed_by="user-1").success

        subscription = subscriptions.get_subscription(subscription_id).data
        assert subscription.price == 50.0
        assert subscription.pricing_name == "Premium Monthly"

        [change] = _changes(subscription_id)
        assert change.change_type == "Upgrade"
        assert (change.from_plan_id, change.to_plan_id) == ("plan-pro", "plan-premium")

    def test_downgrade(self, make_subscription_option, subscription_id):
        lite = make_subscription_option(name="Lite Monthly", price=10.0)
        subscriptions.change_subscription_plan(subscription_id, lite)
        assert _changes(subscription_id)[0].change_type == "Downgrade"

    def test_plan_change_validation(self, subscription_id):
        assert subscriptions.change_subscription_plan(subscription_id, None).message == "New pricing ID is required"
        assert subscriptions.change_subscription_plan(subscription_id, "nope").message == "Pricing option not found"

    def test_frequency_change(self, subscription_id):
        assert subscriptions.change_subscription_frequency(subscription_id, "year", 1).success
        subscription = subscriptions.get_subscription(subscription_id).data
        assert subscription.billing_frequency == "year"

        [change] = _changes(subscription_id)
        assert change.change_type == "FrequencyChange"
        assert (change.from_frequency, change.to_frequency) == ("month", "year")

    def test_invalid_frequency(self, subscription_id):
        result = subscriptions.change_subscription_frequency(subscription_id, "fortnight")
        assert result.message == "Invalid billing frequency: fortnight"

    def test_auto_renewal(self, subscription_id):
        assert subscriptions.update_auto_renewal(subscription_id, False).success
        assert subscriptions.get_subscription(subscription_id).data.auto_renew is False
        assert subscriptions.update_auto_renewal(subscription_id, "no").message == "Auto renewal must be true or false"


class TestQueries:
    def test_user_listing_filters_by_reported_status(self, user_id, subscription_id):
        assert len(subscriptions.get_user_subscriptions(user_id).data) == 1
        subscriptions.request_pause(subscription_id)
        assert subscriptions.get_user_subscriptions(user_id, status="Active").data == []
        assert len(subscriptions.get_user_subscriptions(user_id, status="PendingPause").data) == 1

    def test_missing(self):
        assert subscriptions.get_subscription("missing").message == "Subscription not found"
        assert subscriptions.get_user_subscriptions(None).message == "User ID is required"

    def test_delete_keeps_history(self, subscription_id):
        subscriptions.cancel_subscription(subscription_id)
        assert subscriptions.delete_subscription(subscription_id).success
        assert current_domain.repository_for(Subscription)._dao.query.all().items == []
        assert len(current_domain.repository_for(SubscriptionChange).for_subscription(subscription_id)) == 1

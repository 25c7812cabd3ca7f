"""Subscription aggregate (CQRS) — a recurring billing agreement spawned at checkout.

State machine (stored status plus an optional pending request):

    Active --request cancel--> [Active + pending Canceled]  (reported as PendingCancellation)
        --approve--> Canceled        --reject--> Active
    Active --request pause---> [Active + pending Paused]    (reported as PendingPause)
        --approve--> Paused          --reject--> Active
    any (not Canceled) --cancel--> Canceled
    any (not Canceled/Paused) --pause--> Paused
    Paused --resume--> Active (next billing date recomputed from now)
    PastDue/Failed/Canceled/expired Trialing/due Active --renew--> Active
    Active --failed renewal payment--> PastDue

Every transition method returns the single SubscriptionChange that audits it;
the caller persists both together.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text, ValueObject

from commerce.domain import commerce
from commerce.shared.billing import DEFAULT_CURRENCY, add_billing_period, as_utc, is_valid_frequency
from commerce.subscription.change import ChangeType, SubscriptionChange
from commerce.subscription.events import SubscriptionStatusChanged


class SubscriptionStatus(Enum):
    ACTIVE = "Active"
    PAUSED = "Paused"
    PENDING_PAUSE = "PendingPause"
    PENDING_CANCELLATION = "PendingCancellation"
    CANCELED = "Canceled"
    PAST_DUE = "PastDue"
    FAILED = "Failed"
    TRIALING = "Trialing"


# Statuses a subscription can actually be stored in; the two pending states are
# derived from the pending request.
_STORED_STATUSES = {
    SubscriptionStatus.ACTIVE,
    SubscriptionStatus.PAUSED,
    SubscriptionStatus.CANCELED,
    SubscriptionStatus.PAST_DUE,
    SubscriptionStatus.FAILED,
    SubscriptionStatus.TRIALING,
}

_PENDING_LABELS = {
    SubscriptionStatus.CANCELED.value: SubscriptionStatus.PENDING_CANCELLATION.value,
    SubscriptionStatus.PAUSED.value: SubscriptionStatus.PENDING_PAUSE.value,
}


@commerce.value_object(part_of="Subscription")
class PendingRequest:
    """A user's pause or cancel request awaiting an administrator's decision."""

    requested_status = String(required=True, max_length=30)
    requested_by = String(max_length=255)
    requested_at = DateTime(required=True)
    reason = Text()


@commerce.aggregate
class Subscription:
    order_id = Identifier(required=True)
    order_item_id = Identifier()
    user_id = Identifier(required=True)
    product_id = Identifier()
    product_name = String(max_length=255)
    plan_id = Identifier()
    plan_name = String(max_length=255)
    pricing_option_id = Identifier()
    pricing_name = String(max_length=255)
    price = Float(default=0.0)
    discount_amount = Float(default=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    billing_frequency = String(max_length=10, default="month")
    billing_interval = Integer(default=1, min_value=1)
    billing_cycle = String(max_length=50, default="UntilCanceled")
    status = String(choices=SubscriptionStatus, default=SubscriptionStatus.ACTIVE.value)
    pending_request = ValueObject(PendingRequest)
    auto_renew = Boolean(default=True)
    start_date = DateTime()
    next_billing_date = DateTime()
    trial_end_date = DateTime()
    paused_at = DateTime()
    canceled_at = DateTime()
    last_renewed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def start(cls, order, item, now=None):
        """Materialize a subscription for a recurring order item."""
        now = now or datetime.now(UTC)
        frequency = item.billing_frequency if is_valid_frequency(item.billing_frequency) else "month"
        interval = item.billing_interval or 1
        return cls(
            order_id=str(order.id),
            order_item_id=str(item.id),
            user_id=order.user_id,
            product_id=item.product_id,
            product_name=item.product_name,
            plan_id=item.plan_id,
            plan_name=item.plan_name,
            pricing_option_id=item.pricing_option_id,
            pricing_name=item.pricing_name,
            price=item.price,
            discount_amount=item.discount_amount or 0.0,
            currency=order.currency,
            billing_frequency=frequency,
            billing_interval=interval,
            billing_cycle=item.billing_cycle,
            status=SubscriptionStatus.ACTIVE.value,
            auto_renew=True,
            start_date=now,
            next_billing_date=add_billing_period(now, frequency, interval),
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def effective_status(self) -> str:
        """Status as callers see it; an open request reports as its pending state."""
        if self.pending_request is not None:
            return _PENDING_LABELS.get(self.pending_request.requested_status, self.status)
        return self.status

    def has_pending(self, requested_status: SubscriptionStatus) -> bool:
        return self.pending_request is not None and self.pending_request.requested_status == requested_status.value

    def _next_billing_from(self, start):
        return add_billing_period(start, self.billing_frequency, self.billing_interval)

    def _transition(self, target, change_type, reason, changed_by, **details):
        if target not in _STORED_STATUSES:
            raise ValidationError({"status": [f"{target.value} is not a storable status"]})
        previous = self.effective_status
        now = datetime.now(UTC)
        self.status = target.value
        self.pending_request = None
        self.updated_at = now
        return self._audit(change_type, previous, reason, changed_by, **details)

    def _audit(self, change_type, previous, reason, changed_by, **details):
        self.raise_(
            SubscriptionStatusChanged(
                subscription_id=str(self.id),
                previous_status=previous,
                new_status=self.effective_status,
                change_type=change_type.value,
                changed_by=changed_by or "system",
                changed_at=datetime.now(UTC),
            )
        )
        return SubscriptionChange.record(self, change_type, previous, reason, changed_by, **details)

    def _open_request(self, requested, change_type, reason, requested_by):
        if self.status != SubscriptionStatus.ACTIVE.value or self.pending_request is not None:
            raise ValidationError(
                {"status": [f"Only active subscriptions can request this change (currently {self.effective_status})"]}
            )
        previous = self.effective_status
        now = datetime.now(UTC)
        self.pending_request = PendingRequest(
            requested_status=requested.value,
            requested_by=requested_by,
            requested_at=now,
            reason=reason,
        )
        self.updated_at = now
        return self._audit(change_type, previous, reason, requested_by, immediate_change=False)

    def _require_pending(self, requested, label):
        if not self.has_pending(requested):
            raise ValidationError({"status": [f"Subscription has no pending {label} request"]})

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def request_cancellation(self, requested_by=None, reason=None):
        return self._open_request(SubscriptionStatus.CANCELED, ChangeType.CANCEL, reason, requested_by)

    def approve_cancellation(self, approved_by=None, reason=None):
        self._require_pending(SubscriptionStatus.CANCELED, "cancellation")
        change = self._transition(SubscriptionStatus.CANCELED, ChangeType.CANCEL, reason, approved_by)
        self.canceled_at = self.updated_at
        return change

    def reject_cancellation(self, rejected_by=None, reason=None):
        self._require_pending(SubscriptionStatus.CANCELED, "cancellation")
        return self._transition(SubscriptionStatus.ACTIVE, ChangeType.REACTIVATE, reason, rejected_by)

    def cancel(self, canceled_by=None, reason=None):
        """Cancel immediately, skipping the approval phase."""
        if self.status == SubscriptionStatus.CANCELED.value:
            raise ValidationError({"status": ["Subscription is already canceled"]})
        change = self._transition(SubscriptionStatus.CANCELED, ChangeType.CANCEL, reason, canceled_by)
        self.canceled_at = self.updated_at
        return change

    # -------------------------------------------------------------------
    # Pause / resume
    # -------------------------------------------------------------------
    def request_pause(self, requested_by=None, reason=None):
        return self._open_request(SubscriptionStatus.PAUSED, ChangeType.PAUSE, reason, requested_by)

    def approve_pause(self, approved_by=None, reason=None):
        self._require_pending(SubscriptionStatus.PAUSED, "pause")
        change = self._transition(SubscriptionStatus.PAUSED, ChangeType.PAUSE, reason, approved_by)
        self.paused_at = self.updated_at
        return change

    def reject_pause(self, rejected_by=None, reason=None):
        self._require_pending(SubscriptionStatus.PAUSED, "pause")
        return self._transition(SubscriptionStatus.ACTIVE, ChangeType.RESUME, reason, rejected_by)

    def pause(self, paused_by=None, reason=None):
        """Pause immediately, e.g. because the parent order went back to Pending."""
        if self.status in (SubscriptionStatus.CANCELED.value, SubscriptionStatus.PAUSED.value):
            raise ValidationError({"status": [f"Cannot pause a subscription that is {self.status}"]})
        change = self._transition(SubscriptionStatus.PAUSED, ChangeType.PAUSE, reason, paused_by)
        self.paused_at = self.updated_at
        return change

    def resume(self, resumed_by=None, reason=None):
        if self.status != SubscriptionStatus.PAUSED.value:
            raise ValidationError({"status": ["Only paused subscriptions can be resumed"]})
        now = datetime.now(UTC)
        self.next_billing_date = self._next_billing_from(now)
        self.paused_at = None
        return self._transition(SubscriptionStatus.ACTIVE, ChangeType.RESUME, reason, resumed_by)

    # -------------------------------------------------------------------
    # Renewal outcomes
    # -------------------------------------------------------------------
    def is_due(self, as_of=None) -> bool:
        as_of = as_of or datetime.now(UTC)
        return self.next_billing_date is not None and as_utc(self.next_billing_date) <= as_of

    def trial_has_ended(self, as_of=None) -> bool:
        as_of = as_of or datetime.now(UTC)
        return self.trial_end_date is not None and as_utc(self.trial_end_date) <= as_of

    def renew(self, renewed_by=None, reason=None, next_billing_date=None, notes=None):
        """Reactivate after a successful (or waived) renewal charge."""
        now = datetime.now(UTC)
        self.next_billing_date = next_billing_date or self._next_billing_from(now)
        self.last_renewed_at = now
        self.canceled_at = None
        return self._transition(
            SubscriptionStatus.ACTIVE, ChangeType.REACTIVATE, reason, renewed_by, additional_notes=notes
        )

    def mark_past_due(self, reason=None):
        """Demote an Active subscription whose renewal payment failed.

        Billing is suspended, so the change is recorded as a Pause carrying the
        failure reason. Returns None, and leaves the subscription untouched,
        when it was not Active.
        """
        if self.status != SubscriptionStatus.ACTIVE.value:
            return None
        return self._transition(
            SubscriptionStatus.PAST_DUE, ChangeType.PAUSE, reason or "Renewal payment failed", "system"
        )

    # -------------------------------------------------------------------
    # Terms
    # -------------------------------------------------------------------
    def change_plan(self, option, changed_by=None, reason=None, notes=None):
        """Move to a different pricing option, classified by price direction."""
        if self.status == SubscriptionStatus.CANCELED.value:
            raise ValidationError({"status": ["Cannot change the plan of a canceled subscription"]})

        if option.price > self.price:
            change_type = ChangeType.UPGRADE
        elif option.price < self.price:
            change_type = ChangeType.DOWNGRADE
        else:
            change_type = ChangeType.PLAN_CHANGE

        from_plan_id = self.plan_id
        previous = self.effective_status
        now = datetime.now(UTC)

        self.plan_id = option.plan_id
        self.plan_name = option.plan_name
        self.product_id = option.product_id or self.product_id
        self.product_name = option.product_name or self.product_name
        self.pricing_option_id = str(option.id)
        self.pricing_name = option.name
        self.price = option.price
        self.discount_amount = option.unit_discount()
        if is_valid_frequency(option.billing_frequency):
            self.billing_frequency = option.billing_frequency
        self.billing_interval = option.billing_interval or self.billing_interval
        self.next_billing_date = self._next_billing_from(now)
        self.updated_at = now

        return self._audit(
            change_type,
            previous,
            reason,
            changed_by,
            from_plan_id=from_plan_id,
            to_plan_id=option.plan_id,
            additional_notes=notes,
        )

    def change_frequency(self, frequency, interval=None, changed_by=None, reason=None):
        if not is_valid_frequency(frequency):
            raise ValidationError({"billing_frequency": [f"Invalid billing frequency: {frequency}"]})
        if self.status == SubscriptionStatus.CANCELED.value:
            raise ValidationError({"status": ["Cannot change the frequency of a canceled subscription"]})

        from_frequency = self.billing_frequency
        previous = self.effective_status
        now = datetime.now(UTC)
        self.billing_frequency = frequency
        if interval:
            self.billing_interval = interval
        self.next_billing_date = self._next_billing_from(now)
        self.updated_at = now

        return self._audit(
            ChangeType.FREQUENCY_CHANGE,
            previous,
            reason,
            changed_by,
            from_frequency=from_frequency,
            to_frequency=frequency,
        )

    def set_auto_renew(self, enabled):
        if not isinstance(enabled, bool):
            raise ValidationError({"auto_renew": ["Auto renewal must be true or false"]})
        self.auto_renew = enabled
        self.updated_at = datetime.now(UTC)

"""Subscription lifecycle — commands and handler for every state transition."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from commerce.catalog.pricing_option import PricingOption
from commerce.domain import commerce
from commerce.shared.result import load
from commerce.subscription.change import SubscriptionChange
from commerce.subscription.subscription import Subscription


@commerce.command(part_of="Subscription")
class RequestCancellation:
    subscription_id = Identifier(required=True)
    actor = String(max_length=255)
    reason = Text()


@commerce.command(part_of="Subscription")
class ApproveCancellation:
    subscription_id = Identifier(required=True)
    actor = String(max_length=255)
    reason = Text()
    is_admin = Boolean(default=False)


@commerce.command(part_of="Subscription")
class RejectCancellation:
    subscription_id = Identifier(required=True)
    actor = String(max_length=255)
    reason = Text()
    is_admin = Boolean(default=False)


@commerce.command(part_of="Subscription")
class CancelSubscription:
    subscription_id = Identifier(required=True)
    actor = String(max_length=255)
    reason = Text()


@commerce.command(part_of="Subscription")
class RequestPause:
    subscription_id = Identifier(required=True)
    actor = String(max_length=255)
    reason = Text()


@commerce.command(part_of="Subscription")
class ApprovePause:
    subscription_id = Identifier(required=True)
    actor = String(max_length=255)
    reason = Text()
    is_admin = Boolean(default=False)


@commerce.command(part_of="Subscription")
class RejectPause:
    subscription_id = Identifier(required=True)
    actor = String(max_length=255)
    reason = Text()
    is_admin = Boolean(default=False)


@commerce.command(part_of="Subscription")
class PauseSubscription:
    subscription_id = Identifier(required=True)
    actor = String(max_length=255)
    reason = Text()


@commerce.command(part_of="Subscription")
class ResumeSubscription:
    subscription_id = Identifier(required=True)
    actor = String(max_length=255)
    reason = Text()


@commerce.command(part_of="Subscription")
class ReactivateSubscription:
    subscription_id = Identifier(required=True)
    actor = String(max_length=255)
    reason = Text()
    next_billing_date = DateTime()
    notes = Text()


@commerce.command(part_of="Subscription")
class MarkSubscriptionPastDue:
    subscription_id = Identifier(required=True)
    actor = String(max_length=255)
    reason = Text()


@commerce.command(part_of="Subscription")
class ChangeSubscriptionPlan:
    subscription_id = Identifier(required=True)
    actor = String(max_length=255)
    reason = Text()
    new_pricing_id = Identifier(required=True)
    notes = Text()


@commerce.command(part_of="Subscription")
class ChangeSubscriptionFrequency:
    subscription_id = Identifier(required=True)
    actor = String(max_length=255)
    reason = Text()
    frequency = String(required=True, max_length=10)
    interval = Integer()


@commerce.command(part_of="Subscription")
class UpdateAutoRenewal:
    subscription_id = Identifier(required=True)
    auto_renew = Boolean()


@commerce.command(part_of="Subscription")
class DeleteSubscription:
    subscription_id = Identifier(required=True)


def _require_admin(command, action):
    if not command.is_admin:
        raise ValidationError({"actor": [f"Only administrators can {action}"]})


@commerce.command_handler(part_of=Subscription)
class SubscriptionLifecycleHandler:
    def _apply(self, subscription_id, transition):
        repo = current_domain.repository_for(Subscription)
        subscription = load(Subscription, subscription_id, "Subscription")
        change = transition(subscription)
        repo.add(subscription)
        payload = {"subscription_id": str(subscription.id), "status": subscription.effective_status}
        if change is not None:
            current_domain.repository_for(SubscriptionChange).add(change)
            payload["change_id"] = str(change.id)
        return payload

    @handle(RequestCancellation)
    def request_cancellation(self, command):
        return self._apply(command.subscription_id, lambda s: s.request_cancellation(command.actor, command.reason))

    @handle(ApproveCancellation)
    def approve_cancellation(self, command):
        _require_admin(command, "approve cancellations")
        return self._apply(command.subscription_id, lambda s: s.approve_cancellation(command.actor, command.reason))

    @handle(RejectCancellation)
    def reject_cancellation(self, command):
        _require_admin(command, "reject cancellations")
        return self._apply(command.subscription_id, lambda s: s.reject_cancellation(command.actor, command.reason))

    @handle(CancelSubscription)
    def cancel(self, command):
        return self._apply(command.subscription_id, lambda s: s.cancel(command.actor, command.reason))

    @handle(RequestPause)
    def request_pause(self, command):
        return self._apply(command.subscription_id, lambda s: s.request_pause(command.actor, command.reason))

    @handle(ApprovePause)
    def approve_pause(self, command):
        _require_admin(command, "approve pauses")
        return self._apply(command.subscription_id, lambda s: s.approve_pause(command.actor, command.reason))

    @handle(RejectPause)
    def reject_pause(self, command):
        _require_admin(command, "reject pauses")
        return self._apply(command.subscription_id, lambda s: s.reject_pause(command.actor, command.reason))

    @handle(PauseSubscription)
    def pause(self, command):
        return self._apply(command.subscription_id, lambda s: s.pause(command.actor, command.reason))

    @handle(ResumeSubscription)
    def resume(self, command):
        return self._apply(command.subscription_id, lambda s: s.resume(command.actor, command.reason))

    @handle(ReactivateSubscription)
    def reactivate(self, command):
        return self._apply(
            command.subscription_id,
            lambda s: s.renew(command.actor, command.reason, command.next_billing_date, command.notes),
        )

    @handle(MarkSubscriptionPastDue)
    def mark_past_due(self, command):
        return self._apply(command.subscription_id, lambda s: s.mark_past_due(command.reason))

    @handle(ChangeSubscriptionPlan)
    def change_plan(self, command):
        option = load(PricingOption, command.new_pricing_id, "Pricing option")
        return self._apply(
            command.subscription_id,
            lambda s: s.change_plan(option, command.actor, command.reason, command.notes),
        )

    @handle(ChangeSubscriptionFrequency)
    def change_frequency(self, command):
        return self._apply(
            command.subscription_id,
            lambda s: s.change_frequency(command.frequency, command.interval, command.actor, command.reason),
        )

    @handle(UpdateAutoRenewal)
    def update_auto_renewal(self, command):
        return self._apply(command.subscription_id, lambda s: s.set_auto_renew(command.auto_renew))

    @handle(DeleteSubscription)
    def delete(self, command):
        repo = current_domain.repository_for(Subscription)
        subscription = load(Subscription, command.subscription_id, "Subscription")
        repo._dao.delete(subscription)
        return str(command.subscription_id)

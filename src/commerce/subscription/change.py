"""SubscriptionChange aggregate: append-only audit trail of subscription transitions.

A record is written for every transition and never edited or deleted
afterwards; the history of a subscription is only reconstructible from these
records.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from commerce.domain import commerce
from commerce.shared.billing import as_utc
from commerce.shared.listing import collect


class ChangeType(Enum):
    PAUSE = "Pause"
    RESUME = "Resume"
    CANCEL = "Cancel"
    REACTIVATE = "Reactivate"
    UPGRADE = "Upgrade"
    DOWNGRADE = "Downgrade"
    PLAN_CHANGE = "PlanChange"
    FREQUENCY_CHANGE = "FrequencyChange"


@commerce.aggregate
class SubscriptionChange:
    subscription_id = Identifier(required=True)
    user_id = Identifier()
    change_type = String(choices=ChangeType, required=True)
    from_status = String(max_length=30)
    to_status = String(max_length=30)
    from_plan_id = Identifier()
    to_plan_id = Identifier()
    from_frequency = String(max_length=20)
    to_frequency = String(max_length=20)
    change_reason = Text()
    changed_by = String(max_length=255, default="system")
    immediate_change = Boolean(default=True)
    effective_date = DateTime(required=True)
    additional_notes = Text()
    prorated_amount = Float()
    recorded_at = DateTime()

    @classmethod
    def record(cls, subscription, change_type, from_status, reason=None, changed_by=None, **details):
        """Audit entry for a transition that already happened on ``subscription``."""
        now = datetime.now(UTC)
        return cls(
            subscription_id=str(subscription.id),
            user_id=subscription.user_id,
            change_type=change_type.value,
            from_status=from_status,
            to_status=subscription.effective_status,
            change_reason=reason,
            changed_by=changed_by or "system",
            effective_date=details.pop("effective_date", None) or now,
            recorded_at=now,
            **details,
        )


@commerce.repository(part_of=SubscriptionChange)
class SubscriptionChangeRepository:
    def for_subscription(self, subscription_id) -> list[SubscriptionChange]:
        changes = collect(self._dao.query.filter(subscription_id=str(subscription_id)))
        return sorted(changes, key=lambda change: (as_utc(change.effective_date), as_utc(change.recorded_at)))

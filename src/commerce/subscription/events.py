"""Domain events for the Subscription aggregate."""

from protean.fields import DateTime, Identifier, String

from commerce.domain import commerce


@commerce.event(part_of="Subscription")
class SubscriptionStatusChanged:
    """A subscription transition happened; mirrors the audit record written with it."""

    __version__ = 1

    subscription_id = Identifier(required=True)
    previous_status = String(max_length=30)
    new_status = String(required=True, max_length=30)
    change_type = String(required=True, max_length=30)
    changed_by = String(max_length=255)
    changed_at = DateTime(required=True)

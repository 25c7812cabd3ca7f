"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from commerce.domain import commerce


@commerce.event(part_of="Order")
class OrderPlaced:
    """A cart was snapshotted into a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=20)
    user_id = Identifier(required=True)
    total_amount = Float(required=True)
    placed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderStatusChanged:
    """An administrator or a workflow moved the order to a new status."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(max_length=20)
    new_status = String(required=True, max_length=20)
    changed_by = String(max_length=255)
    changed_at = DateTime(required=True)

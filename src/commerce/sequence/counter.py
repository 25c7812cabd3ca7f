"""SequenceCounter aggregate: named monotonic counters for human-readable numbers.

Order numbers and renewal sequences are claimed from a counter instead of
reading the newest record and adding one. The counter is saved in the same
unit of work as the record that uses the number, and a candidate already
present in the store is skipped, so two writers never end up sharing one.
"""

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce

logger = structlog.get_logger(__name__)

MAX_CLAIM_ATTEMPTS = 5


@commerce.aggregate
class SequenceCounter:
    name = String(identifier=True, max_length=255)
    value = Integer(default=0, min_value=0)

    def increment(self) -> int:
        self.value = (self.value or 0) + 1
        return self.value


def claim_next(name: str, start: int, render, is_taken) -> tuple[int, str]:
    """Claim the next free number of sequence ``name``.

    Args:
        name: Counter name, e.g. ``"order"`` or ``"renewal:<order id>"``.
        start: Value the counter holds before its first claim.
        render: Turns a counter value into the stored number.
        is_taken: Returns True when a rendered number already exists.

    Returns:
        (value, rendered) for the claimed number.
    """
    repo = current_domain.repository_for(SequenceCounter)
    try:
        counter = repo.get(name)
    except ObjectNotFoundError:
        counter = SequenceCounter(name=name, value=start)

    for _ in range(MAX_CLAIM_ATTEMPTS):
        value = counter.increment()
        rendered = render(value)
        if not is_taken(rendered):
            repo.add(counter)
            return value, rendered
        logger.warning("Sequence number already taken, retrying", sequence=name, number=rendered)

    raise ValidationError({"sequence": [f"Could not allocate a unique number for {name}"]})

"""Commerce bounded context: carts, orders, payments and subscriptions.

Prices carts, materializes them into orders and recurring subscriptions,
drives the subscription lifecycle and schedules renewal charges.
"""

import structlog
from protean.domain import Domain

commerce = Domain(name="commerce")

logger = structlog.get_logger(__name__)

"""DownloadGrant aggregate (CQRS): a user's access to a downloadable plan.

Grants are written by checkout: subscription items get ``SUB-<order number>``
as their source reference, one-off items get the order number itself.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from protean import handle
from protean.fields import Boolean, DateTime, Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.shared.listing import collect

logger = structlog.get_logger(__name__)

SUBSCRIPTION_REFERENCE_PREFIX = "SUB-"


class GrantSource(Enum):
    ORDER = "order"
    SUBSCRIPTION = "subscription"


def access_reference(order_number: str, for_subscription: bool) -> str:
    return f"{SUBSCRIPTION_REFERENCE_PREFIX}{order_number}" if for_subscription else order_number


@commerce.aggregate
class DownloadGrant:
    user_id = Identifier(required=True)
    plan_id = Identifier(required=True)
    order_id = Identifier(required=True)
    subscription_id = Identifier()
    reference = String(required=True, max_length=100)
    source_type = String(choices=GrantSource, default=GrantSource.ORDER.value)
    enabled = Boolean(default=True)
    granted_at = DateTime()


@commerce.repository(part_of=DownloadGrant)
class DownloadGrantRepository:
    def for_order(self, order_id) -> list[DownloadGrant]:
        return collect(self._dao.query.filter(order_id=str(order_id)))

    def for_user(self, user_id, plan_id=None) -> list[DownloadGrant]:
        query = self._dao.query.filter(user_id=str(user_id))
        if plan_id:
            query = query.filter(plan_id=str(plan_id))
        return collect(query)


@commerce.command(part_of="DownloadGrant")
class GrantDownloadAccess:
    user_id = Identifier(required=True)
    plan_id = Identifier(required=True)
    order_id = Identifier(required=True)
    subscription_id = Identifier()
    reference = String(required=True, max_length=100)


@commerce.command_handler(part_of=DownloadGrant)
class DownloadGrantHandler:
    @handle(GrantDownloadAccess)
    def grant(self, command):
        grant = DownloadGrant(
            user_id=command.user_id,
            plan_id=command.plan_id,
            order_id=command.order_id,
            subscription_id=command.subscription_id,
            reference=command.reference,
            source_type=GrantSource.SUBSCRIPTION.value if command.subscription_id else GrantSource.ORDER.value,
            granted_at=datetime.now(UTC),
        )
        current_domain.repository_for(DownloadGrant).add(grant)
        logger.info("Download access granted", grant_id=str(grant.id), plan_id=command.plan_id)
        return str(grant.id)


"""Repository for the Subscription aggregate."""

from commerce.domain import commerce
from commerce.shared.billing import as_utc
from commerce.shared.listing import collect
from commerce.subscription.subscription import Subscription


@commerce.repository(part_of=Subscription)
class SubscriptionRepository:
    def for_order(self, order_id) -> list[Subscription]:
        return collect(self._dao.query.filter(order_id=str(order_id)))

    def search(self, status=None, user_id=None) -> list[Subscription]:
        """Subscriptions newest first; ``status`` matches the reported (effective) status."""
        query = self._dao.query
        if user_id:
            query = query.filter(user_id=str(user_id))
        subscriptions = collect(query)
        if status:
            subscriptions = [sub for sub in subscriptions if sub.effective_status == status]
        return sorted(subscriptions, key=lambda sub: as_utc(sub.created_at), reverse=True)

"""Repository for the RenewalOrder aggregate."""

from commerce.domain import commerce
from commerce.renewal.renewal_order import RenewalOrder, RenewalStatus
from commerce.shared.billing import as_utc
from commerce.shared.listing import ListingFilters, collect, matching, paginate

SEARCH_FIELDS = ("renewal_order_number", "user_id")


@commerce.repository(part_of=RenewalOrder)
class RenewalOrderRepository:
    def number_taken(self, renewal_order_number) -> bool:
        return bool(self._dao.query.filter(renewal_order_number=renewal_order_number).all().items)

    def by_parent(self, parent_order_id) -> list[RenewalOrder]:
        """Renewals of one parent order, newest sequence first."""
        renewals = collect(self._dao.query.filter(parent_order_id=str(parent_order_id)))
        return sorted(renewals, key=lambda renewal: renewal.renewal_sequence, reverse=True)

    def due(self, as_of) -> list[RenewalOrder]:
        """Pending renewals whose next renewal date is at or before ``as_of``, oldest first."""
        pending = collect(self._dao.query.filter(status=RenewalStatus.PENDING.value))
        due = [r for r in pending if r.next_renewal_date is not None and as_utc(r.next_renewal_date) <= as_of]
        return sorted(due, key=lambda renewal: as_utc(renewal.next_renewal_date))

    def _filtered(self, filters: ListingFilters, parent_order_id=None, user_id=None) -> list[RenewalOrder]:
        query = self._dao.query
        if parent_order_id:
            query = query.filter(parent_order_id=str(parent_order_id))
        if user_id:
            query = query.filter(user_id=str(user_id))
        if filters.status and filters.status != "all":
            query = query.filter(status=filters.status)
        return matching(collect(query), filters, SEARCH_FIELDS)

    def count(self, filters: ListingFilters, parent_order_id=None, user_id=None) -> int:
        return len(self._filtered(filters, parent_order_id, user_id))

    def search(self, filters: ListingFilters, parent_order_id=None, user_id=None) -> tuple[list[RenewalOrder], int]:
        page = paginate(self._filtered(filters, parent_order_id, user_id), filters)
        return page, self.count(filters, parent_order_id, user_id)

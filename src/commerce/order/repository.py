"""Repository for the Order aggregate."""

from commerce.domain import commerce
from commerce.order.order import Order
from commerce.shared.listing import ListingFilters, collect, matching, paginate

SEARCH_FIELDS = ("order_number", "coupon_code")


@commerce.repository(part_of=Order)
class OrderRepository:
    def by_number(self, order_number) -> Order | None:
        orders = self._dao.query.filter(order_number=order_number).all().items
        return orders[0] if orders else None

    def number_taken(self, order_number) -> bool:
        return self.by_number(order_number) is not None

    def _filtered(self, filters: ListingFilters, user_id=None) -> list[Order]:
        query = self._dao.query
        if user_id:
            query = query.filter(user_id=str(user_id))
        if filters.status and filters.status != "all":
            query = query.filter(status=filters.status)
        if filters.order_type and filters.order_type != "all":
            query = query.filter(order_type=filters.order_type)
        return matching(collect(query), filters, SEARCH_FIELDS)

    def count(self, filters: ListingFilters, user_id=None) -> int:
        return len(self._filtered(filters, user_id))

    def search(self, filters: ListingFilters, user_id=None) -> tuple[list[Order], int]:
        """One page of orders plus the number of orders matching before pagination."""
        return paginate(self._filtered(filters, user_id), filters), self.count(filters, user_id)

"""Repository for the Cart aggregate."""

from commerce.cart.cart import Cart, CartStatus
from commerce.domain import commerce
from commerce.shared.billing import as_utc
from commerce.shared.listing import collect


@commerce.repository(part_of=Cart)
class CartRepository:
    def active_for_user(self, user_id) -> Cart | None:
        """The user's cart: the oldest Active cart, or None."""
        carts = collect(self._dao.query.filter(user_id=str(user_id), status=CartStatus.ACTIVE.value))
        if not carts:
            return None
        return min(carts, key=lambda cart: as_utc(cart.created_at))

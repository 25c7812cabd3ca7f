"""Repository for the Coupon aggregate."""

from datetime import UTC, datetime

from commerce.coupon.coupon import Coupon, CouponStatus, normalize_code
from commerce.domain import commerce
from commerce.shared.listing import collect


@commerce.repository(part_of=Coupon)
class CouponRepository:
    def active_by_code(self, code) -> Coupon | None:
        """The Active coupon whose code list contains ``code``."""
        coupons = collect(self._dao.query.filter(status=CouponStatus.ACTIVE.value))
        return next((coupon for coupon in coupons if coupon.matches(code)), None)

    def code_in_use(self, codes, exclude_id=None) -> str | None:
        """Return the first of ``codes`` already claimed by another coupon."""
        wanted = {normalize_code(code) for code in codes}
        for coupon in collect(self._dao.query):
            if exclude_id and str(coupon.id) == str(exclude_id):
                continue
            clash = wanted.intersection(coupon.codes or [])
            if clash:
                return sorted(clash)[0]
        return None

    def search(self, status=None, user_id=None, code=None) -> list[Coupon]:
        """Filter coupons; an Active filter also hides coupons past their expiration date."""
        query = self._dao.query
        if status:
            query = query.filter(status=status)
        if user_id:
            query = query.filter(user_id=str(user_id))
        coupons = collect(query)

        if code:
            coupons = [coupon for coupon in coupons if coupon.matches(code)]
        if status == CouponStatus.ACTIVE.value:
            now = datetime.now(UTC)
            coupons = [coupon for coupon in coupons if not coupon.is_expired(now)]
        return coupons

"""Filtering, sorting and pagination shared by the order and renewal listings."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from commerce.shared.billing import as_utc

DEFAULT_PAGE_SIZE = 12
SCAN_BATCH = 100

TIME_FILTERS = {
    "3days": timedelta(days=3),
    "7days": timedelta(days=7),
    "30days": timedelta(days=30),
    "3months": timedelta(days=90),
}


@dataclass
class ListingFilters:
    search: str | None = None
    status: str | None = None
    order_type: str | None = None
    time_filter: str | None = None
    sort_field: str = "created_at"
    sort_order: str = "desc"
    limit: int = DEFAULT_PAGE_SIZE
    offset: int = 0

    @classmethod
    def from_options(cls, options: dict | None) -> "ListingFilters":
        options = dict(options or {})
        known = {name: options[name] for name in cls.__dataclass_fields__ if options.get(name) is not None}
        return cls(**known)

    def since(self, now=None) -> datetime | None:
        window = TIME_FILTERS.get(self.time_filter or "")
        if window is None:
            return None
        return (now or datetime.now(UTC)) - window


def collect(query) -> list:
    """Every record matched by ``query``, read in batches."""
    records, offset = [], 0
    while True:
        page = query.offset(offset).limit(SCAN_BATCH).all()
        records.extend(page.items)
        offset += SCAN_BATCH
        if not page.items or offset >= page.total:
            return records


def _sort_key(value):
    if value is None:
        return (0, 0)
    if isinstance(value, datetime):
        return (1, as_utc(value))
    return (1, value)


def matching(records, filters: ListingFilters, search_fields) -> list:
    """Apply the search term and time window to already status-filtered records."""
    since = filters.since()
    if since is not None:
        records = [r for r in records if r.created_at is not None and as_utc(r.created_at) >= since]

    term = (filters.search or "").strip().lower()
    if term:
        records = [
            r for r in records if any(term in str(getattr(r, field, None) or "").lower() for field in search_fields)
        ]
    return records


def paginate(records, filters: ListingFilters) -> list:
    ordered = sorted(
        records,
        key=lambda record: _sort_key(getattr(record, filters.sort_field, None)),
        reverse=filters.sort_order != "asc",
    )
    start = max(filters.offset or 0, 0)
    return ordered[start : start + max(filters.limit or DEFAULT_PAGE_SIZE, 0)]

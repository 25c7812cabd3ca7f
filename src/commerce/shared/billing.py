"""Money rounding and billing-period arithmetic shared by every component."""

from datetime import UTC, datetime
from enum import Enum

from dateutil.relativedelta import relativedelta


class BillingFrequency(Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


DEFAULT_CURRENCY = "USD"

_PERIOD_UNITS = {
    BillingFrequency.DAY: "days",
    BillingFrequency.WEEK: "weeks",
    BillingFrequency.MONTH: "months",
    BillingFrequency.YEAR: "years",
}


def money(value) -> float:
    """Round a monetary amount to cents."""
    return round(float(value or 0.0), 2)


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize stored datetimes; SQL providers may hand back naive UTC values."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def is_valid_frequency(frequency: str | None) -> bool:
    return frequency in {f.value for f in BillingFrequency}


def add_billing_period(start: datetime, frequency: str | None, interval: int | None) -> datetime:
    """Advance ``start`` by ``interval`` units of ``frequency`` (one month by default).

    Month and year steps clamp to the last day of a shorter month.
    """
    interval = interval if interval and interval > 0 else 1
    frequency = frequency if is_valid_frequency(frequency) else BillingFrequency.MONTH.value
    unit = _PERIOD_UNITS[BillingFrequency(frequency)]
    return start + relativedelta(**{unit: interval})

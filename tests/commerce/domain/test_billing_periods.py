from datetime import UTC, datetime

import pytest

from commerce.shared.billing import add_billing_period, as_utc, money


class TestBillingPeriods:
    @pytest.mark.parametrize(
        "frequency, interval, expected",
        [
            ("day", 3, datetime(2024, 1, 18, tzinfo=UTC)),
            ("week", 2, datetime(2024, 1, 29, tzinfo=UTC)),
            ("month", 1, datetime(2024, 2, 15, tzinfo=UTC)),
            ("year", 1, datetime(2025, 1, 15, tzinfo=UTC)),
        ],
    )
    def test_units(self, frequency, interval, expected):
        assert add_billing_period(datetime(2024, 1, 15, tzinfo=UTC), frequency, interval) == expected

    def test_month_end_clamps(self):
        assert add_billing_period(datetime(2024, 1, 31, tzinfo=UTC), "month", 1) == datetime(2024, 2, 29, tzinfo=UTC)

    def test_unknown_frequency_defaults_to_one_month(self):
        assert add_billing_period(datetime(2024, 3, 1, tzinfo=UTC), "fortnight", 0) == datetime(2024, 4, 1, tzinfo=UTC)


class TestMoney:
    def test_rounds_to_cents(self):
        assert money(10.004) == 10.0
        assert money(None) == 0.0
        assert money("3.456") == 3.46

    def test_naive_datetimes_are_treated_as_utc(self):
        assert as_utc(datetime(2024, 1, 1)).tzinfo == UTC

"""Tests for business-timezone date helpers."""

from datetime import date, datetime, timezone

import pytest

from pos_profit.dates import (
    PeriodBounds,
    business_now,
    business_today,
    date_key,
    in_range,
    period_bounds,
    query_window,
    to_business_time,
)
from pos_profit.exceptions import ConfigError


class TestBusinessClock:
    def test_business_now_subtracts_five_hours_from_utc(self) -> None:
        now = datetime(2024, 3, 15, 3, 30, tzinfo=timezone.utc)
        assert business_now(now) == datetime(2024, 3, 14, 22, 30)

    def test_business_today_crosses_midnight(self) -> None:
        # 04:59 UTC is still the previous business day
        assert business_today(datetime(2024, 1, 1, 4, 59, tzinfo=timezone.utc)) == date(2023, 12, 31)
        assert business_today(datetime(2024, 1, 1, 5, 0, tzinfo=timezone.utc)) == date(2024, 1, 1)

    def test_business_now_default_is_naive(self) -> None:
        assert business_now().tzinfo is None

    def test_date_key(self) -> None:
        assert date_key(datetime(2024, 2, 9, 23, 59)) == "2024-02-09"
        assert date_key(date(2024, 12, 1)) == "2024-12-01"


class TestToBusinessTime:
    def test_shifts_utc_string(self) -> None:
        assert to_business_time("2024-03-15 10:00:00") == datetime(2024, 3, 15, 5, 0)

    def test_early_utc_lands_on_previous_day(self) -> None:
        assert date_key(to_business_time("2024-03-16 02:30:00")) == "2024-03-15"

    @pytest.mark.parametrize("value", ["2024-03-15T10:00:00", "2024-03-15 10:00:00.123"])
    def test_accepts_variants(self, value: str) -> None:
        assert to_business_time(value) == datetime(2024, 3, 15, 5, 0)

    def test_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            to_business_time("15/03/2024")


class TestPeriodBounds:
    def test_leap_february_is_zero_indexed(self) -> None:
        assert period_bounds("month", year=2024, month=1) == PeriodBounds("2024-02-01", "2024-02-29")

    def test_non_leap_february(self) -> None:
        assert period_bounds("month", year=2023, month=1).end == "2023-02-28"

    def test_december(self) -> None:
        assert period_bounds("month", year=2024, month=11) == PeriodBounds("2024-12-01", "2024-12-31")

    def test_year(self) -> None:
        assert period_bounds("year", year=2025) == PeriodBounds("2025-01-01", "2025-12-31")

    def test_today(self) -> None:
        assert period_bounds("today", today=date(2024, 7, 4)) == PeriodBounds("2024-07-04", "2024-07-04")

    def test_to_date_modes(self) -> None:
        today = date(2024, 7, 4)
        assert period_bounds("month_to_date", today=today) == PeriodBounds("2024-07-01", "2024-07-04")
        assert period_bounds("year_to_date", today=today) == PeriodBounds("2024-01-01", "2024-07-04")

    def test_month_defaults_to_current(self) -> None:
        assert period_bounds("month", today=date(2024, 4, 10)) == PeriodBounds("2024-04-01", "2024-04-30")

    def test_custom_keeps_order_as_given(self) -> None:
        bounds = period_bounds("custom", start="2024-05-10", end="2024-05-01")
        assert bounds == PeriodBounds("2024-05-10", "2024-05-01")

    def test_custom_requires_both_ends(self) -> None:
        with pytest.raises(ConfigError):
            period_bounds("custom", start="2024-05-10")

    def test_invalid_month(self) -> None:
        with pytest.raises(ConfigError):
            period_bounds("month", year=2024, month=12)

    def test_unknown_mode(self) -> None:
        with pytest.raises(ConfigError):
            period_bounds("week")


class TestQueryWindow:
    def test_shifts_boundaries_forward_five_hours(self) -> None:
        assert query_window("2024-03-01", "2024-03-31") == (
            "2024-03-01 05:00:00",
            "2024-04-01 04:59:59",
        )

    def test_single_day(self) -> None:
        assert query_window("2024-12-31", "2024-12-31") == (
            "2024-12-31 05:00:00",
            "2025-01-01 04:59:59",
        )

    def test_window_matches_business_day_of_orders(self) -> None:
        start_utc, end_utc = query_window("2024-03-15", "2024-03-15")
        # An order at 02:30 UTC on the 16th is business day 2024-03-15
        assert start_utc <= "2024-03-16 02:30:00" <= end_utc
        assert date_key(to_business_time("2024-03-16 02:30:00")) == "2024-03-15"


def test_in_range_is_inclusive_and_empty_when_reversed() -> None:
    assert in_range("2024-03-01", "2024-03-01", "2024-03-31")
    assert in_range("2024-03-31", "2024-03-01", "2024-03-31")
    assert not in_range("2024-04-01", "2024-03-01", "2024-03-31")
    assert not in_range("2024-03-15", "2024-03-31", "2024-03-01")


def test_query_window_covers_whole_last_business_day() -> None:
    start_utc, end_utc = query_window("2024-03-15", "2024-03-15")
    # 09:00 and 23:59 business time on the 15th, in UTC
    for order_utc in ("2024-03-15 14:00:00", "2024-03-16 04:59:59"):
        assert start_utc <= order_utc <= end_utc
    assert end_utc < "2024-03-16 05:00:00"

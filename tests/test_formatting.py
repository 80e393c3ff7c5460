"""Tests for amount and date formatting."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from bookkeeper.formatting import (
    fmt_chf,
    fmt_date,
    month_key,
    parse_datetime,
    to_decimal,
    to_non_negative,
)


class TestToDecimal:
    """Tests for lenient number parsing."""

    def test_parses_strings_with_whitespace(self):
        assert to_decimal(" 12.50 ") == Decimal("12.50")

    def test_keeps_ints_and_floats(self):
        assert to_decimal(3) == Decimal("3")
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", True, float("nan"), float("inf"), "Infinity"])
    def test_rejects_non_numbers(self, value):
        assert to_decimal(value) is None

    @pytest.mark.parametrize("value", [None, "abc", "-0.01", -5])
    def test_non_negative_floor_is_zero(self, value):
        assert to_non_negative(value) == Decimal("0")

    def test_non_negative_keeps_positive_values(self):
        assert to_non_negative("8.1") == Decimal("8.1")


class TestFmtChf:
    """Tests for de-CH currency formatting."""

    def test_groups_thousands_with_apostrophe(self):
        assert fmt_chf(1234.5) == "1’234.50"

    def test_large_negative_amount(self):
        assert fmt_chf(Decimal("-1234567.891")) == "-1’234’567.89"

    def test_small_amount_has_two_decimals(self):
        assert fmt_chf(7) == "7.00"

    def test_rounds_half_up(self):
        assert fmt_chf(Decimal("2.005")) == "2.01"
        assert fmt_chf("0.125") == "0.13"

    @pytest.mark.parametrize("value", [None, "n/a", float("nan"), float("-inf")])
    def test_invalid_input_formats_as_zero(self, value):
        assert fmt_chf(value) == "0.00"


class TestDates:
    """Tests for date display and month keys."""

    def test_fmt_date_of_date(self):
        assert fmt_date(date(2025, 3, 1)) == "2025-03-01"

    def test_fmt_date_normalises_to_utc(self):
        # 23:30 at UTC-2 is already the next day in UTC
        assert fmt_date("2025-03-01T23:30:00-02:00") == "2025-03-02"

    def test_fmt_date_accepts_trailing_z(self):
        assert fmt_date("2025-03-01T10:00:00Z") == "2025-03-01"

    def test_fmt_date_empty(self):
        assert fmt_date(None) == ""
        assert fmt_date("") == ""

    def test_month_key_is_seven_characters(self):
        assert month_key(date(2025, 12, 1)) == "2025-12"
        assert len(month_key("2025-03-31T23:59:59Z")) == 7

    def test_every_instant_in_a_month_shares_one_key(self):
        instants = [
            "2025-03-01",
            "2025-03-01T00:00:00Z",
            datetime(2025, 3, 15, 12, 0),
            datetime(2025, 3, 31, 23, 59, 59, tzinfo=timezone.utc),
        ]
        assert {month_key(i) for i in instants} == {"2025-03"}

    def test_parse_datetime_of_date(self):
        assert parse_datetime(date(2025, 3, 1)) == datetime(2025, 3, 1)

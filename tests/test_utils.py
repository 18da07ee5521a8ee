"""Tests for calendar utilities and identifiers."""

import re
from datetime import date, datetime, timezone

import pytest

from nzbill.models.labels import Language
from nzbill.utils import (
    clamp_day,
    current_timestamp,
    days_until_end_of_month,
    format_short_date,
    generate_id,
    last_day_of_month,
    same_month,
    shift_month,
)


class TestLastDayOfMonth:
    """Tests for month lengths."""

    @pytest.mark.parametrize(
        "month,year,expected",
        [
            (1, 2024, 31),
            (2, 2024, 29),
            (2, 2023, 28),
            (2, 1900, 28),
            (2, 2000, 29),
            (4, 2024, 30),
            (12, 2024, 31),
        ],
    )
    def test_last_day(self, month, year, expected):
        assert last_day_of_month(month, year) == expected


class TestClampDay:
    """Tests for clamping a nominal due day."""

    def test_day_31_in_february_leap_year(self):
        assert clamp_day(31, 2, 2024) == 29

    def test_day_31_in_february_common_year(self):
        assert clamp_day(31, 2, 2023) == 28

    def test_day_31_in_april(self):
        assert clamp_day(31, 4, 2024) == 30

    def test_day_that_fits_is_unchanged(self):
        assert clamp_day(15, 2, 2023) == 15


class TestDaysUntilEndOfMonth:
    """Tests for the days-remaining calculation."""

    def test_mid_month(self):
        assert days_until_end_of_month(date(2024, 1, 15)) == 16

    def test_last_day_floors_at_one(self):
        assert days_until_end_of_month(date(2024, 1, 31)) == 1

    def test_first_day(self):
        assert days_until_end_of_month(date(2024, 4, 1)) == 29


class TestShiftMonth:
    """Tests for month arithmetic."""

    def test_back_across_year(self):
        assert shift_month(2, 2024, -3) == (11, 2023)

    def test_forward_across_year(self):
        assert shift_month(12, 2024, 1) == (1, 2025)

    def test_zero_offset(self):
        assert shift_month(6, 2024, 0) == (6, 2024)


class TestFormatting:
    """Tests for short date formatting."""

    def test_thai(self):
        assert format_short_date(date(2024, 1, 5), Language.TH) == "5 ม.ค."

    def test_english(self):
        assert format_short_date(date(2024, 12, 31), Language.EN) == "31 Dec"

    def test_iso_string(self):
        assert format_short_date("2024-03-09T17:00:00+00:00", Language.EN) == "9 Mar"

    def test_datetime(self):
        assert format_short_date(datetime(2024, 5, 1, 10, 0), Language.EN) == "1 May"


class TestMisc:
    def test_same_month(self):
        assert same_month(date(2024, 3, 31), 3, 2024)
        assert not same_month(date(2024, 3, 31), 3, 2023)

    def test_current_timestamp_is_utc(self):
        assert current_timestamp().tzinfo == timezone.utc


class TestGenerateId:
    """Tests for local identifiers."""

    def test_format(self):
        assert re.fullmatch(r"bill_\d+_[0-9a-z]{9}", generate_id("bill"))

    def test_unique(self):
        ids = {generate_id("bill") for _ in range(200)}
        assert len(ids) == 200

#!/usr/bin/env python3
"""Tests for date helper functions."""
import pytest
from datetime import date, datetime

from chassis import INFINITE, add_days, days_until, format_human, subtract_days, to_iso


class TestToIso:
    """Tests for to_iso canonicalization."""

    def test_date_and_datetime(self):
        assert to_iso(date(2025, 1, 5)) == "2025-01-05"
        assert to_iso(datetime(2025, 1, 5, 14, 30)) == "2025-01-05"

    def test_iso_string(self):
        assert to_iso("2025-01-05") == "2025-01-05"
        assert to_iso("  2025-01-05  ") == "2025-01-05"

    def test_loose_string_formats(self):
        assert to_iso("2025-1-5") == "2025-01-05"
        assert to_iso("01/05/2025") == "2025-01-05"

    def test_absent_or_unparsable_is_empty(self):
        assert to_iso(None) == ""
        assert to_iso("") == ""
        assert to_iso("garbage") == ""


class TestAddSubtractDays:
    """Tests for add_days and subtract_days."""

    def test_add_days(self):
        assert add_days("2025-01-15", 10) == "2025-01-25"
        assert add_days("2025-01-25", 10) == "2025-02-04"

    def test_leap_day(self):
        assert add_days("2024-02-28", 1) == "2024-02-29"
        assert subtract_days("2024-03-01", 1) == "2024-02-29"

    def test_subtract_days(self):
        assert subtract_days("2025-01-15", 15) == "2024-12-31"

    def test_invalid_input_returns_empty(self):
        assert add_days(None, 5) == ""
        assert add_days("", 5) == ""
        assert add_days("garbage", 5) == ""
        assert subtract_days("garbage", 5) == ""

    @pytest.mark.parametrize("n", [0, 1, 30, 90, 365, 1000, -45])
    def test_round_trip(self, n):
        for d in ("2024-01-10", "2024-02-29", "2025-12-31"):
            assert add_days(subtract_days(d, n), n) == d


class TestDaysUntil:
    """Tests for days_until."""

    TODAY = date(2025, 1, 15)

    def test_future(self):
        assert days_until("2025-01-20", self.TODAY) == 5

    def test_past(self):
        assert days_until("2025-01-10", self.TODAY) == -5

    def test_today(self):
        assert days_until("2025-01-15", self.TODAY) == 0

    def test_absent_is_infinite(self):
        assert days_until(None, self.TODAY) == INFINITE
        assert days_until("", self.TODAY) == INFINITE
        assert days_until("garbage", self.TODAY) == INFINITE

    def test_defaults_to_today(self):
        assert days_until(date.today().isoformat()) == 0


class TestFormatHuman:
    """Tests for format_human."""

    def test_formats_date(self):
        assert format_human("2025-01-05") == "Jan 05, 2025"

    def test_empty(self):
        assert format_human("") == ""
        assert format_human(None) == ""

    def test_unparsable_returned_as_is(self):
        assert format_human("garbage") == "garbage"

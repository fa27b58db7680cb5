"""Tests for utils/timezone.py - UTC-everywhere time handling."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from utils.timezone import now_utc, today_utc, to_utc


class TestNowUtc:
    """Tests for now_utc()."""

    def test_returns_timezone_aware(self):
        """Result must have tzinfo set (not naive)."""
        assert now_utc().tzinfo is not None

    def test_is_utc(self):
        """Result timezone must be specifically UTC."""
        assert now_utc().tzinfo == timezone.utc


class TestTodayUtc:
    """Tests for today_utc()."""

    def test_returns_plain_date(self):
        """Calendar dates carry no time component."""
        result = today_utc()
        assert type(result) is date

    def test_matches_utc_calendar_day(self):
        """Today is the UTC day, whatever the server's local zone."""
        assert today_utc() in {now_utc().date(), datetime.now(timezone.utc).date()}


class TestToUtc:
    """Tests for to_utc()."""

    def test_raises_on_naive(self):
        """Naive datetime must raise ValueError."""
        with pytest.raises(ValueError, match="naive"):
            to_utc(datetime(2026, 1, 1, 12, 0, 0))

    def test_converts_other_timezone(self):
        """Kolkata 05:30 on Jan 1 is midnight UTC on the same day."""
        kolkata = datetime(2026, 1, 1, 5, 30, 0, tzinfo=ZoneInfo("Asia/Kolkata"))
        result = to_utc(kolkata)
        assert result.tzinfo == timezone.utc
        assert (result.year, result.hour, result.minute) == (2026, 0, 0)

    def test_can_cross_year_boundary(self):
        """A New Year's morning in Kolkata can still be last year in UTC."""
        kolkata = datetime(2026, 1, 1, 3, 0, 0, tzinfo=ZoneInfo("Asia/Kolkata"))
        assert to_utc(kolkata).year == 2025

"""Tests for utils/timezone.py - UTC storage and business-calendar dates."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from utils.timezone import (
    calendar_date,
    from_local,
    local_today,
    now_utc,
    parse_iso,
    to_local,
    to_utc,
)


class TestNowUtc:
    """Tests for now_utc()."""

    def test_is_utc(self):
        """Result must be timezone-aware UTC."""
        result = now_utc()
        assert result.tzinfo == timezone.utc


class TestToUtc:
    """Tests for to_utc()."""

    def test_raises_on_naive(self):
        """Naive datetime must raise ValueError."""
        with pytest.raises(ValueError, match="naive"):
            to_utc(datetime(2024, 1, 1, 12, 0, 0))

    def test_converts_kolkata(self):
        """Kolkata 12:00 becomes UTC 06:30."""
        ist = datetime(2024, 1, 1, 12, 0, 0, tzinfo=ZoneInfo("Asia/Kolkata"))
        result = to_utc(ist)
        assert result.tzinfo == timezone.utc
        assert (result.hour, result.minute) == (6, 30)


class TestToLocal:
    """Tests for to_local()."""

    def test_converts_correctly(self):
        utc_time = datetime(2024, 1, 1, 6, 30, 0, tzinfo=timezone.utc)
        result = to_local(utc_time, "Asia/Kolkata")
        assert result.hour == 12

    def test_raises_on_naive(self):
        with pytest.raises(ValueError, match="naive"):
            to_local(datetime(2024, 1, 1, 12, 0, 0), "Asia/Kolkata")

    def test_raises_on_invalid_timezone(self):
        with pytest.raises(ValueError, match="Unknown timezone"):
            to_local(now_utc(), "Not/A/Timezone")


class TestFromLocal:
    """Tests for from_local() - naive store timestamps read as local wall time."""

    def test_naive_is_read_in_timezone(self):
        result = from_local(datetime(2024, 3, 10, 9, 0, 0), "Asia/Kolkata")
        assert result == datetime(2024, 3, 10, 3, 30, 0, tzinfo=timezone.utc)

    def test_aware_is_only_converted(self):
        aware = datetime(2024, 3, 10, 9, 0, 0, tzinfo=timezone.utc)
        assert from_local(aware, "Asia/Kolkata") == aware


class TestCalendarDates:
    """Tests for local_today() and calendar_date()."""

    def test_late_utc_evening_is_next_day_in_kolkata(self):
        """20:00 UTC is 01:30 the next morning in Kolkata."""
        dt = datetime(2024, 3, 10, 20, 0, 0, tzinfo=timezone.utc)
        assert calendar_date(dt, "Asia/Kolkata") == date(2024, 3, 11)

    def test_naive_assumed_utc(self):
        assert calendar_date(datetime(2024, 3, 10, 20, 0, 0), "Asia/Kolkata") == date(2024, 3, 11)

    def test_local_today_matches_calendar_date(self):
        today = local_today("Asia/Kolkata")
        assert today in {
            calendar_date(now_utc(), "Asia/Kolkata"),
            calendar_date(now_utc() - timedelta(seconds=1), "Asia/Kolkata"),
        }

    def test_local_today_invalid_timezone(self):
        with pytest.raises(ValueError, match="Unknown timezone"):
            local_today("Mars/Olympus")


class TestParseIso:
    """Tests for parse_iso()."""

    def test_handles_zulu(self):
        result = parse_iso("2024-01-01T12:00:00Z")
        assert result.tzinfo == timezone.utc
        assert result.hour == 12

    def test_handles_positive_offset(self):
        """12:00+05:30 is 06:30 UTC."""
        result = parse_iso("2024-01-01T12:00:00+05:30")
        assert result.tzinfo == timezone.utc
        assert (result.hour, result.minute) == (6, 30)

    def test_raises_on_naive(self):
        with pytest.raises(ValueError, match="timezone"):
            parse_iso("2024-01-01T12:00:00")

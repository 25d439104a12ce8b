"""Tests for Hijri month window resolution."""

import logging
from datetime import date, datetime

import pytest

from akasia.core.config import get_settings
from akasia.services.calendar_service import (
    current_hijri_month,
    gregorian_month_window,
    hijri_month_name,
    resolve_month_window,
)

NOW = datetime(2026, 2, 14, 9, 30)


@pytest.fixture
def narrow_calendar_bounds(monkeypatch):
    monkeypatch.setenv("CALENDAR_MAX_YEAR", "2000")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestResolveMonthWindow:
    def test_ramadhan_1446(self):
        window = resolve_month_window(1446, 9)

        assert not window.used_fallback
        assert window.start == datetime(2025, 3, 1, 0, 0, 0)
        assert window.end == datetime(2025, 3, 29, 23, 59, 59, 999000)
        assert window.label == "Ramadhan 1446 H"

    def test_last_month_rolls_into_next_year(self):
        window = resolve_month_window(1445, 12)

        assert not window.used_fallback
        assert window.start == datetime(2024, 6, 7)
        assert window.end == datetime(2024, 7, 6, 23, 59, 59, 999000)

    def test_consecutive_months_are_contiguous(self):
        first = resolve_month_window(1446, 8)
        second = resolve_month_window(1446, 9)

        assert (second.start - first.end).total_seconds() == pytest.approx(0.001)
        assert first.next_start == second.start

    @pytest.mark.parametrize(
        ("year", "month"),
        [(1200, 1), (1600, 6), (1446, 13), (1446, 0), (1500, 12)],
    )
    def test_unconvertible_month_falls_back_to_current_gregorian_month(self, year, month):
        window = resolve_month_window(year, month, now=NOW)

        assert window.used_fallback
        assert window.start == datetime(2026, 2, 1)
        assert window.end == datetime(2026, 2, 28, 23, 59, 59, 999000)
        assert window.hijri_year == year
        assert window.hijri_month == month
        assert window.label == "February 2026"

    def test_fallback_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="akasia.services.calendar_service"):
            resolve_month_window(1200, 1, now=NOW)

        assert any("fallback" in record.getMessage() for record in caplog.records)

    def test_gregorian_bounds_trigger_fallback(self, narrow_calendar_bounds):
        window = resolve_month_window(1446, 9, now=NOW)

        assert window.used_fallback
        assert window.start == datetime(2026, 2, 1)

    def test_last_supported_year_converts(self):
        window = resolve_month_window(1500, 1, now=NOW)

        assert not window.used_fallback
        assert window.start.year == 2076
        assert window.label == "Muharram 1500 H"

    def test_next_start_is_midnight_after_end(self):
        window = resolve_month_window(1446, 9)

        assert window.next_start == datetime(2025, 3, 30)
        assert window.start <= window.end.replace(microsecond=999500) < window.next_start


class TestHelpers:
    def test_gregorian_month_window_leap_february(self):
        start, end = gregorian_month_window(2024, 2)

        assert start == datetime(2024, 2, 1)
        assert end == datetime(2024, 2, 29, 23, 59, 59, 999000)

    def test_current_hijri_month(self):
        assert current_hijri_month(date(2025, 3, 15)) == (1446, 9)

    def test_month_names(self):
        assert hijri_month_name(1) == "Muharram"
        assert hijri_month_name(12) == "Dzulhijjah"
        assert hijri_month_name(13) == "13"

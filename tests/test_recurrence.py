"""
Tests for frequency normalization and next-occurrence calculation.
"""

import logging
from datetime import date

import pytest

from cashcast.models.recurrence import (
    Frequency,
    add_periods,
    next_occurrence,
    nominal_period_days,
    normalize_frequency,
    resolve_next_occurrence,
)


class TestNormalizeFrequency:
    """Test frequency tag normalization."""

    def test_canonical_values(self):
        """Test canonical tags map to their enum members."""
        assert normalize_frequency("monthly") is Frequency.MONTHLY
        assert normalize_frequency("once") is Frequency.ONCE
        assert normalize_frequency(Frequency.WEEKLY) is Frequency.WEEKLY

    def test_case_and_whitespace_are_ignored(self):
        """Test that tags are trimmed and lower-cased."""
        assert normalize_frequency("  Monthly ") is Frequency.MONTHLY
        assert normalize_frequency("QUARTERLY") is Frequency.QUARTERLY

    def test_aliases(self):
        """Test alternative spellings."""
        assert normalize_frequency("bi-weekly") is Frequency.BIWEEKLY
        assert normalize_frequency("bi weekly") is Frequency.BIWEEKLY
        assert normalize_frequency("yearly") is Frequency.ANNUALLY
        assert normalize_frequency("annual") is Frequency.ANNUALLY
        assert normalize_frequency("semi-annually") is Frequency.SEMIANNUALLY

    def test_unknown_and_empty(self):
        """Test that unknown or empty values normalize to None."""
        assert normalize_frequency("fortnightly") is None
        assert normalize_frequency("") is None
        assert normalize_frequency(None) is None
        assert normalize_frequency(7) is None

    def test_is_recurring(self):
        """Test that only 'once' is non-recurring."""
        assert not Frequency.ONCE.is_recurring
        assert all(f.is_recurring for f in Frequency if f is not Frequency.ONCE)


class TestAddPeriods:
    """Test calendar period arithmetic."""

    def test_day_based_cadences(self):
        """Test daily, weekly and biweekly steps."""
        start = date(2026, 10, 19)
        assert add_periods(start, Frequency.DAILY) == date(2026, 10, 20)
        assert add_periods(start, Frequency.WEEKLY) == date(2026, 10, 26)
        assert add_periods(start, Frequency.BIWEEKLY, count=2) == date(2026, 11, 16)

    def test_month_end_is_clamped(self):
        """Test Jan 31 + 1 month lands on the last day of February."""
        assert add_periods(date(2026, 1, 31), Frequency.MONTHLY) == date(2026, 2, 28)

    def test_anchor_day_is_restored(self):
        """Test that the anchor day survives a short month."""
        assert add_periods(
            date(2026, 1, 31), Frequency.MONTHLY, count=2, anchor_day=31
        ) == date(2026, 3, 31)
        assert add_periods(
            date(2026, 2, 28), Frequency.MONTHLY, anchor_day=31
        ) == date(2026, 3, 31)

    def test_quarterly_semiannual_annual(self):
        """Test multi-month cadences."""
        start = date(2026, 10, 19)
        assert add_periods(start, Frequency.QUARTERLY) == date(2027, 1, 19)
        assert add_periods(start, Frequency.SEMIANNUALLY) == date(2027, 4, 19)
        assert add_periods(start, Frequency.ANNUALLY) == date(2027, 10, 19)

    def test_leap_day_annual(self):
        """Test Feb 29 + 1 year is Feb 28."""
        assert add_periods(date(2024, 2, 29), Frequency.ANNUALLY) == date(2025, 2, 28)

    def test_once_has_no_increment(self):
        """Test that 'once' cannot be advanced."""
        with pytest.raises(ValueError):
            add_periods(date(2026, 10, 19), Frequency.ONCE)

    def test_nominal_period_days(self):
        """Test nominal lengths used for forced steps."""
        assert nominal_period_days(Frequency.WEEKLY) == 7
        assert nominal_period_days(Frequency.MONTHLY) == 30
        assert nominal_period_days(None) == 1


class TestResolveNextOccurrence:
    """Test next-occurrence resolution."""

    def test_future_date_is_unchanged(self, now):
        """Test that a date after now is returned as is."""
        result = resolve_next_occurrence(date(2026, 10, 25), "monthly", now)

        assert result.date == date(2026, 10, 25)
        assert result.resolved
        assert result.iterations == 0

    def test_result_is_strictly_after_now(self, now):
        """Test that a date equal to now advances one period."""
        assert next_occurrence(now, "weekly", now) == date(2026, 10, 26)

    def test_stale_date_is_fast_forwarded(self, now):
        """Test advancing a stale monthly date."""
        result = resolve_next_occurrence(date(2026, 9, 19), "monthly", now)

        assert result.date == date(2026, 11, 19)
        assert result.resolved
        assert result.iterations == 1

    def test_daily_fast_forward(self, now):
        """Test advancing a stale daily date."""
        assert next_occurrence(date(2026, 10, 1), "daily", now) == date(2026, 10, 20)

    def test_iteration_ceiling_falls_back_to_tomorrow(self, now):
        """Test that very stale dates fall back to the day after now."""
        result = resolve_next_occurrence(date(2020, 1, 1), "weekly", now)

        assert result.date == date(2026, 10, 20)
        assert not result.resolved
        assert result.iterations == 100

    def test_higher_ceiling_resolves(self, now):
        """Test that a larger ceiling reaches the real next occurrence."""
        result = resolve_next_occurrence(
            date(2020, 1, 1), "monthly", now, max_iterations=200
        )

        assert result.resolved
        assert result.date == date(2026, 11, 1)

    def test_unknown_frequency_returns_original(self, now, caplog):
        """Test that unknown frequencies leave the date unchanged."""
        with caplog.at_level(logging.WARNING, logger="cashcast.models.recurrence"):
            result = resolve_next_occurrence(date(2026, 9, 1), "fortnightly", now)

        assert result.date == date(2026, 9, 1)
        assert result.iterations == 0
        assert "Unrecognized frequency 'fortnightly'" in caplog.text

    def test_once_returns_original(self, now, caplog):
        """Test that one-time records are not advanced and not warned about."""
        with caplog.at_level(logging.WARNING, logger="cashcast.models.recurrence"):
            assert next_occurrence(date(2026, 9, 1), "once", now) == date(2026, 9, 1)

        assert caplog.records == []

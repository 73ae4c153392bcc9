"""
Tests for forecast summaries, monthly breakdowns, chart periods and bill lists.
"""

from datetime import date

import pytest

from cashcast.models.forecast_engine import generate_forecast
from cashcast.models.reducers import (
    chart_periods,
    choose_interval,
    merge_scenario_breakdown,
    monthly_breakdown,
    overdue_bills,
    summarize_forecast,
    upcoming_bills,
)


@pytest.fixture
def ledger(now, make_income, make_bill):
    """Balance 1000, income +500 on Oct 25, bill -200 on Nov 1, end marker Nov 18."""
    return generate_forecast(
        1000,
        incomes=[make_income(amount=500)],
        bills=[make_bill(amount=200)],
        horizon_days=30,
        now=now,
    ).items


class TestSummarizeForecast:
    """Test forecast summaries."""

    def test_summary(self, ledger, now):
        """Test projections for a simple ledger."""
        summary = summarize_forecast(ledger)

        assert summary.current_available == 1000
        assert summary.projected_income == 500
        assert summary.projected_expenses == 200
        assert summary.projected_available == 1300
        assert summary.lowest_balance == 1000
        assert summary.lowest_balance_date == now
        assert summary.ending_balance == 1300

    def test_lowest_balance_dip(self, now, make_income, make_bill):
        """Test that the lowest point of the balance is reported."""
        items = generate_forecast(
            1000,
            incomes=[make_income(amount=2000, frequency=None)],
            bills=[make_bill(amount=1500, when="2026-10-20")],
            horizon_days=30,
            now=now,
        ).items
        summary = summarize_forecast(items)

        assert summary.lowest_balance == -500
        assert summary.lowest_balance_date == date(2026, 10, 20)

    def test_empty_ledger(self):
        """Test summarizing an empty ledger."""
        summary = summarize_forecast([])

        assert summary.current_available == 0
        assert summary.lowest_balance_date is None


class TestMonthlyBreakdown:
    """Test calendar-month buckets."""

    def test_twelve_months(self, ledger, now):
        """Test labels and totals of the monthly breakdown."""
        months = monthly_breakdown(ledger, now)

        assert len(months) == 12
        assert months[0].month == "Oct 2026"
        assert months[-1].month == "Sep 2027"
        assert months[0].income == 500
        assert months[0].net_cash_flow == 500
        assert months[1].expenses == 200
        assert months[1].net_cash_flow == -200
        assert months[2].net_cash_flow == 0

    def test_merge_scenario(self, ledger, now, make_income, make_bill):
        """Test adding scenario columns to the baseline months."""
        baseline_months = monthly_breakdown(ledger, now, months=3)
        scenario_items = generate_forecast(
            1000,
            incomes=[make_income(amount=600)],
            bills=[make_bill(amount=200)],
            horizon_days=30,
            now=now,
        ).items

        merged = merge_scenario_breakdown(baseline_months, scenario_items)

        assert merged[0].income == 500
        assert merged[0].scenario_income == 600
        assert merged[1].scenario_expenses == 200
        assert merged[1].scenario_net_cash_flow == -200
        assert merged[2].scenario_net_cash_flow == 0
        assert baseline_months[0].scenario_income is None


class TestChartPeriods:
    """Test chart period bucketing."""

    def test_weekly_periods_carry_balance(self, ledger):
        """Test that empty periods carry the previous balance forward."""
        periods = chart_periods(ledger, interval_days=7)

        assert len(periods) == 5
        assert [p.running_balance for p in periods] == [1500, 1300, 1300, 1300, 1300]
        assert periods[0].start == date(2026, 10, 19)
        assert periods[0].end == date(2026, 10, 25)
        assert periods[0].label == "Oct 19"
        assert [t.kind for t in periods[0].transactions] == ["income"]
        assert periods[4].transactions == []

    def test_transactions_per_period_limited(self, now, make_income):
        """Test that at most ten transactions are kept per period."""
        incomes = [
            make_income(id=f"i{n}", when="2026-10-20", frequency=None, amount=10)
            for n in range(12)
        ]
        items = generate_forecast(0, incomes=incomes, horizon_days=30, now=now).items

        first = chart_periods(items, interval_days=7)[0]

        assert len(first.transactions) == 10
        assert first.transaction_count == 12
        assert first.running_balance == 120

    def test_automatic_interval(self, ledger):
        """Test that the automatic interval yields daily points for a month."""
        periods = chart_periods(ledger)

        assert len(periods) == 31

    def test_empty(self):
        """Test that an empty ledger has no periods."""
        assert chart_periods([]) == []

    @pytest.mark.parametrize(
        "total_days,base,expected", [(0, 1, 1), (30, 1, 1), (90, 3, 3), (600, 1, 20)]
    )
    def test_choose_interval(self, total_days, base, expected):
        """Test interval selection for 10 to 30 points."""
        assert choose_interval(total_days, base) == expected


class TestBillLists:
    """Test upcoming and overdue bills."""

    @pytest.fixture
    def bills(self, make_bill):
        return [
            make_bill(id="later", when="2026-10-30"),
            make_bill(id="soon", when="2026-10-20"),
            make_bill(id="paid", when="2026-10-22", is_paid=True),
            make_bill(id="late", when="2026-10-10"),
            {"id": "broken", "amount": "n/a", "dueDate": "2026-10-21"},
        ]

    def test_upcoming_bills(self, bills, now):
        """Test unpaid bills due within a week."""
        assert [b.id for b in upcoming_bills(bills, now)] == ["soon"]
        assert [b.id for b in upcoming_bills(bills, now, days=14)] == ["soon", "later"]

    def test_overdue_bills(self, bills, now):
        """Test unpaid bills past their due date."""
        assert [b.id for b in overdue_bills(bills, now)] == ["late"]

"""
Reductions of a forecast ledger into the figures a dashboard displays.

This module provides the headline summary (projected income, expenses and
available balance), the twelve-month breakdown with optional scenario columns,
chart periods with a carried-forward running balance, and the upcoming and
overdue bill lists.
"""

import math
from datetime import date, timedelta
from typing import Any, Iterable, List, Optional, Tuple

import numpy as np
from dateutil.relativedelta import relativedelta
from numpy.typing import NDArray
from pydantic import BaseModel, Field

from .formatting import format_date
from .ledger import ForecastItem
from .records import BillSource, parse_source

MAX_TRANSACTIONS_PER_PERIOD = 10
MIN_CHART_POINTS = 10
MAX_CHART_POINTS = 30

_OUTFLOW_KINDS = ("bill", "expense")


class ForecastSummary(BaseModel):
    """Headline figures for a forecast ledger."""

    current_available: float = Field(..., description="Starting balance")
    projected_income: float = Field(..., ge=0, description="Sum of income items")
    projected_expenses: float = Field(
        ..., ge=0, description="Sum of bill and expense outflows"
    )
    projected_available: float = Field(
        ..., description="Starting balance plus income minus expenses"
    )
    lowest_balance: float = Field(..., description="Lowest running balance")
    lowest_balance_date: Optional[date] = Field(
        default=None, description="First date the lowest balance is reached"
    )
    ending_balance: float = Field(..., description="Running balance of the last item")


class MonthlyForecast(BaseModel):
    """Income and spending of one calendar month."""

    month: str = Field(..., description="Display label, e.g. 'Oct 2026'")
    start: date = Field(..., description="First day of the month")
    income: float = 0.0
    expenses: float = 0.0
    net_cash_flow: float = 0.0
    scenario_income: Optional[float] = None
    scenario_expenses: Optional[float] = None
    scenario_net_cash_flow: Optional[float] = None


class ChartPeriod(BaseModel):
    """One point of the balance chart."""

    start: date
    end: date
    label: str
    running_balance: float
    transactions: List[ForecastItem] = Field(default_factory=list)
    transaction_count: int = Field(default=0, ge=0)


def summarize_forecast(items: List[ForecastItem]) -> ForecastSummary:
    """
    Summarize a ledger.

    Args:
        items: Date-ordered ledger from the forecast engine

    Returns:
        ForecastSummary with projections and the lowest point of the balance
    """
    current = next((item.amount for item in items if item.kind == "balance"), 0.0)
    income = sum(item.amount for item in items if item.kind == "income")
    expenses = sum(abs(item.amount) for item in items if item.kind in _OUTFLOW_KINDS)

    balances = np.array(
        [
            item.running_balance if item.running_balance is not None else np.nan
            for item in items
        ],
        dtype=np.float64,
    )
    if balances.size == 0 or np.all(np.isnan(balances)):
        lowest, lowest_date, ending = current, None, current
    else:
        idx = int(np.nanargmin(balances))
        lowest = float(balances[idx])
        lowest_date = items[idx].date
        finite = balances[~np.isnan(balances)]
        ending = float(finite[-1])

    return ForecastSummary(
        current_available=current,
        projected_income=abs(income),
        projected_expenses=expenses,
        projected_available=current + abs(income) - expenses,
        lowest_balance=lowest,
        lowest_balance_date=lowest_date,
        ending_balance=ending,
    )


def _month_key(value: date) -> Tuple[int, int]:
    return value.year, value.month


def monthly_breakdown(
    items: List[ForecastItem], now: date, months: int = 12
) -> List[MonthlyForecast]:
    """Calendar-month totals for ``months`` months starting with the month of ``now``."""
    first = now.replace(day=1)
    buckets = {}
    for offset in range(max(months, 0)):
        start = first + relativedelta(months=offset)
        buckets[_month_key(start)] = MonthlyForecast(
            month=format_date(start, "month"), start=start
        )

    for item in items:
        bucket = buckets.get(_month_key(item.date))
        if bucket is None:
            continue
        if item.kind == "income":
            bucket.income += item.amount
        elif item.kind in _OUTFLOW_KINDS:
            bucket.expenses += abs(item.amount)
        bucket.net_cash_flow = bucket.income - bucket.expenses

    return list(buckets.values())


def merge_scenario_breakdown(
    baseline_months: List[MonthlyForecast], scenario_items: List[ForecastItem]
) -> List[MonthlyForecast]:
    """
    Add scenario income, expenses and net cash flow to a baseline breakdown.

    Scenario items outside the baseline months are ignored. The baseline
    entries are copied, not modified.
    """
    merged = [
        month.model_copy(
            update={
                "scenario_income": 0.0,
                "scenario_expenses": 0.0,
                "scenario_net_cash_flow": 0.0,
            }
        )
        for month in baseline_months
    ]
    by_key = {_month_key(month.start): month for month in merged}

    for item in scenario_items:
        month = by_key.get(_month_key(item.date))
        if month is None:
            continue
        if item.kind == "income":
            month.scenario_income += item.amount
        elif item.kind in _OUTFLOW_KINDS:
            month.scenario_expenses += abs(item.amount)

    for month in merged:
        month.scenario_net_cash_flow = month.scenario_income - month.scenario_expenses
    return merged


def choose_interval(total_days: int, base_interval: int = 1) -> int:
    """Period length in days giving between 10 and 30 chart points."""
    if total_days <= 0:
        return 1
    base = max(base_interval, 1)
    target = min(max(total_days / base, MIN_CHART_POINTS), MAX_CHART_POINTS)
    return max(1, math.ceil(total_days / target))


def chart_periods(
    items: List[ForecastItem], interval_days: Optional[int] = None
) -> List[ChartPeriod]:
    """
    Group a ledger into fixed-length display periods.

    Each period carries the running balance of its last item, or the balance
    carried forward from earlier periods when it has no items. At most ten
    transactions are kept per period; ``transaction_count`` has the full count.

    Args:
        items: Date-ordered ledger from the forecast engine
        interval_days: Period length (chosen automatically when None)

    Returns:
        List of ChartPeriod objects covering the ledger's date range
    """
    if not items:
        return []

    origin = items[0].date
    offsets: NDArray[np.int64] = np.array(
        [(item.date - origin).days for item in items], dtype=np.int64
    )
    total_days = int(offsets.max())
    interval = interval_days if interval_days and interval_days > 0 else None
    if interval is None:
        interval = choose_interval(total_days)

    period_index = offsets // interval
    n_periods = int(period_index.max()) + 1

    running = np.array(
        [
            item.running_balance if item.running_balance is not None else np.nan
            for item in items
        ],
        dtype=np.float64,
    )
    # forward-fill missing balances so every position has one
    valid = ~np.isnan(running)
    if not valid.any():
        running[:] = 0.0
    else:
        fill_idx = np.where(valid, np.arange(running.size), 0)
        np.maximum.accumulate(fill_idx, out=fill_idx)
        running = running[fill_idx]
        running[np.isnan(running)] = 0.0

    # index of the last ledger item at or before the end of each period
    last_item = (
        np.searchsorted(period_index, np.arange(n_periods, dtype=np.int64), side="right")
        - 1
    )

    periods: List[ChartPeriod] = []
    for p in range(n_periods):
        start = origin + timedelta(days=p * interval)
        in_period = [
            items[i]
            for i in np.flatnonzero(period_index == p)
            if items[i].kind not in ("balance", "marker")
        ]
        periods.append(
            ChartPeriod(
                start=start,
                end=start + timedelta(days=interval - 1),
                label=format_date(start),
                running_balance=float(running[last_item[p]]),
                transactions=in_period[:MAX_TRANSACTIONS_PER_PERIOD],
                transaction_count=len(in_period),
            )
        )
    return periods


def _unpaid_bills(bills: Iterable[Any]) -> List[BillSource]:
    unpaid = []
    for record in bills or []:
        bill, rejected = parse_source(record, "bill")
        if rejected is None and not bill.is_paid:
            unpaid.append(bill)
    return unpaid


def upcoming_bills(bills: Iterable[Any], now: date, days: int = 7) -> List[BillSource]:
    """Unpaid bills due between ``now`` and ``now + days`` inclusive, soonest first."""
    window_end = now + timedelta(days=days)
    due = [bill for bill in _unpaid_bills(bills) if now <= bill.anchor_date <= window_end]
    return sorted(due, key=lambda bill: bill.anchor_date)


def overdue_bills(bills: Iterable[Any], now: date) -> List[BillSource]:
    """Unpaid bills whose due date is before ``now``, oldest first."""
    overdue = [bill for bill in _unpaid_bills(bills) if bill.anchor_date < now]
    return sorted(overdue, key=lambda bill: bill.anchor_date)

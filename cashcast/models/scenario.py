"""
What-if scenarios layered over a baseline forecast.

A scenario is a set of transformations (percentage changes to income and
spending, a recurring savings commitment, a one-off unexpected expense)
applied to copies of the baseline records before the forecast engine is re-run.
The baseline records themselves are never modified.
"""

import copy
import logging
from datetime import date, timedelta
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from .forecast_engine import CashFlowForecaster, ForecastLimits
from .ledger import ForecastItem, ForecastResult
from .records import BillSource, ExpenseSource, parse_source

logger = logging.getLogger(__name__)

UNEXPECTED_EXPENSE_LEAD_DAYS = 14


class BaselineInputs(BaseModel):
    """The records and settings a baseline forecast is generated from."""

    current_balance: Any = Field(default=0.0, description="Balance at 'now'")
    incomes: List[Any] = Field(default_factory=list, description="Income records")
    bills: List[Any] = Field(default_factory=list, description="Bill records")
    expenses: List[Any] = Field(default_factory=list, description="Expense records")
    adjustments: List[Any] = Field(
        default_factory=list, description="Balance adjustments"
    )
    horizon_days: Optional[int] = Field(
        default=None, description="Forecast horizon (engine default when None)"
    )


class ScenarioAdjustment(BaseModel):
    """What-if changes applied on top of the baseline."""

    name: str = Field(default="Scenario", description="Scenario label")
    income_adjustment_pct: float = Field(
        default=0.0, ge=-100, le=1000, description="Percent change to every income"
    )
    expense_adjustment_pct: float = Field(
        default=0.0,
        ge=-100,
        le=1000,
        description="Percent change to every bill and expense",
    )
    monthly_savings: float = Field(
        default=0.0, ge=0, description="Recurring monthly amount set aside"
    )
    one_time_expense: float = Field(
        default=0.0, ge=0, description="Unexpected one-off expense amount"
    )
    one_time_expense_date: Optional[date] = Field(
        default=None, description="Date of the unexpected expense (now + 14 days)"
    )

    @property
    def is_neutral(self) -> bool:
        """True when applying the scenario cannot change the forecast."""
        return (
            self.income_adjustment_pct == 0
            and self.expense_adjustment_pct == 0
            and self.monthly_savings == 0
            and self.one_time_expense == 0
        )


class ScenarioComparison(BaseModel):
    """Baseline and scenario forecasts generated under identical conditions."""

    name: str
    baseline: ForecastResult
    scenario: ForecastResult

    @property
    def ending_balance_delta(self) -> float:
        return self.scenario.ending_balance - self.baseline.ending_balance


def _scale(records: List[Any], kind: str, factor: float) -> List[Any]:
    scaled = []
    for record in records:
        source, rejected = parse_source(record, kind)
        if rejected is not None:
            # the scenario run reports it like the baseline run does
            scaled.append(copy.deepcopy(record))
            continue
        scaled.append(
            source.model_copy(update={"amount": source.amount * factor}, deep=True)
        )
    return scaled


def build_scenario_inputs(
    baseline: BaselineInputs, adjustment: ScenarioAdjustment, now: date
) -> BaselineInputs:
    """
    Apply a scenario to deep copies of the baseline records.

    Args:
        baseline: Baseline records (left untouched)
        adjustment: Scenario transformations
        now: Reference date used for synthesized records

    Returns:
        New BaselineInputs holding the transformed copies
    """
    income_factor = 1 + adjustment.income_adjustment_pct / 100
    expense_factor = 1 + adjustment.expense_adjustment_pct / 100

    incomes = _scale(baseline.incomes, "income", income_factor)
    bills = _scale(baseline.bills, "bill", expense_factor)
    expenses = _scale(baseline.expenses, "expense", expense_factor)

    if adjustment.monthly_savings > 0:
        bills.append(
            BillSource(
                id="scenario-savings",
                name="Monthly Savings",
                amount=adjustment.monthly_savings,
                anchor_date=now,
                frequency="monthly",
                is_recurring=True,
                category="Savings",
            )
        )

    if adjustment.one_time_expense > 0:
        expense_date = adjustment.one_time_expense_date or now + timedelta(
            days=UNEXPECTED_EXPENSE_LEAD_DAYS
        )
        expenses.append(
            ExpenseSource(
                id="scenario-unexpected-expense",
                name="Unexpected Expense",
                amount=adjustment.one_time_expense,
                anchor_date=expense_date,
                category="Miscellaneous",
                is_recurring=False,
            )
        )

    logger.debug(
        f"Scenario '{adjustment.name}': income x{income_factor:.3f}, "
        f"expenses x{expense_factor:.3f}, savings {adjustment.monthly_savings}, "
        f"one-time {adjustment.one_time_expense}"
    )
    return BaselineInputs(
        current_balance=copy.deepcopy(baseline.current_balance),
        incomes=incomes,
        bills=bills,
        expenses=expenses,
        adjustments=copy.deepcopy(baseline.adjustments),
        horizon_days=baseline.horizon_days,
    )


def _run(
    inputs: BaselineInputs, now: date, limits: Optional[ForecastLimits]
) -> ForecastResult:
    forecaster = CashFlowForecaster(limits=limits or ForecastLimits(), now=now)
    return forecaster.run(
        inputs.current_balance,
        incomes=inputs.incomes,
        bills=inputs.bills,
        expenses=inputs.expenses,
        adjustments=inputs.adjustments,
        horizon_days=inputs.horizon_days,
    )


def apply_scenario(
    baseline: BaselineInputs,
    adjustment: ScenarioAdjustment,
    now: Optional[date] = None,
    limits: Optional[ForecastLimits] = None,
) -> List[ForecastItem]:
    """Forecast ledger for the baseline with the scenario applied."""
    today = now or date.today()
    return _run(build_scenario_inputs(baseline, adjustment, today), today, limits).items


def compare_scenario(
    baseline: BaselineInputs,
    adjustment: ScenarioAdjustment,
    now: Optional[date] = None,
    limits: Optional[ForecastLimits] = None,
) -> ScenarioComparison:
    """
    Forecast the baseline and the scenario side by side.

    Both runs share the same starting balance, horizon and reference date so
    the two ledgers differ only by the scenario's transformations.
    """
    today = now or date.today()
    baseline_result = _run(baseline, today, limits)
    scenario_result = _run(build_scenario_inputs(baseline, adjustment, today), today, limits)
    logger.info(
        f"Scenario '{adjustment.name}' ends at {scenario_result.ending_balance:.2f} "
        f"vs baseline {baseline_result.ending_balance:.2f}"
    )
    return ScenarioComparison(
        name=adjustment.name, baseline=baseline_result, scenario=scenario_result
    )

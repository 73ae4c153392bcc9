"""Data models and engines for cash-flow forecasting."""

from .recurrence import (
    Frequency,
    NextOccurrence,
    add_periods,
    next_occurrence,
    normalize_frequency,
    resolve_next_occurrence,
)
from .records import (
    BalanceAdjustment,
    BillSource,
    ExpenseSource,
    FinancialSource,
    IncomeSource,
    SourceRecord,
    parse_adjustment,
    parse_source,
)
from .ledger import (
    DiagnosticCode,
    ForecastDiagnostic,
    ForecastItem,
    ForecastResult,
)
from .occurrences import Expansion, expand, expand_source, lookahead
from .forecast_engine import (
    CashFlowForecaster,
    ForecastLimits,
    create_forecaster_from_settings,
    forecast,
    generate_forecast,
)
from .scenario import (
    BaselineInputs,
    ScenarioAdjustment,
    ScenarioComparison,
    apply_scenario,
    build_scenario_inputs,
    compare_scenario,
)
from .reducers import (
    ChartPeriod,
    ForecastSummary,
    MonthlyForecast,
    chart_periods,
    merge_scenario_breakdown,
    monthly_breakdown,
    overdue_bills,
    summarize_forecast,
    upcoming_bills,
)
from .formatting import (
    CurrencyFormatter,
    ForecastWindow,
    days_until,
    format_currency,
    format_date,
)

__all__ = [
    "Frequency",
    "NextOccurrence",
    "add_periods",
    "next_occurrence",
    "normalize_frequency",
    "resolve_next_occurrence",
    "BalanceAdjustment",
    "BillSource",
    "ExpenseSource",
    "FinancialSource",
    "IncomeSource",
    "SourceRecord",
    "parse_adjustment",
    "parse_source",
    "DiagnosticCode",
    "ForecastDiagnostic",
    "ForecastItem",
    "ForecastResult",
    "Expansion",
    "expand",
    "expand_source",
    "lookahead",
    "CashFlowForecaster",
    "ForecastLimits",
    "create_forecaster_from_settings",
    "forecast",
    "generate_forecast",
    "BaselineInputs",
    "ScenarioAdjustment",
    "ScenarioComparison",
    "apply_scenario",
    "build_scenario_inputs",
    "compare_scenario",
    "ChartPeriod",
    "ForecastSummary",
    "MonthlyForecast",
    "chart_periods",
    "merge_scenario_breakdown",
    "monthly_breakdown",
    "overdue_bills",
    "summarize_forecast",
    "upcoming_bills",
    "CurrencyFormatter",
    "ForecastWindow",
    "days_until",
    "format_currency",
    "format_date",
]

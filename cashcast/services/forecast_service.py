"""
Forecast service for turning API payloads into forecasts.

This service validates request bodies, runs the forecast engine and the
scenario overlay, and reduces the resulting ledgers into the figures the
dashboard displays.
"""

import logging
from datetime import date
from typing import Any, Dict, Mapping, Optional, Tuple

from cashcast.config import Settings, get_global_settings
from cashcast.models.forecast_engine import CashFlowForecaster, ForecastLimits
from cashcast.models.records import coerce_date
from cashcast.models.reducers import (
    chart_periods,
    merge_scenario_breakdown,
    monthly_breakdown,
    overdue_bills,
    summarize_forecast,
    upcoming_bills,
)
from cashcast.models.scenario import BaselineInputs, ScenarioAdjustment, compare_scenario

logger = logging.getLogger(__name__)


class ForecastService:
    """Service for running forecasts and scenarios from request payloads."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        """Initialize the forecast service.

        Args:
            settings: Application settings (global settings when omitted)
        """
        self.logger = logging.getLogger(__name__)
        self.settings = settings or get_global_settings()
        self.limits = ForecastLimits.from_settings(self.settings)

    def parse_request(self, payload: Mapping[str, Any]) -> Tuple[BaselineInputs, date]:
        """Validate a forecast request body.

        Args:
            payload: Decoded JSON body

        Returns:
            Baseline inputs and the reference date

        Raises:
            ValueError: If the body is not an object or a field is malformed
        """
        if not isinstance(payload, Mapping):
            raise ValueError("Request body must be a JSON object")

        as_of = self._parse_as_of(payload.get("as_of"))
        baseline = BaselineInputs(
            current_balance=payload.get("current_balance", 0),
            incomes=payload.get("incomes") or [],
            bills=payload.get("bills") or [],
            expenses=payload.get("expenses") or [],
            adjustments=payload.get("adjustments") or [],
            horizon_days=payload.get("horizon_days"),
        )
        return baseline, as_of

    def run_forecast(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Run a baseline forecast.

        Args:
            payload: Decoded JSON body

        Returns:
            Dictionary with the ledger, summary, monthly breakdown, chart
            periods and bill lists
        """
        baseline, as_of = self.parse_request(payload)
        self.logger.info(f"Running forecast as of {as_of}")

        forecaster = CashFlowForecaster(limits=self.limits, now=as_of)
        result = forecaster.run(
            baseline.current_balance,
            incomes=baseline.incomes,
            bills=baseline.bills,
            expenses=baseline.expenses,
            adjustments=baseline.adjustments,
            horizon_days=baseline.horizon_days,
        )
        if result.degraded:
            self.logger.warning(f"Forecast as of {as_of} returned a degraded ledger")

        return {
            "forecast": result.to_dict(),
            "summary": summarize_forecast(result.items).model_dump(mode="json"),
            "monthly_breakdown": [
                month.model_dump(mode="json")
                for month in monthly_breakdown(result.items, as_of)
            ],
            "chart": [
                period.model_dump(mode="json") for period in chart_periods(result.items)
            ],
            "upcoming_bills": [
                bill.model_dump(mode="json")
                for bill in upcoming_bills(baseline.bills, as_of)
            ],
            "overdue_bills": [
                bill.model_dump(mode="json")
                for bill in overdue_bills(baseline.bills, as_of)
            ],
        }

    def run_scenario(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Run a baseline and a what-if scenario side by side.

        Args:
            payload: Decoded JSON body with a ``scenario`` object

        Returns:
            Dictionary with both ledgers, both summaries and the merged
            monthly breakdown
        """
        baseline, as_of = self.parse_request(payload)
        scenario_data = payload.get("scenario") or {}
        if not isinstance(scenario_data, Mapping):
            raise ValueError("scenario must be a JSON object")
        adjustment = ScenarioAdjustment.model_validate(dict(scenario_data))

        self.logger.info(f"Running scenario '{adjustment.name}' as of {as_of}")
        comparison = compare_scenario(baseline, adjustment, now=as_of, limits=self.limits)

        baseline_months = monthly_breakdown(comparison.baseline.items, as_of)
        merged = merge_scenario_breakdown(baseline_months, comparison.scenario.items)

        return {
            "name": comparison.name,
            "baseline": comparison.baseline.to_dict(),
            "scenario": comparison.scenario.to_dict(),
            "baseline_summary": summarize_forecast(comparison.baseline.items).model_dump(
                mode="json"
            ),
            "scenario_summary": summarize_forecast(comparison.scenario.items).model_dump(
                mode="json"
            ),
            "ending_balance_delta": comparison.ending_balance_delta,
            "monthly_breakdown": [month.model_dump(mode="json") for month in merged],
        }

    def _parse_as_of(self, value: Any) -> date:
        if value is None:
            return date.today()
        parsed = coerce_date(value)
        if not isinstance(parsed, date):
            raise ValueError(f"Invalid as_of date: {value!r}")
        return parsed

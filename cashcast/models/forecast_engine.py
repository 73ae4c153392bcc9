"""
Cash-flow forecast engine.

This module merges the expanded occurrences of income sources, bills and
expenses with one-off balance adjustments into a single date-ordered ledger and
computes its running balance. Every stage is bounded (horizon, records per
collection, working items, ledger items) so the cost of a forecast does not
depend on how much history the inputs carry.

The engine is a pure function of its inputs and the reference date. It never
raises to the caller: bad records are dropped with a diagnostic and an
unexpected failure yields a one-item ledger holding the starting balance.
"""

import logging
import math
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

from pydantic import BaseModel, Field, model_validator

from .formatting import ForecastWindow, format_currency
from .ledger import (
    KIND_ORDER,
    DiagnosticCode,
    ForecastDiagnostic,
    ForecastItem,
    ForecastResult,
)
from .occurrences import expand_source, lookahead
from .records import BillSource, parse_adjustment, parse_source

if TYPE_CHECKING:
    from cashcast.config import Settings

logger = logging.getLogger(__name__)


class ForecastLimits(BaseModel):
    """Bounds that keep a forecast finite and cheap."""

    default_horizon_days: int = Field(
        default=90, gt=0, le=365, description="Horizon used when none is given"
    )
    max_horizon_days: int = Field(
        default=365, gt=0, le=365, description="Longest supported horizon"
    )
    max_records_per_collection: int = Field(
        default=200, gt=0, description="Upper cap on records read per collection"
    )
    records_per_horizon_day: int = Field(
        default=2, gt=0, description="Record cap scales with horizon length"
    )
    max_adjustments: int = Field(
        default=50, gt=0, description="Balance adjustments read per forecast"
    )
    max_working_items: int = Field(
        default=2000, gt=0, description="Upper cap on expanded items before sorting"
    )
    working_items_per_horizon_day: int = Field(
        default=10, gt=0, description="Working item cap scales with horizon length"
    )
    max_ledger_items: int = Field(
        default=365, gt=0, description="Maximum items in the returned ledger"
    )
    max_occurrences_per_source: int = Field(
        default=365, gt=0, description="Occurrence ceiling for one record"
    )
    short_horizon_days: int = Field(
        default=14, ge=0, description="Horizons up to this use next-occurrence lookahead"
    )
    max_recurrence_iterations: int = Field(
        default=100, gt=0, description="Fast-forward ceiling for stale dates"
    )
    include_markers: bool = Field(
        default=True, description="Add zero-amount mid-point and end markers"
    )

    @model_validator(mode="after")
    def validate_default_horizon(self):
        if self.default_horizon_days > self.max_horizon_days:
            raise ValueError("default_horizon_days must be <= max_horizon_days")
        return self

    def record_cap(self, horizon_days: int) -> int:
        return min(
            horizon_days * self.records_per_horizon_day,
            self.max_records_per_collection,
        )

    def working_cap(self, horizon_days: int) -> int:
        return min(
            horizon_days * self.working_items_per_horizon_day, self.max_working_items
        )

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ForecastLimits":
        """Build limits from application settings."""
        return cls(
            default_horizon_days=min(
                settings.forecast_default_horizon_days,
                settings.forecast_max_horizon_days,
            ),
            max_horizon_days=settings.forecast_max_horizon_days,
            max_ledger_items=settings.forecast_max_ledger_items,
            include_markers=settings.forecast_include_markers,
        )


def normalize_balance(value: Any) -> float:
    """Starting balance as a finite float; anything unusable becomes 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        balance = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return balance if math.isfinite(balance) else 0.0


def normalize_horizon(value: Any, limits: ForecastLimits) -> int:
    """Horizon in days, defaulted when missing/invalid and clamped to the maximum."""
    if isinstance(value, bool) or value is None:
        return limits.default_horizon_days
    try:
        days = float(value)
    except (TypeError, ValueError):
        return limits.default_horizon_days
    except OverflowError:
        # integers beyond float range
        return limits.max_horizon_days if value > 0 else limits.default_horizon_days
    if not math.isfinite(days) or days <= 0:
        return limits.default_horizon_days
    return max(1, min(int(days), limits.max_horizon_days))


def ledger_sort_key(item: ForecastItem):
    """Date, then kind (balance first, markers last), then category and id."""
    return (item.date, KIND_ORDER[item.kind], item.category.lower(), item.item_id)


def apply_running_balance(items: List[ForecastItem], opening_balance: float) -> None:
    """
    Stamp running balances onto date-ordered items in place.

    ``balance`` items reset the accumulator to their amount, ``marker`` items
    leave it unchanged and every other item adds its amount.
    """
    running = opening_balance
    for item in items:
        if item.kind == "balance":
            running = item.amount
        elif item.kind != "marker":
            running += item.amount
        item.running_balance = running


def _opening_item(balance: float, today: date) -> ForecastItem:
    return ForecastItem(
        item_id="initial-balance",
        date=today,
        amount=balance,
        category="balance",
        name="Current Balance",
        kind="balance",
        running_balance=balance,
        description="Starting balance",
    )


def _marker(item_id: str, name: str, when: date, balance: float) -> ForecastItem:
    return ForecastItem(
        item_id=item_id,
        date=when,
        amount=0.0,
        category="marker",
        name=name,
        kind="marker",
        running_balance=balance,
        description=f"{name} marker",
    )


def _record_id(record: Any) -> Optional[str]:
    value = getattr(record, "id", None)
    if value is None and isinstance(record, dict):
        value = record.get("id")
    return None if value is None else str(value)


class CashFlowForecaster(BaseModel):
    """Builds bounded cash-flow ledgers from financial records."""

    limits: ForecastLimits = Field(default_factory=ForecastLimits)
    now: Optional[date] = Field(
        default=None, description="Fixed reference date (defaults to today per run)"
    )

    def resolve_now(self, now: Optional[date] = None) -> date:
        """Reference date for one run, sampled once; unusable values mean today."""
        value = now or self.now or date.today()
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value[:10])
            except ValueError:
                logger.warning(f"Invalid reference date '{value}', using today")
                return date.today()
        logger.warning(f"Invalid reference date of type {type(value).__name__}, using today")
        return date.today()

    def run(
        self,
        current_balance: Any,
        incomes: Any = None,
        bills: Any = None,
        expenses: Any = None,
        adjustments: Any = None,
        horizon_days: Any = None,
        now: Optional[date] = None,
    ) -> ForecastResult:
        """
        Generate a forecast ledger.

        Args:
            current_balance: Balance at the reference date
            incomes: Income source records (models or mappings)
            bills: Bill records; paid bills are excluded
            expenses: Expense records
            adjustments: One-off balance adjustments
            horizon_days: Forecast length (defaults to 90, clamped to 365)
            now: Reference date for this run

        Returns:
            ForecastResult whose items start with the current balance
        """
        today = self.resolve_now(now)
        balance = 0.0
        horizon = self.limits.default_horizon_days

        try:
            balance = normalize_balance(current_balance)
            horizon = normalize_horizon(horizon_days, self.limits)
            return self._run(balance, incomes, bills, expenses, adjustments, horizon, today)
        except Exception as e:
            logger.error(f"Critical error generating forecast: {e}")
            return ForecastResult(
                items=[_opening_item(balance, today)],
                diagnostics=[
                    ForecastDiagnostic(
                        code=DiagnosticCode.ENGINE_FAILURE,
                        message=str(e) or type(e).__name__,
                    )
                ],
                current_balance=balance,
                horizon_days=horizon,
                as_of=today,
                degraded=True,
            )

    def _run(
        self,
        balance: float,
        incomes: Any,
        bills: Any,
        expenses: Any,
        adjustments: Any,
        horizon: int,
        today: date,
    ) -> ForecastResult:
        window = ForecastWindow(start=today, days=horizon)
        diagnostics: List[ForecastDiagnostic] = []
        working: List[ForecastItem] = []
        record_cap = self.limits.record_cap(horizon)
        working_cap = self.limits.working_cap(horizon)

        for kind, records in (("income", incomes), ("bill", bills), ("expense", expenses)):
            for record in self._bounded(records, record_cap, kind, diagnostics):
                self._collect_source(record, kind, window, working, working_cap, diagnostics)

        for record in self._bounded(
            adjustments, self.limits.max_adjustments, "adjustment", diagnostics
        ):
            self._collect_adjustment(record, window, working, working_cap, diagnostics)

        ledger = [_opening_item(balance, today)]
        if self.limits.include_markers:
            if horizon > 30:
                ledger.append(
                    _marker(
                        "mid-point-marker", "Forecast Mid-point", window.midpoint, balance
                    )
                )
            ledger.append(_marker("end-point-marker", "Forecast End", window.end, balance))
        ledger.extend(working)
        ledger.sort(key=ledger_sort_key)

        if len(ledger) > self.limits.max_ledger_items:
            overflow = len(ledger) - self.limits.max_ledger_items
            logger.warning(
                f"Forecast has {len(ledger)} items, keeping the first "
                f"{self.limits.max_ledger_items}"
            )
            diagnostics.append(
                ForecastDiagnostic(
                    code=DiagnosticCode.ITEM_LIMIT,
                    message=f"{overflow} items beyond the ledger cap were dropped",
                )
            )
            ledger = ledger[: self.limits.max_ledger_items]

        apply_running_balance(ledger, balance)
        logger.info(
            f"Generated forecast with {len(ledger)} items over {horizon} days "
            f"({len(diagnostics)} diagnostics)"
        )
        return ForecastResult(
            items=ledger,
            diagnostics=diagnostics,
            current_balance=balance,
            horizon_days=horizon,
            as_of=today,
        )

    def _bounded(
        self,
        records: Any,
        cap: int,
        kind: str,
        diagnostics: List[ForecastDiagnostic],
    ) -> Sequence[Any]:
        if records is None:
            return []
        if not isinstance(records, (list, tuple)):
            logger.warning(f"Ignoring {kind} collection of type {type(records).__name__}")
            diagnostics.append(
                ForecastDiagnostic(
                    record_kind=kind,
                    code=DiagnosticCode.INVALID_RECORD,
                    message=f"Expected a list of {kind} records",
                )
            )
            return []
        if len(records) > cap:
            logger.warning(
                f"Processing the first {cap} of {len(records)} {kind} records"
            )
            diagnostics.append(
                ForecastDiagnostic(
                    record_kind=kind,
                    code=DiagnosticCode.RECORD_LIMIT,
                    message=(
                        f"{len(records) - cap} {kind} records beyond the cap "
                        f"of {cap} were ignored"
                    ),
                )
            )
            return records[:cap]
        return records

    def _collect_source(
        self,
        record: Any,
        kind: str,
        window: ForecastWindow,
        working: List[ForecastItem],
        working_cap: int,
        diagnostics: List[ForecastDiagnostic],
    ) -> None:
        try:
            source, rejected = parse_source(record, kind)
            if rejected is not None:
                diagnostics.append(rejected)
                return
            if isinstance(source, BillSource) and source.is_paid:
                diagnostics.append(
                    ForecastDiagnostic(
                        record_id=source.id,
                        record_kind=kind,
                        code=DiagnosticCode.PAID_BILL,
                        message="Bill is already paid",
                    )
                )
                return
            if source.amount == 0:
                diagnostics.append(
                    ForecastDiagnostic(
                        record_id=source.id,
                        record_kind=kind,
                        code=DiagnosticCode.ZERO_AMOUNT,
                        message="Zero amount has no effect on the balance",
                    )
                )
                return

            if window.days <= self.limits.short_horizon_days:
                expansion = lookahead(
                    source,
                    window.days,
                    window.start,
                    max_iterations=self.limits.max_recurrence_iterations,
                )
            else:
                expansion = expand_source(
                    source,
                    window.days,
                    window.start,
                    max_occurrences=self.limits.max_occurrences_per_source,
                    max_iterations=self.limits.max_recurrence_iterations,
                )
            diagnostics.extend(expansion.diagnostics)

            for item in expansion.items:
                # no grace period for recent past one-shots: the current
                # balance already reflects them
                if not window.contains(item.date):
                    diagnostics.append(
                        ForecastDiagnostic(
                            record_id=source.id,
                            record_kind=kind,
                            code=DiagnosticCode.OUTSIDE_HORIZON,
                            message=f"{item.date} is outside {window.start}..{window.end}",
                        )
                    )
                    continue
                if not self._admit(item, working, working_cap, diagnostics):
                    break
        except Exception as e:
            logger.error(f"Error processing {kind} item {_record_id(record)}: {e}")
            diagnostics.append(
                ForecastDiagnostic(
                    record_id=_record_id(record),
                    record_kind=kind,
                    code=DiagnosticCode.PROCESSING_ERROR,
                    message=str(e),
                )
            )

    def _collect_adjustment(
        self,
        record: Any,
        window: ForecastWindow,
        working: List[ForecastItem],
        working_cap: int,
        diagnostics: List[ForecastDiagnostic],
    ) -> None:
        try:
            adjustment, rejected = parse_adjustment(record)
            if rejected is not None:
                diagnostics.append(rejected)
                return
            # past adjustments are part of the current balance, even recent ones
            if not window.contains(adjustment.date):
                diagnostics.append(
                    ForecastDiagnostic(
                        record_id=adjustment.id,
                        record_kind="adjustment",
                        code=DiagnosticCode.OUTSIDE_HORIZON,
                        message=f"{adjustment.date} is outside {window.start}..{window.end}",
                    )
                )
                return

            reason = adjustment.reason or "No reason provided"
            adjusted_by = format_currency(adjustment.amount)
            item = ForecastItem(
                item_id=f"adjustment-{adjustment.id}",
                source_id=adjustment.id,
                date=adjustment.date,
                amount=adjustment.amount,
                category="adjustment",
                name=adjustment.reason or "Balance Adjustment",
                kind="adjustment",
                description=f"Balance adjusted by {adjusted_by} - {reason}",
            )
            self._admit(item, working, working_cap, diagnostics)
        except Exception as e:
            logger.error(f"Error processing adjustment item {_record_id(record)}: {e}")
            diagnostics.append(
                ForecastDiagnostic(
                    record_id=_record_id(record),
                    record_kind="adjustment",
                    code=DiagnosticCode.PROCESSING_ERROR,
                    message=str(e),
                )
            )

    def _admit(
        self,
        item: ForecastItem,
        working: List[ForecastItem],
        working_cap: int,
        diagnostics: List[ForecastDiagnostic],
    ) -> bool:
        if len(working) >= working_cap:
            logger.warning(
                f"Maximum forecast items ({working_cap}) reached, skipping {item.item_id}"
            )
            diagnostics.append(
                ForecastDiagnostic(
                    record_id=item.source_id,
                    record_kind=item.kind,
                    code=DiagnosticCode.ITEM_LIMIT,
                    message=f"Working set cap of {working_cap} items reached",
                )
            )
            return False
        working.append(item)
        return True


def create_forecaster_from_settings(settings: "Settings") -> CashFlowForecaster:
    """Create a forecaster whose limits follow application settings."""
    return CashFlowForecaster(limits=ForecastLimits.from_settings(settings))


def generate_forecast(
    current_balance: Any,
    incomes: Any = None,
    bills: Any = None,
    expenses: Any = None,
    adjustments: Any = None,
    horizon_days: Any = None,
    now: Optional[date] = None,
    limits: Optional[ForecastLimits] = None,
) -> ForecastResult:
    """Run a forecast with default (or given) limits; see CashFlowForecaster.run."""
    forecaster = CashFlowForecaster(limits=limits or ForecastLimits())
    return forecaster.run(
        current_balance,
        incomes=incomes,
        bills=bills,
        expenses=expenses,
        adjustments=adjustments,
        horizon_days=horizon_days,
        now=now,
    )


def forecast(
    current_balance: Any,
    incomes: Any = None,
    bills: Any = None,
    expenses: Any = None,
    adjustments: Any = None,
    horizon_days: Any = None,
    now: Optional[date] = None,
) -> List[ForecastItem]:
    """The forecast ledger alone, for callers that do not need diagnostics."""
    return generate_forecast(
        current_balance, incomes, bills, expenses, adjustments, horizon_days, now
    ).items

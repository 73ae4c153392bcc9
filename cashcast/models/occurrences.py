"""
Occurrence expansion for income sources, bills and expenses.

Turns one source record into the concrete dated ledger entries it produces
inside a forecast horizon. Expansion is per record and never raises: invalid
records come back as diagnostics so sibling records are unaffected.
"""

import logging
from datetime import date, timedelta
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel, Field

from .ledger import DiagnosticCode, ForecastDiagnostic, ForecastItem
from .records import BillSource, ExpenseSource, FinancialSource, parse_source
from .recurrence import (
    DEFAULT_MAX_ITERATIONS,
    Frequency,
    add_periods,
    nominal_period_days,
    resolve_next_occurrence,
)

logger = logging.getLogger(__name__)

MAX_OCCURRENCES = 365


class Expansion(BaseModel):
    """Ledger entries produced from one record plus notes about the record."""

    items: List[ForecastItem] = Field(default_factory=list)
    diagnostics: List[ForecastDiagnostic] = Field(default_factory=list)


def _describe(source: FinancialSource, frequency: Optional[Frequency]) -> str:
    label = f"{source.name} ({source.category})"
    if isinstance(source, BillSource):
        label += " - Due"
        if source.auto_pay:
            label += " - AutoPay"
    if source.recurring and frequency is not None:
        return f"{label} ({frequency.value})"
    if isinstance(source, ExpenseSource):
        return f"{label} - One-time expense"
    return f"{label} - One-time"


def _build_item(
    source: FinancialSource, when: date, frequency: Optional[Frequency]
) -> ForecastItem:
    return ForecastItem(
        item_id=f"{source.kind}-{source.id}-{when.isoformat()}",
        source_id=source.id,
        date=when,
        amount=source.signed_amount(),
        category=source.category,
        name=source.name,
        kind=source.kind,
        description=_describe(source, frequency),
    )


def _note(
    source: FinancialSource, code: DiagnosticCode, message: str, dropped: bool
) -> ForecastDiagnostic:
    return ForecastDiagnostic(
        record_id=source.id,
        record_kind=source.kind,
        code=code,
        message=message,
        dropped=dropped,
    )


def _coerce(source: Any, kind: Optional[str]) -> Union[Expansion, FinancialSource]:
    if isinstance(source, FinancialSource) and kind in (None, source.kind):
        return source
    if kind is None and isinstance(source, Mapping):
        kind = source.get("kind")
    if kind not in ("income", "bill", "expense"):
        return Expansion(
            diagnostics=[
                ForecastDiagnostic(
                    record_kind=kind if isinstance(kind, str) else None,
                    code=DiagnosticCode.INVALID_RECORD,
                    message=f"Unknown record kind '{kind}'",
                )
            ]
        )
    parsed, diagnostic = parse_source(source, kind)
    if diagnostic is not None:
        logger.debug(f"Skipping invalid {kind} record: {diagnostic.message}")
        return Expansion(diagnostics=[diagnostic])
    return parsed


def _first_occurrence(
    source: FinancialSource,
    frequency: Frequency,
    now: date,
    max_iterations: int,
    diagnostics: List[ForecastDiagnostic],
) -> date:
    # Past anchors restart from "now" rather than replaying their history
    if source.anchor_date > now:
        return source.anchor_date

    result = resolve_next_occurrence(
        now, frequency, now, max_iterations=max_iterations, anchor_day=now.day
    )
    if not result.resolved:
        diagnostics.append(
            _note(
                source,
                DiagnosticCode.RECURRENCE_FALLBACK,
                f"Could not resolve '{frequency.value}' cadence, using {result.date}",
                dropped=False,
            )
        )
    return result.date


def _one_shot(source: FinancialSource, diagnostics: List[ForecastDiagnostic]) -> Expansion:
    if source.has_unknown_frequency:
        logger.warning(
            f"Unrecognized frequency '{source.frequency}' on {source.kind} "
            f"{source.id}, treating as one-time"
        )
        diagnostics.append(
            _note(
                source,
                DiagnosticCode.UNKNOWN_FREQUENCY,
                f"Unrecognized frequency '{source.frequency}', treated as one-time",
                dropped=False,
            )
        )
    item = _build_item(source, source.anchor_date, source.normalized_frequency)
    return Expansion(items=[item], diagnostics=diagnostics)


def expand_source(
    source: Any,
    horizon_days: int,
    now: date,
    kind: Optional[str] = None,
    max_occurrences: int = MAX_OCCURRENCES,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> Expansion:
    """
    Expand one record into its occurrences within ``now + horizon_days``.

    Non-recurring records (no frequency, ``once``, ``is_recurring=False`` or an
    unrecognized frequency) produce exactly one entry at their anchor date.
    Recurring records start at the anchor when it lies in the future, otherwise
    at the first period after ``now``, and are walked forward until the
    horizon, the record's end date or the occurrence ceiling
    ``min(horizon_days, max_occurrences)`` is reached. A valid recurring record
    that yields nothing inside a non-empty horizon gets one synthesized entry
    at the horizon start.

    Args:
        source: Source model or raw mapping
        horizon_days: Forecast horizon in days
        now: Reference date
        kind: income, bill or expense (required for raw mappings without a
            ``kind`` key)
        max_occurrences: Hard ceiling on occurrences per record
        max_iterations: Fast-forward ceiling passed to the recurrence calculator

    Returns:
        Expansion with the entries and any diagnostics
    """
    coerced = _coerce(source, kind)
    if isinstance(coerced, Expansion):
        return coerced
    record = coerced

    diagnostics: List[ForecastDiagnostic] = []
    if not record.recurring:
        return _one_shot(record, diagnostics)

    frequency = record.normalized_frequency
    window_end = now + timedelta(days=horizon_days)
    start = max(record.anchor_date, now)
    if record.end_date is not None and record.end_date < start:
        diagnostics.append(
            _note(
                record,
                DiagnosticCode.SOURCE_ENDED,
                f"Recurrence ended on {record.end_date}",
                dropped=True,
            )
        )
        return Expansion(diagnostics=diagnostics)

    first = _first_occurrence(record, frequency, now, max_iterations, diagnostics)
    anchor_day = start.day
    ceiling = max(0, min(horizon_days, max_occurrences))

    items: List[ForecastItem] = []
    current = first
    count = 0
    while current <= window_end and count < ceiling:
        if record.end_date is not None and current > record.end_date:
            break
        items.append(_build_item(record, current, frequency))
        count += 1

        following = add_periods(first, frequency, count=count, anchor_day=anchor_day)
        if following <= current:
            following = current + timedelta(days=nominal_period_days(frequency))
            logger.warning(
                f"Next occurrence for {record.kind} {record.id} did not advance "
                f"past {current}, forcing step to {following}"
            )
            diagnostics.append(
                _note(
                    record,
                    DiagnosticCode.FORCED_STEP,
                    f"Forced step from {current} to {following}",
                    dropped=False,
                )
            )
        current = following

    if count >= ceiling and current <= window_end:
        logger.debug(
            f"Occurrence ceiling ({ceiling}) reached for {record.kind} {record.id}"
        )

    ended_early = record.end_date is not None and record.end_date < first
    if not items and horizon_days > 0 and not ended_early:
        logger.warning(
            f"No occurrences generated for {record.kind} {record.id}, "
            f"adding one at forecast start"
        )
        items.append(_build_item(record, now, frequency))
        diagnostics.append(
            _note(
                record,
                DiagnosticCode.SYNTHESIZED_OCCURRENCE,
                f"No occurrence within {horizon_days} days, synthesized one on {now}",
                dropped=False,
            )
        )
    elif not items and ended_early:
        diagnostics.append(
            _note(
                record,
                DiagnosticCode.SOURCE_ENDED,
                f"Recurrence ended on {record.end_date} before its next occurrence",
                dropped=True,
            )
        )

    return Expansion(items=items, diagnostics=diagnostics)


def lookahead(
    source: Any,
    horizon_days: int,
    now: date,
    kind: Optional[str] = None,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> Expansion:
    """
    Short-horizon expansion: only the next occurrence, and only if it is due.

    Used instead of full enumeration for short forecasts, where at most one
    occurrence of most cadences can fall inside the window.
    """
    coerced = _coerce(source, kind)
    if isinstance(coerced, Expansion):
        return coerced
    record = coerced

    diagnostics: List[ForecastDiagnostic] = []
    if not record.recurring:
        return _one_shot(record, diagnostics)

    frequency = record.normalized_frequency
    window_end = now + timedelta(days=horizon_days)
    base = max(record.anchor_date, now)
    result = resolve_next_occurrence(
        base, frequency, now, max_iterations=max_iterations, anchor_day=base.day
    )
    if not result.resolved:
        diagnostics.append(
            _note(
                record,
                DiagnosticCode.RECURRENCE_FALLBACK,
                f"Could not resolve '{frequency.value}' cadence, using {result.date}",
                dropped=False,
            )
        )

    upcoming = result.date
    if record.end_date is not None and upcoming > record.end_date:
        diagnostics.append(
            _note(
                record,
                DiagnosticCode.SOURCE_ENDED,
                f"Recurrence ended on {record.end_date}",
                dropped=True,
            )
        )
        return Expansion(diagnostics=diagnostics)
    if upcoming > window_end:
        diagnostics.append(
            _note(
                record,
                DiagnosticCode.OUTSIDE_HORIZON,
                f"Next occurrence {upcoming} is after {window_end}",
                dropped=True,
            )
        )
        return Expansion(diagnostics=diagnostics)

    return Expansion(
        items=[_build_item(record, upcoming, frequency)], diagnostics=diagnostics
    )


def expand(
    source: Any,
    horizon_days: int,
    now: Optional[date] = None,
    kind: Optional[str] = None,
) -> List[ForecastItem]:
    """Occurrences of ``source`` within the horizon (see expand_source)."""
    if now is None:
        now = date.today()
    return expand_source(source, horizon_days, now, kind=kind).items

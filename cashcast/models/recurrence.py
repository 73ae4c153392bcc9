"""
Recurrence calculations for recurring financial records.

This module normalizes frequency spellings and advances dates by calendar
periods. Stale dates are fast-forwarded with a bounded loop so that records
anchored years in the past never cost more than a fixed number of steps.
"""

import logging
from datetime import date, timedelta
from enum import Enum
from typing import NamedTuple, Optional

from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100


class Frequency(str, Enum):
    """Recurrence cadence of a financial record."""

    ONCE = "once"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUALLY = "semiannually"
    ANNUALLY = "annually"

    @property
    def is_recurring(self) -> bool:
        return self is not Frequency.ONCE


_ALIASES = {
    "bi-weekly": Frequency.BIWEEKLY,
    "bi weekly": Frequency.BIWEEKLY,
    "semi-annually": Frequency.SEMIANNUALLY,
    "semi annually": Frequency.SEMIANNUALLY,
    "semiannual": Frequency.SEMIANNUALLY,
    "semi-annual": Frequency.SEMIANNUALLY,
    "annual": Frequency.ANNUALLY,
    "yearly": Frequency.ANNUALLY,
}

# (days, months) added by one period
_INCREMENTS = {
    Frequency.DAILY: (1, 0),
    Frequency.WEEKLY: (7, 0),
    Frequency.BIWEEKLY: (14, 0),
    Frequency.MONTHLY: (0, 1),
    Frequency.QUARTERLY: (0, 3),
    Frequency.SEMIANNUALLY: (0, 6),
    Frequency.ANNUALLY: (0, 12),
}

_NOMINAL_DAYS = {
    Frequency.DAILY: 1,
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 14,
    Frequency.MONTHLY: 30,
    Frequency.QUARTERLY: 91,
    Frequency.SEMIANNUALLY: 182,
    Frequency.ANNUALLY: 365,
}


class NextOccurrence(NamedTuple):
    """Outcome of resolving the next occurrence of a date."""

    date: date
    resolved: bool
    iterations: int


def normalize_frequency(value: object) -> Optional[Frequency]:
    """
    Normalize a frequency tag.

    Args:
        value: Raw frequency (string or Frequency)

    Returns:
        The matching Frequency, or None when the value is empty or unknown
    """
    if isinstance(value, Frequency):
        return value
    if not isinstance(value, str):
        return None

    key = value.strip().lower()
    if not key:
        return None
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return Frequency(key)
    except ValueError:
        return None


def nominal_period_days(frequency: Optional[Frequency]) -> int:
    """Approximate length of one period in days (1 for unknown cadences)."""
    if frequency is None:
        return 1
    return _NOMINAL_DAYS.get(frequency, 1)


def add_periods(
    start: date,
    frequency: Frequency,
    count: int = 1,
    anchor_day: Optional[int] = None,
) -> date:
    """
    Advance a date by a whole number of recurrence periods.

    Month-based cadences keep the day of month (``anchor_day`` when given,
    otherwise the day of ``start``) and clamp it to the length of the target
    month, so Jan 31 + 1 month is Feb 28/29 and Feb 28 + 1 month with
    ``anchor_day=31`` is Mar 31.

    Args:
        start: Date to advance from
        frequency: Recurrence cadence (must not be ONCE)
        count: Number of periods to add
        anchor_day: Preferred day of month for month-based cadences

    Returns:
        The advanced date

    Raises:
        ValueError: If the frequency has no calendar increment
    """
    if frequency not in _INCREMENTS:
        raise ValueError(f"Frequency '{frequency.value}' has no calendar increment")

    days, months = _INCREMENTS[frequency]
    if months:
        shifted = start + relativedelta(months=months * count)
        if anchor_day is not None and anchor_day != shifted.day:
            # relativedelta clamps to the month end, then day= re-clamps
            shifted = shifted + relativedelta(day=anchor_day)
        return shifted
    return start + timedelta(days=days * count)


def resolve_next_occurrence(
    current: date,
    frequency: object,
    now: date,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    anchor_day: Optional[int] = None,
) -> NextOccurrence:
    """
    Compute the next occurrence of ``current`` strictly after ``now``.

    Dates already in the future are returned unchanged. Unknown frequencies
    return ``current`` unchanged so the caller can treat the record as a
    one-shot. Stale dates are advanced one period at a time for at most
    ``max_iterations`` steps; if that is not enough the result falls back to
    the day after ``now`` with ``resolved=False``.

    Args:
        current: Date to advance
        frequency: Raw or normalized frequency
        now: Reference date
        max_iterations: Ceiling on fast-forward steps
        anchor_day: Preferred day of month for month-based cadences

    Returns:
        NextOccurrence with the date, whether it was resolved by the cadence,
        and the number of fast-forward iterations used
    """
    freq = normalize_frequency(frequency)
    if freq is None:
        logger.warning(
            f"Unrecognized frequency '{frequency}', returning original date {current}"
        )
        return NextOccurrence(current, True, 0)
    if not freq.is_recurring:
        return NextOccurrence(current, True, 0)

    if current > now:
        return NextOccurrence(current, True, 0)

    candidate = add_periods(current, freq, anchor_day=anchor_day)
    if candidate == current:
        logger.warning(
            f"Frequency '{freq.value}' did not advance {current}, forcing one period"
        )
        candidate = current + timedelta(days=nominal_period_days(freq))

    step = 1
    iterations = 0
    while candidate <= now and iterations < max_iterations:
        iterations += 1
        step += 1
        candidate = add_periods(current, freq, count=step, anchor_day=anchor_day)

    if candidate <= now:
        fallback = now + timedelta(days=1)
        logger.warning(
            f"Hit maximum iterations ({max_iterations}) advancing {current} "
            f"with frequency '{freq.value}', defaulting to {fallback}"
        )
        return NextOccurrence(fallback, False, iterations)

    if iterations:
        logger.debug(
            f"Fast-forwarded {current} -> {candidate} in {iterations} iterations "
            f"(frequency: '{freq.value}')"
        )
    return NextOccurrence(candidate, True, iterations)


def next_occurrence(
    current: date,
    frequency: object,
    now: date,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> date:
    """Next occurrence of ``current`` after ``now`` (see resolve_next_occurrence)."""
    return resolve_next_occurrence(current, frequency, now, max_iterations).date

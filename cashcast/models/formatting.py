"""
Forecast window and display formatting utilities.

This module provides the date window a forecast covers and the currency/date
formatting used in ledger descriptions and summaries.
"""

import math
from datetime import date, timedelta
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


class ForecastWindow(BaseModel):
    """Inclusive date window ``[start, start + days]`` of a forecast."""

    start: date = Field(..., description="First day of the forecast ('now')")
    days: int = Field(..., gt=0, le=3650, description="Horizon length in days")

    @property
    def end(self) -> date:
        return self.start + timedelta(days=self.days)

    @property
    def midpoint(self) -> date:
        return self.start + timedelta(days=self.days // 2)

    def contains(self, when: date) -> bool:
        """Whether a date falls inside the window (both ends inclusive)."""
        return self.start <= when <= self.end

    def __len__(self) -> int:
        return self.days + 1


class CurrencyFormatter(BaseModel):
    """Formats currency values for display."""

    currency_symbol: str = Field(default="$", description="Currency symbol")
    decimal_places: int = Field(
        default=2, ge=0, le=10, description="Number of decimal places"
    )
    show_currency_symbol: bool = Field(
        default=True, description="Whether to show currency symbol"
    )

    @field_validator("currency_symbol")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        if len(v) > 3:
            raise ValueError("Currency symbol must be at most 3 characters")
        return v

    def format_currency(self, amount: float, show_symbol: Optional[bool] = None) -> str:
        """
        Format a currency amount for display.

        Negative amounts are rendered with a leading minus before the symbol
        (``-$1,234.50``). Non-finite amounts render as zero.

        Args:
            amount: The amount to format
            show_symbol: Override the default symbol display setting

        Returns:
            Formatted currency string
        """
        show_symbol = (
            show_symbol if show_symbol is not None else self.show_currency_symbol
        )
        if not math.isfinite(amount):
            amount = 0.0

        rounded = round(abs(amount), self.decimal_places)
        if self.decimal_places > 0:
            formatted = f"{rounded:,.{self.decimal_places}f}"
        else:
            formatted = f"{int(rounded):,}"

        sign = "-" if amount < 0 and rounded != 0 else ""
        if show_symbol:
            return f"{sign}{self.currency_symbol}{formatted}"
        return f"{sign}{formatted}"


_default_formatter = CurrencyFormatter()


def format_currency(amount: float) -> str:
    """Format an amount with the default formatter (``$1,234.50``)."""
    return _default_formatter.format_currency(amount)


def format_date(value: date, style: Literal["short", "long", "month"] = "short") -> str:
    """
    Format a date for display.

    Args:
        value: Date to format
        style: ``short`` (``Oct 19``), ``long`` (``Mon, Oct 19, 2026``) or
            ``month`` (``Oct 2026``)

    Returns:
        Formatted date string
    """
    if style == "short":
        return f"{value:%b} {value.day}"
    if style == "month":
        return f"{value:%b %Y}"
    return f"{value:%a, %b} {value.day}, {value.year}"


def days_until(target: date, now: date) -> int:
    """Days from ``now`` until ``target``, never negative."""
    return max((target - now).days, 0)

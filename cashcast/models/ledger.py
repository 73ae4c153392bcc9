"""
Ledger and diagnostic models for cash-flow forecasts.

A forecast is an ordered list of ForecastItem objects. Every record the engine
drops, clamps or repairs along the way is reported as a ForecastDiagnostic so
callers and tests can see why an item is missing.
"""

import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

ItemKind = Literal["balance", "income", "bill", "expense", "adjustment", "marker"]

# Same-day ordering of ledger items
KIND_ORDER: Dict[str, int] = {
    "balance": 0,
    "adjustment": 1,
    "income": 2,
    "bill": 3,
    "expense": 4,
    "marker": 5,
}


class DiagnosticCode(str, Enum):
    """Why a record was dropped, clamped or repaired."""

    INVALID_RECORD = "invalid_record"
    PAID_BILL = "paid_bill"
    ZERO_AMOUNT = "zero_amount"
    OUTSIDE_HORIZON = "outside_horizon"
    SOURCE_ENDED = "source_ended"
    UNKNOWN_FREQUENCY = "unknown_frequency"
    RECURRENCE_FALLBACK = "recurrence_fallback"
    FORCED_STEP = "forced_step"
    SYNTHESIZED_OCCURRENCE = "synthesized_occurrence"
    RECORD_LIMIT = "record_limit"
    ITEM_LIMIT = "item_limit"
    PROCESSING_ERROR = "processing_error"
    ENGINE_FAILURE = "engine_failure"


class ForecastDiagnostic(BaseModel):
    """A single note about how the engine treated one record."""

    record_id: Optional[str] = Field(
        default=None, description="Id of the source record, when known"
    )
    record_kind: Optional[str] = Field(
        default=None, description="income, bill, expense or adjustment"
    )
    code: DiagnosticCode = Field(..., description="Diagnostic category")
    message: str = Field(default="", description="Human readable detail")
    dropped: bool = Field(
        default=True, description="Whether the record or item was excluded"
    )


class ForecastItem(BaseModel):
    """One dated ledger entry produced by the engine."""

    item_id: str = Field(..., description="Unique id of this ledger entry")
    source_id: Optional[str] = Field(
        default=None, description="Id of the record that produced this entry"
    )
    date: datetime.date = Field(..., description="Date the entry takes effect")
    amount: float = Field(
        ..., description="Signed amount: positive inflow, negative outflow"
    )
    category: str = Field(default="unknown", description="Display category")
    name: str = Field(default="Unnamed Item", description="Display name")
    kind: ItemKind = Field(..., description="Ledger entry kind")
    running_balance: Optional[float] = Field(
        default=None, description="Balance after applying this entry"
    )
    description: Optional[str] = Field(default=None, description="Display text")

    @property
    def affects_balance(self) -> bool:
        return self.kind != "marker"


class ForecastResult(BaseModel):
    """The ledger plus everything needed to interpret it."""

    items: List[ForecastItem] = Field(default_factory=list)
    diagnostics: List[ForecastDiagnostic] = Field(default_factory=list)
    current_balance: float = Field(..., description="Normalized starting balance")
    horizon_days: int = Field(..., gt=0, description="Normalized horizon length")
    as_of: datetime.date = Field(..., description="Reference date used as 'now'")
    degraded: bool = Field(
        default=False,
        description="True when the engine failed and returned the minimal ledger",
    )

    def skipped(self, code: Optional[DiagnosticCode] = None) -> List[ForecastDiagnostic]:
        """Diagnostics for dropped records, optionally filtered by code."""
        return [
            d
            for d in self.diagnostics
            if d.dropped and (code is None or d.code == code)
        ]

    @property
    def ending_balance(self) -> float:
        if not self.items:
            return self.current_balance
        last = self.items[-1].running_balance
        return self.current_balance if last is None else last

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation."""
        return self.model_dump(mode="json")

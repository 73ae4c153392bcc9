"""
Pydantic models for the financial records a forecast is built from.

Income sources, bills and expenses share one base shape and are told apart by
their ``kind`` tag. Records usually arrive as loosely shaped mappings from the
storage layer, so this module also provides tolerant parsers that turn a raw
record into either a validated model or a diagnostic explaining the rejection.
"""

import datetime
import math
from typing import Annotated, Any, Literal, Mapping, Optional, Tuple, Type, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from .ledger import DiagnosticCode, ForecastDiagnostic
from .recurrence import Frequency, normalize_frequency

SourceKind = Literal["income", "bill", "expense"]


def coerce_date(value: Any) -> Any:
    """Accept dates, datetimes and ISO date/timestamp strings."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return value
        try:
            return datetime.datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            # let pydantic report the parse error
            return text
    return value


class FinancialSource(BaseModel):
    """Shared shape of income sources, bills and expenses."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Record id")
    name: str = Field(default="Unnamed Item", description="Display name")
    amount: float = Field(..., description="Amount as stored (sign per kind)")
    anchor_date: datetime.date = Field(
        ...,
        validation_alias=AliasChoices("anchor_date", "date", "due_date", "dueDate"),
        description="Date of the first (or only) occurrence",
    )
    frequency: Optional[str] = Field(default=None, description="Recurrence tag")
    is_recurring: Optional[bool] = Field(
        default=None,
        validation_alias=AliasChoices("is_recurring", "isRecurring"),
        description="Explicit recurrence flag (None = infer from frequency)",
    )
    category: str = Field(default="unknown", description="Display category")
    end_date: Optional[datetime.date] = Field(
        default=None,
        validation_alias=AliasChoices("end_date", "endDate"),
        description="Last date an occurrence may fall on",
    )

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("Amount must be a finite number")
        return v

    @field_validator("anchor_date", "end_date", mode="before")
    @classmethod
    def validate_dates(cls, v: Any) -> Any:
        return coerce_date(v)

    @field_validator("name", "category", mode="before")
    @classmethod
    def validate_labels(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name].default
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def normalized_frequency(self) -> Optional[Frequency]:
        return normalize_frequency(self.frequency)

    @property
    def has_unknown_frequency(self) -> bool:
        """True when a frequency was given but is not recognized."""
        return (
            self.frequency is not None
            and bool(str(self.frequency).strip())
            and self.normalized_frequency is None
        )

    @property
    def recurring(self) -> bool:
        """Whether occurrences should be expanded from this record."""
        if self.is_recurring is False:
            return False
        freq = self.normalized_frequency
        return freq is not None and freq.is_recurring

    def signed_amount(self) -> float:
        """Ledger amount: outflows are negative regardless of storage sign."""
        return -abs(self.amount)


class IncomeSource(FinancialSource):
    """Salary, benefits or any other expected inflow."""

    kind: Literal["income"] = "income"
    category: str = Field(default="Income", description="Display category")

    def signed_amount(self) -> float:
        return abs(self.amount)


class BillSource(FinancialSource):
    """A bill with a due date; paid bills are excluded from forecasts."""

    kind: Literal["bill"] = "bill"
    category: str = Field(default="Expense", description="Display category")
    is_paid: bool = Field(
        default=False, validation_alias=AliasChoices("is_paid", "isPaid")
    )
    auto_pay: bool = Field(
        default=False, validation_alias=AliasChoices("auto_pay", "autoPay")
    )


class ExpenseSource(FinancialSource):
    """A planned or recorded expense."""

    kind: Literal["expense"] = "expense"
    category: str = Field(default="Expense", description="Display category")


SourceRecord = Annotated[
    Union[IncomeSource, BillSource, ExpenseSource], Field(discriminator="kind")
]

SOURCE_MODELS = {
    "income": IncomeSource,
    "bill": BillSource,
    "expense": ExpenseSource,
}


class BalanceAdjustment(BaseModel):
    """A one-off signed correction to the running balance."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Adjustment id")
    date: datetime.date = Field(..., description="Date the correction applies")
    amount: float = Field(..., description="Signed correction amount")
    reason: Optional[str] = Field(default=None, description="Why it was made")

    @field_validator("id", mode="before")
    @classmethod
    def validate_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v: Any) -> Any:
        return coerce_date(v)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("Amount must be a finite number")
        return v


def _record_id(record: Any) -> Optional[str]:
    if isinstance(record, BaseModel):
        value = getattr(record, "id", None)
    elif isinstance(record, Mapping):
        value = record.get("id")
    else:
        value = None
    return None if value is None else str(value)


def _summarize_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(p) for p in detail.get("loc", ()))
        parts.append(f"{location}: {detail.get('msg')}" if location else detail.get("msg"))
    return "; ".join(parts)


ParseResult = Tuple[Optional[Any], Optional[ForecastDiagnostic]]


def _parse(record: Any, model: Type[BaseModel], kind: str) -> ParseResult:
    if isinstance(record, model):
        return record, None

    if isinstance(record, BaseModel):
        data = record.model_dump()
    elif isinstance(record, Mapping):
        data = dict(record)
    else:
        return None, ForecastDiagnostic(
            record_kind=kind,
            code=DiagnosticCode.INVALID_RECORD,
            message=f"Unsupported record type {type(record).__name__}",
        )

    data.pop("kind", None)
    try:
        return model.model_validate(data), None
    except ValidationError as e:
        return None, ForecastDiagnostic(
            record_id=_record_id(record),
            record_kind=kind,
            code=DiagnosticCode.INVALID_RECORD,
            message=_summarize_error(e),
        )


def parse_source(record: Any, kind: SourceKind) -> ParseResult:
    """
    Validate one income/bill/expense record.

    Args:
        record: Model instance or raw mapping
        kind: Which collection the record came from

    Returns:
        (source, None) on success, (None, diagnostic) when the record is invalid
    """
    return _parse(record, SOURCE_MODELS[kind], kind)


def parse_adjustment(record: Any) -> ParseResult:
    """Validate one balance adjustment (see parse_source)."""
    return _parse(record, BalanceAdjustment, "adjustment")

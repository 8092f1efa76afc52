"""
Core Data Models for Expense Insights

These models define the schemas for all data flowing through the system.
They are designed to:
1. Resolve every record's timestamp once, at ingestion
2. Degrade gracefully on a single malformed record
3. Be serializable for storage and logging
4. Keep presentation concerns out of the aggregation results

DESIGN DECISION: Day boundaries are computed from UTC fields only.
A record stored at 23:59Z must never drift into the next day because
the server happens to run in another timezone.
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)


ZERO = Decimal("0")

UNCATEGORIZED = "Uncategorized"

# Input limits for new records. Stored rows are read back as they are.
MAX_TEXT_LENGTH = 200
MAX_CATEGORY_LENGTH = 50


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def coerce_amount(value: Any) -> Decimal:
    """
    Turn whatever the persistence layer handed us into a Decimal.

    Missing, non-numeric and non-finite values become 0.
    Booleans are not amounts.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def to_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive datetimes are taken to already be UTC (that is how the
    database hands them back).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_key(value: datetime) -> str:
    """
    UTC calendar day of a timestamp as YYYY-MM-DD.

    Built from UTC year, month and day so that the key never depends
    on the host timezone.
    """
    moment = to_utc(value)
    return f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"


def _parse_timestamp(value: Any) -> Any:
    """Accept date objects and YYYY-MM-DD strings as midnight UTC."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            parsed = datetime.fromisoformat(text)
            return parsed.replace(tzinfo=timezone.utc)
        return text
    return value


# =============================================================================
# EXPENSE RECORD
# =============================================================================

class ExpenseRecord(BaseModel):
    """
    One expense as stored for a user.

    `occurred_at` is the resolved timestamp: the explicit `date` when the
    record has one, else `created_at`. It is computed once here so that
    nothing downstream has to branch on which field is present.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique record ID"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Identity provider user id that owns the record"
    )
    text: Optional[str] = Field(
        default=None,
        description="What the money was spent on"
    )
    amount: Decimal = Field(
        default=ZERO,
        description="Signed amount; malformed input is stored as 0"
    )
    category: str = Field(
        default=UNCATEGORIZED,
        description="Free-form category label"
    )
    date: Optional[datetime] = Field(
        default=None,
        description="Explicit date of the expense, if the user gave one"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When the record was created"
    )
    occurred_at: Optional[datetime] = Field(
        default=None,
        description="Resolved timestamp (date, else created_at), UTC"
    )

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount_value(cls, v: Any) -> Decimal:
        return coerce_amount(v)

    @field_validator('category', mode='before')
    @classmethod
    def default_category(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            return UNCATEGORIZED
        return str(v).strip()

    @field_validator('date', mode='wrap')
    @classmethod
    def parse_optional_date(cls, v: Any, handler):
        """An unreadable date is treated as absent; created_at takes over."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        try:
            return handler(_parse_timestamp(v))
        except (ValidationError, ValueError):
            return None

    @field_validator('created_at', mode='before')
    @classmethod
    def parse_created_at(cls, v: Any) -> Any:
        return _parse_timestamp(v)

    @model_validator(mode='after')
    def resolve_timestamp(self) -> 'ExpenseRecord':
        self.created_at = to_utc(self.created_at)
        if self.date is not None:
            self.date = to_utc(self.date)
        self.occurred_at = self.date if self.date is not None else self.created_at
        return self

    @property
    def day_key(self) -> str:
        """UTC calendar day this record falls on."""
        return day_key(self.occurred_at)

    @property
    def is_spend(self) -> bool:
        """Only strictly positive amounts count as spending."""
        return self.amount > ZERO


# =============================================================================
# SUMMARY RESULT
# =============================================================================

class SummaryError(str, Enum):
    """
    The only two ways a summary can fail.

    The values are the exact caller-facing messages.
    """
    UNAUTHENTICATED = "User not found"
    PERSISTENCE = "Database error"


class SummaryResult(BaseModel):
    """
    Total spend and number of days with spend, or an error. Never both.

    Built fresh on every request; never persisted.
    """

    total_amount: Optional[Decimal] = None
    days_with_records: Optional[int] = Field(default=None, ge=0)
    error: Optional[SummaryError] = None
    computed_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def validate_exclusive(self) -> 'SummaryResult':
        if self.error is not None:
            if self.total_amount is not None or self.days_with_records is not None:
                raise ValueError("A failed summary cannot carry totals")
        elif self.total_amount is None or self.days_with_records is None:
            raise ValueError("A summary needs both total_amount and days_with_records")
        return self

    @classmethod
    def failure(cls, error: SummaryError) -> 'SummaryResult':
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_response(self) -> dict:
        """Flat shape consumed by the UI layer."""
        if self.error is not None:
            return {"error": self.error.value}
        return {
            "totalAmount": float(self.total_amount),
            "daysWithRecords": self.days_with_records,
        }


# =============================================================================
# DAILY / CATEGORY MATRIX
# =============================================================================

class DailyCategoryMatrix(BaseModel):
    """
    Dense day x category grid of summed amounts.

    `days` are chronological, `categories` are in first-seen order and
    every (day, category) cell is present, 0 when nothing was spent.
    This is all the chart layer gets; it holds no presentation data.
    """

    days: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    values: dict[str, dict[str, Decimal]] = Field(default_factory=dict)

    @model_validator(mode='after')
    def validate_dense(self) -> 'DailyCategoryMatrix':
        if set(self.values) != set(self.days):
            raise ValueError("Matrix rows must match the day sequence")
        for day in self.days:
            if set(self.values[day]) != set(self.categories):
                raise ValueError(f"Matrix row {day} is not dense")
        return self

    @property
    def is_empty(self) -> bool:
        return not self.days

    def value(self, day: str, category: str) -> Decimal:
        return self.values[day][category]

    def rows(self) -> list[list[Decimal]]:
        """Day-major rows, columns in category order."""
        return [
            [self.values[day][category] for category in self.categories]
            for day in self.days
        ]

    def series(self) -> dict[str, list[Decimal]]:
        """One series per category, aligned 1:1 with `days`."""
        return {
            category: [self.values[day][category] for day in self.days]
            for category in self.categories
        }

    def day_totals(self) -> dict[str, Decimal]:
        return {
            day: sum(self.values[day].values(), ZERO)
            for day in self.days
        }

    def total(self) -> Decimal:
        return sum(self.day_totals().values(), ZERO)

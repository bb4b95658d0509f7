"""
Core Data Models for the Expense Ledger

These models define the strict schemas for all data flowing through the
ledger. They are designed to:
1. Enforce input constraints before anything touches storage
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Keep every amount at 2 decimal places

DESIGN DECISION: Inputs (ExpenseInput, MonthlyPlanInput) carry the
validation rules. Records coming back from storage are trusted and only
typed, so reading a record written under older rules never fails.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from expense_ledger.months import (
    MONTH_KEY_PATTERN,
    month_of,
    round_money,
    utc_now,
)


MAX_EXPENSE_AMOUNT = Decimal("1000000")
MAX_PLAN_AMOUNT = Decimal("1000000000")

# Top category of a month with no expenses
NO_CATEGORY = "None"
# Top category of a month that only has a plan
NO_EXPENSES_YET = "No expenses yet"

_DATE_STRING_PATTERN = r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    DESIGN DECISION: A closed enumeration keeps breakdowns comparable
    month over month.
    """
    HOUSING = "Housing"
    FOOD = "Food"
    TRANSPORTATION = "Transportation"
    UTILITIES = "Utilities"
    HEALTHCARE = "Healthcare"
    ENTERTAINMENT = "Entertainment"
    EDUCATION = "Education"
    SAVINGS = "Savings"
    SHOPPING = "Shopping"
    OTHER = "Other"


class CurrencyCode(str, Enum):
    """
    Currencies a user can display amounts in.

    This is a formatting label only. Amounts are never converted.
    """
    USD = "USD"
    THB = "THB"


# =============================================================================
# EXPENSES
# =============================================================================

class ExpenseInput(BaseModel):
    """A caller-supplied expense, before it becomes a record."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(
        ...,
        min_length=2,
        max_length=80,
        description="Short description of the expense"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        le=MAX_EXPENSE_AMOUNT,
        description="Amount spent, rounded to 2 decimal places"
    )
    category: ExpenseCategory
    expense_date: date = Field(
        ...,
        description="Calendar date of the expense (YYYY-MM-DD)"
    )
    notes: str = Field(
        default="",
        max_length=280,
        description="Free-text notes"
    )

    @field_validator("amount")
    @classmethod
    def round_amount(cls, v: Decimal) -> Decimal:
        rounded = round_money(v)
        if rounded <= 0:
            raise ValueError("Amount must be greater than 0 after rounding")
        return rounded

    @field_validator("expense_date", mode="before")
    @classmethod
    def require_iso_date(cls, v: Any) -> Any:
        """Only accept plain YYYY-MM-DD strings, never timestamps."""
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str):
            v = v.strip()
            if not re.match(_DATE_STRING_PATTERN, v):
                raise ValueError("Date must be in YYYY-MM-DD format")
        return v

    @field_validator("notes", mode="before")
    @classmethod
    def default_notes(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def month(self) -> str:
        return month_of(self.expense_date)


class ExpenseRecord(BaseModel):
    """A persisted expense. Owned exclusively by `user_id`."""

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID"
    )
    user_id: str = Field(
        ...,
        description="Owning user"
    )
    title: str
    amount: Decimal
    category: ExpenseCategory
    expense_date: date
    notes: str = ""
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the expense was recorded (UTC)"
    )

    @property
    def month(self) -> str:
        return month_of(self.expense_date)

    @classmethod
    def from_input(cls, user_id: str, data: ExpenseInput) -> "ExpenseRecord":
        return cls(
            user_id=user_id,
            title=data.title,
            amount=data.amount,
            category=data.category,
            expense_date=data.expense_date,
            notes=data.notes,
        )


# =============================================================================
# MONTHLY PLANS
# =============================================================================

class MonthlyPlanInput(BaseModel):
    """Income and savings target for one month."""
    model_config = ConfigDict(str_strip_whitespace=True)

    month: str = Field(
        ...,
        pattern=MONTH_KEY_PATTERN.pattern,
        description="Month key (YYYY-MM)"
    )
    income_amount: Decimal = Field(
        ...,
        gt=0,
        le=MAX_PLAN_AMOUNT,
        description="Expected income for the month"
    )
    savings_target: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        le=MAX_PLAN_AMOUNT,
        description="Amount to set aside; cannot exceed income"
    )
    notes: str = Field(
        default="",
        max_length=300,
    )

    @field_validator("savings_target", mode="before")
    @classmethod
    def default_savings(cls, v: Any) -> Any:
        if v is None or v == "":
            return Decimal("0")
        return v

    @field_validator("notes", mode="before")
    @classmethod
    def default_notes(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("income_amount")
    @classmethod
    def round_income(cls, v: Decimal) -> Decimal:
        rounded = round_money(v)
        if rounded <= 0:
            raise ValueError("Income must be greater than 0 after rounding")
        return rounded

    @field_validator("savings_target")
    @classmethod
    def round_savings(cls, v: Decimal) -> Decimal:
        return round_money(v)

    @model_validator(mode="after")
    def validate_savings_within_income(self) -> "MonthlyPlanInput":
        if self.savings_target > self.income_amount:
            raise ValueError("Savings target cannot be greater than income.")
        return self


class MonthlyPlanRecord(BaseModel):
    """A persisted plan. At most one per (user, month)."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    month: str
    income_amount: Decimal
    savings_target: Decimal = Decimal("0")
    notes: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# AGGREGATES AND SNAPSHOTS
# =============================================================================

class MonthStats(BaseModel):
    """Output of the month aggregator."""

    total_amount: Decimal = Decimal("0.00")
    transaction_count: int = Field(default=0, ge=0)
    top_category: str = NO_CATEGORY
    category_breakdown: dict[str, Decimal] = Field(default_factory=dict)


class MonthlySnapshotRecord(BaseModel):
    """
    The frozen totals of a closed month.

    CRITICAL: Snapshots are immutable. They are created once by the
    closing engine and never updated, recomputed or deleted.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    month: str
    is_closed: bool = True
    total_amount: Decimal
    transaction_count: int = Field(ge=0)
    top_category: str = NO_CATEGORY
    category_breakdown: dict[str, Decimal] = Field(default_factory=dict)
    summary_text: str = ""
    closed_at: datetime = Field(default_factory=utc_now)


class MonthlySummary(BaseModel):
    """One row of the month history, live or frozen."""

    month: str
    total_amount: Decimal
    transaction_count: int
    top_category: str
    is_closed: bool = False
    closed_at: Optional[datetime] = None

    @classmethod
    def from_snapshot(cls, snapshot: MonthlySnapshotRecord) -> "MonthlySummary":
        return cls(
            month=snapshot.month,
            total_amount=round_money(snapshot.total_amount),
            transaction_count=snapshot.transaction_count,
            top_category=snapshot.top_category,
            is_closed=snapshot.is_closed,
            closed_at=snapshot.closed_at,
        )

    @classmethod
    def from_stats(cls, month: str, stats: MonthStats) -> "MonthlySummary":
        return cls(
            month=month,
            total_amount=stats.total_amount,
            transaction_count=stats.transaction_count,
            top_category=stats.top_category,
        )


class BudgetInsights(BaseModel):
    """Derived budget figures. Always recomputed, never stored."""

    planned_spendable: Decimal = Decimal("0.00")
    remaining_budget: Decimal = Decimal("0.00")
    days_remaining: int = Field(default=0, ge=0)
    daily_allowance: Decimal = Decimal("0.00")
    income_required: bool = True


class MonthlyTrendPoint(BaseModel):
    """A month reduced to the numbers a trend chart plots."""

    month: str
    expense_total: Decimal
    income_amount: Decimal
    savings_target: Decimal
    planned_spendable: Decimal
    remaining_budget: Decimal
    is_closed: bool = False


class MonthlyDetail(BaseModel):
    """Everything needed to render a single month."""

    summary: MonthlySummary
    plan: Optional[MonthlyPlanRecord] = None
    budget: BudgetInsights
    category_breakdown: dict[str, Decimal] = Field(default_factory=dict)
    summary_text: str = ""
    expenses: list[ExpenseRecord] = Field(default_factory=list)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'out_of_range')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )

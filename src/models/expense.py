"""
Expense Models

Expenses are flat records keyed by UUID. Recurring templates generate
expenses month by month; a deleted auto-generated expense leaves a
DismissedRecurring marker so it is not generated again.

DESIGN DECISION: Category is stored as free text. The standard list is
an enum for the UI, but legacy and system categories ("emi",
"recurring") must still load.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# ENUMS
# =============================================================================

class ExpenseCategory(str, Enum):
    """Categories offered when adding an expense."""
    FOOD_DINING = "Food & Dining"
    SHOPPING = "Shopping"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    BILLS_UTILITIES = "Bills & Utilities"
    HEALTHCARE = "Healthcare"
    TRAVEL = "Travel"
    EDUCATION = "Education"
    GROCERIES = "Groceries"
    OTHER = "Other"


# System categories written by automation, never offered in the form
EMI_CATEGORY = "emi"
RECURRING_CATEGORY = "recurring"

EXPENSE_CATEGORIES: list[str] = [c.value for c in ExpenseCategory]


class RecurringFrequency(str, Enum):
    """How often a recurring expense falls due."""
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"


# =============================================================================
# CORE EXPENSE MODELS
# =============================================================================

class Expense(BaseModel):
    """A single spend."""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    id: UUID = Field(default_factory=uuid4)
    title: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0, description="Amount in INR")
    category: str = Field(..., min_length=1)
    expense_date: date
    description: str = Field(default="", max_length=1000)

    suggested_card: Optional[str] = None
    event: Optional[str] = Field(
        default=None,
        description="Optional tag grouping related expenses (a trip, a wedding)"
    )

    # Budget month overrides the expense date for monthly grouping
    budget_month: Optional[int] = Field(default=None, ge=1, le=12)
    budget_year: Optional[int] = Field(default=None, ge=1900)

    recurring_id: Optional[UUID] = None
    is_recurring: bool = False

    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("event")
    @classmethod
    def blank_event_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def budget_period(self) -> tuple[int, int]:
        """(year, month) used for grouping and range filters."""
        if self.budget_month and self.budget_year:
            return self.budget_year, self.budget_month
        return self.expense_date.year, self.expense_date.month


class RecurringExpense(BaseModel):
    """
    A template such as LIC premium or a streaming subscription.

    added_to_expenses holds "YYYY-MM" keys of months already generated.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0)
    frequency: RecurringFrequency
    day: int = Field(..., ge=1, le=31)
    months: list[int] = Field(default_factory=list)
    description: str = ""
    category: str = ExpenseCategory.OTHER.value
    added_to_expenses: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("months")
    @classmethod
    def validate_months(cls, v: list[int]) -> list[int]:
        for m in v:
            if not 1 <= m <= 12:
                raise ValueError(f"Month must be between 1 and 12, got {m}")
        return sorted(set(v))

    @model_validator(mode="after")
    def check_months_for_frequency(self) -> "RecurringExpense":
        if self.frequency == RecurringFrequency.MONTHLY:
            # Monthly means every month; stored list stays empty
            if self.months:
                object.__setattr__(self, "months", [])
        elif not self.months:
            raise ValueError("Yearly and custom recurring expenses need at least one month")
        return self


class DismissedRecurring(BaseModel):
    """An auto-generated occurrence the user deleted."""

    title: str
    expense_date: date
    amount: Decimal
    category: str
    recurring_id: Optional[UUID] = None
    dismissed_at: datetime = Field(default_factory=datetime.utcnow)


class RecurringOccurrence(BaseModel):
    """One due item in the recurring view (loan EMI or custom template)."""

    title: str
    amount: Decimal
    category: str
    due_date: date
    description: str = ""
    recurring_id: Optional[UUID] = None
    is_loan: bool = False


class ExpenseMonthGroup(BaseModel):
    """Expenses of one budget month."""

    key: str = Field(..., description="YYYY-MM")
    label: str = Field(..., description="e.g. 'January 2024'")
    expenses: list[Expense] = Field(default_factory=list)
    total: Decimal = Decimal("0")


class EventTitleBreakdown(BaseModel):
    title: str
    total: Decimal
    count: int
    expenses: list[Expense] = Field(default_factory=list)


class EventSummary(BaseModel):
    """Totals for one event tag."""

    name: str
    total: Decimal
    expense_count: int
    date_range: str
    by_title: list[EventTitleBreakdown] = Field(default_factory=list)

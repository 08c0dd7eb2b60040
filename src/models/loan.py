"""
Loan and Money-Lent Models

Borrowed loans are described by principal, annual rate, tenure and the
date of the first EMI. Everything else (EMI, closure date, balance) is
derived on demand by src.calculations.loans so stored data never goes
stale.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# BORROWED LOANS
# =============================================================================

class Loan(BaseModel):
    """A loan taken from a bank."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    bank_name: str = Field(..., min_length=1, max_length=100)
    loan_type: str = Field(..., min_length=1, max_length=50, description="Home, Car, Personal...")
    reason: str = Field(default="", max_length=200)
    amount: Decimal = Field(..., gt=0, description="Principal in INR")
    interest_rate: Decimal = Field(..., ge=0, le=100, description="Annual rate in percent")
    tenure: int = Field(..., gt=0, le=600, description="Number of monthly installments")
    first_emi_date: date
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    @property
    def emi_title(self) -> str:
        """Title used for the auto-added monthly expense."""
        return f"{self.bank_name} {self.loan_type or 'Loan'} EMI"


class RemainingBalance(BaseModel):
    """Position of a loan as of a given day."""

    emis_paid: int = Field(ge=0)
    emis_remaining: int = Field(ge=0)
    remaining_balance: Decimal
    total_remaining_payment: Decimal

    @property
    def is_closed(self) -> bool:
        return self.emis_remaining == 0


class AmortizationRow(BaseModel):
    month: int = Field(ge=1)
    emi: Decimal
    principal: Decimal
    interest: Decimal
    balance: Decimal


class LoanSummary(BaseModel):
    """Derived figures shown on a loan card."""

    loan: Loan
    emi: Decimal
    total_amount: Decimal
    total_interest: Decimal
    closure_date: date
    remaining: RemainingBalance


class LoanDeletionImpact(BaseModel):
    """What the user should know before a loan is removed."""

    loan_id: UUID
    linked_expense_count: int = 0
    pending_emis: int = 0
    outstanding_balance: Decimal = Decimal("0")

    @property
    def warnings(self) -> list[str]:
        messages = []
        if self.linked_expense_count:
            messages.append(
                f"{self.linked_expense_count} EMI expense(s) are linked to this loan "
                "and will remain in expenses."
            )
        if self.pending_emis:
            messages.append(f"{self.pending_emis} EMI(s) are still pending.")
        return messages


# =============================================================================
# MONEY LENT
# =============================================================================

class LentStatus(str, Enum):
    PENDING = "Pending"
    PARTIALLY_RETURNED = "Partially Returned"
    FULLY_RETURNED = "Fully Returned"


class LentReturn(BaseModel):
    """A repayment received against money lent."""

    return_date: date
    amount_returned: Decimal = Field(..., gt=0)
    recorded_at: datetime = Field(default_factory=datetime.utcnow)


class MoneyLentRecord(BaseModel):
    """Money given to a person, with the returns received so far."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    person_name: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0)
    date_given: date
    purpose: str = Field(..., min_length=1, max_length=200)
    expected_return_date: Optional[date] = None
    notes: str = ""
    returns: list[LentReturn] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None


class MoneyLentTotals(BaseModel):
    total_lent: Decimal
    total_returned: Decimal
    total_outstanding: Decimal
    record_count: int

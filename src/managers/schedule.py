"""
Ledger predicates shared by the expense, recurring and loan managers.

Automatically generated expenses (loan EMIs and recurring items) are
linked back to their source only by title, date and amount, so the
matching rules live here in one place.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from src.calculations.loans import calculate_emi, calculate_remaining
from src.models.expense import (
    EMI_CATEGORY,
    RECURRING_CATEGORY,
    Expense,
    RecurringExpense,
    RecurringFrequency,
)
from src.models.ledger import Ledger
from src.models.loan import Loan
from src.utils.dates import clamp_day
from src.utils.money import Number, to_decimal

AMOUNT_TOLERANCE = Decimal("0.01")
CARD_EMI_PREFIXES = ("Card EMI:", "EMI:")


def amounts_match(a: Number, b: Number) -> bool:
    return abs(to_decimal(a) - to_decimal(b)) < AMOUNT_TOLERANCE


# =============================================================================
# EXPENSE CLASSIFICATION
# =============================================================================

def is_loan_emi(expense: Expense) -> bool:
    """Titles like "HDFC Home EMI" in the emi category; card EMIs excluded."""
    return (
        " EMI" in expense.title
        and expense.category == EMI_CATEGORY
        and not expense.title.startswith(CARD_EMI_PREFIXES)
    )


def is_auto_recurring(expense: Expense) -> bool:
    if is_loan_emi(expense):
        return True
    if expense.category == EMI_CATEGORY and expense.title.startswith(CARD_EMI_PREFIXES):
        return True
    return expense.category == RECURRING_CATEGORY or expense.is_recurring


def find_identical(ledger: Ledger, title: str, on: date, amount: Number) -> Optional[Expense]:
    for expense in ledger.expenses:
        if expense.title == title and expense.expense_date == on and amounts_match(expense.amount, amount):
            return expense
    return None


def is_dismissed(
    ledger: Ledger,
    title: str,
    on: date,
    amount: Number,
    recurring_id: Optional[UUID] = None,
) -> bool:
    """
    Whether the user deleted this generated occurrence.

    A dismissal with a recurring id matches on id and date, so renaming
    the template keeps it dismissed. Older dismissals match on
    title, date and amount.
    """
    for d in ledger.dismissed_recurring:
        if recurring_id and d.recurring_id:
            if d.recurring_id == recurring_id and d.expense_date == on:
                return True
            continue
        if d.title == title and d.expense_date == on and amounts_match(d.amount, amount):
            return True
    return False


# =============================================================================
# RECURRING TEMPLATES
# =============================================================================

def is_due_in_month(recurring: RecurringExpense, year: int, month: int) -> bool:
    if recurring.frequency == RecurringFrequency.MONTHLY:
        return True
    return month in recurring.months


def due_date(recurring: RecurringExpense, year: int, month: int) -> date:
    return clamp_day(year, month, recurring.day)


# =============================================================================
# LOAN EMIS
# =============================================================================

def is_loan_running(loan: Loan, today: date) -> bool:
    """Started and not yet closed."""
    if loan.first_emi_date > today:
        return False
    remaining = calculate_remaining(
        loan.first_emi_date, loan.amount, loan.interest_rate, loan.tenure, today
    )
    return remaining.emis_remaining > 0


def emi_due_date(loan: Loan, today: date) -> date:
    """This month's EMI date."""
    return clamp_day(today.year, today.month, loan.first_emi_date.day)


def loan_emi_amount(loan: Loan) -> Decimal:
    return calculate_emi(loan.amount, loan.interest_rate, loan.tenure)

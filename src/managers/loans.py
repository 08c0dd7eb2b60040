"""
Loan manager

Loans store only their terms. EMI, closure date and outstanding balance
are recomputed from the terms whenever they are shown, and the EMI for
the current month is added to expenses on startup once its day arrives.
"""

from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

import structlog

from src.calculations.loans import (
    amortization_schedule,
    calculate_closure_date,
    calculate_emi,
    calculate_remaining,
    calculate_totals,
    summarize_loan,
)
from src.managers.base import BaseManager
from src.managers.schedule import (
    emi_due_date,
    find_identical,
    is_dismissed,
    is_loan_running,
    loan_emi_amount,
)
from src.models.audit import AuditEventBuilder
from src.models.expense import EMI_CATEGORY, Expense
from src.models.loan import AmortizationRow, Loan, LoanDeletionImpact, LoanSummary
from src.utils.money import Number

logger = structlog.get_logger("managers.loans")


class LoanManager(BaseManager):
    entity_name = "loan"

    def add(
        self,
        bank_name: str,
        loan_type: str,
        reason: str,
        amount: Optional[Number],
        interest_rate: Optional[Number],
        tenure: Optional[int],
        first_emi_date: Optional[date],
    ) -> Loan:
        """
        Raises:
            InvalidInputError: A required field is blank or out of range
        """
        self._require(
            bank_name=bank_name,
            loan_type=loan_type,
            amount=amount,
            interest_rate=interest_rate,
            tenure=tenure,
            first_emi_date=first_emi_date,
        )
        loan = self._build(
            Loan,
            bank_name=bank_name,
            loan_type=loan_type,
            reason=reason or "",
            amount=amount,
            interest_rate=interest_rate,
            tenure=tenure,
            first_emi_date=first_emi_date,
        )
        self._ledger.loans.append(loan)
        self._persist()
        self._record(AuditEventBuilder.loan_added(loan.id, loan.bank_name, str(loan.amount)))
        return loan

    def update(
        self,
        loan_id: Any,
        bank_name: str,
        loan_type: str,
        reason: str,
        amount: Optional[Number],
        interest_rate: Optional[Number],
        tenure: Optional[int],
        first_emi_date: Optional[date],
    ) -> Loan:
        existing = self.get_by_id(loan_id)
        self._require(
            bank_name=bank_name,
            loan_type=loan_type,
            amount=amount,
            interest_rate=interest_rate,
            tenure=tenure,
            first_emi_date=first_emi_date,
        )
        updated = self._rebuild(existing, {
            "bank_name": bank_name,
            "loan_type": loan_type,
            "reason": reason or "",
            "amount": amount,
            "interest_rate": interest_rate,
            "tenure": tenure,
            "first_emi_date": first_emi_date,
            "updated_at": datetime.utcnow(),
        })
        self._replace(self._ledger.loans, existing, updated)
        self._persist()
        return updated

    def deletion_impact(self, loan_id: Any, today: Optional[date] = None) -> LoanDeletionImpact:
        """What deleting the loan leaves behind, for the confirmation prompt."""
        loan = self.get_by_id(loan_id)
        linked = [
            e for e in self._ledger.expenses
            if e.title == loan.emi_title or loan.bank_name in e.title
        ]
        remaining = calculate_remaining(
            loan.first_emi_date, loan.amount, loan.interest_rate, loan.tenure, today
        )
        return LoanDeletionImpact(
            loan_id=loan.id,
            linked_expense_count=len(linked),
            pending_emis=remaining.emis_remaining,
            outstanding_balance=remaining.remaining_balance,
        )

    def delete(self, loan_id: Any, today: Optional[date] = None) -> LoanDeletionImpact:
        """
        Remove the loan. Linked EMI expenses stay in expenses.

        Returns:
            The impact computed just before removal
        """
        impact = self.deletion_impact(loan_id, today)
        loan = self.get_by_id(loan_id)
        self._ledger.loans.remove(loan)
        self._persist()
        self._record(AuditEventBuilder.loan_deleted(loan.id, loan.bank_name, impact.pending_emis))
        return impact

    def get_by_id(self, loan_id: Any) -> Loan:
        return self._find(self._ledger.loans, loan_id)

    def get_all(self) -> list[Loan]:
        return list(self._ledger.loans)

    # =========================================================================
    # CALCULATIONS
    # =========================================================================

    calculate_emi = staticmethod(calculate_emi)
    calculate_totals = staticmethod(calculate_totals)
    calculate_closure_date = staticmethod(calculate_closure_date)
    calculate_remaining = staticmethod(calculate_remaining)
    amortization_schedule = staticmethod(amortization_schedule)

    def summary(self, loan_id: Any, today: Optional[date] = None) -> LoanSummary:
        return summarize_loan(self.get_by_id(loan_id), today)

    def schedule_for(self, loan_id: Any) -> list[AmortizationRow]:
        loan = self.get_by_id(loan_id)
        return amortization_schedule(loan.amount, loan.interest_rate, loan.tenure)

    def split_active_closed(self, today: Optional[date] = None) -> tuple[list[LoanSummary], list[LoanSummary]]:
        """(active, closed) summaries, each sorted by first EMI date."""
        summaries = sorted(
            (summarize_loan(loan, today) for loan in self._ledger.loans),
            key=lambda s: s.loan.first_emi_date,
        )
        active = [s for s in summaries if not s.remaining.is_closed]
        closed = [s for s in summaries if s.remaining.is_closed]
        return active, closed

    # =========================================================================
    # AUTOMATION
    # =========================================================================

    def auto_add_emis(
        self,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Add this month's EMI for every running loan whose EMI day has come.

        Skips EMIs the user dismissed and EMIs already in expenses.

        Returns:
            Number of expenses added
        """
        today = today or date.today()
        added = []

        for loan in self._ledger.loans:
            if not is_loan_running(loan, today):
                continue
            due = emi_due_date(loan, today)
            if today < due:
                continue
            emi = loan_emi_amount(loan)
            title = loan.emi_title
            if is_dismissed(self._ledger, title, due, emi):
                logger.info("emi_dismissed_skipped", title=title, due=due.isoformat())
                continue
            if find_identical(self._ledger, title, due, emi):
                continue

            expense = Expense(
                title=title,
                amount=emi,
                category=EMI_CATEGORY,
                expense_date=due,
                description=loan.reason or "Monthly payment",
            )
            self._ledger.expenses.append(expense)
            added.append(expense)

        if added:
            self._persist()
            for expense in added:
                self._record(AuditEventBuilder.emi_auto_added(
                    expense.id, expense.title, str(expense.amount), correlation_id
                ))
            logger.info("emis_auto_added", count=len(added))
        return len(added)

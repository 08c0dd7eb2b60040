"""
Recurring expense manager

Templates such as insurance premiums or subscriptions. Each template
remembers the months ("YYYY-MM") it has already produced an expense
for, so auto-add can safely run on every startup.
"""

from datetime import date
from typing import Any, Iterable, Optional
from uuid import UUID

import structlog

from src.managers.base import BaseManager
from src.managers.schedule import due_date, find_identical, is_dismissed, is_due_in_month
from src.models.audit import AuditEventBuilder
from src.models.expense import (
    RECURRING_CATEGORY,
    ExpenseCategory,
    Expense,
    RecurringExpense,
    RecurringOccurrence,
)
from src.utils.dates import iter_months, month_key
from src.utils.money import Number

logger = structlog.get_logger("managers.recurring")

AUTO_ADDED_DESCRIPTION = "Auto-added recurring expense"


def _occurrence(recurring: RecurringExpense, due: date) -> RecurringOccurrence:
    return RecurringOccurrence(
        title=recurring.name,
        amount=recurring.amount,
        category=recurring.category or ExpenseCategory.OTHER.value,
        due_date=due,
        description=recurring.description or "Recurring expense",
        recurring_id=recurring.id,
    )


class RecurringExpenseManager(BaseManager):
    entity_name = "recurring expense"

    def add(
        self,
        name: str,
        amount: Optional[Number],
        frequency: Optional[str],
        day: Optional[int],
        months: Optional[Iterable[int]] = None,
        description: str = "",
        category: str = ExpenseCategory.OTHER.value,
    ) -> RecurringExpense:
        """
        Add a template. Monthly templates ignore months.

        Raises:
            InvalidInputError: A required field is blank, or a yearly/custom
                template has no months
        """
        self._require(name=name, amount=amount, frequency=frequency, day=day)
        recurring = self._build(
            RecurringExpense,
            name=name,
            amount=amount,
            frequency=frequency,
            day=day,
            months=list(months or []),
            description=description or "",
            category=category or ExpenseCategory.OTHER.value,
        )
        self._ledger.recurring_expenses.append(recurring)
        self._persist()
        return recurring

    def update(
        self,
        recurring_id: Any,
        name: str,
        amount: Optional[Number],
        frequency: Optional[str],
        day: Optional[int],
        months: Optional[Iterable[int]] = None,
        description: str = "",
        category: Optional[str] = None,
    ) -> RecurringExpense:
        existing = self.get_by_id(recurring_id)
        self._require(name=name, amount=amount, frequency=frequency, day=day)
        updated = self._rebuild(existing, {
            "name": name,
            "amount": amount,
            "frequency": frequency,
            "day": day,
            "months": list(months or []),
            "description": description or "",
            "category": category or existing.category,
        })
        self._replace(self._ledger.recurring_expenses, existing, updated)
        self._persist()
        return updated

    def delete(self, recurring_id: Any) -> RecurringExpense:
        recurring = self.get_by_id(recurring_id)
        self._ledger.recurring_expenses.remove(recurring)
        self._persist()
        return recurring

    def get_by_id(self, recurring_id: Any) -> RecurringExpense:
        return self._find(self._ledger.recurring_expenses, recurring_id)

    def get_all(self) -> list[RecurringExpense]:
        return list(self._ledger.recurring_expenses)

    # =========================================================================
    # SCHEDULE
    # =========================================================================

    @staticmethod
    def is_due_in_month(recurring: RecurringExpense, year: int, month: int) -> bool:
        return is_due_in_month(recurring, year, month)

    def get_upcoming(self, today: Optional[date] = None) -> list[RecurringOccurrence]:
        """Due this month with the day not yet reached, earliest first."""
        today = today or date.today()
        upcoming = []
        for recurring in self._ledger.recurring_expenses:
            if not is_due_in_month(recurring, today.year, today.month):
                continue
            due = due_date(recurring, today.year, today.month)
            if today < due:
                upcoming.append(_occurrence(recurring, due))
        return sorted(upcoming, key=lambda o: o.due_date)

    def get_completed(self, today: Optional[date] = None) -> list[RecurringOccurrence]:
        """Due this month, day reached and already added to expenses."""
        today = today or date.today()
        key = month_key(today.year, today.month)
        completed = []
        for recurring in self._ledger.recurring_expenses:
            if not is_due_in_month(recurring, today.year, today.month):
                continue
            due = due_date(recurring, today.year, today.month)
            if due <= today and key in recurring.added_to_expenses:
                completed.append(_occurrence(recurring, due))
        return sorted(completed, key=lambda o: o.due_date)

    def auto_add_to_expenses(
        self,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Add every past-due occurrence since each template was created.

        A month is marked as handled even when an identical expense
        already exists; dismissed occurrences are skipped without marking.

        Returns:
            Number of expenses added
        """
        today = today or date.today()
        added: list[tuple[Expense, RecurringExpense, str]] = []
        changed = False

        for recurring in self._ledger.recurring_expenses:
            for year, month in iter_months(recurring.created_at.date(), today):
                if not is_due_in_month(recurring, year, month):
                    continue
                key = month_key(year, month)
                if key in recurring.added_to_expenses:
                    continue
                due = due_date(recurring, year, month)
                if due > today:
                    continue
                if is_dismissed(self._ledger, recurring.name, due, recurring.amount, recurring.id):
                    continue

                if not find_identical(self._ledger, recurring.name, due, recurring.amount):
                    expense = Expense(
                        title=recurring.name,
                        amount=recurring.amount,
                        category=RECURRING_CATEGORY,
                        expense_date=due,
                        description=recurring.description or AUTO_ADDED_DESCRIPTION,
                        recurring_id=recurring.id,
                        is_recurring=True,
                    )
                    self._ledger.expenses.append(expense)
                    added.append((expense, recurring, key))
                recurring.added_to_expenses.append(key)
                changed = True

        if changed:
            self._persist()
        for expense, recurring, key in added:
            self._record(AuditEventBuilder.recurring_auto_added(
                expense.id, recurring.id, recurring.name, key, correlation_id
            ))
        if added:
            logger.info("recurring_auto_added", count=len(added))
        return len(added)


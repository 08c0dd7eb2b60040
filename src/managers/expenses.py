"""
Expense manager

Expenses are grouped by budget month: an expense may carry an explicit
budget_month/budget_year (a bill paid on the 2nd that belongs to the
previous month), otherwise its own date decides.

Deleting an auto-generated expense (loan EMI or recurring item) records
a dismissal so startup automation does not add it back.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from src.managers.base import BaseManager, as_uuid
from src.managers.errors import RecordNotFoundError
from src.managers.schedule import (
    amounts_match,
    due_date,
    emi_due_date,
    find_identical,
    is_auto_recurring,
    is_dismissed,
    is_due_in_month,
    is_loan_emi,
    is_loan_running,
    loan_emi_amount,
)
from src.models.audit import AuditEventBuilder
from src.models.expense import (
    EMI_CATEGORY,
    DismissedRecurring,
    EventSummary,
    EventTitleBreakdown,
    Expense,
    ExpenseMonthGroup,
    RecurringOccurrence,
)
from src.utils.dates import month_key, month_label, short_month_label
from src.utils.money import ZERO, Number, money

UPDATABLE_FIELDS = {
    "title", "amount", "category", "expense_date", "description",
    "suggested_card", "event", "budget_month", "budget_year",
}


class RecurringView(BaseModel):
    """Loan EMIs and recurring items of the current month."""

    upcoming: list[RecurringOccurrence] = Field(default_factory=list)
    completed: list[RecurringOccurrence] = Field(default_factory=list)


class ExpenseManager(BaseManager):
    entity_name = "expense"

    # =========================================================================
    # CRUD
    # =========================================================================

    def add(
        self,
        title: str,
        amount: Optional[Number],
        category: str,
        expense_date: Optional[date],
        description: str = "",
        suggested_card: Optional[str] = None,
        event: Optional[str] = None,
        **extra: Any,
    ) -> Expense:
        """
        Add an expense.

        Extra keyword fields (budget_month, budget_year, recurring_id,
        is_recurring) are passed through to the model.

        Raises:
            InvalidInputError: A required field is blank or a value is invalid
        """
        expense = self._new_expense(
            title, amount, category, expense_date, description, suggested_card, event, **extra
        )
        self._store(expense)
        return expense

    def _new_expense(
        self,
        title: str,
        amount: Optional[Number],
        category: str,
        expense_date: Optional[date],
        description: str = "",
        suggested_card: Optional[str] = None,
        event: Optional[str] = None,
        **extra: Any,
    ) -> Expense:
        self._require(title=title, amount=amount, category=category, date=expense_date)
        return self._build(
            Expense,
            title=title,
            amount=amount,
            category=category,
            expense_date=expense_date,
            description=description or "",
            suggested_card=suggested_card,
            event=event,
            **extra,
        )

    def _store(self, expense: Expense) -> None:
        self._ledger.expenses.append(expense)
        self._persist()
        self._record(AuditEventBuilder.expense_added(
            expense.id, expense.title, str(expense.amount), expense.category
        ))

    def update(self, expense_id: Any, **updates: Any) -> Expense:
        """Partial update; None values are ignored except for event, which clears it."""
        expense = self.get_by_id(expense_id)
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        changes = {k: v for k, v in updates.items() if v is not None or k == "event"}
        for field in ("title", "amount", "category", "expense_date"):
            if field in changes:
                self._require(**{field: changes[field]})

        updated = self._rebuild(expense, changes)
        self._replace(self._ledger.expenses, expense, updated)
        self._persist()
        return updated

    def delete(self, expense_id: Any) -> Expense:
        expense = self.get_by_id(expense_id)
        dismissed = is_auto_recurring(expense)

        if dismissed:
            self._ledger.dismissed_recurring.append(DismissedRecurring(
                title=expense.title,
                expense_date=expense.expense_date,
                amount=expense.amount,
                category=expense.category,
                recurring_id=expense.recurring_id,
            ))
            # Unmark the month so the user can add it again by hand
            if expense.recurring_id:
                key = month_key(expense.expense_date.year, expense.expense_date.month)
                for recurring in self._ledger.recurring_expenses:
                    if recurring.id == expense.recurring_id and key in recurring.added_to_expenses:
                        recurring.added_to_expenses.remove(key)

        self._ledger.expenses.remove(expense)
        self._persist()
        self._record(AuditEventBuilder.expense_deleted(expense.id, expense.title, dismissed))
        return expense

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_all(self) -> list[Expense]:
        return list(self._ledger.expenses)

    def get_by_id(self, expense_id: Any) -> Expense:
        return self._find(self._ledger.expenses, expense_id)

    def get_by_date_range(self, start: date, end: date) -> list[Expense]:
        return [e for e in self._ledger.expenses if start <= e.expense_date <= end]

    def get_by_category(self, category: str) -> list[Expense]:
        return [e for e in self._ledger.expenses if e.category == category]

    def get_total_amount(self, expenses: Optional[Iterable[Expense]] = None) -> Decimal:
        items = self._ledger.expenses if expenses is None else expenses
        return money(sum((e.amount for e in items), ZERO))

    def get_filtered(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        search: str = "",
    ) -> list[Expense]:
        """
        Expenses whose budget month falls within start..end, matching search.

        Only the months of start and end matter. Sorted by date ascending.
        """
        filtered = list(self._ledger.expenses)
        if start and end:
            lo, hi = (start.year, start.month), (end.year, end.month)
            filtered = [e for e in filtered if lo <= e.budget_period <= hi]

        term = search.strip().lower()
        if term:
            filtered = [
                e for e in filtered
                if term in e.title.lower()
                or term in e.description.lower()
                or term in e.category.lower()
                or term in str(e.amount)
            ]
        return sorted(filtered, key=lambda e: e.expense_date)

    def group_by_month(
        self,
        expenses: Iterable[Expense],
        include_loans: bool = False,
    ) -> list[ExpenseMonthGroup]:
        """Budget-month groups, newest first. Loan EMIs are left out of totals unless include_loans."""
        groups: dict[str, ExpenseMonthGroup] = {}
        for expense in expenses:
            year, month = expense.budget_period
            key = month_key(year, month)
            group = groups.get(key)
            if group is None:
                group = groups[key] = ExpenseMonthGroup(key=key, label=month_label(year, month))
            group.expenses.append(expense)
            if include_loans or not is_loan_emi(expense):
                group.total += expense.amount

        for group in groups.values():
            group.expenses.sort(key=lambda e: e.expense_date)
            group.total = money(group.total)
        return sorted(groups.values(), key=lambda g: g.key, reverse=True)

    def is_loan_emi(self, expense: Expense) -> bool:
        return is_loan_emi(expense)

    def is_auto_recurring(self, expense: Expense) -> bool:
        return is_auto_recurring(expense)

    # =========================================================================
    # EVENTS
    # =========================================================================

    def get_event_names(self) -> list[str]:
        return sorted({e.event.strip() for e in self._ledger.expenses if e.event and e.event.strip()})

    def get_event_summary(self) -> list[EventSummary]:
        """Per-event totals with a per-title breakdown, largest first."""
        tagged: dict[str, list[Expense]] = {}
        for expense in self._ledger.expenses:
            if expense.event and expense.event.strip():
                tagged.setdefault(expense.event.strip(), []).append(expense)

        summaries = []
        for name, items in tagged.items():
            first = short_month_label(min(e.expense_date for e in items))
            last = short_month_label(max(e.expense_date for e in items))

            by_title: dict[str, list[Expense]] = {}
            for expense in items:
                by_title.setdefault(expense.title, []).append(expense)
            breakdown = [
                EventTitleBreakdown(
                    title=title,
                    total=money(sum((e.amount for e in group), ZERO)),
                    count=len(group),
                    expenses=sorted(group, key=lambda e: e.expense_date),
                )
                for title, group in by_title.items()
            ]
            breakdown.sort(key=lambda b: b.total, reverse=True)

            summaries.append(EventSummary(
                name=name,
                total=money(sum((e.amount for e in items), ZERO)),
                expense_count=len(items),
                date_range=first if first == last else f"{first} - {last}",
                by_title=breakdown,
            ))
        summaries.sort(key=lambda s: s.total, reverse=True)
        return summaries

    # =========================================================================
    # RECURRING OCCURRENCES
    # =========================================================================

    def is_dismissed(
        self,
        title: str,
        on: date,
        amount: Number,
        recurring_id: Optional[Any] = None,
    ) -> bool:
        return is_dismissed(self._ledger, title, on, amount, as_uuid(recurring_id) if recurring_id else None)

    def add_recurring_manually(
        self,
        title: str,
        amount: Number,
        category: str,
        scheduled_date: date,
        description: str = "",
        recurring_id: Optional[Any] = None,
        today: Optional[date] = None,
    ) -> Expense:
        """
        Add a due recurring item by hand.

        The expense is dated today; the scheduled month is what gets
        marked as added on the recurring template.
        """
        today = today or date.today()
        rid = as_uuid(recurring_id) if recurring_id else None

        template = None
        if rid:
            template = next((r for r in self._ledger.recurring_expenses if r.id == rid), None)
        extra: dict[str, Any] = {}
        if template is not None:
            extra = {"recurring_id": rid, "is_recurring": True}
        # Validate before touching dismissals or month marks
        expense = self._new_expense(title, amount, category, today, description, **extra)

        def still_dismissed(d: DismissedRecurring) -> bool:
            if rid and d.recurring_id and d.recurring_id == rid:
                return d.expense_date != scheduled_date
            return not (
                d.title == title
                and d.expense_date == scheduled_date
                and amounts_match(d.amount, expense.amount)
            )

        self._ledger.dismissed_recurring = [
            d for d in self._ledger.dismissed_recurring if still_dismissed(d)
        ]

        if template is not None:
            key = month_key(scheduled_date.year, scheduled_date.month)
            if key not in template.added_to_expenses:
                template.added_to_expenses.append(key)

        self._store(expense)
        return expense

    def get_recurring_view(self, today: Optional[date] = None) -> RecurringView:
        """Loan EMIs and recurring templates due this month, split into upcoming and completed."""
        today = today or date.today()
        view = RecurringView()

        for loan in self._ledger.loans:
            if not is_loan_running(loan, today):
                continue
            occurrence = RecurringOccurrence(
                title=loan.emi_title,
                amount=loan_emi_amount(loan),
                category=EMI_CATEGORY,
                due_date=emi_due_date(loan, today),
                description=loan.reason or "Monthly payment",
                is_loan=True,
            )
            if find_identical(self._ledger, occurrence.title, occurrence.due_date, occurrence.amount):
                view.completed.append(occurrence)
            else:
                view.upcoming.append(occurrence)

        key = month_key(today.year, today.month)
        for recurring in self._ledger.recurring_expenses:
            if not is_due_in_month(recurring, today.year, today.month):
                continue
            due = due_date(recurring, today.year, today.month)
            occurrence = RecurringOccurrence(
                title=recurring.name,
                amount=recurring.amount,
                category=recurring.category or "Other",
                due_date=due,
                description=recurring.description or "Recurring expense",
                recurring_id=recurring.id,
            )
            if today < due:
                view.upcoming.append(occurrence)
            elif key in recurring.added_to_expenses:
                view.completed.append(occurrence)

        view.upcoming.sort(key=lambda o: o.due_date)
        view.completed.sort(key=lambda o: o.due_date)
        return view

    def find_occurrence(self, recurring_id: Any, scheduled_date: date, today: Optional[date] = None) -> RecurringOccurrence:
        """Look up a recurring occurrence in this month's view."""
        rid = as_uuid(recurring_id)
        view = self.get_recurring_view(today)
        for occurrence in view.upcoming + view.completed:
            if occurrence.recurring_id == rid and occurrence.due_date == scheduled_date:
                return occurrence
        raise RecordNotFoundError("recurring expense", recurring_id)

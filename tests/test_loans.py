"""
Tests for loan arithmetic, the loan manager and EMI auto-add.
"""

import pytest
from datetime import date
from decimal import Decimal

from src.calculations.loans import (
    amortization_schedule,
    calculate_closure_date,
    calculate_emi,
    calculate_remaining,
    calculate_totals,
)
from src.managers import InvalidInputError, LoanManager, RecordNotFoundError
from src.models.audit import AuditEventType
from src.models.expense import EMI_CATEGORY


class TestEmiCalculation:
    """Tests for the EMI formula."""

    def test_emi_one_year_loan(self):
        """A 1L loan at 12% over 12 months."""
        assert calculate_emi(100000, 12, 12) == Decimal("8884.88")

    def test_emi_ten_year_loan(self):
        """A 10L loan at 10% over 10 years."""
        assert calculate_emi(1000000, 10, 120) == Decimal("13215.07")

    def test_zero_interest_divides_evenly(self):
        """A 0% loan repays principal in equal parts."""
        assert calculate_emi(120000, 0, 12) == Decimal("10000.00")

    def test_zero_tenure_rejected(self):
        """Tenure must be at least one month."""
        with pytest.raises(ValueError):
            calculate_emi(100000, 12, 0)

    def test_totals(self):
        """Total payable is EMI times tenure; interest is the excess."""
        total, interest = calculate_totals(100000, 12, 12)
        assert total == Decimal("106618.56")
        assert interest == Decimal("6618.56")


class TestRemainingBalance:
    """Tests for outstanding balance as of a date."""

    def test_emis_counted_once_day_reached(self):
        """The EMI of a month counts once its day has come."""
        remaining = calculate_remaining(date(2024, 1, 5), 120000, 0, 12, today=date(2024, 3, 10))
        assert remaining.emis_paid == 3
        assert remaining.emis_remaining == 9
        assert remaining.remaining_balance == Decimal("90000.00")
        assert remaining.total_remaining_payment == Decimal("90000.00")

    def test_emi_day_not_yet_reached(self):
        """Before the EMI day this month's installment is still pending."""
        remaining = calculate_remaining(date(2024, 1, 5), 120000, 0, 12, today=date(2024, 3, 4))
        assert remaining.emis_paid == 2
        assert remaining.emis_remaining == 10

    def test_reducing_balance_after_six_emis(self):
        """Half way through a 12% loan, slightly more than half is outstanding."""
        remaining = calculate_remaining(date(2024, 1, 1), 100000, 12, 12, today=date(2024, 6, 1))
        assert remaining.emis_paid == 6
        assert Decimal("51490") < remaining.remaining_balance < Decimal("51495")

    def test_not_started(self):
        """A loan starting in the future has nothing paid."""
        remaining = calculate_remaining(date(2024, 5, 1), 100000, 12, 12, today=date(2024, 3, 1))
        assert remaining.emis_paid == 0
        assert remaining.emis_remaining == 12

    def test_closed_loan(self):
        """Past the tenure the balance is zero and the loan is closed."""
        remaining = calculate_remaining(date(2020, 1, 1), 100000, 12, 12, today=date(2024, 3, 1))
        assert remaining.remaining_balance == Decimal("0.00")
        assert remaining.is_closed


class TestScheduleAndClosure:
    """Tests for closure date and amortization."""

    def test_closure_date_clamps_to_month_end(self):
        """A 31st start on a short month lands on its last day."""
        assert calculate_closure_date(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_amortization_ends_at_zero(self):
        """Balance reaches zero after the last installment."""
        rows = amortization_schedule(100000, 12, 12)
        assert len(rows) == 12
        assert rows[0].interest == Decimal("1000.00")
        assert rows[0].principal == Decimal("7884.88")
        assert rows[-1].balance == Decimal("0.00")

    def test_balance_never_negative_when_emi_rounds_up(self):
        """200 over 3 months rounds the EMI up to 66.67; the balance stops at zero."""
        rows = amortization_schedule(200, 0, 3)
        assert [row.balance for row in rows] == [Decimal("133.33"), Decimal("66.66"), Decimal("0.00")]
        assert all(row.balance >= 0 for row in amortization_schedule(250000, 9.5, 37))


class TestLoanManager:
    """Tests for loan CRUD and startup EMI automation."""

    @pytest.fixture
    def manager(self, ledger, storage, audit):
        return LoanManager(ledger, storage, audit)

    def test_add_requires_fields(self, manager):
        """Blank required fields are reported together."""
        with pytest.raises(InvalidInputError) as exc:
            manager.add("", "Home", "", None, 8.5, 240, None)
        assert {"bank_name", "amount", "first_emi_date"} <= set(exc.value.field_errors)

    def test_add_persists(self, manager, storage):
        """Adding a loan saves the ledger."""
        loan = manager.add("HDFC", "Home", "Flat", 2500000, 8.5, 240, date(2024, 1, 5))
        assert manager.get_by_id(loan.id) == loan
        assert storage.save_count == 1
        assert storage.load().loans[0].bank_name == "HDFC"

    def test_zero_interest_accepted(self, manager):
        """A 0% loan is valid."""
        loan = manager.add("Dad", "Personal", "", 120000, 0, 12, date(2024, 1, 5))
        assert manager.summary(loan.id, today=date(2024, 1, 10)).emi == Decimal("10000.00")

    def test_unknown_id(self, manager):
        """Looking up a missing loan raises RecordNotFoundError."""
        with pytest.raises(RecordNotFoundError):
            manager.get_by_id("not-a-uuid")

    def test_auto_add_emi_when_day_reached(self, manager, ledger, audit_storage, today):
        """The current month's EMI is added once its day has passed."""
        manager.add("HDFC", "Car", "", 120000, 0, 12, date(2024, 1, 5))
        assert manager.auto_add_emis(today) == 1

        expense = ledger.expenses[0]
        assert expense.title == "HDFC Car EMI"
        assert expense.category == EMI_CATEGORY
        assert expense.expense_date == date(2024, 3, 5)
        assert expense.amount == Decimal("10000.00")
        assert expense.description == "Monthly payment"
        assert any(e.event_type == AuditEventType.EMI_AUTO_ADDED for e in audit_storage.events)

    def test_auto_add_is_idempotent(self, manager, today):
        """Running twice never duplicates the EMI."""
        manager.add("HDFC", "Car", "", 120000, 0, 12, date(2024, 1, 5))
        manager.auto_add_emis(today)
        assert manager.auto_add_emis(today) == 0

    def test_auto_add_waits_for_emi_day(self, manager, ledger):
        """Nothing is added before the EMI day."""
        manager.add("HDFC", "Car", "", 120000, 0, 12, date(2024, 1, 20))
        assert manager.auto_add_emis(date(2024, 3, 15)) == 0
        assert ledger.expenses == []

    def test_auto_add_skips_future_and_closed_loans(self, manager):
        """Loans not yet started or already repaid add nothing."""
        manager.add("SBI", "Home", "", 100000, 10, 12, date(2024, 6, 1))
        manager.add("ICICI", "Car", "", 100000, 10, 12, date(2020, 1, 1))
        assert manager.auto_add_emis(date(2024, 3, 15)) == 0

    def test_auto_add_skips_dismissed(self, manager, ledger, storage, today):
        """An EMI the user deleted is not re-added."""
        from src.managers import ExpenseManager

        manager.add("HDFC", "Car", "", 120000, 0, 12, date(2024, 1, 5))
        manager.auto_add_emis(today)
        ExpenseManager(ledger, storage).delete(ledger.expenses[0].id)

        assert len(ledger.dismissed_recurring) == 1
        assert manager.auto_add_emis(today) == 0

    def test_deletion_impact(self, manager, ledger, today):
        """Deleting reports linked expenses and pending EMIs; expenses stay."""
        loan = manager.add("HDFC", "Car", "", 120000, 0, 12, date(2024, 1, 5))
        manager.auto_add_emis(today)

        impact = manager.delete(loan.id, today)
        assert impact.linked_expense_count == 1
        assert impact.pending_emis == 9
        assert ledger.loans == []
        assert len(ledger.expenses) == 1

    def test_split_active_closed(self, manager, today):
        """Closed loans are separated from running ones."""
        manager.add("SBI", "Home", "", 100000, 10, 12, date(2020, 1, 1))
        manager.add("HDFC", "Car", "", 120000, 0, 12, date(2024, 1, 5))
        active, closed = manager.split_active_closed(today)
        assert [s.loan.bank_name for s in active] == ["HDFC"]
        assert [s.loan.bank_name for s in closed] == ["SBI"]

    def test_schedule_for_loan(self, manager):
        loan = manager.add("HDFC", "Car", "", 120000, 0, 12, date(2024, 1, 5))
        rows = manager.schedule_for(loan.id)
        assert len(rows) == 12
        assert rows[0].principal == Decimal("10000.00")
        assert rows[-1].balance == Decimal("0.00")

    def test_schedule_for_unknown_loan(self, manager):
        with pytest.raises(RecordNotFoundError):
            manager.schedule_for("00000000-0000-0000-0000-000000000000")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

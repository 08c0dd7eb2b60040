"""
Tests for Personal Finance Tracker models

Test strategy:
1. Unit tests for individual components (models, calculations, managers)
2. Integration tests for flows (with in-memory storage and fake services)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import SecretStr, ValidationError

from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from src.models.credential import Credential
from src.models.expense import Expense, RecurringExpense, RecurringFrequency
from src.models.income import IncomeSettings, TaxSlab
from src.models.investment import Investment, InvestmentGoal, InvestmentType
from src.models.ledger import AISettings, Ledger
from src.models.loan import Loan
from src.models.validation import ValidationIssue, ValidationResult


class TestLedgerModels:
    """Tests for the ledger and its records."""

    def test_json_round_trip_keeps_secrets(self):
        """Passwords and API keys are hidden in memory but written to storage."""
        ledger = Ledger(
            credentials=[Credential(service="Netbanking", username="me", password=SecretStr("p@ss"))],
            settings=AISettings(gemini_api_key=SecretStr("g-key")),
        )
        assert "p@ss" not in repr(ledger)

        loaded = Ledger.model_validate_json(ledger.model_dump_json())
        assert loaded.credentials[0].password.get_secret_value() == "p@ss"
        assert loaded.settings.api_key_for("gemini") == "g-key"
        assert loaded.settings.api_key_for("groq") is None

    def test_priority_order_normalised(self):
        """Provider names are lower-cased and de-duplicated."""
        settings = AISettings(priority_order=["Groq", "gemini", "groq"])
        assert settings.priority_order == ["groq", "gemini"]

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            AISettings(priority_order=["claude"])

    def test_collection_sizes(self):
        ledger = Ledger(loans=[Loan(bank_name="HDFC", loan_type="Car", amount=100000,
                                    interest_rate=9, tenure=12, first_emi_date=date(2024, 1, 5))])
        sizes = ledger.collection_sizes()
        assert sizes["loans"] == 1
        assert sizes["expenses"] == 0


class TestExpenseModels:
    """Tests for expenses and recurring templates."""

    def test_blank_event_is_none(self):
        expense = Expense(title="Dinner", amount=500, category="Food & Dining",
                          expense_date=date(2024, 3, 1), event="  ")
        assert expense.event is None

    def test_budget_period(self):
        """The budget month overrides the calendar month for grouping."""
        expense = Expense(title="Rent", amount=20000, category="Bills & Utilities",
                          expense_date=date(2024, 3, 31), budget_month=4, budget_year=2024)
        assert expense.budget_period == (2024, 4)

    def test_amount_must_be_positive(self):
        with pytest.raises(ValidationError):
            Expense(title="Oops", amount=0, category="Other", expense_date=date(2024, 3, 1))

    def test_monthly_template_drops_months(self):
        recurring = RecurringExpense(name="Netflix", amount=649, frequency=RecurringFrequency.MONTHLY,
                                     day=5, months=[1, 2])
        assert recurring.months == []

    def test_custom_template_needs_months(self):
        with pytest.raises(ValidationError):
            RecurringExpense(name="LIC", amount=12000, frequency=RecurringFrequency.CUSTOM, day=5)

    def test_loan_emi_title(self):
        loan = Loan(bank_name="SBI", loan_type="Home", amount=100000,
                    interest_rate=9, tenure=12, first_emi_date=date(2024, 1, 5))
        assert loan.emi_title == "SBI Home EMI"


class TestInvestmentModels:
    """Tests for investment records."""

    def test_key(self):
        inv = Investment(name="INFY", type=InvestmentType.SHARES, quantity=10, price=1400)
        assert inv.key == "INFY_SHARES_LONG_TERM"

    def test_epf_is_always_long_term(self):
        inv = Investment(name="EPF", type=InvestmentType.EPF, goal=InvestmentGoal.SHORT_TERM, amount=50000)
        assert inv.goal == InvestmentGoal.LONG_TERM

    def test_price_rounded_to_paise(self):
        inv = Investment(name="Gold coin", type=InvestmentType.GOLD, quantity=Decimal("2.5"), price="6123.456")
        assert inv.price == Decimal("6123.46")

    @pytest.mark.parametrize("fields", [
        {"type": InvestmentType.SHARES, "quantity": Decimal("1.5"), "price": 100},
        {"type": InvestmentType.GOLD, "quantity": 1},
        {"type": InvestmentType.FD, "amount": 100000, "tenure": 12, "interest_rate": 7},
    ])
    def test_type_fields_required(self, fields):
        with pytest.raises(ValidationError):
            Investment(name="X", **fields)


class TestIncomeModels:
    """Tests for income settings."""

    def test_legacy_espp_migrated(self):
        """A single ESPP percent from older ledgers applies to both cycles."""
        settings = IncomeSettings.model_validate({"ctc": 2400000, "espp_percent": 10})
        assert settings.espp_percent_cycle1 == Decimal("10")
        assert settings.espp_percent_cycle2 == Decimal("10")

    def test_empty_slabs_restore_defaults(self):
        settings = IncomeSettings(tax_slabs=[])
        assert len(settings.tax_slabs) > 0
        assert settings.tax_slabs[-1].max is None

    def test_slab_bounds(self):
        with pytest.raises(ValidationError):
            TaxSlab(min=800000, max=400000, rate=5)


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            description="Expense added",
        )
        assert event.event_type == AuditEventType.EXPENSE_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.expense_added(uuid4(), "Swiggy", "450.00", "Food & Dining")
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "expense_added"
        assert log_dict["details"]["category"] == "Food & Dining"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEventBuilder.expense_added(uuid4(), "Swiggy", "450.00", "Food & Dining")
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "expense_added"  # event_type
        assert row[10] == "True"  # is_user_action

    def test_emi_auto_added_is_automation(self):
        """Automation events carry the run's correlation id."""
        correlation_id = uuid4()
        expense_id = uuid4()

        event = AuditEventBuilder.emi_auto_added(expense_id, "HDFC Car EMI", "10000.00", correlation_id)

        assert event.event_type == AuditEventType.EMI_AUTO_ADDED
        assert event.entity_id == expense_id
        assert event.correlation_id == correlation_id
        assert event.is_user_action is False

    def test_save_failed_truncates_error(self):
        event = AuditEventBuilder.save_failed("x" * 600)
        assert event.severity == AuditSeverity.ERROR
        assert len(event.error_message) == 500


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(issues=[
            ValidationIssue(field="amount", issue_type="missing", message="Amount is required"),
        ])
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(issues=[
            ValidationIssue(field="date", issue_type="future_date", message="Date in future", severity="warning"),
        ])
        assert result.has_errors is False
        assert result.is_valid is True
        assert result.errors_by_field() == {}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
Tests for the income manager: salary structure, slabs and salary records.
"""

import pytest
from decimal import Decimal

from src.managers import DuplicateRecordError, IncomeManager, InvalidInputError, RecordNotFoundError
from src.models.audit import AuditEventType
from src.models.income import IncomeSettings, default_tax_slabs


@pytest.fixture
def manager(ledger, storage, audit):
    return IncomeManager(ledger, storage, audit, professional_tax=200)


class TestIncomeSettings:
    """Saving the salary structure."""

    def test_save_settings(self, manager, storage, audit_storage):
        manager.save_settings(ctc=1500000, bonus_percent=10)
        assert manager.settings.ctc == Decimal("1500000")
        assert storage.load().income.bonus_percent == Decimal("10")
        assert audit_storage.events[-1].event_type == AuditEventType.INCOME_SETTINGS_SAVED

    def test_blank_values_fall_back(self, manager):
        """Blank PF becomes 12%, other blanks become zero."""
        manager.save_settings(ctc=1500000, bonus_percent=10)
        manager.save_settings(pf_percent="", bonus_percent=None)
        assert manager.settings.pf_percent == Decimal("12")
        assert manager.settings.bonus_percent == Decimal("0")

    def test_unknown_setting(self, manager):
        with pytest.raises(ValueError):
            manager.save_settings(salary=10)

    def test_out_of_range(self, manager):
        """Percentages above 100 are rejected."""
        with pytest.raises(InvalidInputError):
            manager.save_settings(pf_percent=150)

    def test_legacy_espp_migrated(self):
        """A single stored ESPP percent fills both cycles."""
        settings = IncomeSettings.model_validate({"ctc": 100, "espp_percent": 7})
        assert settings.espp_percent_cycle1 == Decimal("7")
        assert settings.espp_percent_cycle2 == Decimal("7")

    def test_calculations_use_saved_structure(self, manager):
        manager.save_settings(ctc=1500000)
        assert manager.income_tax().total_tax == Decimal("86268.00")
        assert manager.payslip().net_pay == Decimal("105611.00")
        assert manager.leave_encashment(10) == Decimal("39123")
        assert len(manager.yearly_payslips()) == 12


class TestSlabs:
    """Editing tax and surcharge slabs."""

    def test_invalid_slab(self, manager):
        """A slab's maximum must exceed its minimum."""
        with pytest.raises(InvalidInputError):
            manager.add_tax_slab(500000, 400000, 5)

    def test_update_slab(self, manager):
        manager.update_tax_slab(0, 0, 300000, 0, "Up to 3L")
        assert manager.settings.tax_slabs[0].max == Decimal("300000")

    def test_deleting_every_slab_restores_defaults(self, manager):
        for _ in range(len(manager.settings.tax_slabs)):
            manager.delete_tax_slab(0)
        assert len(manager.settings.tax_slabs) == len(default_tax_slabs())

    def test_bad_index(self, manager):
        with pytest.raises(RecordNotFoundError):
            manager.delete_surcharge_slab(42)

    def test_reset_tax_slabs(self, manager):
        manager.add_tax_slab(5000000, None, 35, "Above 50L")
        manager.reset_tax_slabs()
        assert manager.settings.tax_slabs == default_tax_slabs()

    def test_surcharge_slab_edits(self, manager, storage):
        """Surcharge slabs are edited like tax slabs and persisted."""
        manager.update_surcharge_slab(1, 5000000, 10000000, 12, "50L - 1Cr")
        manager.add_surcharge_slab(100000000, None, 37, "Above 10 Cr")

        slabs = storage.load().income.surcharge_slabs
        assert slabs[1].rate == Decimal("12")
        assert slabs[-1].label == "Above 10 Cr"

        manager.reset_surcharge_slabs()
        assert manager.settings.surcharge_slabs[1].rate == Decimal("10")
        assert len(manager.settings.surcharge_slabs) == 5

    def test_deductions(self, manager):
        """Blank deductions count as zero."""
        manager.set_deductions(section_80c=150000, section_80d=None)
        deductions = manager.settings.deductions
        assert deductions.section_80c == Decimal("150000")
        assert deductions.section_80d == Decimal("0")

    def test_negative_deduction(self, manager):
        with pytest.raises(InvalidInputError):
            manager.set_deductions(other=-1)


class TestSalaries:
    """Salaries credited per month."""

    def test_add_and_list_newest_first(self, manager):
        manager.add_salary(1, 2024, 105000)
        manager.add_salary(12, 2023, 100000)
        manager.add_salary(2, 2024, 106000)

        salaries = manager.get_all_salaries()
        assert [(s.year, s.month) for s in salaries] == [(2024, 2), (2024, 1), (2023, 12)]
        assert manager.year_total(2024) == Decimal("211000.00")

    def test_duplicate_month(self, manager):
        """One salary per month and year."""
        manager.add_salary(1, 2024, 105000)
        with pytest.raises(DuplicateRecordError):
            manager.add_salary(1, 2024, 1)

    def test_non_numeric_month(self, manager, ledger):
        """A month or year that is not a number is reported on its field."""
        with pytest.raises(InvalidInputError) as exc:
            manager.add_salary("Jan", 2024, 105000)
        assert "month" in exc.value.field_errors
        with pytest.raises(InvalidInputError) as exc:
            manager.add_salary(1, "2024a", 105000)
        assert "year" in exc.value.field_errors
        assert ledger.salaries == []

    def test_update_own_month_allowed(self, manager):
        salary = manager.add_salary(1, 2024, 105000)
        updated = manager.update_salary(salary.id, 1, 2024, 107000)
        assert updated.amount == Decimal("107000")
        assert updated.updated_at is not None

    def test_delete(self, manager, ledger):
        salary = manager.add_salary(1, 2024, 105000)
        manager.delete_salary(salary.id)
        assert ledger.salaries == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

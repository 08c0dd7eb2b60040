"""
Income manager

Owns the salary structure (IncomeSettings) and the salary records, and
exposes the tax and payslip calculations for the saved structure.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from src.audit import AuditLogger
from src.calculations.tax import (
    DEFAULT_PROFESSIONAL_TAX,
    calculate_bonus,
    calculate_income_tax,
    calculate_leave_encashment,
    calculate_payslip,
    generate_yearly_payslips,
)
from src.managers.base import BaseManager
from src.managers.errors import DuplicateRecordError, RecordNotFoundError
from src.models.audit import AuditEventBuilder
from src.models.income import (
    BonusBreakdown,
    Deductions,
    IncomeSettings,
    MonthlyPayslip,
    Payslip,
    SalaryRecord,
    SurchargeSlab,
    TaxBreakdown,
    TaxSlab,
    default_surcharge_slabs,
    default_tax_slabs,
)
from src.models.ledger import Ledger
from src.services.storage import LedgerStorageInterface
from src.utils.formatters import month_name
from src.utils.money import ZERO, Number, money, to_decimal

SETTINGS_FIELDS = {
    "ctc", "bonus_percent", "espp_percent_cycle1", "espp_percent_cycle2", "pf_percent",
    "standard_deduction", "cess_percent", "has_insurance", "insurance_total",
    "insurance_months", "leave_days", "bonus_mid_year_multiplier", "bonus_year_end_multiplier",
}


class IncomeManager(BaseManager):
    entity_name = "salary record"

    def __init__(
        self,
        ledger: Ledger,
        storage: LedgerStorageInterface,
        audit: Optional[AuditLogger] = None,
        professional_tax: Number = DEFAULT_PROFESSIONAL_TAX,
    ):
        super().__init__(ledger, storage, audit)
        self._professional_tax = to_decimal(professional_tax)

    # =========================================================================
    # SETTINGS
    # =========================================================================

    @property
    def settings(self) -> IncomeSettings:
        return self._ledger.income

    def save_settings(self, **values: Any) -> IncomeSettings:
        """
        Update the salary structure. Blank numeric inputs fall back to
        0 (and PF to 12%).
        """
        unknown = set(values) - SETTINGS_FIELDS
        if unknown:
            raise ValueError(f"Unknown income settings: {', '.join(sorted(unknown))}")
        cleaned = {}
        for key, value in values.items():
            if value is None or value == "":
                value = Decimal("12") if key == "pf_percent" else ZERO
            cleaned[key] = value
        self._set_settings(cleaned)
        self._record(AuditEventBuilder.income_settings_saved(list(cleaned)))
        return self._ledger.income

    def _set_settings(self, changes: dict[str, Any]) -> None:
        self._ledger.income = self._rebuild(self._ledger.income, changes)
        self._persist()

    def set_deductions(
        self,
        hra_exemption: Number = 0,
        section_80c: Number = 0,
        section_80d: Number = 0,
        other: Number = 0,
    ) -> Deductions:
        deductions = self._build(
            Deductions,
            hra_exemption=hra_exemption or 0,
            section_80c=section_80c or 0,
            section_80d=section_80d or 0,
            other=other or 0,
        )
        self._set_settings({"deductions": deductions})
        return deductions

    # =========================================================================
    # SLABS
    # =========================================================================

    def add_tax_slab(self, min: Number, max: Optional[Number], rate: Number, label: str = "") -> TaxSlab:
        slab = self._build(TaxSlab, min=min, max=max, rate=rate, label=label)
        self._set_settings({"tax_slabs": self.settings.tax_slabs + [slab]})
        return slab

    def update_tax_slab(self, index: int, min: Number, max: Optional[Number], rate: Number, label: str = "") -> TaxSlab:
        slabs = list(self.settings.tax_slabs)
        self._check_index(slabs, index, "tax slab")
        slabs[index] = self._build(TaxSlab, min=min, max=max, rate=rate, label=label)
        self._set_settings({"tax_slabs": slabs})
        return slabs[index]

    def delete_tax_slab(self, index: int) -> None:
        """Deleting the last slab brings back the defaults."""
        slabs = list(self.settings.tax_slabs)
        self._check_index(slabs, index, "tax slab")
        del slabs[index]
        self._set_settings({"tax_slabs": slabs})

    def reset_tax_slabs(self) -> None:
        self._set_settings({"tax_slabs": default_tax_slabs()})

    def add_surcharge_slab(self, min: Number, max: Optional[Number], rate: Number, label: str = "") -> SurchargeSlab:
        slab = self._build(SurchargeSlab, min=min, max=max, rate=rate, label=label)
        self._set_settings({"surcharge_slabs": self.settings.surcharge_slabs + [slab]})
        return slab

    def update_surcharge_slab(
        self, index: int, min: Number, max: Optional[Number], rate: Number, label: str = ""
    ) -> SurchargeSlab:
        slabs = list(self.settings.surcharge_slabs)
        self._check_index(slabs, index, "surcharge slab")
        slabs[index] = self._build(SurchargeSlab, min=min, max=max, rate=rate, label=label)
        self._set_settings({"surcharge_slabs": slabs})
        return slabs[index]

    def delete_surcharge_slab(self, index: int) -> None:
        slabs = list(self.settings.surcharge_slabs)
        self._check_index(slabs, index, "surcharge slab")
        del slabs[index]
        self._set_settings({"surcharge_slabs": slabs})

    def reset_surcharge_slabs(self) -> None:
        self._set_settings({"surcharge_slabs": default_surcharge_slabs()})

    @staticmethod
    def _check_index(items: list, index: int, entity: str) -> None:
        if not 0 <= index < len(items):
            raise RecordNotFoundError(entity, index)

    # =========================================================================
    # SALARIES
    # =========================================================================

    def add_salary(self, month: Optional[int], year: Optional[int], amount: Optional[Number]) -> SalaryRecord:
        """
        Raises:
            DuplicateRecordError: A salary for that month and year exists
        """
        self._require(month=month, year=year, amount=amount)
        self._check_unique(self._integer("month", month), self._integer("year", year))
        salary = self._build(SalaryRecord, month=month, year=year, amount=amount)
        self._ledger.salaries.append(salary)
        self._persist()
        self._record(AuditEventBuilder.salary_recorded(salary.id, salary.month, salary.year, str(salary.amount)))
        return salary

    def update_salary(
        self,
        salary_id: Any,
        month: Optional[int],
        year: Optional[int],
        amount: Optional[Number],
    ) -> SalaryRecord:
        existing = self.get_salary_by_id(salary_id)
        self._require(month=month, year=year, amount=amount)
        self._check_unique(self._integer("month", month), self._integer("year", year), exclude=existing)
        updated = self._rebuild(existing, {
            "month": month,
            "year": year,
            "amount": amount,
            "updated_at": datetime.utcnow(),
        })
        self._replace(self._ledger.salaries, existing, updated)
        self._persist()
        return updated

    def delete_salary(self, salary_id: Any) -> SalaryRecord:
        salary = self.get_salary_by_id(salary_id)
        self._ledger.salaries.remove(salary)
        self._persist()
        return salary

    def get_salary_by_id(self, salary_id: Any) -> SalaryRecord:
        return self._find(self._ledger.salaries, salary_id)

    def get_all_salaries(self) -> list[SalaryRecord]:
        """Newest first."""
        return sorted(self._ledger.salaries, key=lambda s: (s.year, s.month), reverse=True)

    def year_total(self, year: int) -> Decimal:
        return money(sum((s.amount for s in self._ledger.salaries if s.year == year), ZERO))

    def _check_unique(self, month: int, year: int, exclude: Optional[SalaryRecord] = None) -> None:
        for salary in self._ledger.salaries:
            if salary is not exclude and salary.month == month and salary.year == year:
                raise DuplicateRecordError(
                    f"Salary for {month_name(month, short=True)} {year} already exists. "
                    "Please edit the existing record."
                )

    # =========================================================================
    # CALCULATIONS
    # =========================================================================

    def income_tax(self, ctc: Optional[Number] = None) -> TaxBreakdown:
        return calculate_income_tax(self.settings, ctc)

    def payslip(self, ctc: Optional[Number] = None) -> Payslip:
        return calculate_payslip(self.settings, ctc, self._professional_tax)

    def bonus(self, ctc: Optional[Number] = None) -> BonusBreakdown:
        return calculate_bonus(self.settings, ctc)

    def leave_encashment(self, days: Optional[Number] = None) -> Decimal:
        return calculate_leave_encashment(self.settings, days)

    def yearly_payslips(self, ctc: Optional[Number] = None) -> list[MonthlyPayslip]:
        return generate_yearly_payslips(self.settings, ctc, self._professional_tax)

"""
Income Models

IncomeSettings is the user's salary structure: CTC, bonus and ESPP
percentages, PF, tax slabs, deductions, insurance and leave days.
Results of tax and payslip computation are separate read-only models.

DESIGN DECISION: Slab bounds use None for "no upper limit" rather than
infinity so the ledger round-trips through JSON unchanged.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# SLABS
# =============================================================================

class TaxSlab(BaseModel):
    """A progressive income-tax band."""

    min: Decimal = Field(..., ge=0)
    max: Optional[Decimal] = Field(default=None, description="None means unbounded")
    rate: Decimal = Field(..., ge=0, le=100)
    label: str = ""

    @model_validator(mode="after")
    def check_bounds(self) -> "TaxSlab":
        if self.max is not None and self.max <= self.min:
            raise ValueError("Slab maximum must be greater than its minimum")
        return self


class SurchargeSlab(TaxSlab):
    """Surcharge band, matched on CTC."""


def default_tax_slabs() -> list[TaxSlab]:
    """New-regime slabs."""
    bands = [
        (0, 400000, 0, "Up to ₹4L"),
        (400000, 800000, 5, "₹4L - ₹8L"),
        (800000, 1200000, 10, "₹8L - ₹12L"),
        (1200000, 1600000, 15, "₹12L - ₹16L"),
        (1600000, 2000000, 20, "₹16L - ₹20L"),
        (2000000, 2400000, 25, "₹20L - ₹24L"),
        (2400000, None, 30, "Above ₹24L"),
    ]
    return [
        TaxSlab(min=lo, max=hi, rate=rate, label=label)
        for lo, hi, rate, label in bands
    ]


def default_surcharge_slabs() -> list[SurchargeSlab]:
    bands = [
        (0, 5000000, 0, "Up to ₹50 Lakhs"),
        (5000000, 10000000, 10, "₹50L - ₹1 Cr"),
        (10000000, 20000000, 15, "₹1 Cr - ₹2 Cr"),
        (20000000, 50000000, 25, "₹2 Cr - ₹5 Cr"),
        (50000000, None, 25, "Above ₹5 Cr"),
    ]
    return [
        SurchargeSlab(min=lo, max=hi, rate=rate, label=label)
        for lo, hi, rate, label in bands
    ]


# =============================================================================
# INCOME SETTINGS
# =============================================================================

class Deductions(BaseModel):
    """Deductions that reduce taxable income."""

    hra_exemption: Decimal = Field(default=Decimal("0"), ge=0)
    section_80c: Decimal = Field(default=Decimal("0"), ge=0)
    section_80d: Decimal = Field(default=Decimal("0"), ge=0)
    other: Decimal = Field(default=Decimal("0"), ge=0)

    @property
    def total(self) -> Decimal:
        return self.hra_exemption + self.section_80c + self.section_80d + self.other


class IncomeSettings(BaseModel):
    """
    Salary structure for the current financial year.

    ESPP cycle 1 covers December to May, cycle 2 June to November.
    """

    model_config = ConfigDict(validate_assignment=True)

    ctc: Decimal = Field(default=Decimal("0"), ge=0)
    bonus_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    espp_percent_cycle1: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    espp_percent_cycle2: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    pf_percent: Decimal = Field(default=Decimal("12"), ge=0, le=100)

    tax_slabs: list[TaxSlab] = Field(default_factory=default_tax_slabs)
    surcharge_slabs: list[SurchargeSlab] = Field(default_factory=default_surcharge_slabs)
    standard_deduction: Decimal = Field(default=Decimal("75000"), ge=0)
    cess_percent: Decimal = Field(default=Decimal("4"), ge=0, le=100)
    deductions: Deductions = Field(default_factory=Deductions)

    has_insurance: bool = False
    insurance_total: Decimal = Field(default=Decimal("0"), ge=0)
    insurance_months: list[int] = Field(default_factory=list)

    leave_days: Decimal = Field(default=Decimal("0"), ge=0)

    bonus_mid_year_multiplier: Decimal = Field(default=Decimal("1.0"), ge=0)
    bonus_year_end_multiplier: Decimal = Field(default=Decimal("1.0"), ge=0)

    @model_validator(mode="before")
    @classmethod
    def migrate_legacy_espp(cls, data: Any) -> Any:
        """Older ledgers stored a single esppPercent for the whole year."""
        if isinstance(data, dict) and "espp_percent" in data:
            data = dict(data)
            legacy = data.pop("espp_percent")
            data.setdefault("espp_percent_cycle1", legacy)
            data.setdefault("espp_percent_cycle2", legacy)
        return data

    @field_validator("tax_slabs")
    @classmethod
    def restore_default_tax_slabs(cls, v: list[TaxSlab]) -> list[TaxSlab]:
        return v or default_tax_slabs()

    @field_validator("surcharge_slabs")
    @classmethod
    def restore_default_surcharge_slabs(cls, v: list[SurchargeSlab]) -> list[SurchargeSlab]:
        return v or default_surcharge_slabs()

    @field_validator("insurance_months")
    @classmethod
    def validate_insurance_months(cls, v: list[int]) -> list[int]:
        for m in v:
            if not 1 <= m <= 12:
                raise ValueError(f"Insurance month must be between 1 and 12, got {m}")
        return sorted(set(v))


class SalaryRecord(BaseModel):
    """Salary actually credited for one month."""

    id: UUID = Field(default_factory=uuid4)
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=1900, le=2200)
    amount: Decimal = Field(..., gt=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None


# =============================================================================
# COMPUTED RESULTS
# =============================================================================

class SlabTax(BaseModel):
    range: str
    tax: Decimal
    rate: Decimal


class TaxBreakdown(BaseModel):
    """Annual income tax for a CTC."""

    base_tax: Decimal
    surcharge: Decimal
    surcharge_rate: Decimal
    cess: Decimal
    cess_percent: Decimal
    total_tax: Decimal
    tax_percent: Decimal

    standard_deduction: Decimal
    hra_exemption: Decimal
    section_80c: Decimal
    section_80d: Decimal
    other_deductions: Decimal
    total_deductions: Decimal

    employer_pf_annual: Decimal
    exempt_employer_pf: Decimal
    taxable_employer_pf: Decimal
    taxable_income: Decimal

    slabs: list[SlabTax] = Field(default_factory=list)


class Payslip(BaseModel):
    """Monthly salary breakup."""

    basic_pay: Decimal
    hra: Decimal
    allowances: Decimal
    gross_earnings: Decimal
    pf_employer: Decimal
    pf_employee: Decimal
    espp: Decimal
    income_tax: Decimal
    professional_tax: Decimal
    gross_deductions: Decimal
    net_pay: Decimal


class BonusPart(BaseModel):
    before_tax: Decimal
    after_tax: Decimal
    espp_cut: Decimal
    net: Decimal


class BonusBreakdown(BaseModel):
    """Mid-year (September) and year-end (April) bonus payouts."""

    total_bonus_before_tax: Decimal
    total_bonus_after_tax: Decimal
    mid_year: BonusPart
    year_end: BonusPart


class MonthlyPayslip(Payslip):
    """A payslip for a named month of the financial year."""

    month: str
    calendar_month: int = Field(..., ge=1, le=12)
    bonus: Decimal = Decimal("0")
    leave_encashment: Decimal = Decimal("0")
    insurance_deduction: Decimal = Decimal("0")
    total_net_pay: Decimal

"""
Income tax and payroll

Salary structure assumptions:
    basic           = 40% of CTC
    HRA             = half of monthly basic
    PF              = pf_percent of basic, employer and employee each
    gross earnings  = CTC / 12 - employer PF
    allowances      = gross - basic - HRA

Tax is progressive over the slabs on taxable income, where taxable
income is CTC minus exempt employer PF (up to 7.5L) minus deductions.
Surcharge is picked from the slab that contains the CTC itself, then
cess applies to tax plus surcharge.

DESIGN DECISION: Figures are carried at full Decimal precision through
each computation and rounded to paise only in the returned models, so
the bonus and leave calculations see the exact effective tax rate.
"""

from decimal import Decimal
from typing import Optional

from src.models.income import (
    BonusBreakdown,
    BonusPart,
    IncomeSettings,
    MonthlyPayslip,
    Payslip,
    SlabTax,
    TaxBreakdown,
)
from src.utils.money import ZERO, Number, money, to_decimal, whole

BASIC_SHARE = Decimal("0.40")
PF_EXEMPTION_LIMIT = Decimal("750000")
DEFAULT_PROFESSIONAL_TAX = Decimal("200")
MID_YEAR_BONUS_SHARE = Decimal("0.25")
YEAR_END_BONUS_SHARE = Decimal("0.75")

# April to March
FINANCIAL_YEAR_MONTHS = [
    "April", "May", "June", "July", "August", "September",
    "October", "November", "December", "January", "February", "March",
]

_HUNDRED = Decimal(100)


def calendar_month_for(index: int) -> int:
    """Financial-year position (0 = April) to calendar month number."""
    return index + 4 if index < 9 else index - 8


def espp_percent_for_month(calendar_month: int, cycle1: Number, cycle2: Number) -> Decimal:
    """Cycle 1 runs December to May, cycle 2 June to November."""
    if calendar_month == 12 or 1 <= calendar_month <= 5:
        return to_decimal(cycle1)
    return to_decimal(cycle2)


# =============================================================================
# SALARY COMPONENTS
# =============================================================================

def annual_basic(ctc: Number) -> Decimal:
    return to_decimal(ctc) * BASIC_SHARE


def monthly_basic(ctc: Number) -> Decimal:
    return annual_basic(ctc) / 12


def monthly_pf(ctc: Number, pf_percent: Number = 12) -> Decimal:
    """Monthly PF contribution (employer and employee contribute the same)."""
    return annual_basic(ctc) * to_decimal(pf_percent) / _HUNDRED / 12


def monthly_gross_earnings(ctc: Number, pf_percent: Number = 12) -> Decimal:
    return to_decimal(ctc) / 12 - monthly_pf(ctc, pf_percent)


# =============================================================================
# INCOME TAX
# =============================================================================

def _compute_tax(settings: IncomeSettings, ctc: Decimal) -> dict:
    """Unrounded tax figures."""
    employer_pf = annual_basic(ctc) * settings.pf_percent / _HUNDRED
    taxable_pf = max(ZERO, employer_pf - PF_EXEMPTION_LIMIT)
    exempt_pf = min(employer_pf, PF_EXEMPTION_LIMIT)

    deductions = settings.deductions
    total_deductions = settings.standard_deduction + deductions.total
    taxable_income = max(ZERO, ctc - exempt_pf - total_deductions)

    tax = ZERO
    slabs = []
    for slab in sorted(settings.tax_slabs, key=lambda s: s.min):
        slab_tax = ZERO
        if taxable_income > slab.min:
            upper = taxable_income if slab.max is None else min(taxable_income, slab.max)
            slab_tax = max(ZERO, upper - slab.min) * slab.rate / _HUNDRED
            tax += slab_tax
        slabs.append((slab.label, slab_tax, slab.rate))

    surcharge = ZERO
    surcharge_rate = ZERO
    for slab in sorted(settings.surcharge_slabs, key=lambda s: s.min):
        if ctc >= slab.min and (slab.max is None or ctc < slab.max):
            surcharge_rate = slab.rate
            surcharge = tax * slab.rate / _HUNDRED
            break

    cess = (tax + surcharge) * settings.cess_percent / _HUNDRED
    total = tax + surcharge + cess

    return {
        "base_tax": tax,
        "surcharge": surcharge,
        "surcharge_rate": surcharge_rate,
        "cess": cess,
        "total_tax": total,
        "tax_percent": total / ctc * _HUNDRED if ctc > 0 else ZERO,
        "total_deductions": total_deductions,
        "employer_pf_annual": employer_pf,
        "exempt_employer_pf": exempt_pf,
        "taxable_employer_pf": taxable_pf,
        "taxable_income": taxable_income,
        "slabs": slabs,
    }


def calculate_income_tax(settings: IncomeSettings, ctc: Optional[Number] = None) -> TaxBreakdown:
    """Annual tax under the configured slabs for a CTC (defaults to the saved CTC)."""
    ctc = to_decimal(settings.ctc if ctc is None else ctc)
    raw = _compute_tax(settings, ctc)
    d = settings.deductions
    return TaxBreakdown(
        base_tax=money(raw["base_tax"]),
        surcharge=money(raw["surcharge"]),
        surcharge_rate=raw["surcharge_rate"],
        cess=money(raw["cess"]),
        cess_percent=settings.cess_percent,
        total_tax=money(raw["total_tax"]),
        tax_percent=raw["tax_percent"].quantize(Decimal("0.0001")),
        standard_deduction=settings.standard_deduction,
        hra_exemption=d.hra_exemption,
        section_80c=d.section_80c,
        section_80d=d.section_80d,
        other_deductions=d.other,
        total_deductions=money(raw["total_deductions"]),
        employer_pf_annual=money(raw["employer_pf_annual"]),
        exempt_employer_pf=money(raw["exempt_employer_pf"]),
        taxable_employer_pf=money(raw["taxable_employer_pf"]),
        taxable_income=money(raw["taxable_income"]),
        slabs=[
            SlabTax(range=label, tax=money(tax), rate=rate)
            for label, tax, rate in raw["slabs"]
        ],
    )


def effective_tax_rate(settings: IncomeSettings, ctc: Optional[Number] = None) -> Decimal:
    """Total tax as a fraction of CTC (0.0575 for 5.75%)."""
    ctc = to_decimal(settings.ctc if ctc is None else ctc)
    if ctc <= 0:
        return ZERO
    return _compute_tax(settings, ctc)["total_tax"] / ctc


# =============================================================================
# PAYSLIPS
# =============================================================================

def _payslip_figures(
    settings: IncomeSettings,
    ctc: Decimal,
    espp_percent: Decimal,
    professional_tax: Decimal,
) -> dict:
    basic = monthly_basic(ctc)
    hra = basic / 2
    pf = monthly_pf(ctc, settings.pf_percent)
    gross = monthly_gross_earnings(ctc, settings.pf_percent)
    espp = gross * espp_percent / _HUNDRED
    income_tax = _compute_tax(settings, ctc)["total_tax"] / 12
    deductions = income_tax + professional_tax + espp + pf
    return {
        "basic_pay": basic,
        "hra": hra,
        "allowances": gross - basic - hra,
        "gross_earnings": gross,
        "pf_employer": pf,
        "pf_employee": pf,
        "espp": espp,
        "income_tax": income_tax,
        "professional_tax": professional_tax,
        "gross_deductions": deductions,
        "net_pay": gross - deductions,
    }


def calculate_payslip(
    settings: IncomeSettings,
    ctc: Optional[Number] = None,
    professional_tax: Number = DEFAULT_PROFESSIONAL_TAX,
) -> Payslip:
    """Typical month, using the average of both ESPP cycles."""
    ctc = to_decimal(settings.ctc if ctc is None else ctc)
    avg_espp = (settings.espp_percent_cycle1 + settings.espp_percent_cycle2) / 2
    figures = _payslip_figures(settings, ctc, avg_espp, to_decimal(professional_tax))
    return Payslip(**{k: money(v) for k, v in figures.items()})


def calculate_bonus(settings: IncomeSettings, ctc: Optional[Number] = None) -> BonusBreakdown:
    """
    Split the annual bonus into mid-year (25%, paid September) and
    year-end (75%, paid April), each scaled by its multiplier.

    Only ESPP is cut from a bonus; no PF. September uses ESPP cycle 2,
    April uses cycle 1.
    """
    ctc = to_decimal(settings.ctc if ctc is None else ctc)
    total_before = ctc * settings.bonus_percent / _HUNDRED
    rate = effective_tax_rate(settings, ctc)

    def part(share: Decimal, multiplier: Decimal, espp_percent: Decimal) -> dict:
        before = total_before * share * multiplier
        after = before * (1 - rate)
        cut = before * espp_percent / _HUNDRED
        return {"before_tax": before, "after_tax": after, "espp_cut": cut, "net": after - cut}

    mid = part(MID_YEAR_BONUS_SHARE, settings.bonus_mid_year_multiplier, settings.espp_percent_cycle2)
    year_end = part(YEAR_END_BONUS_SHARE, settings.bonus_year_end_multiplier, settings.espp_percent_cycle1)

    return BonusBreakdown(
        total_bonus_before_tax=money(total_before),
        total_bonus_after_tax=money(mid["net"] + year_end["net"]),
        mid_year=BonusPart(**{k: money(v) for k, v in mid.items()}),
        year_end=BonusPart(**{k: money(v) for k, v in year_end.items()}),
    )


def calculate_leave_encashment(
    settings: IncomeSettings,
    days: Optional[Number] = None,
    ctc: Optional[Number] = None,
) -> Decimal:
    """Gross encashment: daily rate (monthly gross * 12 / 365) times days, whole rupees."""
    ctc = to_decimal(settings.ctc if ctc is None else ctc)
    days = to_decimal(settings.leave_days if days is None else days)
    gross = monthly_gross_earnings(ctc, settings.pf_percent)
    return whole(gross * 12 / 365 * days)


def generate_yearly_payslips(
    settings: IncomeSettings,
    ctc: Optional[Number] = None,
    professional_tax: Number = DEFAULT_PROFESSIONAL_TAX,
) -> list[MonthlyPayslip]:
    """
    Twelve payslips, April to March.

    September carries the mid-year bonus, April the year-end bonus, and
    January the leave encashment (taxed at the effective rate, ESPP at
    cycle 1). Insurance is spread evenly over the selected months.
    """
    ctc = to_decimal(settings.ctc if ctc is None else ctc)
    professional_tax = to_decimal(professional_tax)

    bonus = calculate_bonus(settings, ctc)
    leave_gross = calculate_leave_encashment(settings, ctc=ctc) if settings.leave_days > 0 else ZERO
    months = settings.insurance_months
    insurance_per_month = settings.insurance_total / len(months) if months else ZERO
    rate = effective_tax_rate(settings, ctc)

    payslips = []
    for index, month in enumerate(FINANCIAL_YEAR_MONTHS):
        cal_month = calendar_month_for(index)
        espp_percent = espp_percent_for_month(
            cal_month, settings.espp_percent_cycle1, settings.espp_percent_cycle2
        )
        base = _payslip_figures(settings, ctc, espp_percent, professional_tax)

        bonus_amount = bonus_espp = ZERO
        if month == "September":
            bonus_amount, bonus_espp = bonus.mid_year.net, bonus.mid_year.espp_cut
        elif month == "April":
            bonus_amount, bonus_espp = bonus.year_end.net, bonus.year_end.espp_cut

        leave_amount = leave_gross if month == "January" else ZERO
        leave_espp = leave_amount * settings.espp_percent_cycle1 / _HUNDRED
        leave_tax = leave_amount * rate
        leave_net = leave_amount - leave_espp - leave_tax

        insurance = ZERO
        if settings.has_insurance and cal_month in months:
            insurance = insurance_per_month

        figures = dict(base)
        figures["gross_earnings"] = base["gross_earnings"] + leave_amount
        figures["espp"] = base["espp"] + bonus_espp + leave_espp
        figures["income_tax"] = base["income_tax"] + leave_tax
        figures["gross_deductions"] = base["gross_deductions"] + leave_espp + leave_tax

        payslips.append(MonthlyPayslip(
            month=month,
            calendar_month=cal_month,
            bonus=money(bonus_amount),
            leave_encashment=money(leave_amount),
            insurance_deduction=money(insurance),
            total_net_pay=money(base["net_pay"] + bonus_amount + leave_net - insurance),
            **{k: money(v) for k, v in figures.items()},
        ))

    return payslips

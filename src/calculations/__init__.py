"""
Financial calculations.

Pure functions over models. Nothing here reads or writes the ledger;
date-dependent functions take an optional `today` for reproducibility.
"""

from src.calculations.loans import (
    amortization_schedule,
    calculate_closure_date,
    calculate_emi,
    calculate_remaining,
    calculate_totals,
    summarize_loan,
)
from src.calculations.returns import (
    average,
    cagr,
    compound_interest,
    median,
    percentage_change,
    simple_interest,
    sip_projection,
)
from src.calculations.tax import (
    calculate_bonus,
    calculate_income_tax,
    calculate_leave_encashment,
    calculate_payslip,
    effective_tax_rate,
    espp_percent_for_month,
    generate_yearly_payslips,
)
from src.calculations.valuation import (
    apply_date_filter,
    monthly_amount,
    portfolio_amount,
    summarize_portfolio,
)

__all__ = [
    "amortization_schedule",
    "calculate_closure_date",
    "calculate_emi",
    "calculate_remaining",
    "calculate_totals",
    "summarize_loan",
    "average",
    "cagr",
    "compound_interest",
    "median",
    "percentage_change",
    "simple_interest",
    "sip_projection",
    "calculate_bonus",
    "calculate_income_tax",
    "calculate_leave_encashment",
    "calculate_payslip",
    "effective_tax_rate",
    "espp_percent_for_month",
    "generate_yearly_payslips",
    "apply_date_filter",
    "monthly_amount",
    "portfolio_amount",
    "summarize_portfolio",
]

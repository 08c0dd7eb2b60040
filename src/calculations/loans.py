"""
Loan arithmetic

Standard reducing-balance formulas on a monthly rate r = R / 12 / 100:

    EMI        = P * r * (1+r)^N / ((1+r)^N - 1)       (P / N when r = 0)
    balance_p  = P * ((1+r)^N - (1+r)^p) / ((1+r)^N - 1) after p EMIs

Installments are counted as paid once the EMI day of the month has been
reached, so a loan whose first EMI is on the 5th shows one EMI paid from
the 5th of that month onwards.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from src.models.loan import AmortizationRow, Loan, LoanSummary, RemainingBalance
from src.utils.dates import add_months
from src.utils.money import ZERO, Number, money, to_decimal


def monthly_rate(annual_rate: Number) -> Decimal:
    return to_decimal(annual_rate) / Decimal(12) / Decimal(100)


def calculate_emi(principal: Number, annual_rate: Number, tenure: int) -> Decimal:
    """Monthly installment, rounded to paise."""
    if tenure <= 0:
        raise ValueError("Tenure must be at least one month")
    p = to_decimal(principal)
    r = monthly_rate(annual_rate)
    if r == 0:
        return money(p / tenure)
    growth = (1 + r) ** tenure
    return money(p * r * growth / (growth - 1))


def calculate_totals(principal: Number, annual_rate: Number, tenure: int) -> tuple[Decimal, Decimal]:
    """(total amount payable, total interest)."""
    emi = calculate_emi(principal, annual_rate, tenure)
    total = money(emi * tenure)
    return total, money(total - to_decimal(principal))


def calculate_closure_date(first_emi_date: date, tenure: int) -> date:
    """First EMI date moved forward by the tenure in months."""
    return add_months(first_emi_date, tenure)


def months_elapsed(first_emi_date: date, tenure: int, today: Optional[date] = None) -> int:
    """EMIs paid as of today, within [0, tenure]."""
    today = today or date.today()
    elapsed = (today.year - first_emi_date.year) * 12 + (today.month - first_emi_date.month) + 1
    if today.day < first_emi_date.day:
        elapsed -= 1
    return max(0, min(elapsed, tenure))


def calculate_remaining(
    first_emi_date: date,
    principal: Number,
    annual_rate: Number,
    tenure: int,
    today: Optional[date] = None,
) -> RemainingBalance:
    """Outstanding principal and EMIs left as of today."""
    paid = months_elapsed(first_emi_date, tenure, today)
    remaining = tenure - paid
    p = to_decimal(principal)
    r = monthly_rate(annual_rate)

    if remaining <= 0:
        balance = ZERO
    elif r == 0:
        balance = p / tenure * remaining
    else:
        growth_n = (1 + r) ** tenure
        growth_p = (1 + r) ** paid
        balance = p * (growth_n - growth_p) / (growth_n - 1)

    emi = calculate_emi(principal, annual_rate, tenure)
    return RemainingBalance(
        emis_paid=paid,
        emis_remaining=remaining,
        remaining_balance=money(balance),
        total_remaining_payment=money(emi * remaining),
    )


def amortization_schedule(principal: Number, annual_rate: Number, tenure: int) -> list[AmortizationRow]:
    """Month-by-month split of each EMI into principal and interest."""
    emi = calculate_emi(principal, annual_rate, tenure)
    r = monthly_rate(annual_rate)
    balance = to_decimal(principal)
    rows = []
    for month in range(1, tenure + 1):
        interest = balance * r
        principal_part = emi - interest
        balance = max(ZERO, balance - principal_part)
        rows.append(AmortizationRow(
            month=month,
            emi=emi,
            principal=money(principal_part),
            interest=money(interest),
            balance=money(balance),
        ))
    return rows


def summarize_loan(loan: Loan, today: Optional[date] = None) -> LoanSummary:
    emi = calculate_emi(loan.amount, loan.interest_rate, loan.tenure)
    total, interest = calculate_totals(loan.amount, loan.interest_rate, loan.tenure)
    return LoanSummary(
        loan=loan,
        emi=emi,
        total_amount=total,
        total_interest=interest,
        closure_date=calculate_closure_date(loan.first_emi_date, loan.tenure),
        remaining=calculate_remaining(
            loan.first_emi_date, loan.amount, loan.interest_rate, loan.tenure, today
        ),
    )

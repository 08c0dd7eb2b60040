"""General interest, growth and statistics helpers."""

from decimal import Decimal
from typing import NamedTuple, Sequence

from src.utils.money import ZERO, Number, to_decimal, whole

_HUNDRED = Decimal(100)


class SIPProjection(NamedTuple):
    total_invested: Decimal
    total_returns: Decimal
    maturity_amount: Decimal


def compound_interest(
    principal: Number,
    rate_percent: Number,
    years: Number,
    compounding_per_year: int = 1,
) -> Decimal:
    """Final amount after compounding (not just the interest)."""
    p = to_decimal(principal)
    rate = to_decimal(rate_percent) / _HUNDRED
    periods = compounding_per_year * to_decimal(years)
    return p * (1 + rate / compounding_per_year) ** periods


def simple_interest(principal: Number, rate_percent: Number, years: Number) -> Decimal:
    """Interest amount only."""
    return to_decimal(principal) * to_decimal(rate_percent) * to_decimal(years) / _HUNDRED


def cagr(initial_value: Number, final_value: Number, years: Number) -> Decimal:
    """Compound annual growth rate in percent."""
    initial, final, years = to_decimal(initial_value), to_decimal(final_value), to_decimal(years)
    if initial == 0 or years == 0:
        return ZERO
    return ((final / initial) ** (1 / years) - 1) * _HUNDRED


def sip_projection(monthly_investment: Number, rate_percent: Number, months: int) -> SIPProjection:
    """Future value of a monthly SIP paid at the start of each month, whole rupees."""
    m = to_decimal(monthly_investment)
    r = to_decimal(rate_percent) / 12 / _HUNDRED
    invested = m * months
    if r == 0:
        maturity = invested
    else:
        maturity = m * (((1 + r) ** months - 1) / r) * (1 + r)
    return SIPProjection(
        total_invested=whole(invested),
        total_returns=whole(maturity - invested),
        maturity_amount=whole(maturity),
    )


def percentage_change(old_value: Number, new_value: Number) -> Decimal:
    old, new = to_decimal(old_value), to_decimal(new_value)
    if old == 0:
        return ZERO if new == 0 else _HUNDRED
    return (new - old) / old * _HUNDRED


def average(values: Sequence[Number]) -> Decimal:
    if not values:
        return ZERO
    return sum((to_decimal(v) for v in values), ZERO) / len(values)


def median(values: Sequence[Number]) -> Decimal:
    if not values:
        return ZERO
    ordered = sorted(to_decimal(v) for v in values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]

"""
Portfolio valuation

Portfolio holdings are valued at today's rates: a SHARES holding uses
the active registry price for its name when one exists (registry price
and currency win over the holding's own), GOLD uses the current rate
per gram, and EPF/FD are carried at their amount. Monthly log entries
are valued at the price actually paid.

USD amounts are converted with the stored USD to INR rate.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from src.models.investment import (
    Currency,
    DateFilter,
    HoldingValue,
    Investment,
    InvestmentType,
    PortfolioSummary,
    SharePrice,
)
from src.utils.dates import add_months
from src.utils.money import ZERO, Number, money, to_decimal


def find_active_price(name: str, share_prices: Iterable[SharePrice]) -> Optional[SharePrice]:
    for sp in share_prices:
        if sp.name == name and sp.active:
            return sp
    return None


def portfolio_amount(
    inv: Investment,
    exchange_rate: Number,
    gold_rate: Number,
    share_prices: Iterable[SharePrice] = (),
) -> Decimal:
    """Current INR value of a portfolio holding."""
    if inv.type == InvestmentType.SHARES:
        registry = find_active_price(inv.name, share_prices)
        price = registry.price if registry else (inv.price or ZERO)
        currency = registry.currency if registry else inv.currency
        amount = price * (inv.quantity or ZERO)
        return amount * to_decimal(exchange_rate) if currency == Currency.USD else amount
    if inv.type == InvestmentType.GOLD:
        return to_decimal(gold_rate) * (inv.quantity or ZERO)
    return inv.amount or ZERO


def monthly_amount(inv: Investment, exchange_rate: Number) -> Decimal:
    """INR value of a monthly log entry at its purchase price."""
    if inv.type == InvestmentType.SHARES:
        amount = (inv.price or ZERO) * (inv.quantity or ZERO)
        return amount * to_decimal(exchange_rate) if inv.currency == Currency.USD else amount
    if inv.type == InvestmentType.GOLD:
        return (inv.price or ZERO) * (inv.quantity or ZERO)
    return inv.amount or ZERO


def display_price(
    inv: Investment,
    gold_rate: Number,
    share_prices: Iterable[SharePrice] = (),
) -> Optional[Decimal]:
    if inv.type == InvestmentType.SHARES:
        registry = find_active_price(inv.name, share_prices)
        return registry.price if registry else inv.price
    if inv.type == InvestmentType.GOLD:
        return to_decimal(gold_rate)
    return inv.price or inv.amount


def summarize_portfolio(
    investments: Iterable[Investment],
    exchange_rate: Number,
    gold_rate: Number,
    share_prices: Iterable[SharePrice] = (),
) -> PortfolioSummary:
    share_prices = list(share_prices)
    holdings = []
    by_type: dict[str, Decimal] = {}
    by_goal: dict[str, Decimal] = {}
    total = ZERO
    for inv in investments:
        value = portfolio_amount(inv, exchange_rate, gold_rate, share_prices)
        holdings.append(HoldingValue(
            investment=inv,
            display_price=display_price(inv, gold_rate, share_prices),
            value_inr=money(value),
        ))
        by_type[inv.type.value] = by_type.get(inv.type.value, ZERO) + value
        by_goal[inv.goal.value] = by_goal.get(inv.goal.value, ZERO) + value
        total += value
    return PortfolioSummary(
        total_value=money(total),
        by_type={k: money(v) for k, v in by_type.items()},
        by_goal={k: money(v) for k, v in by_goal.items()},
        holdings=holdings,
    )


def apply_date_filter(
    investments: Iterable[Investment],
    date_filter: DateFilter,
    today: Optional[date] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[Investment]:
    """Filter monthly log entries by purchase date. Entries without a date are dropped unless ALL_TIME."""
    today = today or date.today()
    items = list(investments)

    if date_filter == DateFilter.ALL_TIME:
        return items
    if date_filter == DateFilter.CUSTOM and not (start and end):
        return items

    dated = [inv for inv in items if inv.investment_date is not None]
    if date_filter == DateFilter.THIS_MONTH:
        return [
            inv for inv in dated
            if (inv.investment_date.year, inv.investment_date.month) == (today.year, today.month)
        ]
    if date_filter == DateFilter.LAST_6_MONTHS:
        cutoff = add_months(today, -6)
        return [inv for inv in dated if inv.investment_date >= cutoff]
    if date_filter == DateFilter.THIS_YEAR:
        return [inv for inv in dated if inv.investment_date.year == today.year]
    return [inv for inv in dated if start <= inv.investment_date <= end]


def group_by_year_month(investments: Iterable[Investment]) -> dict[int, dict[int, list[Investment]]]:
    """{year: {month: [entries]}}, newest year and month first."""
    groups: dict[int, dict[int, list[Investment]]] = {}
    for inv in investments:
        if inv.investment_date is None:
            continue
        d = inv.investment_date
        groups.setdefault(d.year, {}).setdefault(d.month, []).append(inv)
    return {
        year: dict(sorted(months.items(), reverse=True))
        for year, months in sorted(groups.items(), reverse=True)
    }


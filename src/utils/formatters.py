"""
Display formatting

Indian digit grouping (12,34,567.89), rupee amounts, ordinal days and
a few labels shared by the app pages and the assistant context.
"""

import calendar
from decimal import ROUND_HALF_UP, Decimal

from src.models.expense import EMI_CATEGORY, RECURRING_CATEGORY, RecurringExpense, RecurringFrequency
from src.utils.money import Number, to_decimal


def format_indian_number(value: Number, decimals: int = 2) -> str:
    """
    Group digits the Indian way: last three, then pairs.

    >>> format_indian_number(1234567.5)
    '12,34,567.50'
    """
    amount = to_decimal(value)
    sign = "-" if amount < 0 else ""
    step = Decimal(1).scaleb(-decimals)
    text = f"{abs(amount).quantize(step, rounding=ROUND_HALF_UP):f}"
    integer, _, fraction = text.partition(".")

    if len(integer) > 3:
        head, tail = integer[:-3], integer[-3:]
        pairs = []
        while len(head) > 2:
            pairs.insert(0, head[-2:])
            head = head[:-2]
        if head:
            pairs.insert(0, head)
        integer = ",".join(pairs + [tail])

    return f"{sign}{integer}.{fraction}" if fraction else f"{sign}{integer}"


def format_currency(value: Number, decimals: int = 2) -> str:
    return f"₹{format_indian_number(value, decimals)}"


def ordinal_suffix(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def mask_card_number(card_number: str) -> str:
    """'****1234'"""
    if not card_number:
        return "****"
    return f"****{card_number[-4:]}"


def month_name(month: int, short: bool = False) -> str:
    return calendar.month_abbr[month] if short else calendar.month_name[month]


def format_category(category: str) -> str:
    """System categories get friendly names."""
    if category == EMI_CATEGORY:
        return "EMI"
    if category == RECURRING_CATEGORY:
        return "Other"
    return category


def format_recurring_schedule(recurring: RecurringExpense) -> str:
    """'Monthly on 5th' or 'Jan, Jul 15th'"""
    day = f"{recurring.day}{ordinal_suffix(recurring.day)}"
    if recurring.frequency == RecurringFrequency.MONTHLY:
        return f"Monthly on {day}"
    months = ", ".join(month_name(m, short=True) for m in recurring.months)
    return f"{months} {day}"

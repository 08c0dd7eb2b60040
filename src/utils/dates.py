"""Calendar helpers."""

import calendar
from datetime import date
from typing import Iterator, Optional


def clamp_day(year: int, month: int, day: int) -> date:
    """date(year, month, day) with day pulled back to the month's last day."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last))


def add_months(d: date, months: int, day: Optional[int] = None) -> date:
    """Shift by whole months, keeping the day where the target month allows it."""
    index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(index, 12)
    return clamp_day(year, month + 1, day or d.day)


def month_key(year: int, month: int) -> str:
    return f"{year}-{month:02d}"


def month_label(year: int, month: int) -> str:
    """'January 2024'"""
    return f"{calendar.month_name[month]} {year}"


def short_month_label(d: date) -> str:
    """'Jan 2024'"""
    return f"{calendar.month_abbr[d.month]} {d.year}"


def iter_months(start: date, end: date) -> Iterator[tuple[int, int]]:
    """(year, month) pairs from start's month through end's month inclusive."""
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        yield year, month
        month += 1
        if month > 12:
            year, month = year + 1, 1


def month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), clamp_day(year, month, 31)

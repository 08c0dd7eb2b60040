"""
Tests for money, date and display helpers and the growth calculations.
"""

import pytest
from datetime import date
from decimal import Decimal

from src.calculations import (
    average,
    cagr,
    compound_interest,
    median,
    percentage_change,
    simple_interest,
    sip_projection,
)
from src.models.expense import RecurringExpense, RecurringFrequency
from src.utils.dates import add_months, clamp_day, iter_months, month_bounds, month_label
from src.utils.formatters import (
    format_category,
    format_currency,
    format_indian_number,
    format_recurring_schedule,
    mask_card_number,
    month_name,
    ordinal_suffix,
)
from src.utils.money import money, to_decimal, whole


class TestMoney:
    """Decimal rounding."""

    def test_float_has_no_artefacts(self):
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("value,expected", [
        ("2.345", Decimal("2.35")),
        ("-2.345", Decimal("-2.35")),
        (10, Decimal("10.00")),
    ])
    def test_money_rounds_half_up(self, value, expected):
        assert money(value) == expected

    def test_whole(self):
        assert whole("8884.5") == Decimal("8885")


class TestDates:
    """Calendar helpers."""

    def test_clamp_day(self):
        assert clamp_day(2023, 2, 31) == date(2023, 2, 28)
        assert clamp_day(2024, 2, 30) == date(2024, 2, 29)

    def test_add_months(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)
        assert add_months(date(2024, 3, 15), -3) == date(2023, 12, 15)
        assert add_months(date(2024, 2, 29), 1, day=31) == date(2024, 3, 31)

    def test_iter_months_crosses_year(self):
        months = list(iter_months(date(2023, 11, 20), date(2024, 2, 1)))
        assert months == [(2023, 11), (2023, 12), (2024, 1), (2024, 2)]

    def test_month_bounds_and_label(self):
        assert month_bounds(2023, 4) == (date(2023, 4, 1), date(2023, 4, 30))
        assert month_label(2024, 1) == "January 2024"


class TestFormatters:
    """Display strings."""

    @pytest.mark.parametrize("value,expected", [
        (1234567.5, "12,34,567.50"),
        (100000, "1,00,000.00"),
        (999, "999.00"),
        (-1234.5, "-1,234.50"),
        ("12345678901", "12,34,56,78,901.00"),
    ])
    def test_indian_grouping(self, value, expected):
        assert format_indian_number(value) == expected

    def test_currency(self):
        assert format_currency(Decimal("8884.88")) == "₹8,884.88"
        assert format_currency(1234567, decimals=0) == "₹12,34,567"

    @pytest.mark.parametrize("day,suffix", [
        (1, "st"), (2, "nd"), (3, "rd"), (4, "th"),
        (11, "th"), (12, "th"), (13, "th"), (21, "st"), (22, "nd"), (31, "st"),
    ])
    def test_ordinal_suffix(self, day, suffix):
        assert ordinal_suffix(day) == suffix

    def test_mask_card_number(self):
        assert mask_card_number("4111111111111234") == "****1234"
        assert mask_card_number("") == "****"

    def test_month_name(self):
        assert month_name(9) == "September"
        assert month_name(9, short=True) == "Sep"

    def test_system_categories(self):
        assert format_category("emi") == "EMI"
        assert format_category("recurring") == "Other"
        assert format_category("Travel") == "Travel"

    def test_recurring_schedule(self):
        monthly = RecurringExpense(name="Netflix", amount=649, frequency=RecurringFrequency.MONTHLY, day=5)
        yearly = RecurringExpense(name="LIC", amount=12000, frequency=RecurringFrequency.YEARLY, day=15, months=[7, 1])
        assert format_recurring_schedule(monthly) == "Monthly on 5th"
        assert format_recurring_schedule(yearly) == "Jan, Jul 15th"


class TestGrowth:
    """Interest, growth and statistics."""

    def test_compound_interest(self):
        assert money(compound_interest(10000, 10, 2)) == Decimal("12100.00")
        assert money(compound_interest(10000, 12, 1, compounding_per_year=12)) == Decimal("11268.25")

    def test_simple_interest(self):
        assert simple_interest(10000, 8, 3) == Decimal("2400")

    def test_cagr(self):
        assert money(cagr(100, 121, 2)) == Decimal("10.00")
        assert cagr(0, 121, 2) == 0

    def test_sip_projection(self):
        sip = sip_projection(1000, 12, 12)
        assert sip.total_invested == Decimal("12000")
        assert sip.maturity_amount == Decimal("12809")
        assert sip.total_returns == Decimal("809")

    def test_sip_without_returns(self):
        assert sip_projection(500, 0, 10).maturity_amount == Decimal("5000")

    @pytest.mark.parametrize("old,new,expected", [
        (200, 250, Decimal("25")),
        (200, 150, Decimal("-25")),
        (0, 0, Decimal("0")),
        (0, 5, Decimal("100")),
    ])
    def test_percentage_change(self, old, new, expected):
        assert percentage_change(old, new) == expected

    def test_average_and_median(self):
        assert average([1, 2, 3, 4]) == Decimal("2.5")
        assert median([3, 1, 2]) == 2
        assert median([4, 1, 3, 2]) == Decimal("2.5")
        assert average([]) == 0
        assert median([]) == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

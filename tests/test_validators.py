"""
Tests for form validation.
"""

import pytest
from datetime import date

from src.validation import (
    amount,
    date_range,
    email,
    max_length,
    min_length,
    percentage,
    phone,
    positive_integer,
    required,
    valid_date,
    validate_form,
)


class TestSingleChecks:
    """Each check returns an issue or None."""

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_required_missing(self, value):
        issue = required(value, "title")
        assert issue.issue_type == "missing"
        assert issue.message == "Title is required"

    def test_required_zero_is_present(self):
        assert required(0) is None

    @pytest.mark.parametrize("value,issue_type", [
        ("abc", "invalid_format"),
        (True, "invalid_format"),
        ("-1", "out_of_range"),
        ("NaN", "invalid_format"),
    ])
    def test_amount_invalid(self, value, issue_type):
        assert amount(value).issue_type == issue_type

    @pytest.mark.parametrize("value", [0, "149.50", 1000])
    def test_amount_valid(self, value):
        assert amount(value) is None

    @pytest.mark.parametrize("value,valid", [(12, True), ("3", True), (0, False), (2.5, False), ("x", False)])
    def test_positive_integer(self, value, valid):
        assert (positive_integer(value) is None) is valid

    @pytest.mark.parametrize("value,valid", [(0, True), (100, True), ("12.5", True), (101, False), (-1, False)])
    def test_percentage(self, value, valid):
        assert (percentage(value) is None) is valid

    def test_dates(self):
        assert valid_date("2024-03-15") is None
        assert valid_date(date(2024, 3, 15)) is None
        assert valid_date("15/03/2024").issue_type == "invalid_format"
        assert valid_date("").issue_type == "missing"

    def test_date_range(self):
        assert date_range("2024-01-01", "2024-03-01") is None
        assert date_range("2024-03-01", "2024-01-01").message == "Start date must be before end date"
        assert date_range("nope", "2024-01-01").issue_type == "invalid_format"

    def test_lengths(self):
        assert max_length("", 5) is None
        assert max_length("abcdef", 5, "name").message == "Name must be 5 characters or less"
        assert min_length("abc", 4) is not None
        assert min_length("abcd", 4) is None

    @pytest.mark.parametrize("value,valid", [
        ("me@example.com", True),
        ("me@example", False),
        ("me @example.com", False),
    ])
    def test_email(self, value, valid):
        assert (email(value) is None) is valid

    @pytest.mark.parametrize("value,valid", [
        ("9876543210", True),
        ("98765 43210", True),
        ("5876543210", False),
        ("987654321", False),
    ])
    def test_phone(self, value, valid):
        assert (phone(value) is None) is valid


class TestValidateForm:
    """Rule lists per field."""

    RULES = {
        "title": ["required", {"max_length": 10}],
        "amount": ["required", "amount"],
        "contact": ["phone"],
    }

    def test_valid_form(self):
        result = validate_form({"title": "Rent", "amount": "20000", "contact": "9876543210"}, self.RULES)
        assert result.is_valid
        assert result.error_count == 0

    def test_first_failure_per_field(self):
        result = validate_form({"title": "", "amount": "-5"}, self.RULES)

        assert not result.is_valid
        assert result.errors_by_field() == {
            "title": "Title is required",
            "amount": "Amount must be positive",
            "contact": "Phone number is required",
        }
        assert result.error_count == 3

    def test_unknown_rule(self):
        with pytest.raises(ValueError):
            validate_form({"x": 1}, {"x": ["is_prime"]})


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

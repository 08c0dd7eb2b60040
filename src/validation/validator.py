"""
Form field validation

Each check takes the raw form value and returns a ValidationIssue, or
None when the value passes. validate_form runs a rule list per field and
stops at the first failing rule for that field.

IMPORTANT: Validation NEVER silently fixes values.
It reports them for the form to show next to the input.

Example rules:

    {
        "amount": ["required", "amount"],
        "name": ["required", {"max_length": 50}],
        "email": ["email"],
    }
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, Union

from src.models.validation import ValidationIssue, ValidationResult

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[6-9]\d{9}$")

Rule = Union[str, dict[str, Any]]


def _issue(field: str, issue_type: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field, issue_type=issue_type, message=message)


def _label(field: str) -> str:
    return field.replace("_", " ").capitalize()


def _as_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        return None


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# =============================================================================
# SINGLE-VALUE CHECKS
# =============================================================================

def required(value: Any, field: str = "field") -> Optional[ValidationIssue]:
    if _is_empty(value):
        return _issue(field, "missing", f"{_label(field)} is required")
    return None


def amount(value: Any, field: str = "amount") -> Optional[ValidationIssue]:
    """A number, zero or more."""
    number = _as_decimal(value)
    if number is None or not number.is_finite():
        return _issue(field, "invalid_format", f"{_label(field)} must be a number")
    if number < 0:
        return _issue(field, "out_of_range", f"{_label(field)} must be positive")
    return None


def positive_integer(value: Any, field: str = "value") -> Optional[ValidationIssue]:
    number = _as_decimal(value)
    if number is None or not number.is_finite():
        return _issue(field, "invalid_format", f"{_label(field)} must be a number")
    if number <= 0 or number != number.to_integral_value():
        return _issue(field, "out_of_range", f"{_label(field)} must be a positive integer")
    return None


def percentage(value: Any, field: str = "percentage") -> Optional[ValidationIssue]:
    number = _as_decimal(value)
    if number is None or not number.is_finite():
        return _issue(field, "invalid_format", f"{_label(field)} must be a number")
    if number < 0 or number > 100:
        return _issue(field, "out_of_range", f"{_label(field)} must be between 0 and 100")
    return None


def valid_date(value: Any, field: str = "date") -> Optional[ValidationIssue]:
    if _is_empty(value):
        return _issue(field, "missing", f"{_label(field)} is required")
    if _as_date(value) is None:
        return _issue(field, "invalid_format", f"{_label(field)} is invalid")
    return None


def date_range(start: Any, end: Any, field: str = "date_range") -> Optional[ValidationIssue]:
    start_date, end_date = _as_date(start), _as_date(end)
    if start_date is None or end_date is None:
        return _issue(field, "invalid_format", "Invalid date format")
    if start_date > end_date:
        return _issue(field, "out_of_range", "Start date must be before end date")
    return None


def max_length(value: Any, limit: int, field: str = "field") -> Optional[ValidationIssue]:
    if not value:
        return None
    if len(str(value)) > limit:
        return _issue(field, "out_of_range", f"{_label(field)} must be {limit} characters or less")
    return None


def min_length(value: Any, limit: int, field: str = "field") -> Optional[ValidationIssue]:
    if not value or len(str(value)) < limit:
        return _issue(field, "out_of_range", f"{_label(field)} must be at least {limit} characters")
    return None


def email(value: Any, field: str = "email") -> Optional[ValidationIssue]:
    if _is_empty(value):
        return _issue(field, "missing", "Email is required")
    if not EMAIL_PATTERN.match(str(value).strip()):
        return _issue(field, "invalid_format", "Invalid email format")
    return None


def phone(value: Any, field: str = "phone") -> Optional[ValidationIssue]:
    """Indian mobile number: ten digits starting 6-9, spaces ignored."""
    if _is_empty(value):
        return _issue(field, "missing", "Phone number is required")
    if not PHONE_PATTERN.match(re.sub(r"\s+", "", str(value))):
        return _issue(field, "invalid_format", "Invalid phone number format")
    return None


# =============================================================================
# FORMS
# =============================================================================

SIMPLE_RULES: dict[str, Callable[[Any, str], Optional[ValidationIssue]]] = {
    "required": required,
    "amount": amount,
    "positive_integer": positive_integer,
    "percentage": percentage,
    "date": valid_date,
    "email": email,
    "phone": phone,
}

PARAM_RULES: dict[str, Callable[[Any, Any, str], Optional[ValidationIssue]]] = {
    "max_length": max_length,
    "min_length": min_length,
}


def validate_form(data: dict[str, Any], rules: dict[str, list[Rule]]) -> ValidationResult:
    """
    Run each field's rules in order; the first failure per field is
    reported.

    Raises:
        ValueError: A rule name is unknown
    """
    result = ValidationResult()
    for field, field_rules in rules.items():
        value = data.get(field)
        for rule in field_rules:
            if isinstance(rule, str):
                check = SIMPLE_RULES.get(rule)
                if check is None:
                    raise ValueError(f"Unknown validation rule: {rule}")
                issue = check(value, field)
            else:
                (name, param), = rule.items()
                check = PARAM_RULES.get(name)
                if check is None:
                    raise ValueError(f"Unknown validation rule: {name}")
                issue = check(value, param, field)
            if issue is not None:
                result.issues.append(issue)
                break
    return result

"""Form validation."""

from src.validation.validator import (
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

__all__ = [
    "amount",
    "date_range",
    "email",
    "max_length",
    "min_length",
    "percentage",
    "phone",
    "positive_integer",
    "required",
    "valid_date",
    "validate_form",
]

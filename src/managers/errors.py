"""
Domain errors raised by the managers.

The UI catches LedgerError at the call site and shows its message;
InvalidInputError additionally carries per-field messages for forms.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class InvalidInputError(LedgerError):
    """Missing or invalid form fields."""

    def __init__(self, message: str, field_errors: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.field_errors = field_errors or {}


class RecordNotFoundError(LedgerError):
    """No record with the given id in the collection."""

    def __init__(self, entity: str, record_id: object):
        super().__init__(f"{entity.capitalize()} not found: {record_id}")
        self.entity = entity
        self.record_id = record_id


class DuplicateRecordError(LedgerError):
    """A record with the same identifying key already exists."""
    pass

"""
Base manager

DESIGN DECISION: Managers own no data. Each receives the Ledger, a
storage backend and an optional AuditLogger, mutates the ledger in place
and saves it after every mutation. Several managers share one Ledger
instance, so a change made through one is immediately visible to the
others.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Type, TypeVar
from uuid import UUID

import structlog
from pydantic import BaseModel, ValidationError

from src.audit import AuditLogger
from src.managers.errors import InvalidInputError, RecordNotFoundError
from src.models.audit import AuditEvent
from src.models.ledger import Ledger
from src.services.storage import LedgerStorageInterface, StorageError
from src.utils.money import Number, to_decimal

logger = structlog.get_logger("managers")

M = TypeVar("M", bound=BaseModel)

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields"


def _field_label(name: str) -> str:
    return name.replace("_", " ").capitalize()


def as_uuid(record_id: Any) -> Optional[UUID]:
    """Accept UUIDs or their string form; None for anything else."""
    if isinstance(record_id, UUID):
        return record_id
    try:
        return UUID(str(record_id))
    except ValueError:
        return None


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class BaseManager:
    """Shared plumbing: persistence, auditing and input checks."""

    entity_name = "record"

    def __init__(
        self,
        ledger: Ledger,
        storage: LedgerStorageInterface,
        audit: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._storage = storage
        self._audit = audit

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    def _persist(self) -> None:
        try:
            self._storage.save(self._ledger)
        except StorageError as e:
            logger.error("ledger_save_failed", manager=type(self).__name__, error=str(e))
            if self._audit:
                self._audit.log_save_failed(str(e))
            raise

    def _record(self, event: AuditEvent) -> None:
        if self._audit:
            self._audit.log(event)

    @staticmethod
    def _require(**fields: Any) -> None:
        """Raise InvalidInputError naming every blank field."""
        missing = {
            name: f"{_field_label(name)} is required"
            for name, value in fields.items()
            if is_blank(value)
        }
        if missing:
            raise InvalidInputError(REQUIRED_FIELDS_MESSAGE, missing)

    @staticmethod
    def _number(field: str, value: Number, message: str = "") -> Decimal:
        """Decimal from form input; InvalidInputError on text that is not a number."""
        error = InvalidInputError(
            message or f"{_field_label(field)} must be a number",
            {field: "Must be a number"},
        )
        try:
            number = to_decimal(value)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise error from e
        if not number.is_finite():
            raise error
        return number

    @staticmethod
    def _integer(field: str, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(
                f"{_field_label(field)} must be a whole number",
                {field: "Must be a whole number"},
            ) from e

    @staticmethod
    def _build(model_cls: Type[M], **data: Any) -> M:
        """Construct a model, turning pydantic errors into InvalidInputError."""
        try:
            return model_cls(**data)
        except ValidationError as e:
            field_errors = {}
            for error in e.errors():
                field = str(error["loc"][0]) if error["loc"] else "form"
                field_errors.setdefault(field, error["msg"])
            message = "; ".join(f"{k}: {v}" for k, v in field_errors.items())
            raise InvalidInputError(message, field_errors) from e

    def _find(self, items: Iterable[M], record_id: Any) -> M:
        wanted = as_uuid(record_id)
        for item in items:
            if wanted is not None and item.id == wanted:
                return item
        raise RecordNotFoundError(self.entity_name, record_id)

    def _rebuild(self, record: M, updates: dict[str, Any]) -> M:
        """Validated copy of record with updates applied."""
        data = record.model_dump()
        data.update(updates)
        return self._build(type(record), **data)

    @staticmethod
    def _replace(items: list[M], old: M, new: M) -> None:
        items[items.index(old)] = new

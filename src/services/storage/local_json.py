"""
Local JSON Storage Implementation

The default backend: the whole ledger as one JSON document on disk.

DESIGN DECISION: Writes go to a temporary file in the same directory
which then replaces the real file, so a crash mid-write leaves the
previous ledger intact instead of a truncated one.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from src.config import get_settings
from src.models.audit import AuditEvent
from src.models.ledger import Ledger
from src.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    StorageError,
)

logger = structlog.get_logger("storage")


class JsonFileLedgerStorage(LedgerStorageInterface):
    """Ledger persisted as a JSON file."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path or get_settings().storage.data_file)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Ledger:
        if not self._path.exists():
            logger.info("ledger_file_missing", path=str(self._path))
            return Ledger()
        try:
            raw = self._path.read_text(encoding="utf-8")
            ledger = Ledger.model_validate_json(raw) if raw.strip() else Ledger()
        except (OSError, ValidationError, ValueError) as e:
            raise StorageError(f"Failed to read ledger from {self._path}: {e}")
        logger.info("ledger_loaded", path=str(self._path), **ledger.collection_sizes())
        return ledger

    def save(self, ledger: Ledger) -> None:
        payload = ledger.model_dump_json(indent=2)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write ledger to {self._path}: {e}")


class InMemoryLedgerStorage(LedgerStorageInterface):
    """
    Keeps a serialized copy in memory.

    Serializing on save means tests see exactly what a file backend
    would have persisted.
    """

    def __init__(self, ledger: Optional[Ledger] = None):
        self._snapshot: Optional[str] = ledger.model_dump_json() if ledger else None
        self.save_count = 0

    def load(self) -> Ledger:
        if self._snapshot is None:
            return Ledger()
        return Ledger.model_validate_json(self._snapshot)

    def save(self, ledger: Ledger) -> None:
        self._snapshot = ledger.model_dump_json()
        self.save_count += 1


class JsonLinesAuditStorage(AuditStorageInterface):
    """Audit events appended to a .jsonl file next to the ledger."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        if path is None:
            path = Path(get_settings().storage.data_file).with_name("audit.jsonl")
        self._path = Path(path)

    def append_event(self, event: AuditEvent) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(event.model_dump_json() + "\n")
            return True
        except OSError as e:
            raise StorageError(f"Failed to append audit event: {e}")

    def _read_all(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []
        events = []
        with self._path.open(encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(AuditEvent.model_validate(json.loads(line)))
                except (ValueError, ValidationError):
                    continue  # Skip malformed lines
        return events

    def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        return [
            e for e in self._read_all()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = self._read_all()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]


class InMemoryAuditStorage(AuditStorageInterface):
    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_events_by_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEvent]:
        return [e for e in self.events if e.entity_type == entity_type and e.entity_id == entity_id]

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]

"""
Tests for the storage backends and the audit logger.
"""

import pytest
from datetime import date
from decimal import Decimal

from src.audit import AuditLogger
from src.managers import ExpenseManager
from src.models.audit import AuditEventBuilder, AuditEventType
from src.models.ledger import Ledger
from src.services.storage import (
    InMemoryAuditStorage,
    JsonFileLedgerStorage,
    JsonLinesAuditStorage,
    LedgerStorageInterface,
    StorageError,
)


class BrokenStorage(LedgerStorageInterface):
    """Every save fails."""

    def load(self) -> Ledger:
        return Ledger()

    def save(self, ledger: Ledger) -> None:
        raise StorageError("disk full")


class BrokenAuditStorage(InMemoryAuditStorage):
    def append_event(self, event):
        raise StorageError("audit sheet unavailable")


class TestJsonFileStorage:
    """The default on-disk backend."""

    def test_missing_file_gives_empty_ledger(self, tmp_path):
        ledger = JsonFileLedgerStorage(tmp_path / "ledger.json").load()
        assert ledger.expenses == []

    def test_round_trip_keeps_decimals(self, tmp_path):
        storage = JsonFileLedgerStorage(tmp_path / "data" / "ledger.json")
        ledger = Ledger()
        ExpenseManager(ledger, storage).add("Coffee", "149.50", "Food & Dining", date(2024, 3, 1))

        loaded = storage.load()
        assert loaded.expenses[0].amount == Decimal("149.50")
        assert loaded.expenses[0].id == ledger.expenses[0].id

    def test_no_temp_files_left(self, tmp_path):
        storage = JsonFileLedgerStorage(tmp_path / "ledger.json")
        storage.save(Ledger())
        storage.save(Ledger())
        assert [p.name for p in tmp_path.iterdir()] == ["ledger.json"]

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileLedgerStorage(path).load()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text("", encoding="utf-8")
        assert JsonFileLedgerStorage(path).load().loans == []


class TestSaveFailures:
    """A failed save surfaces to the caller and is audited."""

    def test_save_error_propagates(self, audit_storage, audit):
        manager = ExpenseManager(Ledger(), BrokenStorage(), audit)
        with pytest.raises(StorageError):
            manager.add("Coffee", 150, "Food & Dining", date(2024, 3, 1))
        assert audit_storage.events[-1].event_type == AuditEventType.SAVE_FAILED


class TestAuditLogger:
    """Audit event persistence."""

    def test_jsonl_round_trip(self, tmp_path):
        storage = JsonLinesAuditStorage(tmp_path / "audit.jsonl")
        logger = AuditLogger(storage)
        assert logger.log(AuditEventBuilder.save_failed("one"))
        assert logger.log(AuditEventBuilder.save_failed("two"))

        events = logger.recent_events()
        assert len(events) == 2
        assert events[0].timestamp >= events[1].timestamp

    def test_malformed_lines_skipped(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        storage = JsonLinesAuditStorage(path)
        storage.append_event(AuditEventBuilder.save_failed("one"))
        with path.open("a", encoding="utf-8") as f:
            f.write("garbage\n")
        assert len(storage.get_recent_events()) == 1

    def test_storage_failure_returns_false(self):
        """Audit persistence is best effort."""
        logger = AuditLogger(BrokenAuditStorage())
        assert logger.log(AuditEventBuilder.save_failed("x")) is False

    def test_without_storage(self):
        logger = AuditLogger()
        assert logger.log(AuditEventBuilder.save_failed("x")) is True
        assert logger.recent_events() == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

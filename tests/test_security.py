"""
Tests for backup encryption, the PIN and the session lock.
"""

import json

import pytest
from datetime import date

from src.managers import ExpenseManager, InvalidInputError
from src.models.audit import AuditEventType
from src.security import (
    BackupDecryptionError,
    BackupService,
    PinManager,
    SessionLock,
    decrypt_text,
    encrypt_text,
    hash_pin,
)

# Keep PBKDF2 fast in tests
ITERATIONS = 1000


class TestCrypto:
    """Password-based AES-GCM."""

    def test_round_trip(self):
        payload = encrypt_text("hello ledger", "s3cret", ITERATIONS)
        assert decrypt_text(payload, "s3cret", ITERATIONS) == "hello ledger"

    def test_salt_makes_payload_unique(self):
        assert encrypt_text("same", "pw", ITERATIONS) != encrypt_text("same", "pw", ITERATIONS)

    def test_wrong_password(self):
        payload = encrypt_text("hello", "right", ITERATIONS)
        with pytest.raises(BackupDecryptionError):
            decrypt_text(payload, "wrong", ITERATIONS)

    @pytest.mark.parametrize("payload", ["not base64!!", "c2hvcnQ="])
    def test_garbage_payload(self, payload):
        with pytest.raises(BackupDecryptionError):
            decrypt_text(payload, "pw", ITERATIONS)

    def test_password_required(self):
        with pytest.raises(ValueError):
            encrypt_text("data", "", ITERATIONS)


class TestBackup:
    """Encrypted export and import of the ledger."""

    @pytest.fixture
    def backup(self, ledger, storage, audit):
        return BackupService(ledger, storage, audit, iterations=ITERATIONS)

    def test_export_excludes_security(self, ledger, storage, backup):
        PinManager(ledger, storage).setup_pin("1234")
        payload = backup.export_backup("pw")
        data = json.loads(decrypt_text(payload, "pw", ITERATIONS))
        assert "security" not in data

    def test_import_restores_in_place(self, ledger, storage, backup, audit_storage):
        """Managers sharing the ledger see the imported data."""
        expenses = ExpenseManager(ledger, storage)
        expenses.add("Rent", 20000, "Bills & Utilities", date(2024, 3, 1))
        payload = backup.export_backup("pw")

        expenses.delete(ledger.expenses[0].id)
        backup.import_backup(payload, "pw")

        assert [e.title for e in expenses.get_all()] == ["Rent"]
        assert storage.load().expenses[0].title == "Rent"
        assert audit_storage.events[-1].event_type == AuditEventType.BACKUP_IMPORTED

    def test_import_keeps_current_pin(self, ledger, storage, backup):
        payload = backup.export_backup("pw")
        PinManager(ledger, storage).setup_pin("4321")
        backup.import_backup(payload, "pw")
        assert PinManager(ledger, storage).verify_pin("4321")

    def test_wrong_password_leaves_ledger(self, ledger, storage, backup):
        ExpenseManager(ledger, storage).add("Rent", 20000, "Bills & Utilities", date(2024, 3, 1))
        payload = backup.export_backup("pw")
        with pytest.raises(BackupDecryptionError):
            backup.import_backup(payload, "nope")
        assert len(ledger.expenses) == 1

    def test_not_a_ledger(self, backup):
        payload = encrypt_text("[1, 2, 3]", "pw", ITERATIONS)
        with pytest.raises(BackupDecryptionError):
            backup.import_backup(payload, "pw")


class TestPin:
    """PIN setup and checks."""

    @pytest.fixture
    def pins(self, ledger, storage):
        return PinManager(ledger, storage)

    def test_setup_and_verify(self, pins, ledger):
        pins.setup_pin("123456")
        assert pins.is_setup
        assert ledger.security.pin_hash == hash_pin("123456")
        assert pins.verify_pin("123456")
        assert not pins.verify_pin("654321")

    @pytest.mark.parametrize("pin", ["123", "1234567", "12a4", ""])
    def test_invalid_pin(self, pins, pin):
        with pytest.raises(InvalidInputError):
            pins.setup_pin(pin)

    def test_change_needs_current(self, pins):
        pins.setup_pin("1234")
        with pytest.raises(InvalidInputError):
            pins.change_pin("0000", "5678")
        pins.change_pin("1234", "5678")
        assert pins.verify_pin("5678")

    def test_disable(self, pins):
        pins.setup_pin("1234")
        pins.disable()
        assert not pins.is_setup
        assert not pins.verify_pin("1234")


class TestSessionLock:
    """Secure page grace period and suspend timeout."""

    @pytest.fixture
    def lock(self):
        return SessionLock(session_timeout=30, suspend_timeout=60)

    def test_not_authenticated(self, lock):
        assert not lock.is_session_valid("Credentials", now=0)

    def test_valid_while_on_page(self, lock):
        lock.authenticated(now=0)
        lock.enter_page("Credentials", now=1)
        assert lock.is_session_valid("Credentials", now=1000)

    def test_grace_period_after_leaving(self, lock):
        lock.authenticated(now=0)
        lock.enter_page("Credentials", now=1)
        lock.leave_page(now=100)
        assert lock.is_session_valid("Credentials", now=120)
        assert not lock.is_session_valid("Credentials", now=131)

    def test_expired_session_cleared_on_enter(self, lock):
        lock.authenticated(now=0)
        lock.enter_page("Credentials", now=50)
        lock.leave_page(now=51)
        assert not lock.is_session_valid("Credentials", now=51)

    def test_suspend_locks_after_timeout(self, lock):
        lock.authenticated(now=0)
        lock.suspended(now=10)
        assert lock.resumed(now=80) is True
        assert lock.unlocked is False

    def test_short_suspend_keeps_unlocked(self, lock):
        lock.authenticated(now=0)
        lock.suspended(now=10)
        assert lock.resumed(now=20) is False
        assert lock.unlocked is True
        assert lock.resumed(now=500) is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

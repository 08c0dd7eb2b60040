"""App lock and encrypted backups."""

from src.security.backup import BackupService
from src.security.crypto import BackupDecryptionError, decrypt_text, encrypt_text
from src.security.session import PinManager, SessionLock, hash_pin

__all__ = [
    "BackupDecryptionError",
    "BackupService",
    "PinManager",
    "SessionLock",
    "decrypt_text",
    "encrypt_text",
    "hash_pin",
]

"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The local JSON file is the default; Google Sheets is optional.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
)
from src.services.storage.local_json import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    JsonFileLedgerStorage,
    JsonLinesAuditStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    # Exceptions
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "JsonFileLedgerStorage",
    "JsonLinesAuditStorage",
]

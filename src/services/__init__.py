"""Services package."""

from src.services.market import MarketDataError, MarketDataService
from src.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    JsonFileLedgerStorage,
    JsonLinesAuditStorage,
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Market data
    "MarketDataError",
    "MarketDataService",
    # Storage services
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "JsonFileLedgerStorage",
    "JsonLinesAuditStorage",
    "LedgerStorageInterface",
    "StorageConnectionError",
    "StorageError",
]

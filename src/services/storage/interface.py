"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger in a local JSON file by default
2. Mirror it to Google Sheets for users who want to see their data there
3. Use in-memory storage for testing

The interface is intentionally small: the whole ledger is loaded once
and saved after every mutation. Personal finance data is a few thousand
records at most, so whole-document writes are simpler than per-record
updates and never leave collections out of step with each other.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.ledger import Ledger


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger persistence.

    Any storage implementation (JSON file, Google Sheets, etc.)
    must implement these methods.
    """

    @abstractmethod
    def load(self) -> Ledger:
        """
        Load the ledger.

        Returns:
            The stored ledger, or an empty Ledger if nothing is stored yet

        Raises:
            StorageError: If stored data exists but cannot be read
        """
        pass

    @abstractmethod
    def save(self, ledger: Ledger) -> None:
        """
        Persist the whole ledger.

        Raises:
            StorageError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """All events for one entity, in chronological order."""
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageConnectionError(StorageError):
    """Raised when the storage backend cannot be reached."""
    pass

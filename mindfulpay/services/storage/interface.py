"""
Abstract Storage Interface

DESIGN DECISION: The engine only ever talks to a key-value store.
This allows us to:
1. Keep a local JSON store on the device
2. Use in-memory storage for testing
3. Mirror records to Google Sheets
4. Keep business logic decoupled from storage implementation

Values are JSON text. Each logical record (the transaction list,
the goal list, ...) lives under its own key.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional
from uuid import UUID

from mindfulpay.models.audit import AuditEvent


class RecordKey(str, Enum):
    """Logical record names. The store key is prefix + value."""
    TRANSACTIONS = "transactions"
    GOALS = "goals"
    SPENDING_LIMITS = "spending_limits"
    BLOCKED_MERCHANTS = "blocked_merchants"
    DAILY_SPENDING = "daily_spending"
    AUDIT_LOG = "audit_log"


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for key-value persistence.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def read(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: The record key

        Returns:
            The stored text, or None if the key was never written

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def write(self, key: str, value: str) -> None:
        """
        Store a value under a key, replacing any previous value.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        """
        Remove a key. Removing a missing key is not an error.

        Raises:
            StorageError: If the removal fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one payment attempt).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class CorruptRecordError(StorageError):
    """Stored value could not be decoded into records."""
    pass

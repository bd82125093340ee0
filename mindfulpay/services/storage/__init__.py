"""
Storage Services Package

Provides the abstract key-value interface, its backends, and the
typed repository the engine works with.
"""

from mindfulpay.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    CorruptRecordError,
    DuplicateError,
    KeyValueStoreInterface,
    NotFoundError,
    RecordKey,
    StorageError,
)
from mindfulpay.services.storage.memory import InMemoryKeyValueStore
from mindfulpay.services.storage.json_file import JsonFileKeyValueStore
from mindfulpay.services.storage.repository import FinanceRepository
from mindfulpay.services.storage.audit_store import KeyValueAuditStorage
from mindfulpay.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsKeyValueStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStoreInterface",
    "RecordKey",
    # Exceptions
    "ConnectionError",
    "CorruptRecordError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "FinanceRepository",
    "GoogleSheetsClient",
    "GoogleSheetsKeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueAuditStorage",
]

"""Services package."""

from mindfulpay.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    CorruptRecordError,
    DuplicateError,
    FinanceRepository,
    GoogleSheetsClient,
    GoogleSheetsKeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueAuditStorage,
    KeyValueStoreInterface,
    NotFoundError,
    RecordKey,
    StorageError,
)
from mindfulpay.services.upi import (
    DispatchError,
    InvalidPaymentCodeError,
    SystemUriOpener,
    UpiPaymentDispatcher,
    UriOpener,
    build_upi_uri,
    parse_payment_code,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "CorruptRecordError",
    "DuplicateError",
    "FinanceRepository",
    "GoogleSheetsClient",
    "GoogleSheetsKeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueAuditStorage",
    "KeyValueStoreInterface",
    "NotFoundError",
    "RecordKey",
    "StorageError",
    # UPI services
    "DispatchError",
    "InvalidPaymentCodeError",
    "SystemUriOpener",
    "UpiPaymentDispatcher",
    "UriOpener",
    "build_upi_uri",
    "parse_payment_code",
]

"""
Finance Repository

Typed access to the record lists kept in a key-value store.

DESIGN DECISION: There is no global store. One repository object is
created at startup and handed to the ledger, limit policy, goal book
and blocklist. It is the only code that knows records are JSON.

Read-modify-write of a record is serialized with one asyncio.Lock per
key, so two coroutines appending transactions at the same time can
never lose one of the writes.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from mindfulpay.config import get_settings
from mindfulpay.services.storage.interface import (
    CorruptRecordError,
    KeyValueStoreInterface,
    RecordKey,
)


ModelT = TypeVar("ModelT", bound=BaseModel)


class FinanceRepository:
    """
    Record-level access on top of a KeyValueStoreInterface.

    Every method may raise StorageError; callers decide whether a
    failure is fatal.
    """

    def __init__(
        self,
        store: KeyValueStoreInterface,
        key_prefix: Optional[str] = None,
    ):
        self._store = store
        self._prefix = (
            key_prefix if key_prefix is not None else get_settings().storage.key_prefix
        )
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def store(self) -> KeyValueStoreInterface:
        return self._store

    def key(self, record: RecordKey) -> str:
        """Store key for a logical record."""
        return f"{self._prefix}{record.value}"

    def _lock(self, record: RecordKey) -> asyncio.Lock:
        key = self.key(record)
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    # -------------------------------------------------------------------------
    # Raw JSON
    # -------------------------------------------------------------------------

    async def load_json(self, record: RecordKey) -> Optional[Any]:
        """Decoded JSON value of a record, or None if never written."""
        raw = await self._store.read(self.key(record))
        if raw is None or raw == "":
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptRecordError(f"{self.key(record)} is not valid JSON: {e}") from e

    async def save_json(self, record: RecordKey, value: Any) -> None:
        await self._store.write(
            self.key(record),
            json.dumps(value, ensure_ascii=False),
        )

    # -------------------------------------------------------------------------
    # Model lists
    # -------------------------------------------------------------------------

    def _decode_models(
        self,
        record: RecordKey,
        data: Optional[Any],
        model: type[ModelT],
    ) -> list[ModelT]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise CorruptRecordError(f"{self.key(record)} does not hold a list")
        try:
            return [model.model_validate(item) for item in data]
        except ValidationError as e:
            raise CorruptRecordError(
                f"{self.key(record)} holds an invalid {model.__name__}: {e}"
            ) from e

    async def load_models(self, record: RecordKey, model: type[ModelT]) -> list[ModelT]:
        """Load a record list, in stored order."""
        return self._decode_models(record, await self.load_json(record), model)

    async def save_models(self, record: RecordKey, items: list[BaseModel]) -> None:
        """Replace a record list."""
        await self.save_json(
            record,
            [item.model_dump(mode="json") for item in items],
        )

    @asynccontextmanager
    async def editing_models(
        self,
        record: RecordKey,
        model: type[ModelT],
    ) -> AsyncIterator[list[ModelT]]:
        """
        Load a record list for modification under the record's lock.

        The (possibly modified) list is written back when the block
        exits normally. If the block raises, nothing is written.
        """
        async with self._lock(record):
            items = await self.load_models(record, model)
            yield items
            await self.save_models(record, items)

    @asynccontextmanager
    async def editing_json(
        self,
        record: RecordKey,
        default: Any,
    ) -> AsyncIterator[dict]:
        """
        Same as editing_models for plain JSON records.

        Yields a holder dict whose "value" entry is written back.
        """
        async with self._lock(record):
            current = await self.load_json(record)
            holder = {"value": default if current is None else current}
            yield holder
            await self.save_json(record, holder["value"])

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    async def clear_all(self) -> None:
        """Remove every finance record. The audit log is kept."""
        for record in RecordKey:
            if record is RecordKey.AUDIT_LOG:
                continue
            async with self._lock(record):
                await self._store.remove(self.key(record))

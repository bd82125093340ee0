"""
In-Memory Key-Value Store

Used by tests and by the `memory` backend. Keeps nothing across
process restarts.
"""

from typing import Optional

from mindfulpay.services.storage.interface import KeyValueStoreInterface


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """Dictionary-backed store."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    async def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def write(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Copy of the raw stored values."""
        return dict(self._data)

"""
Vendor Blocklist

A user-curated set of payee identifiers that are never payable
through the normal flow.

Identifiers are normalized (trimmed, lower-cased) on the way in and
on lookup, so "Foo@UPI" and " foo@upi " are the same payee.

DESIGN DECISION: A lookup never raises. If the blocklist cannot be
read, `check()` returns a BlocklistCheck carrying the error and the
caller must resolve it with an explicit fail-open / fail-closed
policy. Mutations that cannot be persisted are logged and no-op.
"""

from typing import Literal, Optional

import structlog

from mindfulpay.audit import AuditLogger
from mindfulpay.config import get_settings
from mindfulpay.models.payment import BlocklistCheck
from mindfulpay.services.storage import (
    CorruptRecordError,
    FinanceRepository,
    RecordKey,
    StorageError,
)


logger = structlog.get_logger(__name__)


def normalize_identifier(identifier: str) -> str:
    """Canonical form of a payee identifier."""
    return identifier.strip().lower()


def _decode(data) -> list[str]:
    if not isinstance(data, list):
        raise CorruptRecordError(
            f"{RecordKey.BLOCKED_MERCHANTS.value} does not hold a list"
        )
    return [normalize_identifier(str(item)) for item in data]


class VendorBlocklist:
    """Persisted set of blocked payee identifiers."""

    def __init__(
        self,
        repository: FinanceRepository,
        failure_policy: Optional[Literal["fail_open", "fail_closed"]] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repository = repository
        self._failure_policy = failure_policy or get_settings().limits.blocklist_failure_policy
        self._audit_logger = audit_logger

    @property
    def failure_policy(self) -> str:
        return self._failure_policy

    async def _load(self) -> list[str]:
        """
        Read the stored list, creating an empty one on first access.

        Raises StorageError.
        """
        data = await self._repository.load_json(RecordKey.BLOCKED_MERCHANTS)
        if data is None:
            await self._repository.save_json(RecordKey.BLOCKED_MERCHANTS, [])
            return []
        return _decode(data)

    async def all(self) -> list[str]:
        """Blocked identifiers in the order they were added."""
        try:
            return await self._load()
        except StorageError as e:
            logger.error("blocklist_read_failed", error=str(e))
            return []

    async def check(self, identifier: str) -> BlocklistCheck:
        """Look up an identifier without deciding what a failed lookup means."""
        normalized = normalize_identifier(identifier)
        try:
            blocked = normalized in await self._load()
        except StorageError as e:
            logger.error("blocklist_read_failed", identifier=normalized, error=str(e))
            return BlocklistCheck(identifier=normalized, blocked=False, error=str(e))
        return BlocklistCheck(identifier=normalized, blocked=blocked)

    async def is_blocked(
        self,
        identifier: str,
        policy: Optional[Literal["fail_open", "fail_closed"]] = None,
    ) -> bool:
        """
        Whether payments to `identifier` are blocked.

        With the default fail_open policy an unreadable blocklist
        reports False.
        """
        result = await self.check(identifier)
        return result.resolve(policy or self._failure_policy)

    async def add(self, identifier: str) -> bool:
        """
        Block an identifier. Adding an already blocked one is a no-op.

        Returns True if the blocklist now durably contains it.
        """
        normalized = normalize_identifier(identifier)
        if not normalized:
            logger.warning("blocklist_add_ignored_empty")
            return False
        try:
            async with self._repository.editing_json(RecordKey.BLOCKED_MERCHANTS, []) as holder:
                current = _decode(holder["value"])
                changed = normalized not in current
                if changed:
                    current.append(normalized)
                holder["value"] = current
        except StorageError as e:
            logger.error("blocklist_add_failed", identifier=normalized, error=str(e))
            return False

        if changed and self._audit_logger:
            await self._audit_logger.log_merchant_blocklist_changed(normalized, blocked=True)
        return True

    async def remove(self, identifier: str) -> bool:
        """
        Unblock an identifier. Removing one that is not blocked is a no-op.

        Returns True if the blocklist durably no longer contains it.
        """
        normalized = normalize_identifier(identifier)
        try:
            async with self._repository.editing_json(RecordKey.BLOCKED_MERCHANTS, []) as holder:
                current = _decode(holder["value"])
                changed = normalized in current
                holder["value"] = [m for m in current if m != normalized]
        except StorageError as e:
            logger.error("blocklist_remove_failed", identifier=normalized, error=str(e))
            return False

        if changed and self._audit_logger:
            await self._audit_logger.log_merchant_blocklist_changed(normalized, blocked=False)
        return True

"""
Daily spending counter.

A single {date, amount} record of how much was paid out through the
gate today. A counter stamped with another date reads as zero, so it
resets itself at midnight without a scheduled job.
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Optional

import structlog
from pydantic import ValidationError

from mindfulpay.models.finance import ZERO, DailySpendingCounter
from mindfulpay.services.storage import (
    CorruptRecordError,
    FinanceRepository,
    RecordKey,
)


logger = structlog.get_logger(__name__)


class DailySpendingTracker:
    """Reads and bumps the daily spending counter."""

    def __init__(
        self,
        repository: FinanceRepository,
        today: Callable[[], date] = date.today,
    ):
        self._repository = repository
        self._today = today

    def _decode(self, data) -> Optional[DailySpendingCounter]:
        if data is None:
            return None
        try:
            return DailySpendingCounter.model_validate(data)
        except ValidationError as e:
            raise CorruptRecordError(f"Invalid daily spending counter: {e}") from e

    async def current(self, day: Optional[date] = None) -> Decimal:
        """Amount recorded for `day` (default today)."""
        day = day or self._today()
        counter = self._decode(await self._repository.load_json(RecordKey.DAILY_SPENDING))
        return counter.for_day(day) if counter else ZERO

    async def record(self, amount: Decimal, day: Optional[date] = None) -> DailySpendingCounter:
        """
        Add `amount` to today's total, starting over if the stored date is stale.

        Raises:
            StorageError: If the counter could not be written
        """
        day = day or self._today()
        async with self._repository.editing_json(RecordKey.DAILY_SPENDING, None) as holder:
            counter = self._decode(holder["value"])
            spent = counter.for_day(day) if counter else ZERO
            updated = DailySpendingCounter(date=day, amount=spent + amount)
            holder["value"] = updated.model_dump(mode="json")

        logger.debug("daily_spending_updated", date=day.isoformat(), amount=str(updated.amount))
        return updated

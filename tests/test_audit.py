"""Tests for audit logging, the daily counter and configuration."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from mindfulpay.audit import AuditLogger, create_correlation_id
from mindfulpay.config import LimitSettings, PaymentSettings, StorageSettings
from mindfulpay.models import AuditEventBuilder, AuditEventType
from mindfulpay.services.storage import KeyValueAuditStorage, RecordKey

from conftest import TODAY


class TestAuditLogger:

    @pytest.mark.asyncio
    async def test_local_only_logger(self):
        logger = AuditLogger()
        assert await logger.log(
            AuditEventBuilder.payment_code_rejected("bad code")
        ) is True

    @pytest.mark.asyncio
    async def test_events_are_persisted(self, audit_logger, audit_storage):
        correlation_id = create_correlation_id()
        attempt_id = uuid4()

        await audit_logger.log_payment_submitted(
            attempt_id=attempt_id,
            payee_id="shop@upi",
            amount="10",
            category=None,
            correlation_id=correlation_id,
        )
        await audit_logger.log_payment_allowed(attempt_id=attempt_id, correlation_id=correlation_id)
        await audit_logger.log_transaction_deleted("abc")

        related = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in related] == [
            AuditEventType.PAYMENT_SUBMITTED,
            AuditEventType.PAYMENT_ALLOWED,
        ]
        assert len(await audit_storage.get_recent_events(limit=10)) == 3

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self, audit_logger, store):
        store.fail_writes = True
        persisted = await audit_logger.log(AuditEventBuilder.payment_code_rejected("bad"))
        assert persisted is False

    @pytest.mark.asyncio
    async def test_audit_log_is_capped(self, repository):
        storage = KeyValueAuditStorage(repository, max_events=3)
        for i in range(5):
            await storage.append_event(AuditEventBuilder.transaction_deleted(str(i)))

        stored = await repository.load_json(RecordKey.AUDIT_LOG)
        assert [e["entity_id"] for e in stored] == ["2", "3", "4"]


class TestDailySpendingTracker:

    @pytest.mark.asyncio
    async def test_starts_at_zero(self, daily_tracker):
        assert await daily_tracker.current() == Decimal("0")

    @pytest.mark.asyncio
    async def test_accumulates_within_a_day(self, daily_tracker):
        await daily_tracker.record(Decimal("100"))
        counter = await daily_tracker.record(Decimal("50.50"))
        assert counter.date == TODAY
        assert await daily_tracker.current() == Decimal("150.50")

    @pytest.mark.asyncio
    async def test_resets_on_new_day(self, daily_tracker):
        await daily_tracker.record(Decimal("100"), day=date(2024, 3, 19))
        assert await daily_tracker.current() == Decimal("0")

        counter = await daily_tracker.record(Decimal("30"))
        assert counter.amount == Decimal("30")


class TestSettings:
    """Configuration groups read from the environment."""

    def test_limit_defaults(self, monkeypatch):
        monkeypatch.delenv("LIMIT_DAILY_LIMIT", raising=False)
        settings = LimitSettings(_env_file=None)
        assert settings.daily_limit == Decimal("5000")
        assert settings.blocklist_failure_policy == "fail_open"
        assert settings.duplicate_limit_policy == "reject"
        assert settings.override_rechecks_blocklist is False

    def test_limit_from_env(self, monkeypatch):
        monkeypatch.setenv("LIMIT_DAILY_LIMIT", "10000")
        monkeypatch.setenv("LIMIT_BLOCKLIST_FAILURE_POLICY", "fail_closed")
        settings = LimitSettings(_env_file=None)
        assert settings.daily_limit == Decimal("10000")
        assert settings.blocklist_failure_policy == "fail_closed"

    def test_payment_normalization(self, monkeypatch):
        monkeypatch.setenv("UPI_SCHEME", "UPI")
        monkeypatch.setenv("UPI_CURRENCY", "inr")
        settings = PaymentSettings(_env_file=None)
        assert settings.scheme == "upi"
        assert settings.currency == "INR"

    def test_storage_backend_choice(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        assert StorageSettings(_env_file=None).backend == "memory"


class TestTimestamps:

    def test_events_carry_utc_timestamps(self):
        event = AuditEventBuilder.payment_code_rejected("bad code")
        assert event.timestamp.utcoffset() == timedelta(0)

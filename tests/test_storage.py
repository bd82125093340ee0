"""Tests for the key-value backends and the finance repository."""

import asyncio
import json
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from mindfulpay.models import Goal, Transaction
from mindfulpay.services.storage import (
    CorruptRecordError,
    FinanceRepository,
    GoogleSheetsKeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    RecordKey,
    StorageError,
)

from conftest import TODAY, make_expense, make_income


class TestInMemoryStore:

    @pytest.mark.asyncio
    async def test_read_write_remove(self):
        store = InMemoryKeyValueStore()
        assert await store.read("k") is None
        await store.write("k", "[1]")
        assert await store.read("k") == "[1]"
        await store.remove("k")
        assert await store.read("k") is None

    @pytest.mark.asyncio
    async def test_remove_missing_key_is_noop(self):
        store = InMemoryKeyValueStore()
        await store.remove("missing")
        assert store.snapshot() == {}


class TestJsonFileStore:
    """Tests for the one-file-per-key backend."""

    @pytest.mark.asyncio
    async def test_write_creates_file(self, tmp_path):
        store = JsonFileKeyValueStore(str(tmp_path / "data"))
        await store.write("mindfulpay_goals", "[]")

        path = tmp_path / "data" / "mindfulpay_goals.json"
        assert path.read_text(encoding="utf-8") == "[]"
        assert await store.read("mindfulpay_goals") == "[]"

    @pytest.mark.asyncio
    async def test_overwrite_leaves_no_temp_files(self, tmp_path):
        store = JsonFileKeyValueStore(str(tmp_path))
        await store.write("k", "first")
        await store.write("k", "second")

        assert await store.read("k") == "second"
        assert [p.name for p in tmp_path.iterdir()] == ["k.json"]

    @pytest.mark.asyncio
    async def test_missing_key_reads_none(self, tmp_path):
        store = JsonFileKeyValueStore(str(tmp_path))
        assert await store.read("nothing_here") is None

    @pytest.mark.asyncio
    async def test_remove(self, tmp_path):
        store = JsonFileKeyValueStore(str(tmp_path))
        await store.write("k", "v")
        await store.remove("k")
        await store.remove("k")
        assert await store.read("k") is None

    @pytest.mark.asyncio
    async def test_rejects_path_like_keys(self, tmp_path):
        store = JsonFileKeyValueStore(str(tmp_path))
        with pytest.raises(StorageError, match="Invalid storage key"):
            await store.write("../escape", "v")


class TestGoogleSheetsStore:
    """Tests for the spreadsheet backend against a mocked worksheet."""

    def _store(self, keys, row=None):
        sheet = MagicMock()
        sheet.col_values.return_value = keys
        sheet.row_values.return_value = row or []
        client = MagicMock()
        client.get_records_sheet.return_value = sheet
        return GoogleSheetsKeyValueStore(client), sheet

    @pytest.mark.asyncio
    async def test_read_existing_key(self):
        store, sheet = self._store(
            ["key", "mindfulpay_goals", "mindfulpay_transactions"],
            row=["mindfulpay_transactions", "[]", "2024-03-20T10:00:00"],
        )
        assert await store.read("mindfulpay_transactions") == "[]"
        sheet.row_values.assert_called_once_with(3)

    @pytest.mark.asyncio
    async def test_read_missing_key(self):
        store, sheet = self._store(["key"])
        assert await store.read("mindfulpay_goals") is None
        sheet.row_values.assert_not_called()

    @pytest.mark.asyncio
    async def test_write_appends_new_key(self):
        store, sheet = self._store(["key"])
        await store.write("mindfulpay_goals", "[]")

        sheet.append_row.assert_called_once()
        row = sheet.append_row.call_args.args[0]
        assert row[:2] == ["mindfulpay_goals", "[]"]

    @pytest.mark.asyncio
    async def test_write_updates_existing_row(self):
        store, sheet = self._store(["key", "mindfulpay_goals"])
        await store.write("mindfulpay_goals", "[1]")

        sheet.append_row.assert_not_called()
        kwargs = sheet.update.call_args.kwargs
        assert kwargs["range_name"] == "A2:C2"
        assert kwargs["values"][0][:2] == ["mindfulpay_goals", "[1]"]

    @pytest.mark.asyncio
    async def test_remove_deletes_row(self):
        store, sheet = self._store(["key", "a", "b"])
        await store.remove("b")
        sheet.delete_rows.assert_called_once_with(3)


class TestFinanceRepository:
    """Tests for typed record access."""

    @pytest.mark.asyncio
    async def test_keys_use_prefix(self, repository):
        assert repository.key(RecordKey.TRANSACTIONS) == "mindfulpay_transactions"
        assert repository.key(RecordKey.BLOCKED_MERCHANTS) == "mindfulpay_blocked_merchants"

    @pytest.mark.asyncio
    async def test_transaction_list_round_trip(self, repository):
        """Persisting and reloading keeps order and every field."""
        transactions = [
            make_income("50000", day=date(2024, 3, 1)),
            make_expense("8000.50", day=date(2024, 3, 2), category="Food & Dining",
                         merchant="supermarket@upi"),
            Transaction.model_validate({
                **make_expense("99.99").model_dump(),
                "tags": ["emergency"],
            }),
        ]
        await repository.save_models(RecordKey.TRANSACTIONS, transactions)
        reloaded = await repository.load_models(RecordKey.TRANSACTIONS, Transaction)

        assert reloaded == transactions

    @pytest.mark.asyncio
    async def test_amounts_stored_as_exact_text(self, repository, store):
        await repository.save_models(RecordKey.TRANSACTIONS, [make_expense("0.10")])
        raw = json.loads(store.snapshot()["mindfulpay_transactions"])
        assert Decimal(raw[0]["amount"]) == Decimal("0.10")

    @pytest.mark.asyncio
    async def test_invalid_json_is_corrupt(self, repository, store):
        await store.write("mindfulpay_goals", "{not json")
        with pytest.raises(CorruptRecordError):
            await repository.load_models(RecordKey.GOALS, Goal)

    @pytest.mark.asyncio
    async def test_invalid_record_is_corrupt(self, repository, store):
        await store.write("mindfulpay_goals", json.dumps([{"name": "x", "target_amount": "-1"}]))
        with pytest.raises(CorruptRecordError):
            await repository.load_models(RecordKey.GOALS, Goal)

    @pytest.mark.asyncio
    async def test_failed_edit_writes_nothing(self, repository, store):
        await repository.save_models(RecordKey.TRANSACTIONS, [make_expense("10")])
        before = store.snapshot()

        with pytest.raises(RuntimeError):
            async with repository.editing_models(RecordKey.TRANSACTIONS, Transaction) as items:
                items.append(make_expense("20"))
                raise RuntimeError("abort")

        assert store.snapshot() == before

    @pytest.mark.asyncio
    async def test_concurrent_edits_do_not_lose_updates(self, repository):
        async def add(amount):
            async with repository.editing_models(RecordKey.TRANSACTIONS, Transaction) as items:
                await asyncio.sleep(0)
                items.append(make_expense(amount))

        await asyncio.gather(*(add(str(i)) for i in range(1, 21)))
        stored = await repository.load_models(RecordKey.TRANSACTIONS, Transaction)
        assert len(stored) == 20

    @pytest.mark.asyncio
    async def test_clear_all_keeps_audit_log(self, repository, store):
        await repository.save_models(RecordKey.TRANSACTIONS, [make_expense("10")])
        await repository.save_json(RecordKey.BLOCKED_MERCHANTS, ["a@upi"])
        await repository.save_json(RecordKey.AUDIT_LOG, [])

        await repository.clear_all()

        assert set(store.snapshot()) == {"mindfulpay_audit_log"}

    @pytest.mark.asyncio
    async def test_independent_repository_on_other_store(self):
        """No state is shared between repositories."""
        first = FinanceRepository(InMemoryKeyValueStore(), key_prefix="mindfulpay_")
        second = FinanceRepository(InMemoryKeyValueStore(), key_prefix="mindfulpay_")
        await first.save_models(RecordKey.TRANSACTIONS, [make_expense("10", day=TODAY)])
        assert await second.load_models(RecordKey.TRANSACTIONS, Transaction) == []

"""Tests for limit records and payment evaluation."""

from datetime import date
from decimal import Decimal

import pytest

from mindfulpay.engine import LimitPolicy, resolve_duplicates
from mindfulpay.models import LimitPeriod, LimitScope, SpendingLimit
from mindfulpay.services.storage import DuplicateError, NotFoundError, StorageError

from conftest import TODAY, make_expense, make_income


def _policy(repository, ledger, **kwargs):
    options = {
        "daily_limit": Decimal("5000"),
        "monthly_limit": Decimal("50000"),
        "duplicate_policy": "reject",
        "today": lambda: TODAY,
    }
    options.update(kwargs)
    return LimitPolicy(repository, ledger, **options)


class TestGlobalLimits:
    """Daily and monthly limits from configuration."""

    @pytest.mark.asyncio
    async def test_daily_limit_denies_and_allows_at_boundary(self, repository, ledger):
        policy = _policy(repository, ledger, daily_limit=Decimal("10000"))
        await ledger.append(make_expense("9500"))

        denied = await policy.evaluate(Decimal("600"))
        assert denied.allowed is False
        assert denied.scope == LimitScope.DAILY
        assert denied.spent == Decimal("9500")
        assert denied.limit == Decimal("10000")

        allowed = await policy.evaluate(Decimal("500"))
        assert allowed.allowed is True

    @pytest.mark.asyncio
    async def test_one_paisa_over_is_denied(self, limit_policy, ledger):
        await ledger.append(make_expense("4000"))
        assert (await limit_policy.evaluate(Decimal("1000.00"))).allowed is True
        assert (await limit_policy.evaluate(Decimal("1000.01"))).allowed is False

    @pytest.mark.asyncio
    async def test_only_todays_expenses_count_toward_daily(self, limit_policy, ledger):
        await ledger.append(make_expense("4900", day=date(2024, 3, 19)))
        decision = await limit_policy.evaluate(Decimal("4000"))
        assert decision.allowed is True

    @pytest.mark.asyncio
    async def test_income_does_not_count(self, limit_policy, ledger):
        await ledger.append(make_income("100000"))
        assert (await limit_policy.evaluate(Decimal("5000"))).allowed is True

    @pytest.mark.asyncio
    async def test_monthly_limit(self, limit_policy, ledger):
        await ledger.append(make_expense("48000", day=date(2024, 3, 2)))
        decision = await limit_policy.evaluate(Decimal("2500"))
        assert decision.allowed is False
        assert decision.scope == LimitScope.MONTHLY
        assert decision.spent == Decimal("48000")

    @pytest.mark.asyncio
    async def test_previous_month_ignored(self, limit_policy, ledger):
        await ledger.append(make_expense("49000", day=date(2024, 2, 28)))
        assert (await limit_policy.evaluate(Decimal("2000"))).allowed is True

    @pytest.mark.asyncio
    async def test_daily_checked_before_monthly(self, repository, ledger):
        policy = _policy(repository, ledger, monthly_limit=Decimal("1000"))
        decision = await policy.evaluate(Decimal("6000"))
        assert decision.scope == LimitScope.DAILY

    @pytest.mark.asyncio
    async def test_disabled_limits(self, repository, ledger):
        policy = _policy(repository, ledger, daily_limit=None, monthly_limit=None)
        assert (await policy.evaluate(Decimal("1000000"))).allowed is True

    @pytest.mark.asyncio
    async def test_explicit_date(self, limit_policy, ledger):
        await ledger.append(make_expense("4500", day=date(2024, 3, 5)))
        decision = await limit_policy.evaluate(Decimal("600"), today=date(2024, 3, 5))
        assert decision.scope == LimitScope.DAILY


class TestCategoryLimits:
    """Per-category limits and their periods."""

    @pytest.mark.asyncio
    async def test_monthly_category_limit(self, limit_policy, ledger):
        await limit_policy.add_limit("Food & Dining", Decimal("5000"))
        await ledger.append(make_expense("4800", day=date(2024, 3, 5), category="Food & Dining"))

        allowed = await limit_policy.evaluate(Decimal("150"), category="Food & Dining")
        assert allowed.allowed is True

        denied = await limit_policy.evaluate(Decimal("300"), category="Food & Dining")
        assert denied.allowed is False
        assert denied.scope == LimitScope.CATEGORY
        assert denied.category == "Food & Dining"
        assert denied.period == LimitPeriod.MONTHLY
        assert denied.spent == Decimal("4800")

    @pytest.mark.asyncio
    async def test_other_categories_unaffected(self, limit_policy, ledger):
        await limit_policy.add_limit("Food & Dining", Decimal("100"))
        await ledger.append(make_expense("100", day=date(2024, 3, 5), category="Food & Dining"))
        assert (await limit_policy.evaluate(Decimal("50"), category="Shopping")).allowed is True
        assert (await limit_policy.evaluate(Decimal("50"))).allowed is True

    @pytest.mark.asyncio
    async def test_weekly_category_limit(self, limit_policy, ledger):
        await limit_policy.add_limit("Entertainment", Decimal("1000"), LimitPeriod.WEEKLY)
        # Sunday of the previous week does not count
        await ledger.append(make_expense("900", day=date(2024, 3, 17), category="Entertainment"))
        await ledger.append(make_expense("600", day=date(2024, 3, 18), category="Entertainment"))

        assert (await limit_policy.evaluate(Decimal("400"), category="Entertainment")).allowed
        decision = await limit_policy.evaluate(Decimal("401"), category="Entertainment")
        assert decision.period == LimitPeriod.WEEKLY

    @pytest.mark.asyncio
    async def test_daily_category_limit(self, limit_policy, ledger):
        await limit_policy.add_limit("Shopping", Decimal("300"), LimitPeriod.DAILY)
        await ledger.append(make_expense("200", category="Shopping"))
        decision = await limit_policy.evaluate(Decimal("150"), category="Shopping")
        assert decision.scope == LimitScope.CATEGORY
        assert decision.period == LimitPeriod.DAILY


class TestLimitRecords:
    """CRUD on stored limits."""

    @pytest.mark.asyncio
    async def test_add_and_list(self, limit_policy):
        created = await limit_policy.add_limit("Shopping", Decimal("7000"))
        assert await limit_policy.list_limits() == [created]

    @pytest.mark.asyncio
    async def test_add_rejects_duplicate(self, limit_policy):
        await limit_policy.add_limit("Shopping", Decimal("7000"))
        with pytest.raises(DuplicateError):
            await limit_policy.add_limit("Shopping", Decimal("5000"))
        # same category, different period is fine
        await limit_policy.add_limit("Shopping", Decimal("500"), LimitPeriod.DAILY)
        assert len(await limit_policy.list_limits()) == 2

    @pytest.mark.asyncio
    async def test_update(self, limit_policy):
        created = await limit_policy.add_limit("Shopping", Decimal("7000"))
        updated = await limit_policy.update_limit(created.id, Decimal("8000"))
        assert updated.id == created.id
        assert updated.amount == Decimal("8000")
        assert (await limit_policy.list_limits())[0].amount == Decimal("8000")

    @pytest.mark.asyncio
    async def test_update_unknown(self, limit_policy):
        with pytest.raises(NotFoundError):
            await limit_policy.update_limit("missing", Decimal("10"))

    @pytest.mark.asyncio
    async def test_delete(self, limit_policy):
        created = await limit_policy.add_limit("Shopping", Decimal("7000"))
        assert await limit_policy.delete_limit(created.id) is True
        assert await limit_policy.delete_limit(created.id) is False
        assert await limit_policy.list_limits() == []

    @pytest.mark.asyncio
    async def test_write_failure_leaves_limits_unchanged(self, limit_policy, store):
        created = await limit_policy.add_limit("Shopping", Decimal("7000"))
        store.fail_writes = True

        with pytest.raises(StorageError):
            await limit_policy.update_limit(created.id, Decimal("1"))

        store.fail_writes = False
        assert await limit_policy.list_limits() == [created]


class TestDuplicatePolicies:
    """Which stored duplicate applies during evaluation."""

    def _limits(self):
        return [
            SpendingLimit(category="Food & Dining", amount=Decimal("3000")),
            SpendingLimit(category="Food & Dining", amount=Decimal("1000")),
            SpendingLimit(category="Food & Dining", amount=Decimal("2000")),
        ]

    def test_resolve(self):
        limits = self._limits()
        assert resolve_duplicates(limits, "first_match").amount == Decimal("3000")
        assert resolve_duplicates(limits, "most_recent").amount == Decimal("2000")
        assert resolve_duplicates(limits, "most_restrictive").amount == Decimal("1000")
        assert resolve_duplicates(limits, "reject").amount == Decimal("3000")
        assert resolve_duplicates([], "first_match") is None

    @pytest.mark.asyncio
    async def test_most_restrictive_evaluation(self, repository, ledger):
        policy = _policy(repository, ledger, duplicate_policy="most_restrictive")
        await policy.add_limit("Food & Dining", Decimal("3000"))
        await policy.add_limit("Food & Dining", Decimal("1000"))

        decision = await policy.evaluate(Decimal("1500"), category="Food & Dining")
        assert decision.allowed is False
        assert decision.limit == Decimal("1000")

    @pytest.mark.asyncio
    async def test_first_match_evaluation(self, repository, ledger):
        policy = _policy(repository, ledger, duplicate_policy="first_match")
        await policy.add_limit("Food & Dining", Decimal("3000"))
        await policy.add_limit("Food & Dining", Decimal("1000"))

        assert (await policy.evaluate(Decimal("1500"), category="Food & Dining")).allowed

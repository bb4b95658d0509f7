"""Tests for the monthly plan store."""

import pytest
from decimal import Decimal

from conftest import USER, OTHER_USER
from expense_ledger.errors import ImmutableMonthError, ValidationError


class TestUpsert:
    """Tests for MonthlyPlanStore.upsert."""

    @pytest.mark.asyncio
    async def test_insert_then_update_keeps_identity(self, plan_store):
        created = await plan_store.upsert(USER, {
            "month": "2025-01",
            "incomeAmount": "3000",
            "savingsTarget": "500",
        })
        updated = await plan_store.upsert(USER, {
            "month": "2025-01",
            "incomeAmount": "3200",
            "savingsTarget": "600",
            "notes": "Raise",
        })

        assert updated.id == created.id
        assert updated.created_at == created.created_at
        assert updated.updated_at >= created.updated_at
        assert updated.income_amount == Decimal("3200.00")
        assert updated.notes == "Raise"
        assert len(await plan_store.list(USER)) == 1

    @pytest.mark.asyncio
    async def test_savings_above_income_writes_nothing(self, plan_store):
        with pytest.raises(ValidationError):
            await plan_store.upsert(USER, {
                "month": "2025-01",
                "incomeAmount": "100",
                "savingsTarget": "101",
            })
        assert await plan_store.get(USER, "2025-01") is None

    @pytest.mark.asyncio
    async def test_closed_month_plan_is_frozen(self, plan_store, closing_engine):
        await plan_store.upsert(USER, {"month": "2025-01", "incomeAmount": "3000"})
        await closing_engine.close(USER, "2025-01")

        with pytest.raises(ImmutableMonthError):
            await plan_store.upsert(USER, {"month": "2025-01", "incomeAmount": "1"})

        plan = await plan_store.get(USER, "2025-01")
        assert plan.income_amount == Decimal("3000.00")


class TestReads:
    """Tests for get and list."""

    @pytest.mark.asyncio
    async def test_list_is_newest_month_first(self, plan_store):
        for month in ("2025-01", "2025-03", "2025-02"):
            await plan_store.upsert(USER, {"month": month, "incomeAmount": "100"})
        plans = await plan_store.list(USER)
        assert [p.month for p in plans] == ["2025-03", "2025-02", "2025-01"]

    @pytest.mark.asyncio
    async def test_plans_are_per_user(self, plan_store):
        await plan_store.upsert(OTHER_USER, {"month": "2025-01", "incomeAmount": "100"})
        assert await plan_store.get(USER, "2025-01") is None

    @pytest.mark.asyncio
    async def test_get_rejects_bad_month(self, plan_store):
        with pytest.raises(ValidationError):
            await plan_store.get(USER, "2025/01")

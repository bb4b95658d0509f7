"""Tests for the summary and trend aggregator."""

import pytest
from datetime import date
from decimal import Decimal

from conftest import USER, OTHER_USER, expense_payload
from expense_ledger.engine import build_trend, merge_monthly_summaries, normalize_trend_limit
from expense_ledger.models.ledger import (
    ExpenseCategory,
    ExpenseRecord,
    MonthlyPlanRecord,
    MonthlySnapshotRecord,
)


def make_expense(amount, day, category=ExpenseCategory.FOOD):
    return ExpenseRecord(
        user_id=USER,
        title="Item",
        amount=Decimal(amount),
        category=category,
        expense_date=day,
    )


def make_plan(month, income="1000", savings="0"):
    return MonthlyPlanRecord(
        user_id=USER,
        month=month,
        income_amount=Decimal(income),
        savings_target=Decimal(savings),
    )


class TestMergeMonthlySummaries:
    """Tests for the pure summary merge."""

    def test_snapshot_wins_over_live_expenses(self):
        snapshot = MonthlySnapshotRecord(
            user_id=USER,
            month="2025-01",
            total_amount=Decimal("10.00"),
            transaction_count=1,
            top_category="Food",
        )
        summaries = merge_monthly_summaries(
            [snapshot],
            [make_expense("999", date(2025, 1, 3))],
            [],
        )
        assert len(summaries) == 1
        assert summaries[0].total_amount == Decimal("10.00")
        assert summaries[0].is_closed is True

    def test_plan_only_month_gets_placeholder(self):
        summaries = merge_monthly_summaries([], [], [make_plan("2025-04")])
        assert summaries[0].month == "2025-04"
        assert summaries[0].total_amount == Decimal("0.00")
        assert summaries[0].transaction_count == 0
        assert summaries[0].top_category == "No expenses yet"
        assert summaries[0].is_closed is False

    def test_live_month_is_aggregated(self):
        summaries = merge_monthly_summaries(
            [],
            [
                make_expense("5", date(2025, 2, 1)),
                make_expense("7", date(2025, 2, 9), ExpenseCategory.HOUSING),
            ],
            [make_plan("2025-02")],
        )
        assert len(summaries) == 1
        assert summaries[0].total_amount == Decimal("12.00")
        assert summaries[0].top_category == "Housing"

    def test_newest_month_first(self):
        summaries = merge_monthly_summaries(
            [],
            [make_expense("1", date(2024, 12, 1)), make_expense("1", date(2025, 2, 1))],
            [make_plan("2025-01")],
        )
        assert [s.month for s in summaries] == ["2025-02", "2025-01", "2024-12"]


class TestBuildTrend:
    """Tests for the pure trend builder."""

    def test_window_keeps_newest_months_oldest_first(self):
        """Test ten months of data limited to five."""
        plans = [make_plan(f"2025-{n:02d}") for n in range(1, 11)]
        summaries = merge_monthly_summaries([], [], plans)

        points = build_trend(summaries, plans, 5)

        assert [p.month for p in points] == [
            "2025-06", "2025-07", "2025-08", "2025-09", "2025-10",
        ]

    def test_point_figures(self):
        plans = [make_plan("2025-01", income="2000", savings="500")]
        summaries = merge_monthly_summaries(
            [], [make_expense("300", date(2025, 1, 5))], plans
        )
        [point] = build_trend(summaries, plans, 8)
        assert point.expense_total == Decimal("300.00")
        assert point.income_amount == Decimal("2000.00")
        assert point.savings_target == Decimal("500.00")
        assert point.planned_spendable == Decimal("1500.00")
        assert point.remaining_budget == Decimal("1200.00")
        assert point.is_closed is False

    def test_month_without_plan_contributes_zeros(self):
        summaries = merge_monthly_summaries([], [make_expense("40", date(2025, 1, 5))], [])
        [point] = build_trend(summaries, [], 8)
        assert point.income_amount == Decimal("0.00")
        assert point.planned_spendable == Decimal("0.00")
        assert point.remaining_budget == Decimal("-40.00")

    def test_limit_is_clamped(self):
        plans = [make_plan(f"2024-{n:02d}") for n in range(1, 13)]
        plans += [make_plan(f"2025-{n:02d}") for n in range(1, 13)]
        plans += [make_plan("2026-01")]
        summaries = merge_monthly_summaries([], [], plans)

        assert len(build_trend(summaries, plans, 1)) == 3
        assert len(build_trend(summaries, plans, 100)) == 24
        assert len(build_trend(summaries, plans, None)) == 8

    def test_normalize_trend_limit_default(self):
        assert normalize_trend_limit("garbage") == 8
        assert normalize_trend_limit(None, default=12) == 12


class TestSummaryAggregator:
    """Tests for the storage-backed read views."""

    @pytest.mark.asyncio
    async def test_list_summaries_combines_sources(self, aggregator, ledger, plan_store, closing_engine):
        await ledger.create(USER, expense_payload(amount="10", date="2025-01-05"))
        await closing_engine.close(USER, "2025-01")
        await ledger.create(USER, expense_payload(amount="20", date="2025-02-05"))
        await plan_store.upsert(USER, {"month": "2025-03", "incomeAmount": "500"})
        await ledger.create(OTHER_USER, expense_payload(date="2025-04-01"))

        summaries = await aggregator.list_summaries(USER)

        assert [(s.month, s.is_closed) for s in summaries] == [
            ("2025-03", False),
            ("2025-02", False),
            ("2025-01", True),
        ]

    @pytest.mark.asyncio
    async def test_list_trend_marks_closed_months(self, aggregator, ledger, plan_store, closing_engine):
        await plan_store.upsert(USER, {"month": "2025-01", "incomeAmount": "1000"})
        await ledger.create(USER, expense_payload(amount="250", date="2025-01-05"))
        await closing_engine.close(USER, "2025-01")

        [point] = await aggregator.list_trend(USER, 3)

        assert point.is_closed is True
        assert point.remaining_budget == Decimal("750.00")

    @pytest.mark.asyncio
    async def test_open_month_detail(self, aggregator, ledger, plan_store):
        await plan_store.upsert(USER, {"month": "2025-03", "incomeAmount": "1700", "savingsTarget": "200"})
        await ledger.create(USER, expense_payload(amount="100", date="2025-03-02"))

        detail = await aggregator.get_monthly_detail(USER, "2025-03")

        assert detail.summary.is_closed is False
        assert detail.summary_text == ""
        assert detail.category_breakdown == {"Food": Decimal("100.00")}
        assert len(detail.expenses) == 1
        # Clock is pinned to 2025-03-15: 17 days left
        assert detail.budget.days_remaining == 17
        assert detail.budget.remaining_budget == Decimal("1400.00")
        assert detail.budget.daily_allowance == Decimal("82.35")

    @pytest.mark.asyncio
    async def test_closed_month_detail_uses_snapshot(self, aggregator, ledger, closing_engine):
        await ledger.create(USER, expense_payload(amount="10", date="2025-01-05"))
        snapshot = await closing_engine.close(USER, "2025-01")

        detail = await aggregator.get_monthly_detail(USER, "2025-01")

        assert detail.summary.is_closed is True
        assert detail.summary.closed_at == snapshot.closed_at
        assert detail.summary_text == snapshot.summary_text
        assert detail.category_breakdown == snapshot.category_breakdown
        assert detail.budget.income_required is True
        assert detail.budget.days_remaining == 0

    @pytest.mark.asyncio
    async def test_empty_month_detail(self, aggregator):
        detail = await aggregator.get_monthly_detail(USER, "2025-05")
        assert detail.summary.transaction_count == 0
        assert detail.summary.top_category == "None"
        assert detail.plan is None
        assert detail.budget.days_remaining == 31

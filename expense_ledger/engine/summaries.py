"""
Summary & Trend Aggregator

Read views over a user's whole ledger: the month history, the trend
series for charting, and the detail of one month.

DESIGN DECISION: Everything here is split in two:
1. Pure functions that merge already-fetched collections
2. A thin SummaryAggregator that fetches those collections concurrently
   and hands them to the pure functions

Precedence when a month appears in more than one source:
    closed snapshot > live aggregation of expenses > plan-only placeholder

A stored snapshot always wins. Closed months are never recomputed here,
even if expenses for them were somehow found.
"""

import asyncio
from collections.abc import Callable, Iterable
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from expense_ledger.engine.aggregator import aggregate_expenses, group_by_month
from expense_ledger.engine.insights import build_budget_insights, planned_spendable
from expense_ledger.models.ledger import (
    NO_EXPENSES_YET,
    ExpenseRecord,
    MonthlyDetail,
    MonthlyPlanRecord,
    MonthlySnapshotRecord,
    MonthlySummary,
    MonthlyTrendPoint,
)
from expense_ledger.months import month_bounds, round_money, utc_today
from expense_ledger.services.storage import (
    ExpenseStorageInterface,
    PlanStorageInterface,
    SnapshotStorageInterface,
)
from expense_ledger.validation import (
    TREND_DEFAULT_MONTHS,
    parse_month_value,
    parse_trend_limit,
)


def normalize_trend_limit(value: Any, default: int = TREND_DEFAULT_MONTHS) -> int:
    """Clamp a requested trend window to [3, 24]; default 8."""
    return parse_trend_limit(value, default=default)


def merge_monthly_summaries(
    snapshots: Iterable[MonthlySnapshotRecord],
    expenses: Iterable[ExpenseRecord],
    plans: Iterable[MonthlyPlanRecord],
) -> list[MonthlySummary]:
    """
    Build one summary per month known to any of the three sources.

    Returns:
        Summaries ordered by month, newest first
    """
    summaries: dict[str, MonthlySummary] = {}

    for snapshot in snapshots:
        if snapshot.is_closed and snapshot.month not in summaries:
            summaries[snapshot.month] = MonthlySummary.from_snapshot(snapshot)

    for month, records in group_by_month(expenses).items():
        if month not in summaries:
            summaries[month] = MonthlySummary.from_stats(
                month, aggregate_expenses(records)
            )

    for plan in plans:
        if plan.month not in summaries:
            summaries[plan.month] = MonthlySummary(
                month=plan.month,
                total_amount=Decimal("0.00"),
                transaction_count=0,
                top_category=NO_EXPENSES_YET,
            )

    return sorted(summaries.values(), key=lambda s: s.month, reverse=True)


def build_trend(
    summaries: Iterable[MonthlySummary],
    plans: Iterable[MonthlyPlanRecord],
    limit: Any = TREND_DEFAULT_MONTHS,
) -> list[MonthlyTrendPoint]:
    """
    Reduce the newest `limit` months to chartable points.

    Returns:
        Points ordered oldest to newest
    """
    limit = normalize_trend_limit(limit)
    summary_by_month = {s.month: s for s in summaries}
    plan_by_month = {p.month: p for p in plans}

    months = sorted(set(summary_by_month) | set(plan_by_month), reverse=True)
    months = months[:limit]

    points = []
    for month in reversed(months):
        summary = summary_by_month.get(month)
        plan = plan_by_month.get(month)

        expense_total = summary.total_amount if summary else Decimal("0")
        income = plan.income_amount if plan else Decimal("0")
        savings = plan.savings_target if plan else Decimal("0")
        spendable = planned_spendable(income, savings)

        points.append(MonthlyTrendPoint(
            month=month,
            expense_total=round_money(expense_total),
            income_amount=round_money(income),
            savings_target=round_money(savings),
            planned_spendable=spendable,
            remaining_budget=round_money(spendable - expense_total),
            is_closed=summary.is_closed if summary else False,
        ))

    return points


def build_monthly_detail(
    month: str,
    expenses: list[ExpenseRecord],
    snapshot: Optional[MonthlySnapshotRecord],
    plan: Optional[MonthlyPlanRecord],
    today: Optional[date] = None,
) -> MonthlyDetail:
    """
    Assemble the full view of one month.

    A closed month reports its snapshot's totals, breakdown and summary
    text. An open month is aggregated live and has no summary text.
    Budget insights are recomputed either way.
    """
    if snapshot is not None and snapshot.is_closed:
        summary = MonthlySummary.from_snapshot(snapshot)
        breakdown = dict(snapshot.category_breakdown)
        summary_text = snapshot.summary_text
    else:
        stats = aggregate_expenses(expenses)
        summary = MonthlySummary.from_stats(month, stats)
        breakdown = stats.category_breakdown
        summary_text = ""

    return MonthlyDetail(
        summary=summary,
        plan=plan,
        budget=build_budget_insights(month, summary.total_amount, plan, today),
        category_breakdown=breakdown,
        summary_text=summary_text,
        expenses=expenses,
    )


class SummaryAggregator:
    """
    Fetches a user's ledger and produces the read views.

    `clock` returns today's date; inject a fixed one in tests.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        plan_storage: PlanStorageInterface,
        snapshot_storage: SnapshotStorageInterface,
        clock: Callable[[], date] = utc_today,
    ):
        self._expenses = expense_storage
        self._plans = plan_storage
        self._snapshots = snapshot_storage
        self._clock = clock

    async def list_summaries(self, user_id: str) -> list[MonthlySummary]:
        snapshots, expenses, plans = await asyncio.gather(
            self._snapshots.list_snapshots(user_id),
            self._expenses.list_expenses(user_id),
            self._plans.list_plans(user_id),
        )
        return merge_monthly_summaries(snapshots, expenses, plans)

    async def list_trend(
        self,
        user_id: str,
        limit: Any = TREND_DEFAULT_MONTHS,
    ) -> list[MonthlyTrendPoint]:
        limit = normalize_trend_limit(limit)
        summaries, plans = await asyncio.gather(
            self.list_summaries(user_id),
            self._plans.list_plans(user_id),
        )
        return build_trend(summaries, plans, limit)

    async def get_monthly_detail(self, user_id: str, month: str) -> MonthlyDetail:
        """
        Raises:
            ValidationError: If the month key is malformed
        """
        month = parse_month_value(month)
        start, next_start = month_bounds(month)
        expenses, snapshot, plan = await asyncio.gather(
            self._expenses.list_expenses(
                user_id,
                date_from=start,
                date_before=next_start,
            ),
            self._snapshots.get_snapshot(user_id, month),
            self._plans.get_plan(user_id, month),
        )
        return build_monthly_detail(month, expenses, snapshot, plan, self._clock())

"""
Ledger Engine Package

Aggregation, budget insights, month closing and the summary read views.
"""

from expense_ledger.engine.aggregator import aggregate_expenses, group_by_month
from expense_ledger.engine.closing import (
    ClosingEngine,
    build_summary_text,
    format_amount,
)
from expense_ledger.engine.insights import (
    build_budget_insights,
    days_remaining_in_month,
    planned_spendable,
)
from expense_ledger.engine.summaries import (
    SummaryAggregator,
    build_monthly_detail,
    build_trend,
    merge_monthly_summaries,
    normalize_trend_limit,
)

__all__ = [
    "ClosingEngine",
    "SummaryAggregator",
    "aggregate_expenses",
    "build_budget_insights",
    "build_monthly_detail",
    "build_summary_text",
    "build_trend",
    "days_remaining_in_month",
    "format_amount",
    "group_by_month",
    "merge_monthly_summaries",
    "normalize_trend_limit",
    "planned_spendable",
]

"""
Month Aggregator

Pure computation over expense records. No storage, no clock, no failure
modes: given already-validated records it always produces a MonthStats.

Top category ties are broken by category name so the result never
depends on the order storage happened to return rows in.
"""

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from expense_ledger.models.ledger import (
    NO_CATEGORY,
    ExpenseRecord,
    MonthStats,
)
from expense_ledger.months import round_money


def aggregate_expenses(expenses: Iterable[ExpenseRecord]) -> MonthStats:
    """
    Summarize a set of expenses.

    Returns:
        MonthStats with total, count, top category and a per-category
        breakdown ordered by amount (largest first), then name.
    """
    grouped: dict[str, Decimal] = defaultdict(Decimal)
    total = Decimal("0")
    count = 0

    for record in expenses:
        total += record.amount
        grouped[record.category.value] += record.amount
        count += 1

    if not count:
        return MonthStats()

    ranked = sorted(grouped.items(), key=lambda item: (-item[1], item[0]))

    return MonthStats(
        total_amount=round_money(total),
        transaction_count=count,
        top_category=ranked[0][0] if ranked else NO_CATEGORY,
        category_breakdown={
            category: round_money(amount) for category, amount in ranked
        },
    )


def group_by_month(
    expenses: Iterable[ExpenseRecord],
) -> dict[str, list[ExpenseRecord]]:
    """Bucket expenses by the month key of their date, keeping input order."""
    grouped: dict[str, list[ExpenseRecord]] = defaultdict(list)
    for record in expenses:
        grouped[record.month].append(record)
    return dict(grouped)

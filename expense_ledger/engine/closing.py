"""
Closing Engine

DESIGN DECISION: A month is a two-state machine, Open -> Closed, and the
transition is one-way. Closing freezes the month's aggregate into a
snapshot; from then on the snapshot is the month's truth and nothing
recomputes it.

WHY THIS MATTERS:
- Historical summaries stay stable after the user has signed them off
- Every write path asks this engine before touching storage, so there is
  exactly one place that decides whether a month is editable

Close is idempotent. A second close returns the first snapshot unchanged,
including when two closes race: the loser hits the snapshot store's
(user, month) uniqueness check, and we re-read the winner's snapshot.
"""

from decimal import Decimal
from typing import Optional

import structlog

from expense_ledger.engine.aggregator import aggregate_expenses
from expense_ledger.errors import ConflictError, ImmutableMonthError
from expense_ledger.models.ledger import (
    CurrencyCode,
    MonthlySnapshotRecord,
    MonthStats,
)
from expense_ledger.months import month_bounds
from expense_ledger.services.storage import (
    DuplicateError,
    ExpenseStorageInterface,
    SnapshotStorageInterface,
)
from expense_ledger.validation import parse_currency_code, parse_month_value


CURRENCY_SYMBOLS = {
    CurrencyCode.USD: "$",
    CurrencyCode.THB: "฿",
}

logger = structlog.get_logger("expense_ledger.closing")


def format_amount(amount: Decimal, currency_code: CurrencyCode) -> str:
    """Format an amount for display, e.g. $1,234.50 or ฿1,234.50."""
    symbol = CURRENCY_SYMBOLS[currency_code]
    if amount < 0:
        return f"-{symbol}{-amount:,.2f}"
    return f"{symbol}{amount:,.2f}"


def build_summary_text(
    month: str,
    stats: MonthStats,
    currency_code: CurrencyCode,
) -> str:
    if not stats.transaction_count:
        return f"Closed {month} with no transactions."
    total = format_amount(stats.total_amount, currency_code)
    return (
        f"Closed {month} with {stats.transaction_count} transactions "
        f"and {total} total spend."
    )


class ClosingEngine:
    """
    Decides editability and performs month closes.

    Usage:
        engine = ClosingEngine(snapshot_storage, expense_storage)
        await engine.assert_editable(user_id, "2025-01")
        snapshot = await engine.close(user_id, "2025-01")
    """

    def __init__(
        self,
        snapshot_storage: SnapshotStorageInterface,
        expense_storage: ExpenseStorageInterface,
    ):
        self._snapshots = snapshot_storage
        self._expenses = expense_storage

    async def get_snapshot(
        self,
        user_id: str,
        month: str,
    ) -> Optional[MonthlySnapshotRecord]:
        return await self._snapshots.get_snapshot(user_id, month)

    async def is_closed(self, user_id: str, month: str) -> bool:
        return await self.get_snapshot(user_id, month) is not None

    async def assert_editable(self, user_id: str, month: str) -> None:
        """
        Raises:
            ImmutableMonthError: If the month has been closed
        """
        if await self.is_closed(user_id, month):
            raise ImmutableMonthError(month)

    async def close(
        self,
        user_id: str,
        month: str,
        currency_code: CurrencyCode = CurrencyCode.USD,
    ) -> MonthlySnapshotRecord:
        """
        Close a month and return its snapshot.

        Closing an already closed month returns the existing snapshot
        unchanged.

        Raises:
            ValidationError: If the month key or currency is malformed
        """
        snapshot, _ = await self.close_with_outcome(user_id, month, currency_code)
        return snapshot

    async def close_with_outcome(
        self,
        user_id: str,
        month: str,
        currency_code: CurrencyCode = CurrencyCode.USD,
    ) -> tuple[MonthlySnapshotRecord, bool]:
        """
        Same as `close`, also reporting whether this call created the snapshot.

        Returns:
            (snapshot, created)
        """
        month = parse_month_value(month)
        currency_code = parse_currency_code(currency_code)

        existing = await self._snapshots.get_snapshot(user_id, month)
        if existing is not None:
            return existing, False

        start, next_start = month_bounds(month)
        expenses = await self._expenses.list_expenses(
            user_id,
            date_from=start,
            date_before=next_start,
        )
        stats = aggregate_expenses(expenses)

        snapshot = MonthlySnapshotRecord(
            user_id=user_id,
            month=month,
            is_closed=True,
            total_amount=stats.total_amount,
            transaction_count=stats.transaction_count,
            top_category=stats.top_category,
            category_breakdown=stats.category_breakdown,
            summary_text=build_summary_text(month, stats, currency_code),
        )

        try:
            return await self._snapshots.insert_snapshot(snapshot), True
        except DuplicateError:
            logger.info(
                "month_close_conflict",
                user_id=user_id,
                month=month,
                discarded_snapshot_id=str(snapshot.id),
            )

        winner = await self._snapshots.get_snapshot(user_id, month)
        if winner is None:
            raise ConflictError(
                f"Snapshot for {month} conflicted but could not be read back."
            )
        return winner, False

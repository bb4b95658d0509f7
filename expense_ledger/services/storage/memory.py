"""
In-Memory Storage Implementation

The default backend for local runs and the backend every test uses.

Records are copied on the way in and on the way out so callers can never
mutate stored state by holding on to a returned object. None of the
methods awaits anything between reading and writing, so each call is
atomic with respect to other coroutines on the same event loop; the
snapshot uniqueness check in `insert_snapshot` relies on that.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from expense_ledger.errors import NotFoundError
from expense_ledger.models.audit import AuditEvent
from expense_ledger.models.ledger import (
    ExpenseRecord,
    MonthlyPlanRecord,
    MonthlySnapshotRecord,
)
from expense_ledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    PlanStorageInterface,
    SnapshotStorageInterface,
)


def sort_expenses(expenses: list[ExpenseRecord]) -> list[ExpenseRecord]:
    """Newest date first; same-day entries newest-created first."""
    return sorted(
        expenses,
        key=lambda e: (e.expense_date, e.created_at),
        reverse=True,
    )


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Expenses keyed by id."""

    def __init__(self):
        self._expenses: dict[UUID, ExpenseRecord] = {}

    async def insert_expense(self, expense: ExpenseRecord) -> ExpenseRecord:
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return expense.model_copy(deep=True)

    async def get_expense(
        self,
        user_id: str,
        expense_id: UUID,
    ) -> Optional[ExpenseRecord]:
        expense = self._expenses.get(expense_id)
        if expense is None or expense.user_id != user_id:
            return None
        return expense.model_copy(deep=True)

    async def update_expense(self, expense: ExpenseRecord) -> ExpenseRecord:
        current = self._expenses.get(expense.id)
        if current is None or current.user_id != expense.user_id:
            raise NotFoundError(f"Expense not found: {expense.id}")
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return expense.model_copy(deep=True)

    async def delete_expense(self, user_id: str, expense_id: UUID) -> bool:
        current = self._expenses.get(expense_id)
        if current is None or current.user_id != user_id:
            return False
        del self._expenses[expense_id]
        return True

    async def list_expenses(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_before: Optional[date] = None,
    ) -> list[ExpenseRecord]:
        matches = []
        for expense in self._expenses.values():
            if expense.user_id != user_id:
                continue
            if date_from and expense.expense_date < date_from:
                continue
            if date_before and expense.expense_date >= date_before:
                continue
            matches.append(expense.model_copy(deep=True))
        return sort_expenses(matches)


class InMemoryPlanStorage(PlanStorageInterface):
    """Plans keyed by (user_id, month)."""

    def __init__(self):
        self._plans: dict[tuple[str, str], MonthlyPlanRecord] = {}

    async def get_plan(
        self,
        user_id: str,
        month: str,
    ) -> Optional[MonthlyPlanRecord]:
        plan = self._plans.get((user_id, month))
        return plan.model_copy(deep=True) if plan else None

    async def save_plan(self, plan: MonthlyPlanRecord) -> MonthlyPlanRecord:
        self._plans[(plan.user_id, plan.month)] = plan.model_copy(deep=True)
        return plan.model_copy(deep=True)

    async def list_plans(self, user_id: str) -> list[MonthlyPlanRecord]:
        plans = [
            plan.model_copy(deep=True)
            for (owner, _), plan in self._plans.items()
            if owner == user_id
        ]
        plans.sort(key=lambda p: p.month, reverse=True)
        return plans


class InMemorySnapshotStorage(SnapshotStorageInterface):
    """Snapshots keyed by (user_id, month). Insert-only."""

    def __init__(self):
        self._snapshots: dict[tuple[str, str], MonthlySnapshotRecord] = {}

    async def get_snapshot(
        self,
        user_id: str,
        month: str,
    ) -> Optional[MonthlySnapshotRecord]:
        snapshot = self._snapshots.get((user_id, month))
        if snapshot is None or not snapshot.is_closed:
            return None
        return snapshot.model_copy(deep=True)

    async def insert_snapshot(
        self,
        snapshot: MonthlySnapshotRecord,
    ) -> MonthlySnapshotRecord:
        key = (snapshot.user_id, snapshot.month)
        if key in self._snapshots:
            raise DuplicateError(
                f"Snapshot already exists for {snapshot.user_id} {snapshot.month}"
            )
        self._snapshots[key] = snapshot.model_copy(deep=True)
        return snapshot.model_copy(deep=True)

    async def list_snapshots(self, user_id: str) -> list[MonthlySnapshotRecord]:
        snapshots = [
            snapshot.model_copy(deep=True)
            for (owner, _), snapshot in self._snapshots.items()
            if owner == user_id
        ]
        snapshots.sort(key=lambda s: s.month, reverse=True)
        return snapshots


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event.model_copy(deep=True))
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        # Append order is chronological order
        return [
            e.model_copy(deep=True)
            for e in self._events
            if e.correlation_id == correlation_id
        ]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        newest_first = reversed(self._events)
        return [e.model_copy(deep=True) for e in newest_first][:limit]

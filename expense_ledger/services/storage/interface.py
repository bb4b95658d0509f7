"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing and local runs
3. Keep ledger rules decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Ownership filtering happens here (every read takes a user_id) so a record
belonging to another user is indistinguishable from a missing one.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from expense_ledger.errors import ConflictError, NotFoundError
from expense_ledger.models.audit import AuditEvent
from expense_ledger.models.ledger import (
    ExpenseRecord,
    MonthlyPlanRecord,
    MonthlySnapshotRecord,
)


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def insert_expense(self, expense: ExpenseRecord) -> ExpenseRecord:
        """
        Persist a new expense.

        Returns:
            The stored record

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_expense(
        self,
        user_id: str,
        expense_id: UUID,
    ) -> Optional[ExpenseRecord]:
        """
        Retrieve an expense owned by `user_id`.

        Returns:
            The expense if found and owned by the user, None otherwise
        """
        pass

    @abstractmethod
    async def update_expense(self, expense: ExpenseRecord) -> ExpenseRecord:
        """
        Replace an existing expense (matched on id and user_id).

        Raises:
            StorageError: If update fails
            NotFoundError: If the expense doesn't exist for that user
        """
        pass

    @abstractmethod
    async def delete_expense(self, user_id: str, expense_id: UUID) -> bool:
        """
        Delete an expense owned by `user_id`.

        Returns:
            True if a record was deleted
        """
        pass

    @abstractmethod
    async def list_expenses(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_before: Optional[date] = None,
    ) -> list[ExpenseRecord]:
        """
        List a user's expenses.

        Args:
            user_id: Owner
            date_from: Keep expenses on or after this date
            date_before: Keep expenses strictly before this date

        Returns:
            Expenses ordered by date descending, then created_at descending
        """
        pass


class PlanStorageInterface(ABC):
    """Abstract interface for monthly plan storage. One plan per (user, month)."""

    @abstractmethod
    async def get_plan(
        self,
        user_id: str,
        month: str,
    ) -> Optional[MonthlyPlanRecord]:
        pass

    @abstractmethod
    async def save_plan(self, plan: MonthlyPlanRecord) -> MonthlyPlanRecord:
        """
        Insert the plan, or replace the stored plan for the same (user, month).

        Returns:
            The stored record
        """
        pass

    @abstractmethod
    async def list_plans(self, user_id: str) -> list[MonthlyPlanRecord]:
        """List a user's plans, newest month first."""
        pass


class SnapshotStorageInterface(ABC):
    """
    Abstract interface for closed-month snapshots.

    Snapshots are insert-only. There is deliberately no update or delete.
    The (user, month) pair is unique.
    """

    @abstractmethod
    async def get_snapshot(
        self,
        user_id: str,
        month: str,
    ) -> Optional[MonthlySnapshotRecord]:
        """Return the closed snapshot for (user, month), if any."""
        pass

    @abstractmethod
    async def insert_snapshot(
        self,
        snapshot: MonthlySnapshotRecord,
    ) -> MonthlySnapshotRecord:
        """
        Persist a new snapshot.

        Raises:
            DuplicateError: If a snapshot already exists for (user, month)
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def list_snapshots(self, user_id: str) -> list[MonthlySnapshotRecord]:
        """List a user's snapshots, newest month first."""
        pass

    async def ping(self) -> bool:
        """Cheap reachability check used by health checks."""
        return True


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events of one user action, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError, ConflictError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "ExpenseStorageInterface",
    "NotFoundError",
    "PlanStorageInterface",
    "SnapshotStorageInterface",
    "StorageError",
]

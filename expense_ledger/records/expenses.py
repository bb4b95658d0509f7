"""
Expense Ledger

The only way expenses are written. Every write runs the same sequence:

1. Validate the input (nothing touches storage if this fails)
2. Resolve the caller's record, if the operation targets one
3. Ask the closing engine whether every affected month is editable
4. Write

DESIGN DECISION: A record that does not exist, a record owned by another
user, and an id that is not even a UUID all raise the same NotFoundError.
Callers cannot tell them apart, so ids cannot be probed.
"""

from typing import Any, Optional, Union
from uuid import UUID

from expense_ledger.engine.closing import ClosingEngine
from expense_ledger.errors import NotFoundError
from expense_ledger.models.ledger import ExpenseInput, ExpenseRecord
from expense_ledger.months import month_bounds
from expense_ledger.services.storage import ExpenseStorageInterface
from expense_ledger.validation import (
    parse_expense_input,
    parse_optional_month_value,
)


EXPENSE_NOT_FOUND = "Expense not found."


def parse_expense_id(value: Union[UUID, str]) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise NotFoundError(EXPENSE_NOT_FOUND) from None


class ExpenseLedger:
    """
    Per-user expense records with month immutability enforced.

    Usage:
        ledger = ExpenseLedger(storage, closing_engine)
        record = await ledger.create(user_id, {"title": "Rent", ...})
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        closing_engine: ClosingEngine,
    ):
        self._storage = storage
        self._closing = closing_engine

    async def get(self, user_id: str, expense_id: Union[UUID, str]) -> ExpenseRecord:
        """
        Raises:
            NotFoundError: If missing or not owned by the user
        """
        record = await self._storage.get_expense(user_id, parse_expense_id(expense_id))
        if record is None:
            raise NotFoundError(EXPENSE_NOT_FOUND)
        return record

    async def create(
        self,
        user_id: str,
        payload: Union[ExpenseInput, dict[str, Any]],
    ) -> ExpenseRecord:
        """
        Record a new expense.

        Raises:
            ValidationError: If the input is malformed
            ImmutableMonthError: If the expense's month is closed
        """
        data = parse_expense_input(payload)
        await self._closing.assert_editable(user_id, data.month)
        record = ExpenseRecord.from_input(user_id, data)
        return await self._storage.insert_expense(record)

    async def update(
        self,
        user_id: str,
        expense_id: Union[UUID, str],
        payload: Union[ExpenseInput, dict[str, Any]],
    ) -> ExpenseRecord:
        """
        Replace an expense's fields. id, owner and created_at are kept.

        Moving an expense between months needs both months open.

        Raises:
            ValidationError: If the input is malformed
            NotFoundError: If missing or not owned by the user
            ImmutableMonthError: If the current or the new month is closed
        """
        data = parse_expense_input(payload)
        existing = await self.get(user_id, expense_id)

        await self._closing.assert_editable(user_id, existing.month)
        if data.month != existing.month:
            await self._closing.assert_editable(user_id, data.month)

        updated = existing.model_copy(update={
            "title": data.title,
            "amount": data.amount,
            "category": data.category,
            "expense_date": data.expense_date,
            "notes": data.notes,
        })
        return await self._storage.update_expense(updated)

    async def delete(
        self,
        user_id: str,
        expense_id: Union[UUID, str],
    ) -> ExpenseRecord:
        """
        Delete an expense.

        Returns:
            The deleted record

        Raises:
            NotFoundError: If missing or not owned by the user
            ImmutableMonthError: If the expense's month is closed
        """
        existing = await self.get(user_id, expense_id)
        await self._closing.assert_editable(user_id, existing.month)

        if not await self._storage.delete_expense(user_id, existing.id):
            # Removed between our read and our delete
            raise NotFoundError(EXPENSE_NOT_FOUND)
        return existing

    async def list(
        self,
        user_id: str,
        month: Optional[str] = None,
    ) -> list[ExpenseRecord]:
        """
        List a user's expenses, newest date first.

        Args:
            month: Optional YYYY-MM filter

        Raises:
            ValidationError: If the month filter is malformed
        """
        month = parse_optional_month_value(month)
        if month is None:
            return await self._storage.list_expenses(user_id)

        start, next_start = month_bounds(month)
        return await self._storage.list_expenses(
            user_id,
            date_from=start,
            date_before=next_start,
        )

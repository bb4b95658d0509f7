"""Expense and plan records package."""

from expense_ledger.records.expenses import (
    EXPENSE_NOT_FOUND,
    ExpenseLedger,
    parse_expense_id,
)
from expense_ledger.records.plans import MonthlyPlanStore

__all__ = [
    "EXPENSE_NOT_FOUND",
    "ExpenseLedger",
    "MonthlyPlanStore",
    "parse_expense_id",
]

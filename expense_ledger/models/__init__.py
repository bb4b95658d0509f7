"""
Data Models Package

This package contains all Pydantic models used by the expense ledger.
All data flowing through the system must conform to these schemas.
"""

from expense_ledger.models.ledger import (
    MAX_EXPENSE_AMOUNT,
    MAX_PLAN_AMOUNT,
    NO_CATEGORY,
    NO_EXPENSES_YET,
    BudgetInsights,
    CurrencyCode,
    ExpenseCategory,
    ExpenseInput,
    ExpenseRecord,
    MonthlyDetail,
    MonthlyPlanInput,
    MonthlyPlanRecord,
    MonthlySnapshotRecord,
    MonthlySummary,
    MonthlyTrendPoint,
    MonthStats,
    ValidationIssue,
)
from expense_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "MAX_EXPENSE_AMOUNT",
    "MAX_PLAN_AMOUNT",
    "NO_CATEGORY",
    "NO_EXPENSES_YET",
    "BudgetInsights",
    "CurrencyCode",
    "ExpenseCategory",
    "ExpenseInput",
    "ExpenseRecord",
    "MonthlyDetail",
    "MonthlyPlanInput",
    "MonthlyPlanRecord",
    "MonthlySnapshotRecord",
    "MonthlySummary",
    "MonthlyTrendPoint",
    "MonthStats",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

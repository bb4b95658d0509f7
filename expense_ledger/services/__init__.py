"""Services package."""

from expense_ledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsPlanStorage,
    GoogleSheetsSnapshotStorage,
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryPlanStorage,
    InMemorySnapshotStorage,
    NotFoundError,
    PlanStorageInterface,
    SnapshotStorageInterface,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "ExpenseStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsPlanStorage",
    "GoogleSheetsSnapshotStorage",
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
    "InMemoryPlanStorage",
    "InMemorySnapshotStorage",
    "NotFoundError",
    "PlanStorageInterface",
    "SnapshotStorageInterface",
    "StorageError",
]

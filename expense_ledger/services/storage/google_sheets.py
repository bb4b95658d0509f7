"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a persistent backend because:
1. Users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions or unique indexes. Snapshot uniqueness is enforced by
  appending, re-reading, and backing out if an earlier row for the same
  (user, month) exists: the first row written wins.
- Limited query capabilities (we filter in Python)

gspread is blocking, so every call runs in a worker thread; that lets
the concurrent reads of the summary views actually overlap.
"""

import asyncio
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_ledger.config import get_settings
from expense_ledger.errors import NotFoundError
from expense_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from expense_ledger.models.ledger import (
    ExpenseCategory,
    ExpenseRecord,
    MonthlyPlanRecord,
    MonthlySnapshotRecord,
)
from expense_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    PlanStorageInterface,
    SnapshotStorageInterface,
    StorageError,
)
from expense_ledger.services.storage.memory import sort_expenses


EXPENSE_COLUMNS = [
    "id",
    "user_id",
    "title",
    "amount",
    "category",
    "expense_date",
    "notes",
    "created_at",
]

PLAN_COLUMNS = [
    "id",
    "user_id",
    "month",
    "income_amount",
    "savings_target",
    "notes",
    "created_at",
    "updated_at",
]

SNAPSHOT_COLUMNS = [
    "id",
    "user_id",
    "month",
    "is_closed",
    "total_amount",
    "transaction_count",
    "top_category",
    "category_breakdown_json",
    "summary_text",
    "closed_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "month",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]

# Transient failures are retried; domain outcomes are not
_retry_transient = retry(
    retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _cell(row: list, index: int, default: str = "") -> str:
    """Handle short rows gracefully."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _parse_row(parse: Callable[[list], Any], row: list, kind: str) -> Any:
    """Parse one sheet row; a row edited into an invalid state is a storage fault."""
    try:
        return parse(row)
    except (ValueError, KeyError, TypeError, ArithmeticError) as e:
        raise StorageError(f"Malformed {kind} row {_cell(row, 0)!r}: {e}")


async def _run(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    return await asyncio.to_thread(func, *args, **kwargs)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS
        )

    def get_plans_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.plans_sheet_name, PLAN_COLUMNS
        )

    def get_snapshots_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.snapshots_sheet_name, SNAPSHOT_COLUMNS
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def _replace_row(sheet: gspread.Worksheet, row_number: int, values: list) -> None:
    sheet.update(
        range_name=f"A{row_number}",
        values=[values],
        value_input_option="RAW",
    )


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of expense storage.

    One expense per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _expense_to_row(self, expense: ExpenseRecord) -> list:
        return [
            str(expense.id),
            expense.user_id,
            expense.title,
            str(expense.amount),
            expense.category.value,
            expense.expense_date.isoformat(),
            expense.notes,
            expense.created_at.isoformat(),
        ]

    def _row_to_expense(self, row: list) -> ExpenseRecord:
        return ExpenseRecord(
            id=UUID(_cell(row, 0)),
            user_id=_cell(row, 1),
            title=_cell(row, 2),
            amount=Decimal(_cell(row, 3, "0")),
            category=ExpenseCategory(_cell(row, 4)),
            expense_date=date.fromisoformat(_cell(row, 5)),
            notes=_cell(row, 6),
            created_at=datetime.fromisoformat(_cell(row, 7)),
        )

    def _find_row(
        self,
        rows: list[list],
        user_id: str,
        expense_id: UUID,
    ) -> Optional[int]:
        """1-based sheet row number of an owned expense (row 1 is the header)."""
        for row_number, row in enumerate(rows[1:], start=2):
            if row and row[0] == str(expense_id) and _cell(row, 1) == user_id:
                return row_number
        return None

    @_retry_transient
    async def insert_expense(self, expense: ExpenseRecord) -> ExpenseRecord:
        try:
            sheet = await _run(self._client.get_expenses_sheet)
            rows = await _run(sheet.get_all_values)
            # Already appended by an earlier attempt
            if any(row and row[0] == str(expense.id) for row in rows[1:]):
                return expense
            await _run(
                sheet.append_row,
                self._expense_to_row(expense),
                value_input_option="RAW",
            )
            return expense
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    async def get_expense(
        self,
        user_id: str,
        expense_id: UUID,
    ) -> Optional[ExpenseRecord]:
        try:
            sheet = await _run(self._client.get_expenses_sheet)
            rows = await _run(sheet.get_all_values)
            row_number = self._find_row(rows, user_id, expense_id)
            if row_number is None:
                return None
            return self._row_to_expense(rows[row_number - 1])
        except Exception as e:
            raise StorageError(f"Failed to get expense: {e}")

    @_retry_transient
    async def update_expense(self, expense: ExpenseRecord) -> ExpenseRecord:
        try:
            sheet = await _run(self._client.get_expenses_sheet)
            rows = await _run(sheet.get_all_values)
            row_number = self._find_row(rows, expense.user_id, expense.id)
            if row_number is None:
                raise NotFoundError(f"Expense not found: {expense.id}")
            await _run(_replace_row, sheet, row_number, self._expense_to_row(expense))
            return expense
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update expense: {e}")

    async def delete_expense(self, user_id: str, expense_id: UUID) -> bool:
        try:
            sheet = await _run(self._client.get_expenses_sheet)
            rows = await _run(sheet.get_all_values)
            row_number = self._find_row(rows, user_id, expense_id)
            if row_number is None:
                return False
            await _run(sheet.delete_rows, row_number)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")

    async def list_expenses(
        self,
        user_id: str,
        date_from: Optional[date] = None,
        date_before: Optional[date] = None,
    ) -> list[ExpenseRecord]:
        try:
            sheet = await _run(self._client.get_expenses_sheet)
            rows = (await _run(sheet.get_all_values))[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")

        expenses = []
        for row in rows:
            if not row or not row[0] or _cell(row, 1) != user_id:
                continue
            expense = _parse_row(self._row_to_expense, row, "expense")
            if date_from and expense.expense_date < date_from:
                continue
            if date_before and expense.expense_date >= date_before:
                continue
            expenses.append(expense)

        return sort_expenses(expenses)


class GoogleSheetsPlanStorage(PlanStorageInterface):
    """Google Sheets implementation of monthly plan storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _plan_to_row(self, plan: MonthlyPlanRecord) -> list:
        return [
            str(plan.id),
            plan.user_id,
            plan.month,
            str(plan.income_amount),
            str(plan.savings_target),
            plan.notes,
            plan.created_at.isoformat(),
            plan.updated_at.isoformat(),
        ]

    def _row_to_plan(self, row: list) -> MonthlyPlanRecord:
        return MonthlyPlanRecord(
            id=UUID(_cell(row, 0)),
            user_id=_cell(row, 1),
            month=_cell(row, 2),
            income_amount=Decimal(_cell(row, 3, "0")),
            savings_target=Decimal(_cell(row, 4, "0")),
            notes=_cell(row, 5),
            created_at=datetime.fromisoformat(_cell(row, 6)),
            updated_at=datetime.fromisoformat(_cell(row, 7)),
        )

    def _find_row(self, rows: list[list], user_id: str, month: str) -> Optional[int]:
        for row_number, row in enumerate(rows[1:], start=2):
            if row and _cell(row, 1) == user_id and _cell(row, 2) == month:
                return row_number
        return None

    async def get_plan(
        self,
        user_id: str,
        month: str,
    ) -> Optional[MonthlyPlanRecord]:
        try:
            sheet = await _run(self._client.get_plans_sheet)
            rows = await _run(sheet.get_all_values)
            row_number = self._find_row(rows, user_id, month)
            if row_number is None:
                return None
            return self._row_to_plan(rows[row_number - 1])
        except Exception as e:
            raise StorageError(f"Failed to get plan: {e}")

    @_retry_transient
    async def save_plan(self, plan: MonthlyPlanRecord) -> MonthlyPlanRecord:
        try:
            sheet = await _run(self._client.get_plans_sheet)
            rows = await _run(sheet.get_all_values)
            row_number = self._find_row(rows, plan.user_id, plan.month)
            if row_number is None:
                await _run(
                    sheet.append_row,
                    self._plan_to_row(plan),
                    value_input_option="RAW",
                )
            else:
                await _run(_replace_row, sheet, row_number, self._plan_to_row(plan))
            return plan
        except Exception as e:
            raise StorageError(f"Failed to save plan: {e}")

    async def list_plans(self, user_id: str) -> list[MonthlyPlanRecord]:
        try:
            sheet = await _run(self._client.get_plans_sheet)
            rows = (await _run(sheet.get_all_values))[1:]
        except Exception as e:
            raise StorageError(f"Failed to list plans: {e}")

        plans = [
            _parse_row(self._row_to_plan, row, "plan")
            for row in rows
            if row and row[0] and _cell(row, 1) == user_id
        ]
        plans.sort(key=lambda p: p.month, reverse=True)
        return plans


class GoogleSheetsSnapshotStorage(SnapshotStorageInterface):
    """
    Google Sheets implementation of snapshot storage.

    Insert-only. The earliest row for a (user, month) is the snapshot.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _snapshot_to_row(self, snapshot: MonthlySnapshotRecord) -> list:
        breakdown = {
            category: str(amount)
            for category, amount in snapshot.category_breakdown.items()
        }
        return [
            str(snapshot.id),
            snapshot.user_id,
            snapshot.month,
            str(snapshot.is_closed),
            str(snapshot.total_amount),
            str(snapshot.transaction_count),
            snapshot.top_category,
            json.dumps(breakdown),
            snapshot.summary_text,
            snapshot.closed_at.isoformat(),
        ]

    def _row_to_snapshot(self, row: list) -> MonthlySnapshotRecord:
        breakdown_json = _cell(row, 7)
        breakdown = json.loads(breakdown_json) if breakdown_json else {}
        return MonthlySnapshotRecord(
            id=UUID(_cell(row, 0)),
            user_id=_cell(row, 1),
            month=_cell(row, 2),
            is_closed=_cell(row, 3).lower() == "true",
            total_amount=Decimal(_cell(row, 4, "0")),
            transaction_count=int(_cell(row, 5, "0")),
            top_category=_cell(row, 6),
            category_breakdown={
                category: Decimal(amount) for category, amount in breakdown.items()
            },
            summary_text=_cell(row, 8),
            closed_at=datetime.fromisoformat(_cell(row, 9)),
        )

    def _matching_rows(
        self,
        rows: list[list],
        user_id: str,
        month: str,
    ) -> list[tuple[int, list]]:
        return [
            (row_number, row)
            for row_number, row in enumerate(rows[1:], start=2)
            if row and _cell(row, 1) == user_id and _cell(row, 2) == month
        ]

    async def get_snapshot(
        self,
        user_id: str,
        month: str,
    ) -> Optional[MonthlySnapshotRecord]:
        try:
            sheet = await _run(self._client.get_snapshots_sheet)
            rows = await _run(sheet.get_all_values)
        except Exception as e:
            raise StorageError(f"Failed to get snapshot: {e}")

        for _, row in self._matching_rows(rows, user_id, month):
            snapshot = _parse_row(self._row_to_snapshot, row, "snapshot")
            if snapshot.is_closed:
                return snapshot
        return None

    @_retry_transient
    async def insert_snapshot(
        self,
        snapshot: MonthlySnapshotRecord,
    ) -> MonthlySnapshotRecord:
        try:
            sheet = await _run(self._client.get_snapshots_sheet)
            rows = await _run(sheet.get_all_values)
            if self._matching_rows(rows, snapshot.user_id, snapshot.month):
                raise DuplicateError(
                    f"Snapshot already exists for {snapshot.user_id} {snapshot.month}"
                )

            await _run(
                sheet.append_row,
                self._snapshot_to_row(snapshot),
                value_input_option="RAW",
            )

            # Another writer may have appended between our read and write
            rows = await _run(sheet.get_all_values)
            matches = self._matching_rows(rows, snapshot.user_id, snapshot.month)
            first_row_number, first_row = matches[0]
            if first_row[0] != str(snapshot.id):
                for row_number, row in reversed(matches):
                    if row[0] == str(snapshot.id):
                        await _run(sheet.delete_rows, row_number)
                raise DuplicateError(
                    f"Snapshot already exists for {snapshot.user_id} {snapshot.month}"
                )
            return snapshot
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save snapshot: {e}")

    async def list_snapshots(self, user_id: str) -> list[MonthlySnapshotRecord]:
        try:
            sheet = await _run(self._client.get_snapshots_sheet)
            rows = (await _run(sheet.get_all_values))[1:]
        except Exception as e:
            raise StorageError(f"Failed to list snapshots: {e}")

        by_month: dict[str, MonthlySnapshotRecord] = {}
        for row in rows:
            if not row or not row[0] or _cell(row, 1) != user_id:
                continue
            snapshot = _parse_row(self._row_to_snapshot, row, "snapshot")
            # First row written wins
            if snapshot.is_closed and snapshot.month not in by_month:
                by_month[snapshot.month] = snapshot

        return sorted(by_month.values(), key=lambda s: s.month, reverse=True)

    async def ping(self) -> bool:
        try:
            await _run(self._client.get_spreadsheet)
            return True
        except Exception:
            return False


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        return AuditEvent(
            event_id=UUID(_cell(row, 0)),
            timestamp=datetime.fromisoformat(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            user_id=_cell(row, 4) or None,
            entity_type=_cell(row, 5) or None,
            entity_id=UUID(_cell(row, 6)) if _cell(row, 6) else None,
            month=_cell(row, 7) or None,
            correlation_id=UUID(_cell(row, 8)) if _cell(row, 8) else None,
            description=_cell(row, 9),
            details=json.loads(_cell(row, 10)) if _cell(row, 10) else {},
            error_message=_cell(row, 11) or None,
        )

    @_retry_transient
    async def append_event(self, event: AuditEvent) -> bool:
        try:
            sheet = await _run(self._client.get_audit_sheet)
            await _run(
                sheet.append_row,
                event.to_sheets_row(),
                value_input_option="RAW",
            )
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def _all_events(self) -> list[AuditEvent]:
        try:
            sheet = await _run(self._client.get_audit_sheet)
            rows = (await _run(sheet.get_all_values))[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        return [
            _parse_row(self._row_to_event, row, "audit")
            for row in rows
            if row and row[0]
        ]

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        # Rows are appended in chronological order
        return [
            e for e in await self._all_events()
            if e.correlation_id == correlation_id
        ]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = await self._all_events()
        return list(reversed(events))[:limit]

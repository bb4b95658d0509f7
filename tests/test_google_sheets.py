"""
Tests for the Google Sheets storage backend.

No real API calls: a fake client hands out in-memory worksheets that
behave like gspread's (every cell comes back as a string).
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from conftest import USER, OTHER_USER
from expense_ledger.engine import ClosingEngine
from expense_ledger.models.audit import AuditEventBuilder
from expense_ledger.models.ledger import (
    ExpenseCategory,
    ExpenseRecord,
    MonthlyPlanRecord,
    MonthlySnapshotRecord,
)
from expense_ledger.services.storage import DuplicateError, NotFoundError, StorageError
from expense_ledger.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    EXPENSE_COLUMNS,
    PLAN_COLUMNS,
    SNAPSHOT_COLUMNS,
    GoogleSheetsAuditStorage,
    GoogleSheetsExpenseStorage,
    GoogleSheetsPlanStorage,
    GoogleSheetsSnapshotStorage,
)


class FakeWorksheet:
    """The subset of gspread.Worksheet the storage classes use."""

    def __init__(self, columns):
        self.rows = [list(columns)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def update(self, range_name=None, values=None, value_input_option=None):
        row_number = int(range_name.lstrip("A"))
        self.rows[row_number - 1] = [str(v) for v in values[0]]

    def delete_rows(self, index):
        del self.rows[index - 1]


class RacingWorksheet(FakeWorksheet):
    """Another writer's row lands just before ours."""

    def __init__(self, columns, competing_row):
        super().__init__(columns)
        self._competing_row = competing_row

    def append_row(self, values, value_input_option=None):
        if self._competing_row is not None:
            super().append_row(self._competing_row)
            self._competing_row = None
        super().append_row(values, value_input_option)


class FlakyWorksheet(FakeWorksheet):
    """The first append lands but the call still fails, like a dropped response."""

    def __init__(self, columns):
        super().__init__(columns)
        self._failed = False

    def append_row(self, values, value_input_option=None):
        super().append_row(values, value_input_option)
        if not self._failed:
            self._failed = True
            raise RuntimeError("connection reset")


class FakeSheetsClient:
    def __init__(self, snapshots_sheet=None, reachable=True):
        self.expenses = FakeWorksheet(EXPENSE_COLUMNS)
        self.plans = FakeWorksheet(PLAN_COLUMNS)
        self.snapshots = snapshots_sheet or FakeWorksheet(SNAPSHOT_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)
        self._reachable = reachable

    def get_spreadsheet(self):
        if not self._reachable:
            raise RuntimeError("spreadsheet unavailable")
        return object()

    def get_expenses_sheet(self):
        return self.expenses

    def get_plans_sheet(self):
        return self.plans

    def get_snapshots_sheet(self):
        return self.snapshots

    def get_audit_sheet(self):
        return self.audit


def make_expense(expense_date=date(2025, 1, 10), user_id=USER, amount="25.00"):
    return ExpenseRecord(
        user_id=user_id,
        title="Groceries",
        amount=Decimal(amount),
        category=ExpenseCategory.FOOD,
        expense_date=expense_date,
        notes="weekly",
    )


def make_snapshot(month="2025-01", total="42.00"):
    return MonthlySnapshotRecord(
        user_id=USER,
        month=month,
        total_amount=Decimal(total),
        transaction_count=2,
        top_category="Food",
        category_breakdown={"Food": Decimal("30.00"), "Other": Decimal("12.00")},
        summary_text=f"Closed {month} with 2 transactions and ${total} total spend.",
    )


@pytest.fixture
def client():
    return FakeSheetsClient()


class TestExpenseSheet:
    """Tests for GoogleSheetsExpenseStorage."""

    @pytest.mark.asyncio
    async def test_round_trip(self, client):
        storage = GoogleSheetsExpenseStorage(client)
        expense = make_expense()
        await storage.insert_expense(expense)

        loaded = await storage.get_expense(USER, expense.id)

        assert loaded == expense
        assert client.expenses.rows[1][3] == "25.00"

    @pytest.mark.asyncio
    async def test_other_users_row_is_invisible(self, client):
        storage = GoogleSheetsExpenseStorage(client)
        expense = make_expense(user_id=OTHER_USER)
        await storage.insert_expense(expense)
        assert await storage.get_expense(USER, expense.id) is None
        assert await storage.delete_expense(USER, expense.id) is False

    @pytest.mark.asyncio
    async def test_update_rewrites_row_in_place(self, client):
        storage = GoogleSheetsExpenseStorage(client)
        expense = make_expense()
        await storage.insert_expense(expense)

        await storage.update_expense(expense.model_copy(update={"amount": Decimal("30.00")}))

        assert len(client.expenses.rows) == 2
        assert (await storage.get_expense(USER, expense.id)).amount == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, client):
        storage = GoogleSheetsExpenseStorage(client)
        with pytest.raises(NotFoundError):
            await storage.update_expense(make_expense())

    @pytest.mark.asyncio
    async def test_delete_and_list_filter(self, client):
        storage = GoogleSheetsExpenseStorage(client)
        january = make_expense(date(2025, 1, 31))
        february = make_expense(date(2025, 2, 1))
        await storage.insert_expense(january)
        await storage.insert_expense(february)

        in_january = await storage.list_expenses(
            USER, date_from=date(2025, 1, 1), date_before=date(2025, 2, 1)
        )
        assert [e.id for e in in_january] == [january.id]

        assert await storage.delete_expense(USER, january.id) is True
        assert [e.id for e in await storage.list_expenses(USER)] == [february.id]

    @pytest.mark.asyncio
    async def test_retried_insert_writes_one_row(self, client):
        client.expenses = FlakyWorksheet(EXPENSE_COLUMNS)
        storage = GoogleSheetsExpenseStorage(client)
        expense = make_expense()

        await storage.insert_expense(expense)

        assert len(client.expenses.rows) == 2
        assert [e.amount for e in await storage.list_expenses(USER)] == [Decimal("25.00")]

    @pytest.mark.asyncio
    async def test_malformed_row_is_a_storage_error(self, client):
        storage = GoogleSheetsExpenseStorage(client)
        await storage.insert_expense(make_expense())
        client.expenses.rows[1][3] = "twenty"

        with pytest.raises(StorageError):
            await storage.list_expenses(USER)


class TestPlanSheet:
    """Tests for GoogleSheetsPlanStorage."""

    @pytest.mark.asyncio
    async def test_save_upserts_by_month(self, client):
        storage = GoogleSheetsPlanStorage(client)
        plan = MonthlyPlanRecord(user_id=USER, month="2025-01", income_amount=Decimal("3000.00"))
        await storage.save_plan(plan)
        await storage.save_plan(plan.model_copy(update={"income_amount": Decimal("3100.00")}))

        assert len(client.plans.rows) == 2
        loaded = await storage.get_plan(USER, "2025-01")
        assert loaded.id == plan.id
        assert loaded.income_amount == Decimal("3100.00")
        assert [p.month for p in await storage.list_plans(USER)] == ["2025-01"]

    @pytest.mark.asyncio
    async def test_malformed_row_is_a_storage_error(self, client):
        storage = GoogleSheetsPlanStorage(client)
        await storage.save_plan(
            MonthlyPlanRecord(user_id=USER, month="2025-01", income_amount=Decimal("10.00"))
        )
        client.plans.rows[1][6] = "not a timestamp"

        with pytest.raises(StorageError):
            await storage.list_plans(USER)


class TestSnapshotSheet:
    """Tests for GoogleSheetsSnapshotStorage."""

    @pytest.mark.asyncio
    async def test_round_trip_keeps_breakdown(self, client):
        storage = GoogleSheetsSnapshotStorage(client)
        snapshot = make_snapshot()
        await storage.insert_snapshot(snapshot)

        loaded = await storage.get_snapshot(USER, "2025-01")

        assert loaded == snapshot
        assert loaded.category_breakdown["Food"] == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_duplicate_insert_is_rejected(self, client):
        storage = GoogleSheetsSnapshotStorage(client)
        await storage.insert_snapshot(make_snapshot())
        with pytest.raises(DuplicateError):
            await storage.insert_snapshot(make_snapshot(total="99.00"))
        assert len(client.snapshots.rows) == 2

    @pytest.mark.asyncio
    async def test_concurrent_writer_wins_and_close_returns_its_snapshot(self):
        """Test that a row appended by another writer first is the snapshot."""
        winner = make_snapshot(total="42.00")
        winner_row = GoogleSheetsSnapshotStorage(FakeSheetsClient())._snapshot_to_row(winner)
        client = FakeSheetsClient(
            snapshots_sheet=RacingWorksheet(SNAPSHOT_COLUMNS, winner_row)
        )
        engine = ClosingEngine(
            GoogleSheetsSnapshotStorage(client),
            GoogleSheetsExpenseStorage(client),
        )

        snapshot, created = await engine.close_with_outcome(USER, "2025-01")

        assert created is False
        assert snapshot.id == winner.id
        # Our row was backed out
        assert len(client.snapshots.rows) == 2

    @pytest.mark.asyncio
    async def test_list_is_newest_first(self, client):
        storage = GoogleSheetsSnapshotStorage(client)
        await storage.insert_snapshot(make_snapshot("2025-01"))
        await storage.insert_snapshot(make_snapshot("2025-02"))
        assert [s.month for s in await storage.list_snapshots(USER)] == ["2025-02", "2025-01"]

    @pytest.mark.asyncio
    async def test_ping(self):
        assert await GoogleSheetsSnapshotStorage(FakeSheetsClient()).ping() is True
        unreachable = FakeSheetsClient(reachable=False)
        assert await GoogleSheetsSnapshotStorage(unreachable).ping() is False


class TestAuditSheet:
    """Tests for GoogleSheetsAuditStorage."""

    @pytest.mark.asyncio
    async def test_append_and_read_back(self, client):
        storage = GoogleSheetsAuditStorage(client)
        correlation_id = uuid4()
        first = AuditEventBuilder.plan_saved(
            USER, uuid4(), "2025-01", "3000.00", "0.00", correlation_id
        )
        second = AuditEventBuilder.month_closed(
            USER, uuid4(), "2025-01", "42.00", 2, correlation_id=correlation_id
        )
        await storage.append_event(first)
        await storage.append_event(second)

        recent = await storage.get_recent_events(limit=1)
        related = await storage.get_events_by_correlation_id(correlation_id)

        assert [e.event_id for e in recent] == [second.event_id]
        assert [e.event_id for e in related] == [first.event_id, second.event_id]
        assert related[1].details["transaction_count"] == 2

"""
Shared fixtures for the expense ledger tests.

Every test runs against in-memory storage with the clock pinned to
2025-03-15, so "current month" is always 2025-03.
"""

from datetime import date

import pytest

from expense_ledger.audit import AuditLogger
from expense_ledger.engine import ClosingEngine, SummaryAggregator
from expense_ledger.orchestrator import LedgerService
from expense_ledger.records import ExpenseLedger, MonthlyPlanStore
from expense_ledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryPlanStorage,
    InMemorySnapshotStorage,
)


TODAY = date(2025, 3, 15)
USER = "user-1"
OTHER_USER = "user-2"


def fixed_clock() -> date:
    return TODAY


def expense_payload(**overrides) -> dict:
    payload = {
        "title": "Groceries",
        "amount": "25.00",
        "category": "Food",
        "date": "2025-01-10",
        "notes": "",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def expense_storage():
    return InMemoryExpenseStorage()


@pytest.fixture
def plan_storage():
    return InMemoryPlanStorage()


@pytest.fixture
def snapshot_storage():
    return InMemorySnapshotStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def closing_engine(snapshot_storage, expense_storage):
    return ClosingEngine(snapshot_storage, expense_storage)


@pytest.fixture
def ledger(expense_storage, closing_engine):
    return ExpenseLedger(expense_storage, closing_engine)


@pytest.fixture
def plan_store(plan_storage, closing_engine):
    return MonthlyPlanStore(plan_storage, closing_engine)


@pytest.fixture
def aggregator(expense_storage, plan_storage, snapshot_storage):
    return SummaryAggregator(
        expense_storage,
        plan_storage,
        snapshot_storage,
        clock=fixed_clock,
    )


@pytest.fixture
def service(expense_storage, plan_storage, snapshot_storage, audit_storage):
    return LedgerService(
        expense_storage=expense_storage,
        plan_storage=plan_storage,
        snapshot_storage=snapshot_storage,
        audit_logger=AuditLogger(audit_storage),
        clock=fixed_clock,
        environment="test",
    )

"""
Main Orchestrator for the Expense Ledger

This module ties together all the components and defines the
end-to-end flows a caller (the Streamlit app, a future API) uses:
1. Expense writes (validate → check month open → write → audit)
2. Plan writes (validate → check month open → upsert → audit)
3. Month close (aggregate → freeze snapshot → audit)
4. Read views (month detail, history, trend)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No write reaches storage for a closed month
- Closed months are only ever read from their snapshot
- Every write, and every rejected write, is audited

Rejections are audited and then re-raised unchanged. The caller decides
how to present them.
"""

from typing import Any, Optional, Union
from uuid import UUID

import structlog

from expense_ledger.audit import (
    AuditLogger,
    configure_log_level,
    create_correlation_id,
)
from expense_ledger.config import get_settings
from expense_ledger.engine import (
    ClosingEngine,
    SummaryAggregator,
    normalize_trend_limit,
)
from expense_ledger.errors import ImmutableMonthError, ValidationError
from expense_ledger.models.ledger import (
    CurrencyCode,
    ExpenseInput,
    ExpenseRecord,
    MonthlyDetail,
    MonthlyPlanInput,
    MonthlyPlanRecord,
    MonthlySnapshotRecord,
    MonthlySummary,
    MonthlyTrendPoint,
)
from expense_ledger.months import utc_now, utc_today
from expense_ledger.records import ExpenseLedger, MonthlyPlanStore
from expense_ledger.services.storage import (
    AuditStorageInterface,
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
    PlanStorageInterface,
    SnapshotStorageInterface,
    StorageError,
)
from expense_ledger.validation import (
    TREND_DEFAULT_MONTHS,
    parse_expense_input,
    parse_plan_input,
)


logger = structlog.get_logger("expense_ledger.orchestrator")


class LedgerService:
    """
    Facade over the ledger components.

    Every method takes the acting `user_id` explicitly; identity is
    resolved by the caller.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        plan_storage: PlanStorageInterface,
        snapshot_storage: SnapshotStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        clock=utc_today,
        environment: Optional[str] = None,
        trend_default_months: int = TREND_DEFAULT_MONTHS,
    ):
        self._snapshot_storage = snapshot_storage
        self._closing = ClosingEngine(snapshot_storage, expense_storage)
        self._expenses = ExpenseLedger(expense_storage, self._closing)
        self._plans = MonthlyPlanStore(plan_storage, self._closing)
        self._summaries = SummaryAggregator(
            expense_storage,
            plan_storage,
            snapshot_storage,
            clock=clock,
        )
        self._audit_logger = audit_logger or AuditLogger()
        self._environment = environment
        self._trend_default_months = trend_default_months

    @property
    def closing_engine(self) -> ClosingEngine:
        return self._closing

    # -------------------------------------------------------------------------
    # Rejection auditing
    # -------------------------------------------------------------------------

    async def _audit_validation_failed(
        self,
        user_id: str,
        operation: str,
        error: ValidationError,
        correlation_id: UUID,
    ) -> None:
        await self._audit_logger.log_validation_failed(
            user_id=user_id,
            operation=operation,
            issues=[issue.model_dump() for issue in error.issues],
            correlation_id=correlation_id,
        )

    async def _audit_edit_blocked(
        self,
        user_id: str,
        operation: str,
        error: ImmutableMonthError,
        correlation_id: UUID,
    ) -> None:
        await self._audit_logger.log_edit_blocked(
            user_id=user_id,
            month=error.month,
            operation=operation,
            correlation_id=correlation_id,
        )

    async def _audit_storage_error(
        self,
        user_id: str,
        operation: str,
        error: StorageError,
        correlation_id: UUID,
    ) -> None:
        await self._audit_logger.log_error(
            error_type=type(error).__name__,
            error_message=str(error),
            details={"operation": operation},
            user_id=user_id,
            correlation_id=correlation_id,
        )

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def create_expense(
        self,
        user_id: str,
        payload: Union[ExpenseInput, dict[str, Any]],
    ) -> ExpenseRecord:
        correlation_id = create_correlation_id()
        try:
            record = await self._expenses.create(user_id, payload)
        except ValidationError as e:
            await self._audit_validation_failed(
                user_id, "create_expense", e, correlation_id
            )
            raise
        except ImmutableMonthError as e:
            await self._audit_edit_blocked(
                user_id, "create_expense", e, correlation_id
            )
            raise
        except StorageError as e:
            await self._audit_storage_error(
                user_id, "create_expense", e, correlation_id
            )
            raise

        await self._audit_logger.log_expense_created(
            user_id=user_id,
            expense_id=record.id,
            month=record.month,
            amount=str(record.amount),
            correlation_id=correlation_id,
        )
        return record

    async def update_expense(
        self,
        user_id: str,
        expense_id: Union[UUID, str],
        payload: Union[ExpenseInput, dict[str, Any]],
    ) -> ExpenseRecord:
        correlation_id = create_correlation_id()
        try:
            data = parse_expense_input(payload)
            existing = await self._expenses.get(user_id, expense_id)
            record = await self._expenses.update(user_id, existing.id, data)
        except ValidationError as e:
            await self._audit_validation_failed(
                user_id, "update_expense", e, correlation_id
            )
            raise
        except ImmutableMonthError as e:
            await self._audit_edit_blocked(
                user_id, "update_expense", e, correlation_id
            )
            raise
        except StorageError as e:
            await self._audit_storage_error(
                user_id, "update_expense", e, correlation_id
            )
            raise

        await self._audit_logger.log_expense_updated(
            user_id=user_id,
            expense_id=record.id,
            from_month=existing.month,
            to_month=record.month,
            correlation_id=correlation_id,
        )
        return record

    async def delete_expense(
        self,
        user_id: str,
        expense_id: Union[UUID, str],
    ) -> ExpenseRecord:
        correlation_id = create_correlation_id()
        try:
            record = await self._expenses.delete(user_id, expense_id)
        except ImmutableMonthError as e:
            await self._audit_edit_blocked(
                user_id, "delete_expense", e, correlation_id
            )
            raise
        except StorageError as e:
            await self._audit_storage_error(
                user_id, "delete_expense", e, correlation_id
            )
            raise

        await self._audit_logger.log_expense_deleted(
            user_id=user_id,
            expense_id=record.id,
            month=record.month,
            correlation_id=correlation_id,
        )
        return record

    async def list_expenses(
        self,
        user_id: str,
        month: Optional[str] = None,
    ) -> list[ExpenseRecord]:
        return await self._expenses.list(user_id, month)

    # -------------------------------------------------------------------------
    # Plans
    # -------------------------------------------------------------------------

    async def get_plan(self, user_id: str, month: str) -> Optional[MonthlyPlanRecord]:
        return await self._plans.get(user_id, month)

    async def upsert_plan(
        self,
        user_id: str,
        payload: Union[MonthlyPlanInput, dict[str, Any]],
    ) -> MonthlyPlanRecord:
        correlation_id = create_correlation_id()
        try:
            data = parse_plan_input(payload)
            plan = await self._plans.upsert(user_id, data)
        except ValidationError as e:
            await self._audit_validation_failed(
                user_id, "upsert_plan", e, correlation_id
            )
            raise
        except ImmutableMonthError as e:
            await self._audit_edit_blocked(
                user_id, "upsert_plan", e, correlation_id
            )
            raise
        except StorageError as e:
            await self._audit_storage_error(
                user_id, "upsert_plan", e, correlation_id
            )
            raise

        await self._audit_logger.log_plan_saved(
            user_id=user_id,
            plan_id=plan.id,
            month=plan.month,
            income=str(plan.income_amount),
            savings=str(plan.savings_target),
            correlation_id=correlation_id,
        )
        return plan

    # -------------------------------------------------------------------------
    # Closing
    # -------------------------------------------------------------------------

    async def close_month(
        self,
        user_id: str,
        month: str,
        currency_code: Union[CurrencyCode, str] = CurrencyCode.USD,
    ) -> MonthlySnapshotRecord:
        """
        Close a month. Safe to repeat; a repeat returns the first snapshot.
        """
        correlation_id = create_correlation_id()
        try:
            snapshot, created = await self._closing.close_with_outcome(
                user_id, month, currency_code
            )
        except ValidationError as e:
            await self._audit_validation_failed(
                user_id, "close_month", e, correlation_id
            )
            raise
        except StorageError as e:
            await self._audit_storage_error(
                user_id, "close_month", e, correlation_id
            )
            raise

        await self._audit_logger.log_month_closed(
            user_id=user_id,
            snapshot_id=snapshot.id,
            month=snapshot.month,
            total=str(snapshot.total_amount),
            transaction_count=snapshot.transaction_count,
            replayed=not created,
            correlation_id=correlation_id,
        )
        return snapshot

    # -------------------------------------------------------------------------
    # Read views
    # -------------------------------------------------------------------------

    async def get_monthly_detail(self, user_id: str, month: str) -> MonthlyDetail:
        return await self._summaries.get_monthly_detail(user_id, month)

    async def list_monthly_summaries(self, user_id: str) -> list[MonthlySummary]:
        return await self._summaries.list_summaries(user_id)

    async def list_monthly_trend(
        self,
        user_id: str,
        limit: Any = None,
    ) -> list[MonthlyTrendPoint]:
        limit = normalize_trend_limit(limit, default=self._trend_default_months)
        return await self._summaries.list_trend(user_id, limit)

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    async def health_check(self) -> dict:
        """
        Returns:
            {"ok": bool, "timestamp": ISO-8601 str, "environment": str}
        """
        environment = self._environment or get_settings().app.app_environment
        try:
            ok = await self._snapshot_storage.ping()
        except Exception as e:
            logger.warning("health_check_failed", error=str(e))
            ok = False
        return {
            "ok": ok,
            "timestamp": utc_now().isoformat(),
            "environment": environment,
        }


def create_app_components(
    backend: Optional[str] = None,
) -> tuple[LedgerService, Optional[GoogleSheetsClient]]:
    """
    Factory function to create the ledger service.

    Args:
        backend: "memory" or "google_sheets". Defaults to the configured
                 storage backend.

    Returns:
        (ledger_service, sheets_client)
    """
    app_settings = get_settings().app
    configure_log_level(app_settings.debug_mode)
    backend = backend or app_settings.storage_backend

    sheets_client = None
    audit_storage: AuditStorageInterface

    if backend == "google_sheets":
        sheets_client = GoogleSheetsClient()
        expense_storage = GoogleSheetsExpenseStorage(sheets_client)
        plan_storage = GoogleSheetsPlanStorage(sheets_client)
        snapshot_storage = GoogleSheetsSnapshotStorage(sheets_client)
        audit_storage = GoogleSheetsAuditStorage(sheets_client)
    else:
        expense_storage = InMemoryExpenseStorage()
        plan_storage = InMemoryPlanStorage()
        snapshot_storage = InMemorySnapshotStorage()
        audit_storage = InMemoryAuditStorage()

    logger.info(
        "ledger_service_created",
        backend=backend,
        environment=app_settings.app_environment,
    )

    service = LedgerService(
        expense_storage=expense_storage,
        plan_storage=plan_storage,
        snapshot_storage=snapshot_storage,
        audit_logger=AuditLogger(audit_storage),
        environment=app_settings.app_environment,
        trend_default_months=app_settings.trend_default_months,
    )
    return service, sheets_client

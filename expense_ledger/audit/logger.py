"""
Audit Logger

DESIGN DECISION: Every ledger mutation and every rejected write is logged.
This provides:
1. Complete traceability of month edits and closes
2. Debugging capability when a write is refused
3. A durable record of when each month was frozen

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (a failed audit write never fails the
  ledger operation that produced it)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_ledger.models.audit import AuditEvent, AuditEventBuilder
from expense_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_log_level(debug: bool = False) -> None:
    """Set the stdlib level structlog filters on: DEBUG in debug mode, else INFO."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger().setLevel(level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("expense_ledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_created(
        self,
        user_id: str,
        expense_id: UUID,
        month: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.expense_created(
            user_id=user_id,
            expense_id=expense_id,
            month=month,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_updated(
        self,
        user_id: str,
        expense_id: UUID,
        from_month: str,
        to_month: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.expense_updated(
            user_id=user_id,
            expense_id=expense_id,
            from_month=from_month,
            to_month=to_month,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_deleted(
        self,
        user_id: str,
        expense_id: UUID,
        month: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.expense_deleted(
            user_id=user_id,
            expense_id=expense_id,
            month=month,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_plan_saved(
        self,
        user_id: str,
        plan_id: UUID,
        month: str,
        income: str,
        savings: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.plan_saved(
            user_id=user_id,
            plan_id=plan_id,
            month=month,
            income=income,
            savings=savings,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_month_closed(
        self,
        user_id: str,
        snapshot_id: UUID,
        month: str,
        total: str,
        transaction_count: int,
        replayed: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a close, or a repeated close that returned the stored snapshot."""
        event = AuditEventBuilder.month_closed(
            user_id=user_id,
            snapshot_id=snapshot_id,
            month=month,
            total=total,
            transaction_count=transaction_count,
            replayed=replayed,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_edit_blocked(
        self,
        user_id: str,
        month: str,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a write refused because its month is closed."""
        event = AuditEventBuilder.edit_blocked(
            user_id=user_id,
            month=month,
            operation=operation,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        user_id: str,
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.validation_failed(
            user_id=user_id,
            operation=operation,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., closing a month).
    Pass it through all subsequent operations.
    """
    return uuid4()

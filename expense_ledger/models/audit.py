"""
Audit Models for the Expense Ledger

Every mutation of the ledger is logged for audit purposes.
This provides:
1. Complete traceability of who changed which month
2. Debugging information when a write is rejected
3. A record of when each month was closed

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from expense_ledger.months import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"

    # Plans
    PLAN_SAVED = "plan_saved"

    # Closing
    MONTH_CLOSED = "month_closed"
    MONTH_CLOSE_REPLAYED = "month_close_replayed"

    # Rejections
    EDIT_BLOCKED = "edit_blocked"
    VALIDATION_FAILED = "validation_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Who and what
    user_id: Optional[str] = Field(
        default=None,
        description="User whose ledger was touched"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'plan', 'snapshot')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    month: Optional[str] = Field(
        default=None,
        description="Month key the event applies to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one user action"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "month": self.month,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, month, correlation_id, description, details_json,
         error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            self.month or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_created(user_id, expense_id, month, amount, correlation_id)
        event = AuditEventBuilder.month_closed(user_id, snapshot_id, month, total, count, correlation_id)
    """

    @staticmethod
    def expense_created(
        user_id: str,
        expense_id: UUID,
        month: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            month=month,
            correlation_id=correlation_id,
            description=f"Expense recorded in {month}: {amount}",
            details={"amount": amount},
        )

    @staticmethod
    def expense_updated(
        user_id: str,
        expense_id: UUID,
        from_month: str,
        to_month: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        if from_month == to_month:
            description = f"Expense updated in {to_month}"
        else:
            description = f"Expense moved from {from_month} to {to_month}"
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            month=to_month,
            correlation_id=correlation_id,
            description=description,
            details={"from_month": from_month, "to_month": to_month},
        )

    @staticmethod
    def expense_deleted(
        user_id: str,
        expense_id: UUID,
        month: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            month=month,
            correlation_id=correlation_id,
            description=f"Expense deleted from {month}",
        )

    @staticmethod
    def plan_saved(
        user_id: str,
        plan_id: UUID,
        month: str,
        income: str,
        savings: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAN_SAVED,
            user_id=user_id,
            entity_type="plan",
            entity_id=plan_id,
            month=month,
            correlation_id=correlation_id,
            description=f"Plan saved for {month}",
            details={"income_amount": income, "savings_target": savings},
        )

    @staticmethod
    def month_closed(
        user_id: str,
        snapshot_id: UUID,
        month: str,
        total: str,
        transaction_count: int,
        replayed: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        if replayed:
            event_type = AuditEventType.MONTH_CLOSE_REPLAYED
            description = f"{month} was already closed; existing snapshot returned"
        else:
            event_type = AuditEventType.MONTH_CLOSED
            description = f"Closed {month} with {transaction_count} transactions"
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="snapshot",
            entity_id=snapshot_id,
            month=month,
            correlation_id=correlation_id,
            description=description,
            details={
                "total_amount": total,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def edit_blocked(
        user_id: str,
        month: str,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EDIT_BLOCKED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            month=month,
            correlation_id=correlation_id,
            description=f"{operation} rejected: {month} is closed",
            details={"operation": operation},
        )

    @staticmethod
    def validation_failed(
        user_id: str,
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{operation} validation failed with {len(issues)} issues",
            details={
                "operation": operation,
                "issues": issues,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

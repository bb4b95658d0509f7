"""
Ledger Error Taxonomy

Every failure a caller can observe from the ledger is one of these.
Pure computation (aggregation, budget insights) never raises; all
fallibility lives at the ledger / plan store / closing boundary.
"""

from typing import Optional

from expense_ledger.models.ledger import ValidationIssue


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class ValidationError(LedgerError):
    """
    Malformed or out-of-range input.

    Always raised before any store mutation.
    """

    def __init__(
        self,
        message: str,
        issues: Optional[list[ValidationIssue]] = None,
    ):
        self.issues = issues or []
        super().__init__(message)


class ImmutableMonthError(LedgerError):
    """A write was attempted against a closed month."""

    def __init__(self, month: str):
        self.month = month
        super().__init__(f"{month} is closed and cannot be edited.")


class NotFoundError(LedgerError):
    """
    Record missing or not owned by the caller.

    Both cases produce the same error so record ids cannot be probed.
    """
    pass


class ConflictError(LedgerError):
    """Concurrent write collided with an existing record."""
    pass

"""
Input Validation

DESIGN DECISION: Every caller-supplied value passes through here before
the ledger touches storage. Structural rules (lengths, ranges, formats)
live on the pydantic input models; this module turns raw payloads into
those models and turns pydantic's error list into our own ValidationError
with one ValidationIssue per problem.

WHY A SEPARATE LAYER:
1. Callers get one error type, never a pydantic internals leak
2. Messages are written for people, not for developers
3. Transport field names ("date", "incomeAmount") map onto model fields
   in one place

IMPORTANT: Validation NEVER silently fixes input beyond trimming
whitespace and rounding money to cents.
"""

import math
import re
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from expense_ledger.errors import ValidationError
from expense_ledger.models.ledger import (
    CurrencyCode,
    ExpenseCategory,
    ExpenseInput,
    MonthlyPlanInput,
    ValidationIssue,
)
from expense_ledger.months import is_month_key


TREND_DEFAULT_MONTHS = 8
TREND_MIN_MONTHS = 3
TREND_MAX_MONTHS = 24

# Leading integer of a string, e.g. "5" in "5.7" or "5abc"
_LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?[0-9]+)")

_EXPENSE_FIELD_ALIASES = {
    "date": "expense_date",
}

_PLAN_FIELD_ALIASES = {
    "incomeAmount": "income_amount",
    "savingsTarget": "savings_target",
}

# field -> (message, suggested fix)
_EXPENSE_MESSAGES = {
    "title": (
        "Title must be between 2 and 80 characters.",
        "Use a short, descriptive title",
    ),
    "amount": (
        "Amount must be a number greater than 0 and at most 1,000,000.",
        "Enter the amount spent, e.g. 12.50",
    ),
    "category": (
        "Please select a valid category.",
        "Choose one of: " + ", ".join(c.value for c in ExpenseCategory),
    ),
    "expense_date": (
        "Date must be in YYYY-MM-DD format.",
        "Use a date like 2025-01-15",
    ),
    "notes": (
        "Notes cannot exceed 280 characters.",
        None,
    ),
}

_PLAN_MESSAGES = {
    "month": (
        "Month must be in YYYY-MM format.",
        "Use a month like 2025-01",
    ),
    "income_amount": (
        "Income must be greater than 0 and at most 1,000,000,000.",
        None,
    ),
    "savings_target": (
        "Savings target must be a number between 0 and 1,000,000,000.",
        None,
    ),
    "notes": (
        "Notes cannot exceed 300 characters.",
        None,
    ),
}


def _clean_message(message: str) -> str:
    # pydantic prefixes messages raised from our own validators
    prefix = "Value error, "
    if message.startswith(prefix):
        return message[len(prefix):]
    return message


def _issues_from_error(
    error: PydanticValidationError,
    messages: dict[str, tuple[str, Optional[str]]],
) -> list[ValidationIssue]:
    """Convert pydantic's error list into ValidationIssues."""
    issues = []
    for detail in error.errors():
        location = detail.get("loc") or ()
        field = str(location[0]) if location else "__root__"
        message, suggested_fix = messages.get(
            field,
            (_clean_message(detail.get("msg", "Invalid value")), None),
        )
        issues.append(ValidationIssue(
            field=field,
            issue_type=detail.get("type", "invalid"),
            message=message,
            severity="error",
            suggested_fix=suggested_fix,
        ))
    return issues


def _normalize_payload(
    payload: Any,
    aliases: dict[str, str],
    kind: str,
) -> dict[str, Any]:
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValidationError(
            f"{kind} payload must be an object.",
            [ValidationIssue(
                field="__root__",
                issue_type="invalid_type",
                message=f"{kind} payload must be an object.",
            )],
        )

    data = dict(payload)
    for alias, field in aliases.items():
        if alias in data and field not in data:
            data[field] = data.pop(alias)
    return data


def parse_expense_input(
    payload: Union[ExpenseInput, Mapping[str, Any], None],
) -> ExpenseInput:
    """
    Validate an expense payload.

    Accepts an already-built ExpenseInput (returned unchanged) or a
    mapping using either model field names or transport names.

    Raises:
        ValidationError: With one issue per invalid field
    """
    if isinstance(payload, ExpenseInput):
        return payload

    data = _normalize_payload(payload, _EXPENSE_FIELD_ALIASES, "Expense")
    try:
        return ExpenseInput.model_validate(data)
    except PydanticValidationError as e:
        issues = _issues_from_error(e, _EXPENSE_MESSAGES)
        raise ValidationError(issues[0].message, issues) from e


def parse_plan_input(
    payload: Union[MonthlyPlanInput, Mapping[str, Any], None],
) -> MonthlyPlanInput:
    """
    Validate a monthly plan payload.

    Raises:
        ValidationError: With one issue per invalid field
    """
    if isinstance(payload, MonthlyPlanInput):
        return payload

    data = _normalize_payload(payload, _PLAN_FIELD_ALIASES, "Plan")
    try:
        return MonthlyPlanInput.model_validate(data)
    except PydanticValidationError as e:
        issues = _issues_from_error(e, _PLAN_MESSAGES)
        raise ValidationError(issues[0].message, issues) from e


def parse_month_value(value: Any, field_name: str = "month") -> str:
    """Validate a YYYY-MM month key."""
    month = value.strip() if isinstance(value, str) else ""

    if not is_month_key(month):
        message = f"{field_name} must be in YYYY-MM format."
        raise ValidationError(message, [ValidationIssue(
            field=field_name,
            issue_type="invalid_format",
            message=message,
            suggested_fix="Use a month like 2025-01",
        )])

    return month


def parse_optional_month_value(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return parse_month_value(value)


def parse_currency_code(
    value: Any,
    field_name: str = "currency_code",
) -> CurrencyCode:
    if isinstance(value, CurrencyCode):
        return value

    code = value.strip().upper() if isinstance(value, str) else ""
    try:
        return CurrencyCode(code)
    except ValueError:
        supported = " or ".join(c.value for c in CurrencyCode)
        message = f"{field_name} must be either {supported}."
        raise ValidationError(message, [ValidationIssue(
            field=field_name,
            issue_type="invalid_choice",
            message=message,
        )]) from None


def parse_trend_limit(
    value: Any,
    default: int = TREND_DEFAULT_MONTHS,
) -> int:
    """
    Normalize a requested trend window.

    Strings are read up to their first non-digit, so "5.7" means 5.
    Missing or unparseable values fall back to the default; everything
    else is clamped to [TREND_MIN_MONTHS, TREND_MAX_MONTHS].
    """
    if value is None or value == "" or isinstance(value, bool):
        limit = default
    elif isinstance(value, int):
        limit = value
    elif isinstance(value, float):
        limit = int(value) if math.isfinite(value) else default
    elif isinstance(value, str):
        match = _LEADING_INT_PATTERN.match(value)
        limit = int(match.group(1)) if match else default
    else:
        limit = default

    return min(TREND_MAX_MONTHS, max(TREND_MIN_MONTHS, limit))

"""Input validation package."""

from expense_ledger.validation.validator import (
    TREND_DEFAULT_MONTHS,
    TREND_MAX_MONTHS,
    TREND_MIN_MONTHS,
    parse_currency_code,
    parse_expense_input,
    parse_month_value,
    parse_optional_month_value,
    parse_plan_input,
    parse_trend_limit,
)

__all__ = [
    "TREND_DEFAULT_MONTHS",
    "TREND_MAX_MONTHS",
    "TREND_MIN_MONTHS",
    "parse_currency_code",
    "parse_expense_input",
    "parse_month_value",
    "parse_optional_month_value",
    "parse_plan_input",
    "parse_trend_limit",
]

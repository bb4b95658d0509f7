"""
Budget Insight Calculator

Turns a month's spending total and its plan into the numbers a user acts
on: how much they can spend, how much is left, and how much per day.

Calendar arithmetic is anchored to "today" in UTC. `today` is a parameter
so callers (and tests) can pin the clock.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from expense_ledger.models.ledger import BudgetInsights, MonthlyPlanRecord
from expense_ledger.months import (
    days_in_month,
    month_of,
    round_money,
    utc_today,
)


def planned_spendable(income: Decimal, savings_target: Decimal) -> Decimal:
    """Income minus savings target, never below zero."""
    return round_money(max(Decimal("0"), income - savings_target))


def days_remaining_in_month(month: str, today: Optional[date] = None) -> int:
    """
    Days left in `month`, counting today.

    - A month before the current one has 0 days left.
    - A month after the current one has all of its days left.
    - The current month has last_day - today + 1, and never less than 1.
    """
    today = today or utc_today()
    current = month_of(today)

    if month < current:
        return 0

    last_day = days_in_month(month)

    if month > current:
        return last_day

    return max(1, last_day - today.day + 1)


def build_budget_insights(
    month: str,
    total_amount: Decimal,
    plan: Optional[MonthlyPlanRecord],
    today: Optional[date] = None,
) -> BudgetInsights:
    """
    Compute spendable, remaining and daily allowance for a month.

    Without a usable plan the money figures are zero and
    `income_required` is set; days remaining is still reported.
    A negative remaining budget means overspending, not an error.
    """
    days_remaining = days_remaining_in_month(month, today)

    if plan is None or plan.income_amount <= 0:
        return BudgetInsights(
            days_remaining=days_remaining,
            income_required=True,
        )

    spendable = planned_spendable(plan.income_amount, plan.savings_target)
    remaining = round_money(spendable - total_amount)

    if days_remaining > 0:
        allowance = round_money(remaining / days_remaining)
    else:
        allowance = remaining

    return BudgetInsights(
        planned_spendable=spendable,
        remaining_budget=remaining,
        days_remaining=days_remaining,
        daily_allowance=allowance,
        income_required=False,
    )

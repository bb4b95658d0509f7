"""Tests for the budget insight calculator."""

import pytest
from datetime import date
from decimal import Decimal

from expense_ledger.engine import (
    build_budget_insights,
    days_remaining_in_month,
    planned_spendable,
)
from expense_ledger.models.ledger import MonthlyPlanRecord


def make_plan(income, savings="0", month="2025-02"):
    return MonthlyPlanRecord(
        user_id="user-1",
        month=month,
        income_amount=Decimal(income),
        savings_target=Decimal(savings),
    )


class TestDaysRemaining:
    """Tests for days_remaining_in_month."""

    def test_february_in_leap_year(self):
        assert days_remaining_in_month("2024-02", today=date(2024, 2, 10)) == 20

    def test_february_in_common_year(self):
        assert days_remaining_in_month("2025-02", today=date(2025, 2, 10)) == 19

    def test_last_day_counts_as_one(self):
        assert days_remaining_in_month("2025-01", today=date(2025, 1, 31)) == 1

    def test_last_day_of_february_counts_as_one(self):
        assert days_remaining_in_month("2025-02", today=date(2025, 2, 28)) == 1
        assert days_remaining_in_month("2024-02", today=date(2024, 2, 29)) == 1

    def test_first_day_counts_whole_month(self):
        assert days_remaining_in_month("2025-04", today=date(2025, 4, 1)) == 30

    def test_past_month_has_no_days(self):
        assert days_remaining_in_month("2024-12", today=date(2025, 1, 1)) == 0

    def test_future_month_has_all_days(self):
        assert days_remaining_in_month("2025-02", today=date(2025, 1, 31)) == 28


class TestBudgetInsights:
    """Tests for build_budget_insights."""

    def test_without_plan_income_is_required(self):
        insights = build_budget_insights(
            "2025-02", Decimal("50.00"), None, today=date(2025, 2, 10)
        )
        assert insights.income_required is True
        assert insights.planned_spendable == Decimal("0.00")
        assert insights.remaining_budget == Decimal("0.00")
        assert insights.daily_allowance == Decimal("0.00")
        assert insights.days_remaining == 19

    def test_current_month_with_plan(self):
        insights = build_budget_insights(
            "2025-02",
            Decimal("300.00"),
            make_plan("2000", "500"),
            today=date(2025, 2, 10),
        )
        assert insights.income_required is False
        assert insights.planned_spendable == Decimal("1500.00")
        assert insights.remaining_budget == Decimal("1200.00")
        assert insights.daily_allowance == Decimal("63.16")

    def test_overspending_goes_negative(self):
        insights = build_budget_insights(
            "2025-02",
            Decimal("1600.00"),
            make_plan("2000", "500"),
            today=date(2025, 2, 27),
        )
        assert insights.remaining_budget == Decimal("-100.00")
        assert insights.daily_allowance == Decimal("-50.00")

    def test_past_month_allowance_is_the_remainder(self):
        insights = build_budget_insights(
            "2025-02",
            Decimal("1000.00"),
            make_plan("2000", "500"),
            today=date(2025, 3, 5),
        )
        assert insights.days_remaining == 0
        assert insights.daily_allowance == insights.remaining_budget == Decimal("500.00")

    @pytest.mark.parametrize(
        "income, savings, expected",
        [("100", "30", "70.00"), ("100", "100", "0.00"), ("100", "150", "0.00")],
    )
    def test_planned_spendable_is_never_negative(self, income, savings, expected):
        assert planned_spendable(Decimal(income), Decimal(savings)) == Decimal(expected)

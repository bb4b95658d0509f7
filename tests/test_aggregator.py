"""Tests for the month aggregator."""

from datetime import date
from decimal import Decimal

from expense_ledger.engine import aggregate_expenses, group_by_month
from expense_ledger.models.ledger import ExpenseCategory, ExpenseRecord


def make_expense(amount, category, day=date(2025, 1, 10), title="Item"):
    return ExpenseRecord(
        user_id="user-1",
        title=title,
        amount=Decimal(amount),
        category=category,
        expense_date=day,
    )


class TestAggregateExpenses:
    """Tests for aggregate_expenses."""

    def test_empty_month(self):
        stats = aggregate_expenses([])
        assert stats.total_amount == Decimal("0.00")
        assert stats.transaction_count == 0
        assert stats.top_category == "None"
        assert stats.category_breakdown == {}

    def test_totals_and_breakdown(self):
        """Test that the breakdown sums to the total."""
        stats = aggregate_expenses([
            make_expense("100.00", ExpenseCategory.FOOD),
            make_expense("20.50", ExpenseCategory.TRANSPORTATION),
            make_expense("0.10", ExpenseCategory.FOOD),
            make_expense("0.20", ExpenseCategory.FOOD),
        ])
        assert stats.total_amount == Decimal("120.80")
        assert stats.transaction_count == 4
        assert stats.top_category == "Food"
        assert stats.category_breakdown == {
            "Food": Decimal("100.30"),
            "Transportation": Decimal("20.50"),
        }
        assert sum(stats.category_breakdown.values()) == stats.total_amount

    def test_breakdown_is_ordered_by_amount(self):
        stats = aggregate_expenses([
            make_expense("5", ExpenseCategory.OTHER),
            make_expense("50", ExpenseCategory.HOUSING),
            make_expense("10", ExpenseCategory.FOOD),
        ])
        assert list(stats.category_breakdown) == ["Housing", "Food", "Other"]

    def test_tie_is_broken_by_category_name(self):
        """Test that equal totals pick the alphabetically first category."""
        forward = aggregate_expenses([
            make_expense("40", ExpenseCategory.UTILITIES),
            make_expense("40", ExpenseCategory.ENTERTAINMENT),
        ])
        backward = aggregate_expenses([
            make_expense("40", ExpenseCategory.ENTERTAINMENT),
            make_expense("40", ExpenseCategory.UTILITIES),
        ])
        assert forward.top_category == "Entertainment"
        assert backward.top_category == "Entertainment"


class TestGroupByMonth:
    """Tests for group_by_month."""

    def test_groups_on_month_key(self):
        january = make_expense("1", ExpenseCategory.FOOD, date(2025, 1, 31))
        february = make_expense("2", ExpenseCategory.FOOD, date(2025, 2, 1))
        grouped = group_by_month([january, february])
        assert set(grouped) == {"2025-01", "2025-02"}
        assert grouped["2025-01"] == [january]

"""
Streamlit Frontend for the Expense Ledger

The screen a user opens every day to log spending, set the month's
income and savings target, and close the month when it is done.

DESIGN PRINCIPLES:
1. One month at a time, picked from the sidebar
2. A closed month is shown read-only; the forms disappear
3. Clear error messages in simple language
4. Visual feedback for all operations

Closing is explicit: nothing closes a month except the user pressing
the close button and confirming.
"""

import asyncio
from datetime import date

import streamlit as st

from expense_ledger.config import get_settings, validate_all_settings
from expense_ledger.engine import format_amount
from expense_ledger.errors import (
    ImmutableMonthError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from expense_ledger.models.ledger import CurrencyCode, ExpenseCategory
from expense_ledger.months import month_of, utc_today
from expense_ledger.orchestrator import LedgerService, create_app_components


# Page configuration
st.set_page_config(
    page_title="Expense Ledger",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .closed-box {
        padding: 20px;
        background-color: #e2e3e5;
        border-radius: 10px;
        border-left: 5px solid #6c757d;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components()
    except Exception as e:
        st.error(f"Failed to initialize storage, using in-memory storage: {e}")
        return create_app_components(backend="memory")


def show_ledger_error(error: LedgerError):
    """Render a ledger error in plain language."""
    if isinstance(error, ValidationError):
        st.error(f"❌ {error}")
        for issue in error.issues[1:]:
            st.caption(f"• {issue.message}")
    elif isinstance(error, ImmutableMonthError):
        st.warning(f"🔒 {error}")
    elif isinstance(error, NotFoundError):
        st.error("❌ That expense no longer exists.")
    else:
        st.error(f"❌ {error}")


def main():
    """Main application entry point."""
    service, _ = get_components()
    app_settings = get_settings().app

    st.sidebar.title("💰 Expense Ledger")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["🗓️ Month", "📚 History", "📈 Trend", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    picked = st.sidebar.date_input("Month", value=utc_today())
    month = month_of(picked)
    currency = st.sidebar.selectbox(
        "Currency",
        options=list(CurrencyCode),
        index=list(CurrencyCode).index(app_settings.default_currency),
        format_func=lambda c: c.value,
    )
    user_id = app_settings.default_user_id

    if page == "🗓️ Month":
        render_month_page(service, user_id, month, currency)
    elif page == "📚 History":
        render_history_page(service, user_id, currency)
    elif page == "📈 Trend":
        render_trend_page(service, user_id, currency)
    elif page == "⚙️ Settings":
        render_settings_page(service)


def render_month_page(
    service: LedgerService,
    user_id: str,
    month: str,
    currency: CurrencyCode,
):
    """Render one month: totals, budget, expenses and the write forms."""
    st.title(f"🗓️ {month}")

    detail = run_async(service.get_monthly_detail(user_id, month))
    summary = detail.summary
    budget = detail.budget

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Spent", format_amount(summary.total_amount, currency))
    col2.metric("Transactions", summary.transaction_count)
    col3.metric("Remaining", format_amount(budget.remaining_budget, currency))
    col4.metric("Per day", format_amount(budget.daily_allowance, currency))

    if budget.income_required and not summary.is_closed:
        st.info("💡 Set this month's income to see your remaining budget.")

    if summary.is_closed:
        st.markdown(
            f'<div class="closed-box">🔒 {detail.summary_text}</div>',
            unsafe_allow_html=True,
        )

    if detail.category_breakdown:
        st.markdown("### By Category")
        st.bar_chart({
            category: float(amount)
            for category, amount in detail.category_breakdown.items()
        })

    st.markdown("### Expenses")
    if not detail.expenses:
        st.caption("No expenses recorded for this month.")
    for expense in detail.expenses:
        cols = st.columns([2, 4, 2, 2, 1])
        cols[0].write(expense.expense_date.isoformat())
        cols[1].write(f"**{expense.title}** · {expense.category.value}")
        cols[2].write(format_amount(expense.amount, currency))
        cols[3].caption(expense.notes)
        if not summary.is_closed and cols[4].button("🗑️", key=f"del-{expense.id}"):
            try:
                run_async(service.delete_expense(user_id, expense.id))
                st.rerun()
            except LedgerError as e:
                show_ledger_error(e)

    if summary.is_closed:
        return

    st.markdown("---")
    left, right = st.columns(2)

    with left:
        st.markdown("### ➕ Add Expense")
        with st.form("expense_form", clear_on_submit=True):
            title = st.text_input("Title")
            amount = st.number_input("Amount", min_value=0.0, step=1.0, format="%.2f")
            category = st.selectbox(
                "Category",
                options=list(ExpenseCategory),
                format_func=lambda c: c.value,
            )
            expense_date = st.date_input("Date", value=_default_date(month))
            notes = st.text_area("Notes", max_chars=280)
            if st.form_submit_button("Save Expense", type="primary"):
                try:
                    run_async(service.create_expense(user_id, {
                        "title": title,
                        "amount": str(amount),
                        "category": category.value,
                        "date": expense_date.isoformat(),
                        "notes": notes,
                    }))
                    st.success("✅ Expense saved")
                    st.rerun()
                except LedgerError as e:
                    show_ledger_error(e)

    with right:
        st.markdown("### 🎯 Monthly Plan")
        plan = detail.plan
        with st.form("plan_form"):
            income = st.number_input(
                "Income",
                min_value=0.0,
                step=100.0,
                format="%.2f",
                value=float(plan.income_amount) if plan else 0.0,
            )
            savings = st.number_input(
                "Savings target",
                min_value=0.0,
                step=100.0,
                format="%.2f",
                value=float(plan.savings_target) if plan else 0.0,
            )
            plan_notes = st.text_area(
                "Notes",
                max_chars=300,
                value=plan.notes if plan else "",
            )
            if st.form_submit_button("Save Plan"):
                try:
                    run_async(service.upsert_plan(user_id, {
                        "month": month,
                        "incomeAmount": str(income),
                        "savingsTarget": str(savings),
                        "notes": plan_notes,
                    }))
                    st.success("✅ Plan saved")
                    st.rerun()
                except LedgerError as e:
                    show_ledger_error(e)

    st.markdown("---")
    st.markdown("### 🔒 Close Month")
    st.markdown(
        "Closing freezes this month's totals. "
        "You will not be able to add, edit or delete its expenses afterwards."
    )
    confirmed = st.checkbox(f"I understand that {month} cannot be reopened")
    if st.button("Close Month", disabled=not confirmed):
        try:
            snapshot = run_async(service.close_month(user_id, month, currency))
            st.success(f"✅ {snapshot.summary_text}")
            st.rerun()
        except LedgerError as e:
            show_ledger_error(e)


def _default_date(month: str) -> date:
    """Today if it falls in `month`, otherwise the month's first day."""
    today = utc_today()
    if month_of(today) == month:
        return today
    year, month_number = month.split("-")
    return date(int(year), int(month_number), 1)


def render_history_page(service: LedgerService, user_id: str, currency: CurrencyCode):
    """Render the list of months."""
    st.title("📚 History")

    summaries = run_async(service.list_monthly_summaries(user_id))
    if not summaries:
        st.info("📋 Your months will appear here once you record an expense or a plan.")
        return

    st.dataframe(
        [
            {
                "Month": s.month,
                "Spent": format_amount(s.total_amount, currency),
                "Transactions": s.transaction_count,
                "Top category": s.top_category,
                "Status": "🔒 Closed" if s.is_closed else "Open",
            }
            for s in summaries
        ],
        use_container_width=True,
        hide_index=True,
    )


def render_trend_page(service: LedgerService, user_id: str, currency: CurrencyCode):
    """Render spending against plan over recent months."""
    st.title("📈 Trend")

    months = st.slider(
        "Months",
        min_value=3,
        max_value=24,
        value=get_settings().app.trend_default_months,
    )
    points = run_async(service.list_monthly_trend(user_id, months))
    if not points:
        st.info("📋 Not enough data yet.")
        return

    st.line_chart(
        {
            "Spent": [float(p.expense_total) for p in points],
            "Planned spendable": [float(p.planned_spendable) for p in points],
        },
    )
    st.dataframe(
        [
            {
                "Month": p.month,
                "Spent": format_amount(p.expense_total, currency),
                "Income": format_amount(p.income_amount, currency),
                "Savings target": format_amount(p.savings_target, currency),
                "Remaining": format_amount(p.remaining_budget, currency),
                "Closed": "🔒" if p.is_closed else "",
            }
            for p in points
        ],
        use_container_width=True,
        hide_index=True,
    )


def render_settings_page(service: LedgerService):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    health = run_async(service.health_check())
    if health["ok"]:
        st.success(f"✅ Storage reachable ({health['environment']})")
    else:
        st.error(f"❌ Storage unreachable ({health['environment']})")

    status = validate_all_settings()
    services = [
        ("Application", "app"),
        ("Google Sheets (Storage)", "google_sheets"),
    ]

    for name, key in services:
        if key not in status:
            st.info(f"ℹ️ {name} - Not in use")
        elif status[key]:
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()

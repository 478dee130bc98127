"""
Streamlit Frontend for the Finance Tracker

This is the screen people use to record and review their money.

DESIGN PRINCIPLES:
1. Summary first: income, expenses and balance at the top
2. Explicit confirmation before anything destructive
3. Clear messages when input is rejected or saving fails
4. No hidden actions

The page is glue over the Ledger. It never touches transactions directly;
every change goes through a ledger operation and every number shown comes
from a ledger query.
"""

from datetime import date
from decimal import Decimal

import streamlit as st

from feedback import queue_warning, take_warnings
from finance_tracker import Ledger, create_ledger
from finance_tracker.config import get_settings, validate_all_settings
from finance_tracker.models import TransactionType
from finance_tracker.queries import ALL, format_currency, share_of_total
from finance_tracker.validation import TransactionValidator


# Page configuration
st.set_page_config(
    page_title="Personal Finance Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .income-amount {
        color: #4CAF50;
        font-weight: bold;
    }
    .expense-amount {
        color: #f44336;
        font-weight: bold;
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def get_ledger() -> Ledger:
    """Get or create the ledger (cached)."""
    return create_ledger()


def show_mutation_feedback(result, success_message: str, rerun: bool = False) -> None:
    """
    Toast for a ledger change, plus a warning if it was not saved.

    With `rerun=True` the warning is parked in session state and shown by
    `main()` after the page is redrawn.
    """
    st.toast(success_message, icon="✅")
    if rerun:
        queue_warning(st.session_state, result.warning)
        st.rerun()
    if result.warning:
        st.warning(f"⚠️ {result.warning}")


def main():
    """Main application entry point."""
    ledger = get_ledger()
    currency = get_settings().app.currency_symbol

    st.sidebar.title("💰 Finance Tracker")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📒 Transactions", "📁 Import / Export", "⚙️ Settings"],
        index=0,
    )

    if not ledger.is_persisted:
        st.sidebar.error(
            f"Not saved: {ledger.last_persistence_error}. "
            "Your data is kept until you close the app."
        )

    for warning in take_warnings(st.session_state):
        st.warning(f"⚠️ {warning}")

    if page == "📒 Transactions":
        render_transactions_page(ledger, currency)
    elif page == "📁 Import / Export":
        render_import_export_page(ledger)
    elif page == "⚙️ Settings":
        render_settings_page(ledger)


def render_summary(ledger: Ledger, currency: str) -> None:
    stats = ledger.compute_statistics()
    col1, col2, col3 = st.columns(3)

    if stats is None:
        zero = format_currency(Decimal("0"), currency)
        col1.metric("Total Income", zero)
        col2.metric("Total Expenses", zero)
        col3.metric("Balance", zero)
        st.caption("No transactions yet.")
        return

    col1.metric(
        "Total Income",
        format_currency(stats.total_income, currency),
        help=f"{stats.income_count} transactions, average "
             f"{format_currency(stats.average_income, currency)}",
    )
    col2.metric(
        "Total Expenses",
        format_currency(stats.total_expenses, currency),
        help=f"{stats.expense_count} transactions, average "
             f"{format_currency(stats.average_expense, currency)}",
    )
    col3.metric("Balance", format_currency(stats.balance, currency))


def render_add_form(ledger: Ledger) -> None:
    st.subheader("➕ Add Transaction")

    with st.form("transaction-form", clear_on_submit=True):
        description = st.text_input("Description *", placeholder="e.g., March pay")
        col1, col2, col3 = st.columns(3)
        with col1:
            amount = st.number_input("Amount *", min_value=0.0, step=0.01, format="%.2f")
        with col2:
            category = st.selectbox("Category *", options=ledger.categories())
        with col3:
            transaction_type = st.selectbox(
                "Type *",
                options=list(TransactionType),
                format_func=lambda t: t.value.title(),
            )
        submitted = st.form_submit_button("Add", type="primary")

    if submitted:
        result = ledger.add_transaction(
            description=description,
            amount=str(amount),
            category=category,
            transaction_type=transaction_type,
        )
        if result.accepted:
            show_mutation_feedback(
                result, f"{result.transaction.type.value.title()} added successfully!"
            )
        else:
            summary = TransactionValidator().get_user_friendly_summary(result)
            st.error(summary.replace("\n", "  \n"))


def render_transactions_page(ledger: Ledger, currency: str):
    """Render the summary, add form, filters, list and chart."""
    st.title("📒 Personal Finance Tracker")

    render_summary(ledger, currency)
    st.markdown("---")
    render_add_form(ledger)
    st.markdown("---")

    # Filters
    col1, col2, col3 = st.columns([2, 1, 1])
    with col1:
        query = st.text_input("🔍 Search", placeholder="Description or category")
    with col2:
        type_filter = st.selectbox(
            "Type",
            options=[ALL] + [t.value for t in TransactionType],
            format_func=lambda v: "All Types" if v == ALL else v.title(),
        )
    with col3:
        category_filter = st.selectbox(
            "Category",
            options=[ALL] + ledger.categories(),
            format_func=lambda v: "All Categories" if v == ALL else v,
        )

    list_col, chart_col = st.columns([3, 2])

    with list_col:
        st.subheader("Recent Transactions")
        visible = ledger.display_list(query, type_filter, category_filter)
        if not visible:
            st.info("No transactions found. Add some transactions to get started!")
        for tx in visible:
            info, amount_col, action = st.columns([4, 2, 1])
            info.markdown(
                f"**{tx.display_label}**  \n"
                f"{tx.category} • {tx.date.strftime('%b %d, %Y %H:%M')}"
            )
            css_class = "income-amount" if tx.is_income else "expense-amount"
            amount_col.markdown(
                f'<span class="{css_class}">'
                f"{format_currency(tx.amount, currency, tx.type)}</span>",
                unsafe_allow_html=True,
            )
            if action.button("🗑️", key=f"delete-{tx.id}", help="Delete transaction"):
                result = ledger.delete_transaction(tx.id)
                show_mutation_feedback(result, "Transaction deleted successfully!", rerun=True)

    with chart_col:
        st.subheader("Expenses by Category")
        breakdown = ledger.category_breakdown(query, type_filter, category_filter)
        if not breakdown:
            st.caption("No expense data available")
        else:
            total = sum(breakdown.values())
            st.bar_chart(
                {
                    "category": list(breakdown),
                    "amount": [float(v) for v in breakdown.values()],
                },
                x="category",
                y="amount",
            )
            for category, value in breakdown.items():
                st.caption(
                    f"{category}: {format_currency(value, currency)} "
                    f"({share_of_total(value, total)}%)"
                )


def render_import_export_page(ledger: Ledger):
    """Render CSV export, CSV import and clear-all."""
    st.title("📁 Import / Export")

    st.subheader("Export")
    if len(ledger) == 0:
        st.info("No transactions to export!")
    else:
        st.download_button(
            "⬇️ Download CSV",
            data=ledger.export_csv(),
            file_name=ledger.export_filename(date.today()),
            mime="text/csv",
        )

    st.markdown("---")
    st.subheader("Import")
    uploaded = st.file_uploader("Choose a CSV file", type=["csv"])
    if uploaded is not None and st.button("📥 Import", type="primary"):
        text = uploaded.getvalue().decode("utf-8", errors="replace")
        result = ledger.import_csv(text)
        if result.imported_count:
            show_mutation_feedback(
                result, f"Imported {result.imported_count} transactions successfully!"
            )
        else:
            st.error("No transactions could be imported from this file.")
        if result.rejected_rows:
            with st.expander(f"⚠️ {result.skipped_count} rows skipped"):
                for row in result.rejected_rows:
                    st.markdown(f"- Line {row.line_number}: {row.reason}")

    st.markdown("---")
    st.subheader("Danger Zone")
    if len(ledger) == 0:
        st.caption("No transactions to clear!")
    else:
        confirmed = st.checkbox(
            "I understand this deletes ALL transactions and cannot be undone"
        )
        if st.button("🗑️ Clear All Transactions", disabled=not confirmed):
            result = ledger.clear_all()
            show_mutation_feedback(result, "All transactions cleared!", rerun=True)


def render_settings_page(ledger: Ledger):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")
    status = validate_all_settings()
    for name, key in [("Application", "app"), ("Storage", "storage")]:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            st.error(f"❌ {name} - {status.get(f'{key}_error', 'Not configured')}")

    st.markdown("### Storage")
    storage = get_settings().storage
    st.markdown(f"**Backend:** {storage.backend}")
    st.markdown(f"**Data directory:** `{storage.data_dir}`")
    st.markdown(f"**Snapshot key:** `{storage.snapshot_key}`")
    st.markdown(f"**Transactions:** {len(ledger)}")

    if st.button("💾 Save Now"):
        result = ledger.save_snapshot()
        if result.success:
            st.success(f"Saved ({result.bytes_written} bytes)")
        else:
            st.error(f"Error saving data! {result.error_message}")

    st.markdown("---")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()

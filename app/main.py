"""
Streamlit Frontend for Financely

The whole user-facing surface: sign-up / sign-in, the dashboard with
cards and charts, the transaction table and a status page.

DESIGN PRINCIPLES:
1. Every action ends in a toast (success or failure)
2. Forms keep their values when something fails
3. Nothing is deleted without an explicit confirmation
4. The page only ever shows what the live subscription delivered

Each browser session gets its own components (auth session, feed,
table state), kept in st.session_state.
"""

import asyncio
from datetime import date
from typing import Optional

import pandas as pd
import plotly.express as px
import streamlit as st

from financely.audit import configure_logging
from financely.config import get_settings, validate_all_settings
from financely.models.feedback import Notification, NotificationLevel
from financely.models.transaction import (
    DashboardSummary,
    SortColumn,
    Transaction,
    TransactionType,
    TypeFilter,
)
from financely.orchestrator import AppComponents, ComponentsHandle, create_app_components
from financely.routing import Route, resolve_route
from financely.table import TransactionTableController


# Page configuration
st.set_page_config(
    page_title="Financely",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="collapsed",
)

# Custom CSS for cards and amounts
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .card {
        padding: 20px;
        border-radius: 10px;
        background-color: #ffffff;
        box-shadow: 0 2px 8px rgba(0, 0, 0, 0.08);
        margin: 10px 0;
    }
    .card h4 {
        margin: 0;
        color: #6c757d;
    }
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
        color: #2c3e50;
    }
    .amount-income {
        color: #28a745;
        font-weight: 600;
    }
    .amount-expense {
        color: #dc3545;
        font-weight: 600;
    }
    .empty-state {
        padding: 40px;
        text-align: center;
        color: #6c757d;
    }
</style>
""", unsafe_allow_html=True)


TOAST_ICONS = {
    NotificationLevel.SUCCESS: "✅",
    NotificationLevel.INFO: "ℹ️",
    NotificationLevel.WARNING: "⚠️",
    NotificationLevel.ERROR: "❌",
}

TYPE_FILTER_LABELS = {
    TypeFilter.ALL: "All Transactions",
    TypeFilter.INCOME: "Income Only",
    TypeFilter.EXPENSE: "Expense Only",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_components() -> AppComponents:
    """Get or create this browser session's components."""
    if "components" not in st.session_state:
        configure_logging(get_settings().app.log_level)
        st.session_state.components = ComponentsHandle(create_app_components())
    return st.session_state.components.components


def get_table_controller(components: AppComponents) -> TransactionTableController:
    if "table_controller" not in st.session_state:
        st.session_state.table_controller = TransactionTableController(
            components.transaction_flow
        )
    return st.session_state.table_controller


def notify(notification: Optional[Notification]) -> None:
    """
    Show a toast now, or after the next rerun.

    Toasts queued before st.rerun() would otherwise be lost.
    """
    if notification is None:
        return
    st.session_state.setdefault("pending_toasts", []).append(notification)


def flush_toasts(components: AppComponents) -> None:
    pending = st.session_state.pop("pending_toasts", [])
    pending.extend(components.feed.drain_notifications())
    for notification in pending:
        st.toast(notification.message, icon=TOAST_ICONS[notification.level])


def format_amount(amount) -> str:
    symbol = get_settings().app.currency_symbol
    return f"{symbol}{amount:,.2f}"


def main():
    """Main application entry point."""
    components = get_components()
    flush_toasts(components)

    session = components.session
    if session.loading:
        # Nothing is rendered until the provider reports who is signed in
        st.stop()

    requested = st.query_params.get("page", Route.ROOT.value)
    route = resolve_route(requested, session.identity)
    if route.value != requested:
        st.query_params["page"] = route.value

    if route == Route.SIGNUP:
        render_auth_page(components)
    else:
        page = st.sidebar.radio(
            "Navigate to:",
            ["📊 Dashboard", "⚙️ Status"],
            index=0,
        )
        if page == "📊 Dashboard":
            render_dashboard_page(components)
        else:
            render_status_page(components)


# =============================================================================
# AUTH
# =============================================================================

def render_auth_page(components: AppComponents):
    """Sign-up / sign-in forms plus Google sign-in."""
    auth_flow = components.auth_flow

    _, center, _ = st.columns([1, 2, 1])
    with center:
        st.title("💰 Financely")
        tab_signup, tab_signin = st.tabs(["Sign Up", "Sign In"])

        with tab_signup:
            st.markdown("### Create Account")
            st.caption("Start managing your finances today")
            with st.form("signup_form"):
                full_name = st.text_input("Full Name", placeholder="John Doe")
                email = st.text_input("Email Address", placeholder="john@example.com")
                password = st.text_input(
                    "Password",
                    type="password",
                    placeholder="Create a password (min 6 characters)",
                )
                confirm = st.text_input(
                    "Confirm Password",
                    type="password",
                    placeholder="Confirm your password",
                )
                submitted = st.form_submit_button("Create Account", type="primary")

            if submitted:
                with st.spinner("Please wait..."):
                    result = run_async(auth_flow.sign_up(full_name, email, password, confirm))
                finish_auth_action(result)

        with tab_signin:
            st.markdown("### Welcome Back")
            st.caption("Sign in to continue to Financely")
            with st.form("signin_form"):
                email = st.text_input("Email Address", key="signin_email")
                password = st.text_input("Password", type="password", key="signin_password")
                submitted = st.form_submit_button("Sign In", type="primary")

            if submitted:
                with st.spinner("Please wait..."):
                    result = run_async(auth_flow.sign_in(email, password))
                finish_auth_action(result)

        st.markdown("---")
        render_google_sign_in(components)


def render_google_sign_in(components: AppComponents):
    """
    Google sign-in through Streamlit's OIDC support.

    Streamlit obtains the Google ID token; the auth provider exchanges it
    for a Financely identity. Requires an [auth] section in secrets.toml
    with expose_tokens = ["id"].
    """
    user = st.user
    if getattr(user, "is_logged_in", False) and "google_exchanged" not in st.session_state:
        st.session_state.google_exchanged = True
        id_token = user.tokens.get("id") if hasattr(user, "tokens") else None
        result = run_async(components.auth_flow.sign_in_with_google(id_token))
        finish_auth_action(result)

    if st.button("Continue with Google"):
        st.session_state.pop("google_exchanged", None)
        st.login("google")


def finish_auth_action(result: Notification):
    notify(result)
    if not result.is_error:
        st.query_params["page"] = Route.DASHBOARD.value
        st.rerun()
    flush_toasts(get_components())


# =============================================================================
# DASHBOARD
# =============================================================================

def render_header(components: AppComponents):
    identity = components.session.identity

    col1, col2 = st.columns([5, 1])
    with col1:
        st.markdown("## 💰 Financely")
    with col2:
        st.caption(identity.header_name)
        if st.button("Logout"):
            result = run_async(components.auth_flow.sign_out())
            notify(result)
            if not result.is_error:
                st.session_state.pop("table_controller", None)
                if getattr(st.user, "is_logged_in", False):
                    st.logout()
                st.query_params["page"] = Route.SIGNUP.value
            st.rerun()


@st.fragment(run_every="3s")
def watch_feed(components: AppComponents):
    """Rerun the page when the subscription delivered a new snapshot."""
    version = components.feed.version
    seen = st.session_state.get("feed_version")
    st.session_state.feed_version = version
    if seen is not None and seen != version:
        st.rerun()


def render_dashboard_page(components: AppComponents):
    """Header, cards, charts, table."""
    render_header(components)
    watch_feed(components)

    identity = components.session.identity
    records = components.feed.transactions
    summary = components.feed.summary()

    st.markdown(f"### Welcome back, {identity.greeting_name}!")
    st.caption("Here's your financial overview")

    render_cards(summary)

    if st.button("➕ Add Transaction", type="primary"):
        add_transaction_dialog(components)

    render_charts(summary)
    st.markdown("---")
    render_transaction_table(components, records)


def render_cards(summary: DashboardSummary):
    col1, col2, col3 = st.columns(3)

    cards = [
        (col1, "Current Balance", summary.balance, "Total Balance"),
        (col2, "Total Income", summary.total_income, f"{summary.income_count} transactions"),
        (col3, "Total Expenses", summary.total_expense, f"{summary.expense_count} transactions"),
    ]

    for column, title, amount, caption in cards:
        with column:
            st.markdown(f"""
            <div class="card">
                <h4>{title}</h4>
                <div class="big-number">{format_amount(amount)}</div>
                <p>{caption}</p>
            </div>
            """, unsafe_allow_html=True)


def render_charts(summary: DashboardSummary):
    if not summary.monthly:
        return

    col1, col2 = st.columns([3, 2])

    with col1:
        monthly = pd.DataFrame([
            {"Month": m.label, "Income": float(m.income), "Expense": float(m.expense)}
            for m in summary.monthly
        ])
        fig_line = px.line(
            monthly,
            x="Month",
            y=["Income", "Expense"],
            title="Financial Overview",
            markers=True,
            color_discrete_map={"Income": "#28a745", "Expense": "#dc3545"},
        )
        st.plotly_chart(fig_line, use_container_width=True)

    with col2:
        if summary.categories:
            categories = pd.DataFrame([
                {"Category": c.category, "Total": float(c.total)}
                for c in summary.categories
            ])
            fig_pie = px.pie(
                categories,
                names="Category",
                values="Total",
                title="Expense Breakdown",
                hole=0.4,
            )
            st.plotly_chart(fig_pie, use_container_width=True)
        else:
            st.info("No expenses recorded yet.")


@st.dialog("Add Transaction")
def add_transaction_dialog(components: AppComponents):
    with st.form("add_transaction_form"):
        name = st.text_input("Name", placeholder="e.g., Salary, Groceries")
        amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")
        transaction_type = st.selectbox(
            "Type",
            options=[t.value for t in TransactionType],
            index=0,
            format_func=str.title,
        )
        category = st.text_input("Category", placeholder="e.g., Food, Salary")
        transaction_date = st.date_input("Date", value=date.today())
        submitted = st.form_submit_button("Add Transaction", type="primary")

    if submitted:
        result = run_async(components.transaction_flow.add_transaction(
            name=name,
            amount=str(amount),
            transaction_type=transaction_type,
            category=category,
            transaction_date=transaction_date,
        ))
        notify(result)
        if not result.is_error:
            st.rerun()
        flush_toasts(components)


# =============================================================================
# TABLE
# =============================================================================

@st.dialog("Delete Transaction")
def confirm_delete_dialog(controller: TransactionTableController):
    st.write("Are you sure you want to delete this transaction?")
    col1, col2 = st.columns(2)

    with col1:
        if st.button("Yes, delete", type="primary"):
            notify(run_async(controller.resolve_deletion(True)))
            st.rerun()
    with col2:
        if st.button("Cancel"):
            notify(run_async(controller.resolve_deletion(False)))
            st.rerun()


def render_transaction_table(components: AppComponents, records: list[Transaction]):
    controller = get_table_controller(components)

    if not records:
        st.markdown(
            '<div class="empty-state"><p>No transactions yet. '
            'Add your first transaction to get started!</p></div>',
            unsafe_allow_html=True,
        )
        render_import(components, controller)
        return

    st.markdown("### Recent Transactions")

    col1, col2, col3, col4 = st.columns([3, 2, 2, 1])
    with col1:
        controller.query = st.text_input("Search by name", value=controller.query)
    with col2:
        controller.type_filter = st.selectbox(
            "Type",
            options=list(TypeFilter),
            index=list(TypeFilter).index(controller.type_filter),
            format_func=TYPE_FILTER_LABELS.get,
        )
    with col3:
        controller.sort_column = st.selectbox(
            "Sort by",
            options=list(SortColumn),
            index=list(SortColumn).index(controller.sort_column),
            format_func=lambda c: c.value.title(),
        )
    with col4:
        controller.descending = st.toggle("Desc", value=controller.descending)

    pages = controller.page_count(records)
    controller.page = min(controller.page, pages)

    header = st.columns([3, 2, 2, 2, 2, 1])
    for column, title in zip(header, ["Name", "Amount", "Type", "Category", "Date", ""]):
        column.markdown(f"**{title}**")

    for record in controller.current_page(records):
        row = st.columns([3, 2, 2, 2, 2, 1])
        row[0].write(record.name)
        css = "amount-income" if record.type == TransactionType.INCOME else "amount-expense"
        row[1].markdown(
            f'<span class="{css}">{format_amount(record.amount)}</span>',
            unsafe_allow_html=True,
        )
        row[2].write(record.type.value)
        row[3].write(record.category)
        row[4].write(record.date.isoformat())
        if row[5].button("🗑️", key=f"delete_{record.id}"):
            controller.request_deletion(record.id)
            confirm_delete_dialog(controller)

    col1, col2 = st.columns([3, 1])
    with col1:
        st.caption(controller.total_label(records))
    with col2:
        controller.page = st.number_input(
            "Page",
            min_value=1,
            max_value=pages,
            value=controller.page,
            step=1,
        )

    col1, col2 = st.columns(2)
    with col1:
        render_import(components, controller)
    with col2:
        filename, data, row_count = controller.export(records)
        st.download_button(
            "⬇️ Export CSV",
            data=data,
            file_name=filename,
            mime="text/csv",
            on_click=lambda: notify(run_async(
                components.transaction_flow.record_export(row_count, filename)
            )),
        )


def render_import(components: AppComponents, controller: TransactionTableController):
    uploaded = st.file_uploader("⬆️ Import CSV", type=["csv"], key="csv_import")
    if uploaded is None:
        return

    # file_uploader keeps the file across reruns; import each upload once
    if st.session_state.get("imported_file_id") == uploaded.file_id:
        return
    st.session_state.imported_file_id = uploaded.file_id

    with st.spinner("Importing transactions..."):
        result = run_async(controller.import_csv(uploaded.getvalue()))
    notify(result)
    st.rerun()


# =============================================================================
# STATUS
# =============================================================================

def render_status_page(components: AppComponents):
    """Render the status page."""
    st.title("⚙️ Status")

    st.markdown("### Connection Status")

    status = validate_all_settings()
    app_settings = get_settings().app

    services = [
        ("Firebase (Auth + Firestore)", "firebase"),
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application settings", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown(
        f"Auth backend: **{type(components.auth_provider).__name__}** "
        f"(configured: `{app_settings.auth_backend}`)  \n"
        f"Storage backend: **{type(components.store).__name__}** "
        f"(configured: `{app_settings.storage_backend}`)"
    )

    storage = components.audit_logger.storage
    if storage is not None:
        st.markdown("### Recent Activity")
        events = run_async(storage.get_recent_events(limit=20))
        if events:
            st.dataframe(
                pd.DataFrame([
                    {
                        "When": e.timestamp.isoformat(timespec="seconds"),
                        "Event": e.event_type.value,
                        "Severity": e.severity.value,
                        "Description": e.description,
                    }
                    for e in events
                ]),
                hide_index=True,
            )
        else:
            st.info("No activity yet.")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()

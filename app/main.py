"""
Streamlit Frontend for Expense Insights

This is the dashboard users open to log expenses and see where their
money went.

DESIGN PRINCIPLES:
1. Two headline numbers, one chart, one table
2. Clear error messages in simple language
3. Visual feedback for all operations
4. All styling lives here, never in the aggregation core

The page never reads records directly: it asks the flows, passing the
signed-in user explicitly.
"""

import asyncio
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional

import plotly.graph_objects as go
import streamlit as st

from expense_insights.audit import create_correlation_id
from expense_insights.config import get_settings, validate_all_settings
from expense_insights.identity import IdentityProvider, StaticIdentityProvider
from expense_insights.models.record import DailyCategoryMatrix
from expense_insights.models.user import IdentityUser
from expense_insights.orchestrator import (
    DashboardFlow,
    RecordFlow,
    UnauthenticatedError,
    create_app_components,
)
from expense_insights.services.storage import ConnectionError, StorageError


# Page configuration
st.set_page_config(
    page_title="Expense Insights",
    page_icon="💸",
    layout="wide",
    initial_sidebar_state="expanded",
)

CATEGORY_COLORS = [
    "rgba(54, 162, 235, 0.35)",
    "rgba(255, 99, 132, 0.35)",
    "rgba(255, 206, 86, 0.35)",
    "rgba(75, 192, 192, 0.35)",
    "rgba(153, 102, 255, 0.35)",
    "rgba(255, 159, 64, 0.35)",
]

CATEGORY_BORDERS = [
    "rgba(54, 162, 235, 1)",
    "rgba(255, 99, 132, 1)",
    "rgba(255, 206, 86, 1)",
    "rgba(75, 192, 192, 1)",
    "rgba(153, 102, 255, 1)",
    "rgba(255, 159, 64, 1)",
]

CATEGORY_CHOICES = [
    "Food", "Transport", "Rent", "Utilities", "Shopping",
    "Entertainment", "Health", "Other",
]


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class StreamlitIdentityProvider(IdentityProvider):
    """
    Reads the signed-in user from Streamlit's OIDC login.

    Falls back to the configured development user when login is not
    set up.
    """

    def __init__(self, fallback: IdentityProvider):
        self._fallback = fallback

    def current_user(self) -> Optional[IdentityUser]:
        user = st.user
        if user.get("is_logged_in"):
            user_id = user.get("sub") or user.get("email")
            if user_id:
                email = user.get("email")
                return IdentityUser(
                    id=user_id,
                    first_name=user.get("given_name"),
                    last_name=user.get("family_name"),
                    image_url=user.get("picture"),
                    email_addresses=[email] if email else [],
                )
        return self._fallback.current_user()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    dashboard_flow, record_flow, database = create_app_components(use_storage=True)
    if database is not None:
        try:
            run_async(database.init_schema())
        except ConnectionError as e:
            st.error(f"Database unavailable, using temporary storage: {e}")
            return create_app_components(use_storage=False)
    return dashboard_flow, record_flow, database


def format_amount(value: Decimal) -> str:
    symbol = get_settings().app.currency_symbol
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def build_daily_chart(matrix: DailyCategoryMatrix) -> go.Figure:
    """Stacked bars, one trace per category, labelled MM/DD."""
    labels = [f"{day[5:7]}/{day[8:10]}" for day in matrix.days]
    totals = matrix.day_totals()
    symbol = get_settings().app.currency_symbol

    fig = go.Figure()
    for index, (category, values) in enumerate(matrix.series().items()):
        fig.add_trace(go.Bar(
            name=category,
            x=matrix.days,
            y=[float(v) for v in values],
            marker=dict(
                color=CATEGORY_COLORS[index % len(CATEGORY_COLORS)],
                line=dict(color=CATEGORY_BORDERS[index % len(CATEGORY_BORDERS)], width=1),
            ),
            hovertemplate=f"{category}: {symbol}%{{y:.2f}}<extra></extra>",
        ))

    fig.update_layout(
        barmode="stack",
        hovermode="x unified",
        height=340,
        margin=dict(l=10, r=10, t=10, b=10),
        legend=dict(orientation="h", yanchor="bottom", y=1.02),
        xaxis=dict(
            title="Date",
            type="category",
            tickmode="array",
            tickvals=matrix.days,
            ticktext=labels,
            showgrid=False,
        ),
        yaxis=dict(title=f"Amount ({symbol})", tickprefix=symbol, rangemode="tozero"),
    )

    # Day totals above each stack
    fig.add_trace(go.Scatter(
        x=matrix.days,
        y=[float(totals[day]) for day in matrix.days],
        mode="markers",
        marker=dict(opacity=0),
        showlegend=False,
        hovertemplate=f"Total: {symbol}%{{y:.2f}}<extra></extra>",
    ))
    return fig


def main():
    """Main application entry point."""
    dashboard_flow, record_flow, database = get_components()
    identity_provider = StreamlitIdentityProvider(StaticIdentityProvider.from_settings())
    identity = identity_provider.current_user()

    st.sidebar.title("💸 Expense Insights")
    st.sidebar.markdown("---")

    if identity:
        st.sidebar.markdown(f"Signed in as **{identity.display_name or identity.id}**")
        if st.user.get("is_logged_in") and st.sidebar.button("Log out"):
            st.logout()
    else:
        st.sidebar.markdown("You are not signed in.")
        if st.sidebar.button("Log in", type="primary"):
            try:
                st.login()
            except Exception as e:
                st.sidebar.error(f"Login is not configured: {e}")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "➕ Add Expense", "⚙️ Settings"],
        index=0,
    )

    if page == "📊 Dashboard":
        render_dashboard_page(dashboard_flow, record_flow, identity)
    elif page == "➕ Add Expense":
        render_add_page(record_flow, identity)
    elif page == "⚙️ Settings":
        render_settings_page(database is not None)


def render_dashboard_page(
    dashboard_flow: DashboardFlow,
    record_flow: RecordFlow,
    identity: Optional[IdentityUser],
):
    """Render the summary numbers, the chart and recent records."""
    st.title("📊 Dashboard")

    view = run_async(dashboard_flow.load(identity, create_correlation_id()))

    if view.user and view.user.is_new:
        st.success(f"Welcome, {view.user.user.name or 'new user'}!")

    if not view.summary.ok:
        st.error(view.summary.error.value)
        return

    col1, col2 = st.columns(2)
    col1.metric("Total spent", format_amount(view.summary.total_amount))
    col2.metric("Days with records", view.summary.days_with_records)

    st.markdown("### Daily spend by category")
    if view.chart.is_empty:
        st.info("No expenses yet. Add one from the 'Add Expense' page.")
    else:
        st.plotly_chart(
            build_daily_chart(view.chart),
            use_container_width=True,
            config={"displayModeBar": False},
        )

    st.markdown("### Recent records")
    for record in view.recent_records:
        cols = st.columns([3, 2, 2, 2, 1])
        cols[0].write(record.text or "—")
        cols[1].write(record.category)
        cols[2].write(record.day_key)
        cols[3].write(format_amount(record.amount))
        if cols[4].button("🗑️", key=f"delete-{record.id}"):
            try:
                run_async(record_flow.delete_record(identity.id, record.id))
                st.rerun()
            except StorageError as e:
                st.error(f"Could not delete: {e}")


def render_add_page(record_flow: RecordFlow, identity: Optional[IdentityUser]):
    """Render the add-expense form."""
    st.title("➕ Add Expense")

    if identity is None:
        st.warning("Please sign in to record expenses.")
        return

    with st.form("add-expense", clear_on_submit=True):
        text = st.text_input("Description", placeholder="e.g., Groceries at the market")
        amount = st.number_input("Amount", min_value=0.0, step=0.01, format="%.2f")
        category = st.selectbox("Category", CATEGORY_CHOICES)
        spent_on = st.date_input("Date", value=date.today())
        submitted = st.form_submit_button("💾 Save", type="primary")

    if submitted:
        try:
            record = run_async(record_flow.add_record(
                user_id=identity.id,
                text=text,
                amount=Decimal(str(amount)),
                category=category,
                date=datetime.combine(spent_on, time.min, tzinfo=timezone.utc),
                correlation_id=create_correlation_id(),
                identity=identity,
            ))
            st.success(f"Saved {format_amount(record.amount)} for {record.category}.")
        except UnauthenticatedError:
            st.warning("Please sign in to record expenses.")
        except ValueError as e:
            st.error(str(e))
        except StorageError as e:
            st.error(f"Could not save: {e}")


def render_settings_page(database_connected: bool):
    """Render the settings page."""
    st.title("⚙️ Settings")

    app_settings = get_settings().app
    st.caption(
        f"Environment: {app_settings.app_environment}"
        f" · Log level: {app_settings.effective_log_level}"
    )

    st.markdown("### Connection Status")

    if database_connected:
        st.success("✅ Database - Connected")
    else:
        st.warning("⚠️ Database - Using temporary in-memory storage")

    status = validate_all_settings()
    for name, key in [("Database", "database"), ("Auth", "auth"), ("App", "app")]:
        if status.get(key, False):
            st.success(f"✅ {name} settings - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} settings - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()

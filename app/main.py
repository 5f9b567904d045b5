"""
Streamlit Frontend for Expense Tracker

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Numbers always shown with the configured currency symbol
3. Clear error messages in simple language
4. Visual feedback for all operations

Screens talk to view-models only. The entry and list view-models
live in st.session_state so each browser session keeps its form and
filters between reruns. The report view-model lives for one script
run and detaches from the shared store before the run ends.
"""

import asyncio
from datetime import date, datetime, time
from pathlib import Path

import streamlit as st

from expense_tracker.config import validate_all_settings
from expense_tracker.models.expense import to_epoch_ms
from expense_tracker.orchestrator import AppComponents, create_app_components
from expense_tracker.validation import sanitize_amount_input
from expense_tracker.viewmodels import (
    AmountChanged,
    CategoryChanged,
    DateChanged,
    ExportCompleted,
    ExportToCsv,
    ExportToPdf,
    FilterType,
    GroupBy,
    NotesChanged,
    ReceiptPicked,
    Refresh,
    ShareContentReady,
    ShareReport,
    ShowError,
    ShowToast,
    Submit,
    TitleChanged,
)


# Page configuration
st.set_page_config(
    page_title="Expense Tracker",
    page_icon="💸",
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
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
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
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    return create_app_components()


def main():
    """Main application entry point."""
    try:
        components = get_components()
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        st.stop()

    # Sidebar navigation
    st.sidebar.title("💸 Expense Tracker")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["➕ Add Expense", "📋 Expenses", "📊 Reports", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **How to use:**
        1. Add each expense as it happens
        2. Browse them by day or category
        3. Export or share a report
        """
    )

    # Route to appropriate page
    if page == "➕ Add Expense":
        render_entry_page(components)
    elif page == "📋 Expenses":
        render_list_page(components)
    elif page == "📊 Reports":
        render_report_page(components)
    elif page == "⚙️ Settings":
        render_settings_page(components)


def render_entry_page(components: AppComponents):
    """Render the add-expense form."""
    st.title("➕ Add Expense")

    if "entry_vm" not in st.session_state:
        st.session_state.entry_vm = components.entry_view_model()
    vm = st.session_state.entry_vm
    categories = components.settings.app.categories_list

    with st.form("expense_entry", clear_on_submit=True):
        title = st.text_input("Title *", placeholder="e.g., Team lunch")
        amount = st.text_input("Amount *", placeholder="e.g., 250.00")

        col1, col2 = st.columns(2)
        with col1:
            default_index = (
                categories.index(vm.state.category)
                if vm.state.category in categories else 0
            )
            category = st.selectbox("Category", options=categories, index=default_index)
        with col2:
            spent_on = st.date_input("Date", value=date.today())

        notes = st.text_area(
            "Notes",
            max_chars=components.settings.app.notes_max_length,
        )
        receipt = st.file_uploader("Receipt (optional)", type=["jpg", "jpeg", "png", "pdf"])

        submitted = st.form_submit_button("💾 Save Expense", type="primary")

    if not submitted:
        return

    async def submit():
        if spent_on != date.today():
            moment = datetime.combine(spent_on, time(12, 0), tzinfo=components.tz)
            await vm.dispatch(DateChanged(timestamp_ms=to_epoch_ms(moment)))
        await vm.dispatch(TitleChanged(value=title))
        await vm.dispatch(AmountChanged(value=amount.strip()))
        await vm.dispatch(CategoryChanged(value=category))
        await vm.dispatch(NotesChanged(value=notes))
        await vm.dispatch(ReceiptPicked(uri=receipt.name if receipt else None))
        return await vm.dispatch(Submit())

    if sanitize_amount_input(amount.strip()) is None:
        st.warning("Amount may only contain digits and a decimal point.")

    with st.spinner("Saving..."):
        record = run_async(submit())

    for event in vm.drain_events():
        if isinstance(event, ShowToast):
            if record is not None:
                st.success(f"✅ {event.message}")
            else:
                st.error(f"❌ {event.message}")

    if record is not None:
        st.markdown(f"""
        **Saved:** {record.title} · {components.formatter.money(record.amount)}
        · {record.category or "No category"}
        """)


def render_list_page(components: AppComponents):
    """Render the expense list."""
    st.title("📋 Expenses")

    if "list_vm" not in st.session_state:
        st.session_state.list_vm = components.list_view_model()
    vm = st.session_state.list_vm

    col1, col2, col3 = st.columns(3)
    with col1:
        filter_type = st.selectbox(
            "Show",
            options=list(FilterType),
            format_func=lambda f: {
                FilterType.TODAY: "Today",
                FilterType.CUSTOM_DATE: "Pick a date",
                FilterType.ALL_TIME: "All time",
            }[f],
        )
    with col2:
        picked = st.date_input(
            "Date",
            value=vm.today(),
            disabled=filter_type != FilterType.CUSTOM_DATE,
        )
    with col3:
        group_by = st.selectbox(
            "Group by",
            options=list(GroupBy),
            format_func=lambda g: "Nothing" if g == GroupBy.NONE else "Category",
        )

    state = run_async(vm.load(filter_type, picked, group_by))

    if state.error:
        st.error(f"Couldn't load expenses: {state.error}")

    m1, m2 = st.columns(2)
    m1.metric("Expenses", state.total_count)
    m2.metric("Total", components.formatter.money(state.total_amount))

    st.markdown("---")

    def render_rows(records, key_prefix):
        for record in records:
            c1, c2, c3, c4 = st.columns([4, 2, 2, 1])
            c1.markdown(f"**{record.title}**" + (f"  \n{record.notes}" if record.notes else ""))
            c2.markdown(components.formatter.money(record.amount))
            c3.markdown(record.date.astimezone(components.tz).strftime("%d %b %Y, %H:%M"))
            if c4.button("🗑️", key=f"{key_prefix}_{record.id}", help="Delete"):
                run_async(vm.delete(record))
                st.rerun()

    if state.group_by == GroupBy.CATEGORY:
        if not state.grouped_expenses:
            st.info("📋 No expenses for this selection.")
        for category, records in state.grouped_expenses.items():
            with st.expander(f"{category or 'No category'} ({len(records)})", expanded=True):
                render_rows(records, f"grp_{category}")
    else:
        if not state.expenses:
            st.info("📋 No expenses for this selection. Use 'Add Expense' to record one.")
        render_rows(state.expenses, "row")


def render_report_page(components: AppComponents):
    """Render the live report with export and share actions."""
    st.title("📊 Reports")

    options = components.settings.report.period_options_list
    current = st.session_state.get(
        "report_period_days", components.settings.report.default_period_days
    )
    period = st.selectbox(
        "Period",
        options=options,
        index=options.index(current) if current in options else 0,
        format_func=lambda d: f"Last {d} days",
    )
    st.session_state.report_period_days = period

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        refresh = st.button("🔄 Refresh")
    with col2:
        export_csv = st.button("📄 Export CSV")
    with col3:
        export_text = st.button("🖨️ Export Report")
    with col4:
        share = st.button("📤 Share")

    # One view-model per script run; its store subscription ends with the run
    vm = components.report_view_model(period)

    async def run_actions():
        async with vm.session():
            if refresh:
                await vm.dispatch(Refresh())
            if export_csv:
                await vm.dispatch(ExportToCsv())
            if export_text:
                await vm.dispatch(ExportToPdf())
            if share:
                await vm.dispatch(ShareReport())

    with st.spinner("Working..."):
        run_async(run_actions())

    for event in vm.drain_events():
        if isinstance(event, ShowError):
            st.error(f"❌ {event.message}")
        elif isinstance(event, ExportCompleted):
            st.success(f"✅ {event.format} saved as {event.file_name}")
            if event.locator and Path(event.locator).exists():
                st.download_button(
                    f"⬇️ Download {event.format}",
                    data=Path(event.locator).read_bytes(),
                    file_name=event.file_name,
                    key=f"download_{event.file_name}",
                )
        elif isinstance(event, ShareContentReady):
            st.session_state.share_content = event

    state = vm.state
    report = state.report
    if report is None:
        if state.is_loading:
            st.info("Loading report...")
        return

    if state.error:
        st.warning(f"Showing the last good report. Latest refresh failed: {state.error}")

    st.caption(report.report_period)
    m1, m2 = st.columns(2)
    m1.metric("Total Amount", components.formatter.money(report.total_amount))
    m2.metric("Total Expenses", report.total_expenses)

    st.markdown("### 📅 Daily Totals")
    st.bar_chart(
        {
            "date": [d.date.isoformat() for d in report.daily_totals],
            "amount": [float(d.total_amount) for d in report.daily_totals],
        },
        x="date",
        y="amount",
    )

    st.markdown("### 📂 Categories")
    if report.category_totals:
        st.table([
            {
                "Category": c.category,
                "Amount": components.formatter.money(c.total_amount),
                "Expenses": c.expense_count,
                "Share": f"{c.percentage:.1f}%",
            }
            for c in report.category_totals
        ])
    else:
        st.info("No expenses in this period.")

    if "share_content" in st.session_state:
        content = st.session_state.share_content
        with st.expander(f"📤 {content.subject}", expanded=True):
            st.code(content.content, language=None)
            c1, c2 = st.columns(2)
            if c1.button("💾 Save shared summary"):
                result = run_async(components.exporter.share_report(report))
                if result.success:
                    st.success(f"✅ Saved to {result.locator}")
                else:
                    st.error(f"❌ {result.error_message}")
            if c2.button("Close"):
                del st.session_state.share_content
                st.rerun()


def render_settings_page(components: AppComponents):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")

    status = validate_all_settings()

    sections = [
        ("Storage", "storage"),
        ("Reports", "report"),
        ("Application", "app"),
        ("Google Sheets (optional backend)", "google_sheets"),
    ]

    for name, key in sections:
        if status.get(key) is None:
            st.info(f"ℹ️ {name} - not in use")
        elif status[key]:
            st.success(f"✅ {name} - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Current Setup")
    st.markdown(f"**Record store:** {type(components.store).__name__}")
    st.markdown(f"**Timezone:** {components.tz}")
    st.markdown(f"**Exports folder:** {components.settings.report.export_dir}")
    st.markdown(
        "To change the configuration, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()

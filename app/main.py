"""
Streamlit Frontend for Bookkeeper

The dashboard a freelancer keeps open all day: income and expenses,
projects and clients, invoices/quotes with line items, and a calendar.

DESIGN PRINCIPLES:
1. The UI draws widgets and forwards gestures; all behaviour lives in
   the bookkeeper package
2. Every delete needs an explicit confirmation
3. Failures show a short notification; nothing crashes the page
4. A failed save keeps what was typed

Run with:  streamlit run app/main.py
"""

import asyncio
import json
from datetime import date
from decimal import Decimal

import pandas as pd
import plotly.graph_objects as go
import streamlit as st
from streamlit_calendar import calendar as calendar_widget

from bookkeeper.audit import configure_logging
from bookkeeper.config import get_settings, validate_all_settings
from bookkeeper.formatting import fmt_chf, to_decimal
from bookkeeper.models.records import DocumentType, IncomeStatus, ProjectStatus
from bookkeeper.orchestrator import (
    BookkeepingApp,
    create_app_components,
    create_store,
    seed_demo_data,
)
from bookkeeper.router import VIEW_TITLES, View
from bookkeeper.services.calendar import EditorState
from bookkeeper.services.forms import FormHandler, SubmitOutcome
from bookkeeper.services.loaders import EntityListLoader
from bookkeeper.services.notifications import NotificationLevel
from bookkeeper.services.storage import (
    CLIENTS,
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    PROJECTS,
    InMemoryRecordStore,
    RecordStore,
)


# Page configuration
st.set_page_config(
    page_title="Bookkeeper",
    page_icon="📒",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    div[data-testid="stMetricValue"] {
        font-size: 1.6em;
    }
    .totals-box {
        padding: 12px 16px;
        background-color: #f4f6f8;
        border-radius: 8px;
        text-align: right;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)

SETTINGS_PAGE = "settings"

NAV_LABELS = {
    View.DASHBOARD: "📊 Dashboard",
    View.INCOMES: "💰 Income",
    View.EXPENSES: "🧾 Expenses",
    View.PROJECTS: "📁 Projects",
    View.CLIENTS: "👥 Clients",
    View.DOCUMENTS: "📄 Documents",
    SETTINGS_PAGE: "⚙️ Settings",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_store() -> RecordStore:
    """Get or create the record store (cached, shared by all sessions)."""
    configure_logging(get_settings().app.log_level)
    store, offline = create_store(get_settings().app.use_memory_store)
    if offline and isinstance(store, InMemoryRecordStore) and not store.rows(CLIENTS):
        seed_demo_data(store)
    return store


def get_app() -> BookkeepingApp:
    """
    Get or create this session's components and boot them.

    Drafts, notifications, the calendar editor and in-flight guards
    belong to one browser session, so only the store is shared.
    """
    if "app" not in st.session_state:
        app = create_app_components(store=get_store())
        run_async(app.boot())
        st.session_state.app = app
    return st.session_state.app


def bump(key: str) -> None:
    """Increment a widget generation counter (a new key resets the widgets)."""
    st.session_state[key] = st.session_state.get(key, 0) + 1


def show_notifications(app: BookkeepingApp) -> None:
    for notification in app.notifier.drain():
        icon = "✅" if notification.level == NotificationLevel.SUCCESS else "⚠️"
        st.toast(notification.message, icon=icon)


def main():
    """Main application entry point."""
    app = get_app()

    # Sidebar navigation
    st.sidebar.title("📒 Bookkeeper")
    if app.offline:
        st.sidebar.caption("Offline mode (in-memory data)")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        list(NAV_LABELS),
        format_func=lambda p: NAV_LABELS[p],
        index=0,
    )

    st.sidebar.markdown("---")
    if st.sidebar.button("🔄 Refresh"):
        run_async(app.refresh())

    # A view is (re)loaded when it becomes active, not on every rerun
    if page != SETTINGS_PAGE and st.session_state.get("active_view") != page:
        run_async(app.router.activate(page))
    st.session_state.active_view = page

    if page == SETTINGS_PAGE:
        render_settings_page(app)
    elif page == View.DASHBOARD:
        render_dashboard_page(app)
    elif page == View.INCOMES:
        render_income_page(app)
    elif page == View.EXPENSES:
        render_expense_page(app)
    elif page == View.PROJECTS:
        render_project_page(app)
    elif page == View.CLIENTS:
        render_client_page(app)
    elif page == View.DOCUMENTS:
        render_document_page(app)

    show_notifications(app)


# =============================================================================
# DASHBOARD
# =============================================================================

def income_expense_figure(app: BookkeepingApp) -> go.Figure:
    """A new bar chart for the current summary (never mutated afterwards)."""
    chart = app.dashboard.summary.chart
    fig = go.Figure()
    fig.add_trace(go.Bar(name="Income", x=list(chart.labels), y=[float(v) for v in chart.income]))
    fig.add_trace(go.Bar(name="Expenses", x=list(chart.labels), y=[float(v) for v in chart.expense]))
    fig.update_layout(
        barmode="group",
        height=360,
        margin=dict(l=10, r=10, t=30, b=10),
        yaxis=dict(rangemode="tozero"),
        legend=dict(orientation="h"),
    )
    return fig


def render_dashboard_page(app: BookkeepingApp):
    st.title(VIEW_TITLES[View.DASHBOARD])
    summary = app.dashboard.summary
    kpis = summary.kpis()
    currency = get_settings().app.currency_label

    col1, col2, col3 = st.columns(3)
    col1.metric(f"Income this year ({currency})", kpis["year_income"])
    col2.metric(f"Expenses this year ({currency})", kpis["year_expense"])
    col3.metric(f"Profit this year ({currency})", kpis["year_profit"])

    col1, col2, col3 = st.columns(3)
    col1.metric(f"Income {summary.month_key} ({currency})", kpis["month_income"])
    col2.metric(f"Expenses {summary.month_key} ({currency})", kpis["month_expense"])
    col3.metric(f"Profit {summary.month_key} ({currency})", kpis["month_profit"])

    st.markdown("---")
    st.subheader("Income vs. expenses")
    if summary.loaded:
        st.plotly_chart(income_expense_figure(app), use_container_width=True)
    else:
        st.info("No overview data loaded yet.")

    st.markdown("---")
    st.subheader("Calendar")
    render_calendar(app)


def render_calendar(app: BookkeepingApp):
    controller = app.calendar
    result = calendar_widget(
        events=controller.widget_events(),
        options={
            "initialView": "dayGridMonth",
            "height": 420,
            "selectable": True,
            "editable": True,
            "dayMaxEvents": True,
            "headerToolbar": {
                "left": "prev,next today",
                "center": "title",
                "right": "dayGridMonth,timeGridWeek,timeGridDay",
            },
        },
        callbacks=["dateClick", "select", "eventClick", "eventChange"],
        key=f"calendar-{st.session_state.get('calendar_generation', 0)}",
    )
    handle_calendar_callback(app, result)

    if controller.state == EditorState.CREATING:
        with st.form("event-create"):
            title = st.text_input("Event title")
            save = st.form_submit_button("Save event", type="primary")
            cancel = st.form_submit_button("Cancel")
        if save:
            run_async(controller.confirm_create(title))
            st.rerun()
        if cancel:
            controller.cancel()
            st.rerun()

    elif controller.state == EditorState.EDITING and controller.editing:
        entry = controller.editing
        with st.form("event-edit"):
            title = st.text_input("Event title", value=entry.title)
            rename = st.form_submit_button("Rename", type="primary")
            delete = st.form_submit_button("🗑️ Delete event")
            cancel = st.form_submit_button("Cancel")
        if rename:
            run_async(controller.rename(title))
            st.rerun()
        if delete:
            controller.request_delete()
            st.rerun()
        if cancel:
            controller.cancel()
            st.rerun()

    elif controller.state == EditorState.CONFIRMING_DELETE and controller.editing:
        st.warning(f"Really delete \"{controller.editing.title}\"?")
        col1, col2 = st.columns(2)
        if col1.button("Delete", type="primary", key="event-delete-confirm"):
            run_async(controller.confirm_delete())
            st.rerun()
        if col2.button("Keep", key="event-delete-cancel"):
            controller.cancel()
            st.rerun()


def handle_calendar_callback(app: BookkeepingApp, result):
    """Translate one widget callback into a controller call (once)."""
    if not result or "callback" not in result:
        return
    signature = json.dumps(result, sort_keys=True, default=str)
    if st.session_state.get("calendar_handled") == signature:
        return
    st.session_state.calendar_handled = signature

    controller = app.calendar
    callback = result["callback"]
    payload = result.get(callback) or {}

    if callback == "dateClick":
        controller.begin_create(payload["date"])
    elif callback == "select":
        controller.begin_create(payload["start"], payload.get("end"), selection=True)
    elif callback == "eventClick":
        controller.begin_edit(payload["event"]["id"])
    elif callback == "eventChange":
        event, old = payload["event"], payload.get("oldEvent") or {}
        if event.get("start") != old.get("start"):
            ok = run_async(controller.move(event["id"], event["start"], event.get("end")))
        else:
            ok = run_async(controller.resize(event["id"], event["start"], event.get("end")))
        if not ok:
            # Remount the widget so it shows the restored position
            bump("calendar_generation")
    st.rerun()


# =============================================================================
# LISTS AND FORMS
# =============================================================================

def select_reference(app: BookkeepingApp, label: str, source: str, include_empty: bool = True):
    choices = app.catalog.options(source, include_empty=include_empty)
    if not choices:
        st.selectbox(label, ["(none available)"], disabled=True)
        return None
    choice = st.selectbox(label, choices, format_func=lambda c: c[1])
    return choice[0]


def submit_form(handler: FormHandler, fields: dict, generation_key: str):
    """Submit and reset the widgets only if the record was saved."""
    result = run_async(handler.submit(fields))
    if result.outcome == SubmitOutcome.SAVED:
        bump(generation_key)
        st.rerun()
    elif result.outcome == SubmitOutcome.BUSY:
        st.info("Still saving the previous entry…")
    return result


def render_table(app: BookkeepingApp, loader: EntityListLoader):
    view = loader.view
    if not view.loaded:
        st.info("Nothing loaded yet. Use 🔄 Refresh to try again.")
        return
    if not view.rows:
        st.info("No entries yet.")
        return

    st.dataframe(view.as_dicts(), use_container_width=True, hide_index=True)

    with st.expander("🗑️ Delete an entry"):
        labels = {row.record_id: " · ".join(c for c in row.cells if c) for row in view.rows}
        record_id = st.selectbox(
            "Entry",
            list(labels),
            format_func=lambda rid: labels[rid],
            key=f"delete-select-{loader.name}",
        )
        pending_key = f"delete-pending-{loader.name}"
        if st.session_state.get(pending_key) != record_id:
            if st.button("Delete…", key=f"delete-{loader.name}"):
                st.session_state[pending_key] = record_id
                st.rerun()
        else:
            st.warning(loader.confirm_message)
            col1, col2 = st.columns(2)
            if col1.button("Yes, delete", type="primary", key=f"delete-yes-{loader.name}"):
                st.session_state[pending_key] = None
                run_async(loader.delete(record_id, confirmed=True))
                st.rerun()
            if col2.button("Cancel", key=f"delete-no-{loader.name}"):
                st.session_state[pending_key] = None
                st.rerun()


def render_income_page(app: BookkeepingApp):
    st.title(VIEW_TITLES[View.INCOMES])
    handler = app.forms[View.INCOMES]
    generation = st.session_state.get("income-form", 0)

    with st.expander("➕ New income", expanded=True):
        with st.form(f"income-form-{generation}"):
            col1, col2, col3 = st.columns(3)
            with col1:
                tx_date = st.date_input("Date", value=date.today())
                amount = st.number_input("Amount (CHF)", min_value=0.0, step=10.0, format="%.2f")
            with col2:
                project_id = select_reference(app, "Project", PROJECTS)
                client_id = select_reference(app, "Client", CLIENTS)
            with col3:
                category_id = select_reference(app, "Category", INCOME_CATEGORIES, include_empty=False)
                status = st.selectbox("Status", list(IncomeStatus), format_func=lambda s: s.value)
            description = st.text_input("Description")
            submitted = st.form_submit_button("Save income", type="primary")

        if submitted:
            submit_form(handler, {
                "tx_date": tx_date,
                "project_id": project_id,
                "client_id": client_id,
                "category_id": category_id,
                "amount_chf": Decimal(str(amount)),
                "status": status,
                "description": description,
            }, "income-form")

    render_table(app, app.loaders[View.INCOMES])


def render_expense_page(app: BookkeepingApp):
    st.title(VIEW_TITLES[View.EXPENSES])
    handler = app.forms[View.EXPENSES]
    generation = st.session_state.get("expense-form", 0)

    with st.expander("➕ New expense", expanded=True):
        with st.form(f"expense-form-{generation}"):
            col1, col2, col3 = st.columns(3)
            with col1:
                tx_date = st.date_input("Date", value=date.today())
                amount = st.number_input("Amount (CHF)", min_value=0.0, step=10.0, format="%.2f")
            with col2:
                project_id = select_reference(app, "Project", PROJECTS)
                vendor = st.text_input("Vendor")
            with col3:
                category_id = select_reference(app, "Category", EXPENSE_CATEGORIES, include_empty=False)
            description = st.text_input("Description")
            submitted = st.form_submit_button("Save expense", type="primary")

        if submitted:
            submit_form(handler, {
                "tx_date": tx_date,
                "project_id": project_id,
                "vendor": vendor,
                "category_id": category_id,
                "amount_chf": Decimal(str(amount)),
                "description": description,
            }, "expense-form")

    render_table(app, app.loaders[View.EXPENSES])


def render_project_page(app: BookkeepingApp):
    st.title(VIEW_TITLES[View.PROJECTS])
    handler = app.forms[View.PROJECTS]
    generation = st.session_state.get("project-form", 0)

    with st.expander("➕ New project", expanded=True):
        with st.form(f"project-form-{generation}"):
            col1, col2, col3 = st.columns(3)
            with col1:
                name = st.text_input("Name *")
                client_id = select_reference(app, "Client", CLIENTS)
            with col2:
                start_date = st.date_input("Start", value=None)
                end_date = st.date_input("End", value=None)
            with col3:
                status = st.selectbox(
                    "Status",
                    list(ProjectStatus),
                    index=list(ProjectStatus).index(ProjectStatus.ACTIVE),
                    format_func=lambda s: s.value.replace("_", " "),
                )
                budget = st.text_input("Budget (CHF)")
            notes = st.text_area("Notes")
            submitted = st.form_submit_button("Save project", type="primary")

        if submitted:
            submit_form(handler, {
                "name": name,
                "client_id": client_id,
                "start_date": start_date,
                "end_date": end_date,
                "status": status,
                "budget_chf": budget,
                "notes": notes,
            }, "project-form")

    render_table(app, app.loaders[View.PROJECTS])


def render_client_page(app: BookkeepingApp):
    st.title(VIEW_TITLES[View.CLIENTS])
    handler = app.forms[View.CLIENTS]
    generation = st.session_state.get("client-form", 0)

    with st.expander("➕ New client", expanded=True):
        with st.form(f"client-form-{generation}"):
            col1, col2 = st.columns(2)
            with col1:
                name = st.text_input("Name *")
                email = st.text_input("Email")
                phone = st.text_input("Phone")
            with col2:
                billing_address = st.text_area("Billing address")
                vat_number = st.text_input("VAT number")
            submitted = st.form_submit_button("Save client", type="primary")

        if submitted:
            submit_form(handler, {
                "name": name,
                "email": email,
                "phone": phone,
                "billing_address": billing_address,
                "vat_number": vat_number,
            }, "client-form")

    render_table(app, app.loaders[View.CLIENTS])


def sync_line_items(draft, edited: pd.DataFrame) -> None:
    """Mirror the data editor's rows into the document draft."""
    records = edited.to_dict("records")
    while len(draft.rows) < len(records):
        draft.add_row()
    while len(draft.rows) > len(records):
        draft.remove_row(len(draft.rows) - 1)
    for index, record in enumerate(records):
        description = record.get("description")
        quantity = record.get("quantity")
        unit_price = record.get("unit_price")
        draft.update_row(
            index,
            description=description if isinstance(description, str) else "",
            quantity="" if quantity is None else quantity,
            unit_price="" if unit_price is None else unit_price,
        )


def render_document_page(app: BookkeepingApp):
    st.title(VIEW_TITLES[View.DOCUMENTS])
    handler = app.document_form
    generation = st.session_state.get("document-form", 0)

    with st.expander("➕ New invoice / quote", expanded=True):
        st.markdown("**Line items**")
        items = pd.DataFrame(
            [
                {
                    "description": row.description,
                    "quantity": float(row.qty),
                    "unit_price": float(row.price),
                }
                for row in handler.draft.rows
            ],
            columns=["description", "quantity", "unit_price"],
        )
        edited = st.data_editor(
            items,
            num_rows="dynamic",
            use_container_width=True,
            column_config={
                "description": st.column_config.TextColumn("Description"),
                "quantity": st.column_config.NumberColumn("Qty", min_value=0.0, step=1.0),
                "unit_price": st.column_config.NumberColumn("Unit price", min_value=0.0, format="%.2f"),
            },
            key=f"document-items-{generation}",
        )
        sync_line_items(handler.draft, edited)

        tax_rate = st.number_input(
            "Tax rate (%)",
            min_value=0.0,
            max_value=100.0,
            step=0.1,
            value=float(to_decimal(handler.draft.tax_rate) or 0),
            key=f"document-tax-{generation}",
        )
        handler.draft.set_tax_rate(Decimal(str(tax_rate)))

        totals = handler.totals
        st.markdown(f"""
        <div class="totals-box">
            Subtotal: <strong>{fmt_chf(totals.subtotal)}</strong><br/>
            Tax: <strong>{fmt_chf(totals.tax)}</strong><br/>
            Total: <strong>{fmt_chf(totals.total)}</strong>
        </div>
        """, unsafe_allow_html=True)

        with st.form(f"document-form-{generation}"):
            col1, col2, col3 = st.columns(3)
            with col1:
                doc_type = st.selectbox("Type", list(DocumentType), format_func=lambda t: t.value)
                client_id = select_reference(app, "Client *", CLIENTS, include_empty=False)
            with col2:
                project_id = select_reference(app, "Project", PROJECTS)
                issue_date = st.date_input("Issue date", value=date.today())
            with col3:
                due_date = st.date_input("Due date", value=None)
            notes = st.text_area("Notes")
            submitted = st.form_submit_button("Save document", type="primary")

        if submitted:
            submit_form(handler, {
                "doc_type": doc_type,
                "client_id": client_id,
                "project_id": project_id,
                "issue_date": issue_date,
                "due_date": due_date,
                "tax_rate": handler.draft.tax_rate,
                "notes": notes,
            }, "document-form")

    render_table(app, app.loaders[View.DOCUMENTS])


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page(app: BookkeepingApp):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Supabase (Storage)", "supabase"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if app.offline:
        st.warning("Running offline: data lives in memory and is lost on restart.")

    st.markdown("---")
    st.markdown("### Recent activity")
    events = app.audit_logger.recent_events
    if events:
        st.dataframe(
            [
                {
                    "Time": e.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                    "Event": e.event_type.value,
                    "Collection": e.collection or "",
                    "Details": e.error_message or e.description,
                }
                for e in events[:50]
            ],
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.info("No activity yet.")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your Supabase "
        "project URL and anon key. See `.env.example` for the required variables."
    )
    st.caption(f"Environment: {get_settings().app.app_environment}")


if __name__ == "__main__":
    main()

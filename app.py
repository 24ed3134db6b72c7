"""
app.py
Streamlit Church Tithing System (entry, directory, reconciliation, reports, import/export).
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
from datetime import date

import pandas as pd
import streamlit as st

import auth
import config
import dates
import db
import exporter
import importer
import reconcile
import report
import utils
from errors import ImportFormatError, ValidationError
from models import FELLOWSHIPS, MemberStatus, PaymentMethod, fellowship_pastor
from store import DataStore

config.configure_logging()
logger = logging.getLogger(__name__)

st.set_page_config(page_title="Tithe Management", layout="wide")


def init_once():
    # Initialize DB + default supervisor if needed
    default_hash = auth.hash_password(config.DEFAULT_ADMIN_PASSWORD)
    db.init_db(default_hash)


def require_login():
    if "officer" not in st.session_state:
        st.session_state.officer = None


def data() -> DataStore:
    """Per-session data state, fetched on first use."""
    if "data" not in st.session_state:
        st.session_state.data = DataStore()
    ds = st.session_state.data
    if not ds.loaded:
        ds.fetch()
    return ds


def logout():
    if "data" in st.session_state:
        st.session_state.data.teardown()
        del st.session_state["data"]
    st.session_state.officer = None
    st.success("Logged out.")


def show_result(res, success_msg: str) -> bool:
    if res.success:
        st.success(success_msg)
        return True
    st.error(res.error)
    return False


def login_screen():
    st.title("🔐 Tithe Department Login")

    col1, col2 = st.columns([1, 1])
    with col1:
        username = st.text_input("Username", value="admin")
        password = st.text_input("Password", type="password")
        if st.button("Login", type="primary"):
            officer = auth.authenticate(username.strip(), password)
            if officer:
                st.session_state.officer = officer
                st.rerun()
            else:
                st.error("Invalid username or password.")

    with col2:
        st.info(
            "First run creates a default supervisor:\n\n"
            "- username: **admin**\n"
            "- password: see TITHE_DEFAULT_ADMIN_PASSWORD (**admin123** if unset)\n\n"
            "You will be forced to change it on first login."
        )


def force_change_password_screen():
    st.title("⚠️ Change Password (Required)")

    st.warning("You must change the default password before using the app.")
    new1 = st.text_input("New password", type="password")
    new2 = st.text_input("Confirm new password", type="password")

    if st.button("Update password", type="primary"):
        if len(new1) < 6:
            st.error("Password must be at least 6 characters.")
            return
        if new1 != new2:
            st.error("Passwords do not match.")
            return
        auth.change_password(st.session_state.officer.username, new1)
        st.success("Password updated. You can continue.")
        st.rerun()


def period_selector(key: str, weeks: list | None = None) -> tuple[int, str, int | str]:
    c1, c2, c3 = st.columns(3)
    with c1:
        year = st.number_input("Year", min_value=2000, max_value=2100, value=date.today().year, key=f"{key}_year")
    with c2:
        month = st.selectbox("Month", dates.MONTHS, index=date.today().month - 1, key=f"{key}_month")
    with c3:
        week = st.selectbox("Week", weeks or ["All", 1, 2, 3, 4, 5], key=f"{key}_week")
    return int(year), month, week


# ---------- pages ----------

def dashboard_page():
    st.header("📊 Dashboard")
    ds = data()
    batch = ds.active_batch
    summary = utils.dashboard_summary(ds.transactions, len(ds.members), batch.id if batch else None)

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Members", summary["members"])
    c2.metric("Today's collection", utils.format_currency(summary["today_total"]))
    c3.metric("Current batch total", utils.format_currency(summary["batch_total"]))
    c4.metric("Batch status", batch.status if batch else "-")

    st.divider()

    st.subheader("Current batch by payment method")
    st.bar_chart(pd.DataFrame({"amount": summary["by_method"]}))

    st.subheader("Collection by fellowship (all time)")
    st.dataframe(utils.fellowship_totals(ds.transactions).drop(columns=["color"]), use_container_width=True, hide_index=True)


def entry_page():
    st.header("📝 Tithe Entry")
    ds = data()
    officer = st.session_state.officer
    batch = ds.active_batch

    st.subheader("Session")
    year, month, week = period_selector("entry", weeks=[1, 2, 3, 4, 5])
    stamp = dates.sunday_of(year, month, week)
    st.caption(f"Recording for Sunday {stamp[:10]} in batch {batch.id} ({batch.status})")
    if batch.status != "OPEN":
        st.warning("The current batch is being counted; entry is frozen until it is finalized.")

    st.divider()

    search = st.text_input("Search member (name or phone)")
    matches = ds.search_members(search)
    member_id = None
    if matches:
        options = {f"{m.name} ({m.phone}) - {m.fellowship}": m.id for m in matches}
        member_id = options[st.selectbox("Member", list(options.keys()))]
    elif len(search.strip()) > 1:
        st.caption("No match. Quick-add this person:")
        c1, c2, c3 = st.columns(3)
        with c1:
            qa_phone = st.text_input("Phone (optional)", key="qa_phone")
        with c2:
            qa_fellowship = st.selectbox("Fellowship", FELLOWSHIPS, key="qa_fellowship")
        with c3:
            if st.button("Quick add"):
                res = ds.quick_add_member(search.strip(), qa_phone, qa_fellowship)
                if show_result(res, f"Added {search.strip()} (provisional)."):
                    st.rerun()

    c1, c2 = st.columns(2)
    with c1:
        amount = st.text_input("Amount", value="")
    with c2:
        method = st.selectbox("Method", [m.value for m in PaymentMethod])

    b1, b2 = st.columns(2)
    with b1:
        if st.button("Record", type="primary", disabled=batch.status != "OPEN"):
            res = ds.add_transaction(member_id, amount, method, stamp, officer)
            if show_result(res, "Recorded."):
                st.rerun()
    with b2:
        if st.button("Undo last entry", disabled=batch.status != "OPEN"):
            if show_result(ds.undo_last_transaction(), "Last entry removed."):
                st.rerun()

    st.divider()

    st.subheader("Transactions")
    with st.expander("Filters"):
        f1, f2, f3 = st.columns(3)
        with f1:
            f_method = st.selectbox("Method", ["ALL"] + [m.value for m in PaymentMethod], key="f_method")
            f_fellowship = st.selectbox("Fellowship", ["ALL"] + FELLOWSHIPS, key="f_fellowship")
        with f2:
            f_min = st.number_input("Min amount", min_value=0.0, value=0.0, key="f_min")
            f_max = st.number_input("Max amount (0 = no limit)", min_value=0.0, value=0.0, key="f_max")
        with f3:
            f_start = st.date_input("From", value=None, key="f_start")
            f_end = st.date_input("To", value=None, key="f_end")

    rows = ds.filter_transactions(
        method=None if f_method == "ALL" else f_method,
        fellowship=None if f_fellowship == "ALL" else f_fellowship,
        min_amount=f_min or None,
        max_amount=f_max or None,
        start_date=f_start.isoformat() if f_start else None,
        end_date=f_end.isoformat() if f_end else None,
    )
    df = utils.transactions_frame(rows)
    st.dataframe(df.drop(columns=["year", "month", "week"]), use_container_width=True, hide_index=True)

    if rows:
        del_options = {f"{t.member_name} {utils.format_currency(t.amount)} {t.day} ({t.id})": t.id for t in rows}
        c1, c2 = st.columns([3, 1])
        with c1:
            chosen = st.selectbox("Delete a transaction", ["(none)"] + list(del_options.keys()))
        status = {b.id: b.status for b in ds.batches}
        chosen_id = del_options.get(chosen)
        chosen_txn = next((t for t in rows if t.id == chosen_id), None)
        locked = chosen_txn is not None and status.get(chosen_txn.batch_id, "OPEN") != "OPEN"
        if locked:
            st.caption("That transaction's batch is no longer open; it cannot be deleted.")
        with c2:
            if st.button("Delete", disabled=chosen == "(none)" or locked):
                if show_result(ds.delete_transaction(chosen_id), "Transaction deleted."):
                    st.rerun()


def member_form(existing=None):
    ds = data()
    if existing:
        st.subheader(f"✏️ Edit Member ({existing.id})")
    else:
        st.subheader("➕ Add Member")

    col1, col2 = st.columns(2)
    with col1:
        name = st.text_input("Full name", value=(existing.name if existing else ""))
        phone = st.text_input("Phone", value=(existing.phone if existing else ""))
    with col2:
        fellowship = st.selectbox(
            "Fellowship",
            FELLOWSHIPS,
            index=(FELLOWSHIPS.index(existing.fellowship) if existing and existing.fellowship in FELLOWSHIPS else 0),
        )
        pastor = fellowship_pastor(fellowship)
        if pastor:
            st.caption(f"Pastor: {pastor}")
        statuses = [s.value for s in MemberStatus]
        status = st.selectbox("Status", statuses, index=(statuses.index(existing.status) if existing else 0))

    errors = utils.validate_member_inputs(name, phone, fellowship, status)
    for e in errors:
        st.error(e)

    if st.button("Save", type="primary", disabled=bool(errors)):
        if existing:
            res = ds.update_member(existing.id, name, phone, fellowship, status)
            ok = show_result(res, "Member updated.")
        else:
            res = ds.add_member(name, phone, fellowship, status)
            ok = show_result(res, "Member added.")
        if ok:
            st.session_state.edit_member_id = None
            st.rerun()


def directory_page():
    st.header("👥 Member Directory")
    ds = data()

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search (name/phone)")
        fellowship_filter = st.selectbox("Fellowship", ["All"] + FELLOWSHIPS)

    members = list(ds.members.values())
    if search.strip():
        members = ds.search_members(search) or [m for m in members if search.strip() in m.phone]
    if fellowship_filter != "All":
        members = [m for m in members if m.fellowship == fellowship_filter]

    df = pd.DataFrame([m.to_row() for m in members]) if members else pd.DataFrame(columns=[
        "id", "name", "phone", "fellowship", "status", "ytd_total", "last_gift_date"
    ])
    st.dataframe(df, use_container_width=True, hide_index=True)

    st.divider()

    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Select member")
        selected_id = st.selectbox("Member ID", options=["(none)"] + [m.id for m in members])

    with colB:
        if selected_id != "(none)":
            st.subheader("Member actions")
            c1, c2 = st.columns(2)
            with c1:
                if st.button("Edit"):
                    st.session_state.edit_member_id = selected_id
                    st.rerun()
            with c2:
                delete_confirm = st.checkbox("Confirm delete (removes their transactions too)", value=False, key="del_confirm")
                if st.button("Delete", type="secondary", disabled=not delete_confirm):
                    if show_result(ds.delete_member(selected_id), "Member deleted."):
                        st.rerun()
            history = ds.member_transactions(selected_id)
            if history:
                st.dataframe(utils.transactions_frame(history)[["date", "amount", "method", "batch_id"]], hide_index=True)
            else:
                st.caption("No transactions for this member yet.")

    st.divider()

    edit_id = st.session_state.get("edit_member_id")
    existing = ds.get_member(edit_id) if edit_id else None
    if existing:
        member_form(existing=existing)
        if st.button("Cancel edit"):
            st.session_state.edit_member_id = None
            st.rerun()
    else:
        member_form(existing=None)


def reconcile_page():
    st.header("🧮 Cash Reconciliation")
    ds = data()
    batch = ds.active_batch
    officer = st.session_state.officer
    txns = ds.batch_transactions(batch.id)

    st.caption(f"Batch {batch.id} - status {batch.status}")
    if batch.status == "OPEN":
        st.info("Entry is still open. Start counting to freeze entry before finalizing.")
        if st.button("Start counting", type="primary"):
            if show_result(ds.start_counting(), "Entry frozen; count the cash."):
                st.rerun()

    counts = {}
    cols = st.columns(4)
    for i, denom in enumerate(reconcile.DENOMINATIONS):
        with cols[i % 4]:
            counts[denom] = int(st.number_input(f"{config.CURRENCY}{denom} ×", min_value=0, value=0, step=1, key=f"denom_{denom}"))

    result = reconcile.reconcile(txns, counts)
    c1, c2, c3 = st.columns(3)
    c1.metric("System expected cash", utils.format_currency(result.system_cash))
    c2.metric("Physical cash", utils.format_currency(result.physical_cash))
    c3.metric("Variance", f"{result.variance:+,.2f}")

    if result.is_balanced:
        st.success("BALANCED")
    else:
        st.error(result.message)

    if st.button("Finalize & close batch", disabled=(batch.status != "COUNTING" or not result.is_balanced)):
        if show_result(ds.finalize_batch(counts, officer), "Batch finalized. A new batch is open for entry."):
            st.rerun()
    if not result.is_balanced:
        st.caption("Cannot finalize while variance exists.")

    st.divider()
    st.subheader("Batches")
    st.dataframe(pd.DataFrame([b.to_row() for b in ds.batches]), use_container_width=True, hide_index=True)
    finalized = [b.id for b in ds.batches if b.status == "FINALIZED"]
    if finalized:
        c1, c2 = st.columns([3, 1])
        with c1:
            to_sync = st.selectbox("Mark as synced", finalized)
        with c2:
            if st.button("Mark synced"):
                if show_result(ds.mark_synced(to_sync), f"{to_sync} synced."):
                    st.rerun()


def analytics_page():
    st.header("📈 Analytics")
    ds = data()

    year, month, week = period_selector("analytics")
    chart = utils.fellowship_weekly_chart_data(ds.transactions, year, month)
    chart_df = pd.DataFrame(chart).set_index("name")
    if week != "All":
        chart_df = chart_df[[f"week{week}"]]
    st.subheader(f"{month.title()} {year} by fellowship")
    st.bar_chart(chart_df)

    st.subheader(f"Monthly totals {year}")
    st.bar_chart(utils.monthly_totals(ds.transactions, year).set_index("month"))

    st.subheader("Fellowship totals (all time)")
    st.bar_chart(utils.fellowship_totals(ds.transactions), x="fellowship", y="amount", color="color")

    st.divider()
    st.subheader("PDF report")
    df = utils.transactions_frame(ds.transactions)
    mask = (df["year"] == year) & (df["month"] == month)
    if week != "All":
        mask &= df["week"] == week
    ids = set(df[mask]["id"])
    period_txns = [t for t in ds.transactions if t.id in ids]
    period = {"year": str(year), "month": month, "week": str(week)}
    if st.button("Build PDF"):
        st.session_state.report_pdf = report.build_pdf_report(period_txns, period, chart)
        st.session_state.report_name = report.report_file_name(period)
    if st.session_state.get("report_pdf"):
        st.download_button(
            "Download report",
            data=st.session_state.report_pdf,
            file_name=st.session_state.report_name,
            mime="application/pdf",
        )


def admin_page():
    st.header("🗄️ Administration")
    ds = data()

    st.subheader("Legacy data import")
    upload = st.file_uploader("Tithe workbook (.xlsx)", type=["xlsx"])
    year = st.number_input("Year", min_value=2000, max_value=2100, value=date.today().year, key="import_year")
    if upload and st.button("Preview"):
        try:
            st.session_state.import_preview = importer.parse_workbook(upload, int(year))
        except (ImportFormatError, ValidationError) as e:
            st.error(str(e))

    preview = st.session_state.get("import_preview")
    if preview:
        c1, c2 = st.columns(2)
        c1.metric("Members", len(preview.members))
        c2.metric("Transactions", len(preview.transactions))
        shown, more = utils.bounded_warnings(preview.warnings)
        for w in shown:
            st.warning(w)
        if more:
            st.caption(f"+{more} more warnings")
        if st.button("Import", type="primary"):
            res = ds.import_data(preview.members, preview.transactions)
            if res.success:
                st.session_state.import_preview = None
                st.success(
                    f"Imported {res.value['members']} members and {res.value['transactions']} transactions "
                    f"({res.value['merged']} duplicate records merged)."
                )
            else:
                st.error(res.error)

    st.divider()

    st.subheader("Export workbook")
    ex_year = st.number_input("Year", min_value=2000, max_value=2100, value=date.today().year, key="export_year")
    st.download_button(
        "Download tithing workbook",
        data=exporter.export_to_bytes(list(ds.members.values()), ds.transactions, int(ex_year)),
        file_name=exporter.export_file_name(int(ex_year)),
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )

    st.subheader("CSV downloads")
    c1, c2 = st.columns(2)
    with c1:
        st.download_button("members.csv", data=utils.members_to_csv_bytes(ds.members.values()), file_name="members.csv", mime="text/csv")
    with c2:
        st.download_button("transactions.csv", data=utils.transactions_to_csv_bytes(ds.transactions), file_name="transactions.csv", mime="text/csv")

    st.divider()

    st.subheader("Maintenance")
    if st.button("Recompute YTD totals"):
        if show_result(ds.recompute_ytd(), f"YTD totals rebuilt for {ds.fiscal_year}."):
            st.rerun()
    if st.button("Reload from database"):
        ds.fetch()
        st.rerun()


def settings_page():
    st.header("⚙️ Settings")
    officer = st.session_state.officer

    st.subheader("Change password")
    p1 = st.text_input("New password", type="password")
    p2 = st.text_input("Confirm new password", type="password")
    if st.button("Update password", type="primary"):
        if len(p1) < 6:
            st.error("Password must be at least 6 characters.")
        elif p1 != p2:
            st.error("Passwords do not match.")
        else:
            auth.change_password(officer.username, p1)
            st.success("Password updated.")

    st.divider()

    st.subheader("Add officer")
    c1, c2 = st.columns(2)
    with c1:
        new_user = st.text_input("Username", key="new_officer_user")
        new_name = st.text_input("Name", key="new_officer_name")
    with c2:
        new_pw = st.text_input("Password", type="password", key="new_officer_pw")
        new_role = st.selectbox("Role", ["OFFICER", "SUPERVISOR"], key="new_officer_role")
    if st.button("Create officer"):
        try:
            auth.create_officer(new_user, new_name, new_pw, new_role)
            st.success(f"Officer {new_user} created.")
        except ValidationError as e:
            st.error(str(e))

    st.divider()

    st.subheader("Sample data")
    st.caption("Insert 4 sample members + a gift each into the current batch (adds new rows each run).")
    if st.button("Insert sample data"):
        utils.insert_sample_data(data())
        st.success("Sample data inserted.")
        st.rerun()


def main_app():
    officer = st.session_state.officer
    st.sidebar.title("⛪ Tithe System")
    st.sidebar.caption(f"Logged in as: {officer.name} ({officer.role})")

    pages = ["Dashboard", "Entry", "Directory", "Reconcile", "Analytics", "Admin", "Settings"]
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    if st.session_state.page == "Dashboard":
        dashboard_page()
    elif st.session_state.page == "Entry":
        entry_page()
    elif st.session_state.page == "Directory":
        directory_page()
    elif st.session_state.page == "Reconcile":
        reconcile_page()
    elif st.session_state.page == "Analytics":
        analytics_page()
    elif st.session_state.page == "Admin":
        admin_page()
    elif st.session_state.page == "Settings":
        settings_page()


# --------- App entry ---------

def run():
    init_once()
    require_login()

    if not st.session_state.officer:
        login_screen()
        return

    # Force password change on first login after DB creation
    if db.is_force_password_change():
        force_change_password_screen()
        return

    main_app()


if __name__ == "__main__":
    run()

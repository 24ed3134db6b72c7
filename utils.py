"""
utils.py
Validation, formatting, analytics frames, exports, sample data.
"""

from __future__ import annotations

import re
from datetime import date

import pandas as pd

import config
import dates
from errors import ValidationError
from models import FELLOWSHIPS, MemberStatus, Officer, PaymentMethod, Transaction, fellowship_color

_PHONE_RE = re.compile(r"^\+?[\d\s-]{6,20}$")


def today_iso() -> str:
    return date.today().isoformat()


def format_currency(value) -> str:
    return f"{config.CURRENCY}{float(value or 0):,.2f}"


def parse_amount(raw) -> float:
    """Entry amount -> positive float; anything else is rejected."""
    try:
        value = float(str(raw).replace(",", "").strip())
    except (TypeError, ValueError):
        raise ValidationError("Amount must be numeric.") from None
    if value != value or value <= 0:
        raise ValidationError("Amount must be > 0.")
    return round(value, 2)


def validate_member_inputs(name: str, phone: str, fellowship: str, status: str) -> list[str]:
    errors: list[str] = []
    if not (name or "").strip():
        errors.append("Name is required.")
    phone = (phone or "").strip()
    if not phone and status != MemberStatus.PROVISIONAL.value:
        errors.append("Phone is required.")
    elif phone and not _PHONE_RE.match(phone):
        errors.append("Phone must contain digits only (optional leading +).")
    if fellowship not in FELLOWSHIPS:
        errors.append("Choose one of the fellowships.")
    if status not in {s.value for s in MemberStatus}:
        errors.append("Status must be ACTIVE or PROVISIONAL.")
    return errors


def bounded_warnings(warnings: list[str], limit: int | None = None) -> tuple[list[str], int]:
    """First `limit` warnings plus how many were left out."""
    limit = config.WARNING_LIMIT if limit is None else limit
    return warnings[:limit], max(len(warnings) - limit, 0)


# ---------- analytics ----------

TXN_COLUMNS = ["id", "batch_id", "member_id", "member_name", "fellowship", "amount", "method", "timestamp", "officer_name"]


def transactions_frame(transactions: list[Transaction]) -> pd.DataFrame:
    if not transactions:
        return pd.DataFrame(columns=TXN_COLUMNS + ["date", "year", "month", "week"])
    df = pd.DataFrame([t.to_row() for t in transactions])[TXN_COLUMNS]
    periods = [dates.reporting_period(ts) for ts in df["timestamp"]]
    df["date"] = df["timestamp"].str.slice(0, 10)
    df["year"] = [p[0] for p in periods]
    df["month"] = [p[1] for p in periods]
    df["week"] = [p[2] for p in periods]
    return df


def fellowship_weekly_chart_data(transactions: list[Transaction], year: int, month: str) -> list[dict]:
    """
    Per fellowship: {name, week1..week5} totals for one month, bucketed with
    the reporting rule (day of month / 7). All ten fellowships are listed.
    """
    month = month.upper()
    df = transactions_frame(transactions)
    df = df[(df["year"] == int(year)) & (df["month"] == month)]
    pivot = (
        df.pivot_table(index="fellowship", columns="week", values="amount", aggfunc="sum", fill_value=0)
        if not df.empty
        else pd.DataFrame()
    )
    out = []
    for f in FELLOWSHIPS:
        row = {"name": f}
        for w in range(1, dates.WEEKS_PER_MONTH + 1):
            val = 0.0
            if f in pivot.index and w in pivot.columns:
                val = float(pivot.loc[f, w])
            row[f"week{w}"] = val
        out.append(row)
    return out


def fellowship_totals(transactions: list[Transaction]) -> pd.DataFrame:
    """Total per fellowship (all ten) with its display color."""
    df = transactions_frame(transactions)
    totals = df.groupby("fellowship")["amount"].sum() if not df.empty else pd.Series(dtype=float)
    return pd.DataFrame(
        {
            "fellowship": FELLOWSHIPS,
            "amount": [float(totals.get(f, 0.0)) for f in FELLOWSHIPS],
            "color": [fellowship_color(f) for f in FELLOWSHIPS],
        }
    )


def monthly_totals(transactions: list[Transaction], year: int) -> pd.DataFrame:
    df = transactions_frame(transactions)
    df = df[df["year"] == int(year)]
    totals = df.groupby("month")["amount"].sum() if not df.empty else pd.Series(dtype=float)
    return pd.DataFrame({"month": list(dates.MONTHS), "amount": [float(totals.get(m, 0.0)) for m in dates.MONTHS]})


def dashboard_summary(transactions: list[Transaction], member_count: int, active_batch_id: str | None) -> dict:
    today = today_iso()
    by_method = {m.value: 0.0 for m in PaymentMethod}
    batch_total = 0.0
    today_total = 0.0
    for t in transactions:
        if t.batch_id == active_batch_id:
            batch_total += t.amount
            by_method[t.method] = by_method.get(t.method, 0.0) + t.amount
        if t.day == today:
            today_total += t.amount
    return {
        "members": member_count,
        "today_total": today_total,
        "batch_total": batch_total,
        "by_method": by_method,
    }


# ---------- downloads ----------

def members_to_csv_bytes(members) -> bytes:
    df = pd.DataFrame([m.to_row() for m in members])
    return df.to_csv(index=False).encode("utf-8")


def transactions_to_csv_bytes(transactions) -> bytes:
    df = pd.DataFrame([t.to_row() for t in transactions])
    return df.to_csv(index=False).encode("utf-8")


def insert_sample_data(data_store) -> None:
    """
    Add a handful of members and gifts to the active batch, for demos
    (adds new rows each run).
    """
    officer = Officer(id=0, username="sample", name="Sample Data", role="OFFICER")
    samples = [
        ("Kwame Mensah", "0241000001", "Thyatira", 120, PaymentMethod.CASH.value),
        ("Abena Osei", "0241000002", "Philippi", 50, PaymentMethod.MOMO.value),
        ("Kofi Asante", "0241000003", "Ephesus", 200, PaymentMethod.CASH.value),
        ("Esi Owusu", "0241000004", "Berea", 75, PaymentMethod.CHECK.value),
    ]
    d = date.today()
    stamp = dates.to_iso(d)
    for name, phone, fellowship, amount, method in samples:
        res = data_store.add_member(name, phone, fellowship)
        if res.success:
            data_store.add_transaction(res.value.id, amount, method, stamp, officer)

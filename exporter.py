"""
exporter.py
Members + transactions -> tithe workbook in the layout importer.py reads.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

import dates
from models import FELLOWSHIPS, Member, Transaction

logger = logging.getLogger(__name__)

HEADER_FONT = Font(bold=True)
CENTER = Alignment(horizontal="center", vertical="center")
FIRST_WEEK_COL = 3  # 1-based: A = name, B = contact


def export_file_name(year: int) -> str:
    return f"Tithing_Report_{year}.xlsx"


def _cell_amount(total: float):
    if total <= 0:
        return None
    total = round(total, 2)
    return int(total) if float(total).is_integer() else total


def _totals_by_day(transactions: list[Transaction]) -> dict[str, dict[str, float]]:
    out: dict[str, dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for t in transactions:
        out[t.member_id][t.day] += t.amount
    return out


def _write_headers(ws) -> int:
    ws.cell(row=2, column=1, value="MEMBER NAME").font = HEADER_FONT
    ws.cell(row=2, column=2, value="CONTACT").font = HEADER_FONT
    col = FIRST_WEEK_COL
    for month in dates.MONTHS:
        top = ws.cell(row=1, column=col, value=month)
        top.font = HEADER_FONT
        top.alignment = CENTER
        ws.merge_cells(start_row=1, start_column=col, end_row=1, end_column=col + dates.WEEKS_PER_MONTH - 1)
        for w in range(1, dates.WEEKS_PER_MONTH + 1):
            ws.cell(row=2, column=col, value=f"WEEK {w}").font = HEADER_FONT
            col += 1
    # YTD label stays in the header row: merged-away cells lose their value
    ws.cell(row=2, column=col, value="YEAR TO DATE TOTAL").font = HEADER_FONT
    ws.column_dimensions[get_column_letter(1)].width = 28
    ws.column_dimensions[get_column_letter(2)].width = 14
    ws.column_dimensions[get_column_letter(col)].width = 20
    ws.freeze_panes = "C3"
    return col


def build_workbook(members: list[Member], transactions: list[Transaction], year: int) -> Workbook:
    """
    One sheet per fellowship (all ten, even when empty). Each week cell holds
    the member's total on sunday_of(year, month, week), matched by date.
    """
    year = int(year)
    by_day = _totals_by_day(transactions)
    slots = [
        (month, w, dates.sunday_date(year, month, w).isoformat())
        for month in dates.MONTHS
        for w in range(1, dates.WEEKS_PER_MONTH + 1)
    ]

    wb = Workbook()
    wb.remove(wb.active)
    for fellowship in FELLOWSHIPS:
        ws = wb.create_sheet(title=fellowship)
        ytd_col = _write_headers(ws)

        rows = sorted((m for m in members if m.fellowship == fellowship), key=lambda m: m.name.casefold())
        for r, member in enumerate(rows, start=3):
            ws.cell(row=r, column=1, value=member.name)
            ws.cell(row=r, column=2, value=member.phone)
            days = by_day.get(member.id, {})
            for offset, (_, _, day) in enumerate(slots):
                amount = _cell_amount(days.get(day, 0.0))
                if amount is not None:
                    ws.cell(row=r, column=FIRST_WEEK_COL + offset, value=amount)
            ws.cell(row=r, column=ytd_col, value=member.ytd_total)

    logger.info("Built export workbook for %s: %d members, %d transactions", year, len(members), len(transactions))
    return wb


def export_to_bytes(members: list[Member], transactions: list[Transaction], year: int) -> bytes:
    buf = BytesIO()
    build_workbook(members, transactions, year).save(buf)
    return buf.getvalue()

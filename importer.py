"""
importer.py
Legacy tithe workbook -> members + transactions.

Workbook layout: one sheet per fellowship; a header row holding
"MEMBER NAME" and "CONTACT" (older files: "MEMBER NAME" and "MEMBER ID");
the row above it carries month labels, the header row carries "WEEK n"
labels; optional "YEAR TO DATE TOTAL" column.
"""

from __future__ import annotations

import logging
import re
import zipfile
from dataclasses import dataclass, field

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

import dates
from errors import ImportFormatError, ValidationError
from identity import derive_id
from models import Fellowship, Member, MemberStatus, PaymentMethod, Transaction

logger = logging.getLogger(__name__)

DEFAULT_PHONE = "0000000000"
IMPORT_OFFICER_ID = "ADMIN-IMPORT"
IMPORT_OFFICER_NAME = "Excel Import"

_WEEK_RE = re.compile(r"^WEEK\s*(\d+)")


@dataclass
class ImportResult:
    members: list[Member] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def sanitize(value) -> str:
    return str(value if value is not None else "").strip().upper()


def import_batch_id(year: int) -> str:
    return f"BATCH-IMPORT-{year}"


def import_transaction_id(member_id: str, timestamp: str, week: int) -> str:
    return f"IMP-{member_id}-{timestamp}-{week}"


def match_fellowship(sheet_name: str) -> str | None:
    s = sanitize(sheet_name)
    if not s:
        return None
    for f in Fellowship:
        v = sanitize(f.value)
        if v in s or s in v:
            return f.value
    return None


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _cell_text(value) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def find_header_row(rows: list[tuple]) -> int:
    """Index of the header row, or -1. Primary format first, then legacy."""
    for wanted in (("MEMBER NAME", "CONTACT"), ("MEMBER NAME", "MEMBER ID")):
        for i, row in enumerate(rows):
            joined = " ".join(sanitize(c) for c in row)
            if all(w in joined for w in wanted):
                return i
    return -1


def _find_col(header: tuple, needle: str) -> int:
    for i, c in enumerate(header):
        if needle in sanitize(c):
            return i
    return -1


def build_column_map(month_row: tuple | None, header: tuple) -> dict[int, tuple[str, int]]:
    """Column index -> (MONTH, week). Month labels carry forward to the right."""
    col_map: dict[int, tuple[str, int]] = {}
    current_month = ""
    for c, cell in enumerate(header):
        if month_row is not None and c < len(month_row) and month_row[c]:
            found = dates.match_month(month_row[c])
            if found:
                current_month = found
        m = _WEEK_RE.match(sanitize(cell))
        if m and current_month:
            week = int(m.group(1))
            if week >= 1:
                col_map[c] = (current_month, week)
    return col_map


def parse_sheet(sheet_name: str, rows: list[tuple], fellowship: str, year: int, result: ImportResult) -> None:
    header_idx = find_header_row(rows)
    if header_idx == -1:
        msg = f"Skipping sheet \"{sheet_name}\": Could not find 'MEMBER NAME' and 'CONTACT' header row."
        logger.warning(msg)
        result.warnings.append(msg)
        return

    header = rows[header_idx]
    name_idx = _find_col(header, "MEMBER NAME")
    if name_idx == -1:
        msg = f"Skipping sheet \"{sheet_name}\": 'MEMBER NAME' is not a single header cell."
        logger.warning(msg)
        result.warnings.append(msg)
        return
    contact_idx = _find_col(header, "CONTACT")
    ytd_idx = _find_col(header, "YEAR TO DATE TOTAL")
    month_row = rows[header_idx - 1] if header_idx > 0 else None
    col_map = build_column_map(month_row, header)

    batch_id = import_batch_id(year)
    for row in rows[header_idx + 1:]:
        raw_name = row[name_idx] if name_idx < len(row) else None
        if raw_name is None:
            continue
        name = _cell_text(raw_name)
        if not name:
            continue

        member_id = derive_id(name)

        phone = DEFAULT_PHONE
        if contact_idx != -1 and contact_idx < len(row) and row[contact_idx] not in (None, ""):
            phone = _cell_text(row[contact_idx])

        ytd = 0.0
        if ytd_idx != -1 and ytd_idx < len(row) and _is_number(row[ytd_idx]):
            ytd = float(row[ytd_idx])

        result.members.append(
            Member(
                id=member_id,
                name=name,
                phone=phone,
                fellowship=fellowship,
                status=MemberStatus.ACTIVE.value,
                ytd_total=ytd,
            )
        )

        for col, (month, week) in col_map.items():
            amount = row[col] if col < len(row) else None
            if not _is_number(amount) or amount <= 0:
                continue
            timestamp = dates.sunday_of(year, month, week)
            result.transactions.append(
                Transaction(
                    id=import_transaction_id(member_id, timestamp, week),
                    batch_id=batch_id,
                    member_id=member_id,
                    member_name=name,
                    fellowship=fellowship,
                    amount=float(amount),
                    method=PaymentMethod.CASH.value,
                    timestamp=timestamp,
                    officer_id=IMPORT_OFFICER_ID,
                    officer_name=IMPORT_OFFICER_NAME,
                )
            )


def parse_workbook(source, year: int) -> ImportResult:
    """
    Parse an .xlsx (path or file-like) for the given year.
    Sheets that match no fellowship are skipped silently (cover/notes sheets);
    sheets without a header row only add a warning.
    """
    try:
        year = int(year)
    except (TypeError, ValueError):
        raise ValidationError(f"Year must be numeric, got {year!r}.") from None

    try:
        wb = load_workbook(source, data_only=True)
    except (OSError, zipfile.BadZipFile, InvalidFileException, KeyError) as e:
        raise ImportFormatError(f"Could not open workbook: {e}") from e

    result = ImportResult()
    for ws in wb.worksheets:
        fellowship = match_fellowship(ws.title)
        if not fellowship:
            logger.debug("Sheet %r matches no fellowship, skipped", ws.title)
            continue
        rows = [tuple(r) for r in ws.iter_rows(values_only=True)]
        parse_sheet(ws.title, rows, fellowship, year, result)

    seen: dict[str, str] = {}
    for m in result.members:
        if m.id in seen and seen[m.id] != m.fellowship:
            result.warnings.append(
                f"\"{m.name}\" appears in both {seen[m.id]} and {m.fellowship}; the later sheet wins."
            )
        seen[m.id] = m.fellowship

    logger.info(
        "Parsed workbook for %s: %d members, %d transactions, %d warnings",
        year, len(result.members), len(result.transactions), len(result.warnings),
    )
    return result

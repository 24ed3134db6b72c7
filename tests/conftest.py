from __future__ import annotations

from io import BytesIO

import pytest
from openpyxl import Workbook

import db
from models import Officer
from store import DataStore

# bcrypt is slow; one hash shared by every test database
_ADMIN_HASH = None


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    global _ADMIN_HASH
    import auth

    if _ADMIN_HASH is None:
        _ADMIN_HASH = auth.hash_password("admin123")
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "test.db")
    db.init_db(_ADMIN_HASH)
    return tmp_path / "test.db"


@pytest.fixture
def store(temp_db):
    ds = DataStore(fiscal_year=2025)
    ds.fetch()
    return ds


@pytest.fixture
def officer():
    return Officer(id=1, username="admin", name="Administrator", role="SUPERVISOR")


def make_workbook(sheets: dict[str, list[list]]) -> BytesIO:
    """Build an in-memory .xlsx: sheet title -> rows of cell values."""
    wb = Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title=title)
        for row in rows:
            ws.append(row)
    buf = BytesIO()
    wb.save(buf)
    buf.seek(0)
    return buf


def january_sheet(data_rows: list[list]) -> list[list]:
    """Month row + header row (MEMBER NAME, CONTACT, Jan WEEK 1..5, YTD) + data."""
    month_row = ["", "", "JANUARY", "", "", "", ""]
    header = ["MEMBER NAME", "CONTACT", "WEEK 1", "WEEK 2", "WEEK 3", "WEEK 4", "WEEK 5", "YEAR TO DATE TOTAL"]
    return [month_row, header] + data_rows

from io import BytesIO

import pytest

import dates
import importer
from conftest import january_sheet, make_workbook
from errors import ImportFormatError, ValidationError
from identity import derive_id


def test_thyatira_sheet_produces_member_and_transaction():
    wb = make_workbook({
        "Thyatira": january_sheet([["Ama Boateng", "0244000000", None, 100, None, None, None, 50]]),
    })
    result = importer.parse_workbook(wb, 2025)

    assert result.warnings == []
    assert len(result.members) == 1
    m = result.members[0]
    assert (m.name, m.phone, m.fellowship, m.ytd_total, m.status) == (
        "Ama Boateng", "0244000000", "Thyatira", 50, "ACTIVE"
    )
    assert m.id == derive_id("Ama Boateng")

    assert len(result.transactions) == 1
    t = result.transactions[0]
    ts = dates.sunday_of(2025, "JANUARY", 2)
    assert t.amount == 100
    assert t.method == "CASH"
    assert t.timestamp == ts == "2025-01-12T00:00:00.000Z"
    assert t.id == f"IMP-{m.id}-{ts}-2"
    assert t.batch_id == "BATCH-IMPORT-2025"
    assert t.officer_id == "ADMIN-IMPORT"
    assert t.member_id == m.id


def test_unmatched_sheets_are_skipped_silently():
    wb = make_workbook({
        "Cover Notes": [["This workbook holds the tithe records"]],
        "thyatira fellowship": january_sheet([["Kofi", "0240000001", 10]]),
    })
    result = importer.parse_workbook(wb, 2025)
    assert result.warnings == []
    assert [m.fellowship for m in result.members] == ["Thyatira"]
    # "Kofi" row has 10 under WEEK 1
    assert [t.amount for t in result.transactions] == [10]


def test_short_sheet_name_matches_by_containment():
    assert importer.match_fellowship("PHILA") == "Philadelphia"
    assert importer.match_fellowship("EPHESUS 2025") == "Ephesus"
    assert importer.match_fellowship("Summary") is None
    assert importer.match_fellowship("") is None


def test_missing_header_warns_and_continues():
    wb = make_workbook({
        "Berea": [["NAME", "PHONE"], ["Esi", "0240000002"]],
        "Smyrna": january_sheet([["Yaw", "0240000003", 5, 5]]),
    })
    result = importer.parse_workbook(wb, 2025)
    assert len(result.warnings) == 1
    assert "Berea" in result.warnings[0]
    assert [m.name for m in result.members] == ["Yaw"]
    assert len(result.transactions) == 2


def test_legacy_member_id_header():
    rows = [
        ["", "", "FEBRUARY"],
        ["MEMBER NAME", "MEMBER ID", "WEEK 1", "WEEK 2"],
        ["Adwoa", "X-17", 20, "n/a"],
    ]
    result = importer.parse_workbook(make_workbook({"Sardis": rows}), 2025)
    assert result.warnings == []
    m = result.members[0]
    assert m.phone == importer.DEFAULT_PHONE
    assert m.ytd_total == 0
    # non-numeric cells are ignored
    assert [(t.amount, t.timestamp) for t in result.transactions] == [(20, dates.sunday_of(2025, "FEBRUARY", 1))]


def test_month_labels_carry_forward_across_columns():
    month_row = ["", ""] + ["JANUARY"] + [None] * 4 + ["February 2025"] + [None] * 4
    header = ["MEMBER NAME", "CONTACT"] + [f"WEEK {w}" for w in range(1, 6)] * 2
    data = ["Ama", 244000000] + [None] * 5 + [None, None, 30, None, None]
    result = importer.parse_workbook(make_workbook({"Pergamos": [month_row, header, data]}), 2025)
    assert result.members[0].phone == "244000000"
    assert [t.timestamp for t in result.transactions] == [dates.sunday_of(2025, "FEBRUARY", 3)]


def test_header_below_title_rows():
    rows = [["PERGAMOS FELLOWSHIP TITHE RECORD"], [None]] + january_sheet([["Kojo", "0240000009", 0, -5, 12.5]])
    result = importer.parse_workbook(make_workbook({"Pergamos": rows}), 2024)
    assert [t.amount for t in result.transactions] == [12.5]
    assert result.transactions[0].timestamp == dates.sunday_of(2024, "JANUARY", 3)


def test_blank_name_rows_are_skipped():
    result = importer.parse_workbook(
        make_workbook({"Balance": january_sheet([[None, "0240000000", 10], ["   ", None, 10], ["Efua", None, None]])}),
        2025,
    )
    assert [m.name for m in result.members] == ["Efua"]
    assert result.members[0].phone == importer.DEFAULT_PHONE
    assert result.transactions == []


def test_import_is_deterministic():
    rows = january_sheet([["Ama Boateng", "0244000000", 10, 20, 30, 40, 50, 150]])
    first = importer.parse_workbook(make_workbook({"Laodicea": rows}), 2025)
    second = importer.parse_workbook(make_workbook({"Laodicea": rows}), 2025)
    assert [t.id for t in first.transactions] == [t.id for t in second.transactions]
    assert len({t.id for t in first.transactions}) == 5


def test_same_name_in_two_fellowships_warns():
    wb = make_workbook({
        "Thyatira": january_sheet([["Ama", "0240000000"]]),
        "Berea": january_sheet([["AMA", "0240000000"]]),
    })
    result = importer.parse_workbook(wb, 2025)
    assert len(result.members) == 2
    assert len(result.warnings) == 1


def test_bad_inputs():
    with pytest.raises(ImportFormatError):
        importer.parse_workbook(BytesIO(b"not a workbook"), 2025)
    with pytest.raises(ValidationError):
        importer.parse_workbook(make_workbook({"Thyatira": []}), "twenty")

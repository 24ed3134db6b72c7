from collections import defaultdict
from io import BytesIO

from openpyxl import load_workbook

import dates
import exporter
import importer
from identity import derive_id
from models import FELLOWSHIPS, Member, Transaction


def _member(name, phone, fellowship, ytd=0.0):
    return Member(id=derive_id(name), name=name, phone=phone, fellowship=fellowship, ytd_total=ytd)


def _txn(member, month, week, amount, method="CASH", n=0):
    return Transaction(
        id=f"TXN-{member.id}-{month}-{week}-{n}",
        batch_id="BATCH-1",
        member_id=member.id,
        member_name=member.name,
        fellowship=member.fellowship,
        amount=amount,
        method=method,
        timestamp=dates.sunday_of(2025, month, week),
        officer_id="1",
    )


def _sample():
    ama = _member("Ama Boateng", "0244000000", "Thyatira", 350)
    kofi = _member("Kofi Asante", "0200000000", "Ephesus", 75.5)
    esi = _member("Esi Owusu", "0555000000", "Thyatira", 0)
    txns = [
        _txn(ama, "JANUARY", 2, 100),
        _txn(ama, "JANUARY", 2, 50, method="MOMO", n=1),  # same day: summed into one cell
        _txn(ama, "MARCH", 2, 200),
        _txn(kofi, "OCTOBER", 4, 75.5),
    ]
    return [ama, kofi, esi], txns


def _per_day(transactions):
    out = defaultdict(float)
    for t in transactions:
        out[(t.member_id, t.day)] += t.amount
    return dict(out)


def test_layout():
    members, txns = _sample()
    wb = load_workbook(BytesIO(exporter.export_to_bytes(members, txns, 2025)))
    assert wb.sheetnames == FELLOWSHIPS

    ws = wb["Thyatira"]
    assert ws.cell(row=2, column=1).value == "MEMBER NAME"
    assert ws.cell(row=2, column=2).value == "CONTACT"
    assert ws.cell(row=1, column=3).value == "JANUARY"
    assert ws.cell(row=2, column=3).value == "WEEK 1"
    assert ws.cell(row=1, column=8).value == "FEBRUARY"
    assert ws.cell(row=2, column=2 + 60 + 1).value == "YEAR TO DATE TOTAL"
    assert "C1:G1" in {str(r) for r in ws.merged_cells.ranges}

    # alphabetical rows; January week 2 is column D
    assert ws.cell(row=3, column=1).value == "Ama Boateng"
    assert ws.cell(row=3, column=4).value == 150
    assert ws.cell(row=3, column=3).value is None
    assert ws.cell(row=3, column=63).value == 350
    assert ws.cell(row=4, column=1).value == "Esi Owusu"

    assert wb["Berea"].max_row == 2


def test_round_trip_through_import():
    members, txns = _sample()
    data = exporter.export_to_bytes(members, txns, 2025)
    result = importer.parse_workbook(BytesIO(data), 2025)

    assert result.warnings == []
    got = {m.id: (m.name, m.phone, m.fellowship, m.ytd_total) for m in result.members}
    want = {m.id: (m.name, m.phone, m.fellowship, m.ytd_total) for m in members}
    assert got == want
    assert _per_day(result.transactions) == _per_day(txns)


def test_export_only_matches_exact_sunday():
    members, _ = _sample()
    ama = members[0]
    off_day = Transaction(
        id="TXN-X", batch_id="B", member_id=ama.id, member_name=ama.name, fellowship=ama.fellowship,
        amount=40, method="CASH", timestamp="2025-01-13T10:00:00.000Z", officer_id="1",
    )
    wb = exporter.build_workbook(members, [off_day], 2025)
    values = [c.value for c in wb["Thyatira"][3][2:62]]
    assert all(v is None for v in values)


def test_spilled_week_five_fills_both_slots():
    # 2025-03-02 is February week 5 and March week 1
    members, _ = _sample()
    ama = members[0]
    gift = _txn(ama, "MARCH", 1, 60)
    assert gift.day == dates.sunday_date(2025, "FEBRUARY", 5).isoformat()
    ws = exporter.build_workbook(members, [gift], 2025)["Thyatira"]
    feb_w5 = 3 + 5 + 4
    mar_w1 = 3 + 10
    assert ws.cell(row=3, column=feb_w5).value == 60
    assert ws.cell(row=3, column=mar_w1).value == 60

import report
import utils
from models import Transaction


def _t(fellowship, amount, ts="2025-01-12T00:00:00.000Z", n=0):
    return Transaction(
        id=f"T{n}", batch_id="B", member_id=f"M{n}", member_name="x", fellowship=fellowship,
        amount=amount, method="CASH", timestamp=ts, officer_id="1",
    )


def test_collection_stats_considers_every_fellowship():
    stats = report.collection_stats([_t("Thyatira", 100, n=1), _t("Berea", 100, n=2), _t("Smyrna", 40, n=3)])
    assert stats["total"] == 240
    assert stats["best"] == {"name": "Thyatira, Berea", "amount": 100}
    # the seven fellowships with nothing tie for lowest
    assert stats["worst"]["amount"] == 0
    assert "Smyrna" not in stats["worst"]["name"]
    assert len(stats["worst"]["name"].split(", ")) == 7


def test_period_labels():
    assert report.period_label({"year": "2025", "month": "JANUARY", "week": "All"}) == "JANUARY 2025 - Monthly Summary"
    assert report.report_file_name({"year": "2025", "month": "JANUARY", "week": "2"}) == "Tithe Report (JANUARY 2025 - Week 2).pdf"


def test_build_pdf_report_returns_pdf_bytes(tmp_path):
    txns = [_t("Thyatira", 100, n=1), _t("Philippi", 25, ts="2025-01-19T00:00:00.000Z", n=2)]
    chart = utils.fellowship_weekly_chart_data(txns, 2025, "JANUARY")
    pdf = report.build_pdf_report(txns, {"year": "2025", "month": "JANUARY", "week": "All"}, chart,
                                  logo_path=tmp_path / "missing.png")
    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 1000

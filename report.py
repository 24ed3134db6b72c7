"""
report.py
Tithe financial report as PDF bytes (reportlab).
"""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, portrait
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

import dates
from models import FELLOWSHIPS, Transaction
from utils import format_currency

logger = logging.getLogger(__name__)

WEEK_COLORS = ["#3b82f6", "#10b981", "#f59e0b", "#8b5cf6", "#e11d48"]


def period_label(period: dict) -> str:
    week = str(period.get("week", "All"))
    suffix = f"- Week {week}" if week != "All" else "- Monthly Summary"
    return f"{period['month']} {period['year']} {suffix}"


def report_file_name(period: dict) -> str:
    week = str(period.get("week", "All"))
    suffix = f" - Week {week}" if week != "All" else " - Monthly"
    return f"Tithe Report ({period['month']} {period['year']}{suffix}).pdf"


def collection_stats(transactions: list[Transaction]) -> dict:
    """
    Total plus best/lowest fellowship. Every fellowship counts (zero if it
    has no gifts); ties are joined with commas.
    """
    totals = {f: 0.0 for f in FELLOWSHIPS}
    for t in transactions:
        totals[t.fellowship] = totals.get(t.fellowship, 0.0) + t.amount
    best_amt = max(totals.values())
    worst_amt = min(totals.values())
    return {
        "total": sum(t.amount for t in transactions),
        "best": {"name": ", ".join(f for f, a in totals.items() if a == best_amt), "amount": best_amt},
        "worst": {"name": ", ".join(f for f, a in totals.items() if a == worst_amt), "amount": worst_amt},
        "by_fellowship": totals,
    }


def _logo(logo_path) -> Image | None:
    if not logo_path or not Path(logo_path).is_file():
        return None
    try:
        img = Image(str(logo_path))
        ratio = img.imageHeight / float(img.imageWidth)
        img.drawWidth = 3.5 * cm
        img.drawHeight = 3.5 * cm * ratio
        return img
    except OSError as e:
        logger.warning("Could not add logo %s: %s", logo_path, e)
        return None


def build_pdf_report(transactions: list[Transaction], period: dict, chart_data: list[dict], logo_path=None) -> bytes:
    """
    period: {"year", "month", "week"} with week "All" for a monthly report.
    chart_data: fellowship_weekly_chart_data() rows ({name, week1..week5}).
    """
    stats = collection_stats(transactions)

    buf = BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=portrait(A4), leftMargin=1.5*cm, rightMargin=1.5*cm, topMargin=1.5*cm, bottomMargin=1.5*cm)
    styles = getSampleStyleSheet()
    dept_style = ParagraphStyle("dept", parent=styles["Normal"], alignment=TA_CENTER, fontName="Helvetica-Bold", fontSize=10)
    title_style = ParagraphStyle("title", parent=styles["Heading1"], alignment=TA_CENTER, fontSize=22, spaceAfter=6)
    subtitle_style = ParagraphStyle("subtitle", parent=styles["Normal"], alignment=TA_CENTER, fontSize=12, spaceAfter=12)

    story = []
    logo = _logo(logo_path)
    if logo:
        story.append(logo)
    story.append(Paragraph("The Tithe Department", dept_style))
    story.append(Paragraph("FINANCIAL REPORT", title_style))
    story.append(Paragraph(period_label(period), subtitle_style))
    story.append(Spacer(1, 0.4*cm))

    summary = Table(
        [
            ["Total Collection", format_currency(stats["total"])],
            ["Best Fellowship", f"{stats['best']['name']} ({format_currency(stats['best']['amount'])})"],
            ["Lowest Fellowship", f"{stats['worst']['name']} ({format_currency(stats['worst']['amount'])})"],
        ],
        colWidths=[5*cm, 12*cm],
    )
    summary.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("BACKGROUND", (0, 0), (0, -1), colors.lightgrey),
        ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    story.append(summary)
    story.append(Spacer(1, 0.6*cm))

    weeks = range(1, dates.WEEKS_PER_MONTH + 1)
    data = [["Fellowship"] + [f"Week {w}" for w in weeks] + ["Total"]]
    for row in chart_data:
        vals = [float(row.get(f"week{w}", 0) or 0) for w in weeks]
        data.append([row["name"]] + [format_currency(v) for v in vals] + [format_currency(sum(vals))])

    tbl = Table(data, colWidths=[3.2*cm] + [2.4*cm] * dates.WEEKS_PER_MONTH + [2.8*cm])
    style = [
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
        ("BACKGROUND", (0, 0), (0, 0), colors.lightgrey),
        ("BACKGROUND", (-1, 0), (-1, 0), colors.lightgrey),
    ]
    for i, hex_color in enumerate(WEEK_COLORS, start=1):
        style.append(("BACKGROUND", (i, 0), (i, 0), colors.HexColor(hex_color)))
        style.append(("TEXTCOLOR", (i, 0), (i, 0), colors.white))
    tbl.setStyle(TableStyle(style))
    story.append(Paragraph("Weekly collection by fellowship", styles["Heading3"]))
    story.append(tbl)

    doc.build(story)
    logger.info("Built PDF report for %s (%d transactions)", period_label(period), len(transactions))
    return buf.getvalue()

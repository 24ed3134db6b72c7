"""
dates.py
Week/month/date bucketing shared by entry, import, export and analytics.

Two week numbering rules exist and are kept distinct on purpose:

- sunday_of(): entry-time assignment. Week n of a month is the n-th Sunday
  counted from the first Sunday on or after the 1st, so week 5 can land in
  the next month. Import, export and manual entry all use it, which keeps
  exported sheets compatible with existing files.
- reporting_week(): analytics bucketing of an existing timestamp by day of
  month, floor((day - 1) / 7) + 1 capped at 5.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from errors import UnknownMonthError

MONTHS = (
    "JANUARY", "FEBRUARY", "MARCH", "APRIL", "MAY", "JUNE",
    "JULY", "AUGUST", "SEPTEMBER", "OCTOBER", "NOVEMBER", "DECEMBER",
)

WEEKS_PER_MONTH = 5


def month_number(month_name: str) -> int:
    """1-based month number for a full English month name (any case)."""
    try:
        return MONTHS.index(month_name.strip().upper()) + 1
    except ValueError:
        raise UnknownMonthError(month_name) from None


def match_month(label) -> str | None:
    """First month name contained in a free-form header label, if any."""
    text = str(label or "").strip().upper()
    for m in MONTHS:
        if m in text:
            return m
    return None


def sunday_date(year: int, month_name: str, week: int) -> date:
    d = date(year, month_number(month_name), 1)
    # weekday(): Monday=0 .. Sunday=6
    d += timedelta(days=(6 - d.weekday()) % 7)
    return d + timedelta(days=(week - 1) * 7)


def to_iso(d: date) -> str:
    """Start-of-day ISO timestamp, millisecond precision, UTC marker."""
    return datetime(d.year, d.month, d.day).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def sunday_of(year: int, month_name: str, week: int) -> str:
    return to_iso(sunday_date(year, month_name, week))


def parse_timestamp(ts: str) -> datetime:
    if ts.endswith("Z"):
        ts = ts[:-1]
    return datetime.fromisoformat(ts)


def reporting_week(day_of_month: int) -> int:
    return min((day_of_month - 1) // 7 + 1, WEEKS_PER_MONTH)


def reporting_period(ts: str) -> tuple[int, str, int]:
    """(year, MONTH, week) a stored timestamp is reported under."""
    dt = parse_timestamp(ts)
    return dt.year, MONTHS[dt.month - 1], reporting_week(dt.day)

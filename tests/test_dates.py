from datetime import date

import pytest

import dates
from errors import UnknownMonthError


@pytest.mark.parametrize("year", [2023, 2024, 2025, 2026])
def test_week_one_is_first_sunday_of_month(year):
    for month in dates.MONTHS:
        d = dates.sunday_date(year, month, 1)
        assert d.weekday() == 6
        assert d.month == dates.month_number(month)
        assert d.day <= 7


def test_weeks_are_seven_days_apart():
    first = dates.sunday_date(2025, "MARCH", 1)
    for w in range(1, 6):
        assert (dates.sunday_date(2025, "MARCH", w) - first).days == (w - 1) * 7


def test_sunday_of_iso_format():
    assert dates.sunday_of(2025, "JANUARY", 2) == "2025-01-12T00:00:00.000Z"
    # month that starts on a Sunday
    assert dates.sunday_of(2023, "january", 1) == "2023-01-01T00:00:00.000Z"


def test_week_five_can_spill_into_next_month():
    # Jan 2024 starts on a Monday: first Sunday is the 7th
    assert dates.sunday_date(2024, "JANUARY", 5) == date(2024, 2, 4)
    assert dates.sunday_date(2024, "FEBRUARY", 1) == date(2024, 2, 4)


def test_unknown_month_raises():
    with pytest.raises(UnknownMonthError):
        dates.sunday_of(2025, "SMARCH", 1)


def test_match_month_in_free_text():
    assert dates.match_month(" january 2025 ") == "JANUARY"
    assert dates.match_month("Notes") is None
    assert dates.match_month(None) is None


@pytest.mark.parametrize(
    "day,week",
    [(1, 1), (7, 1), (8, 2), (14, 2), (15, 3), (28, 4), (29, 5), (31, 5)],
)
def test_reporting_week(day, week):
    assert dates.reporting_week(day) == week


@pytest.mark.parametrize("year", [2024, 2025])
def test_reporting_week_agrees_with_entry_week_inside_the_month(year):
    for month in dates.MONTHS:
        for w in range(1, 6):
            d = dates.sunday_date(year, month, w)
            if d.month != dates.month_number(month):
                continue
            assert dates.reporting_period(dates.sunday_of(year, month, w)) == (year, month, w)


def test_reporting_week_disagrees_when_week_five_spills():
    spill = dates.sunday_of(2024, "JANUARY", 5)
    assert dates.reporting_period(spill) == (2024, "FEBRUARY", 1)


def test_parse_timestamp_accepts_z_suffix():
    assert dates.parse_timestamp("2025-01-12T00:00:00.000Z").date() == date(2025, 1, 12)

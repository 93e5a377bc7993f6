from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from sleep_calendar import as_utc, day_of, days_in_month


def test_as_utc_treats_naive_times_as_utc():
    assert as_utc(datetime(2024, 1, 1, 12)) == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)


def test_as_utc_converts_other_zones():
    local = datetime(2024, 7, 1, 2, 0, tzinfo=ZoneInfo("Europe/Copenhagen"))
    assert as_utc(local) == datetime(2024, 7, 1, 0, 0, tzinfo=timezone.utc)
    assert as_utc(local).tzinfo == timezone.utc


def test_day_of_uses_the_given_zone():
    moment = datetime(2024, 7, 1, 22, 30, tzinfo=timezone.utc)
    assert day_of(moment, timezone.utc) == date(2024, 7, 1)
    assert day_of(moment, ZoneInfo("Europe/Copenhagen")) == date(2024, 7, 2)
    assert day_of(moment, ZoneInfo("America/New_York")) == date(2024, 7, 1)


def test_day_of_passes_plain_dates_through():
    assert day_of(date(2024, 2, 29), ZoneInfo("Pacific/Auckland")) == date(2024, 2, 29)


def test_days_in_month_handles_leap_years():
    assert len(days_in_month(2024, 2)) == 29
    assert len(days_in_month(2023, 2)) == 28
    days = days_in_month(2024, 12)
    assert days[0] == date(2024, 12, 1)
    assert days[-1] == date(2024, 12, 31)


def test_days_in_month_rejects_bad_months():
    with pytest.raises(ValueError):
        days_in_month(2024, 13)
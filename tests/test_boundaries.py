from datetime import datetime, timedelta, timezone

import pytest
import pytz

from tutortrack.domain.earnings.boundaries import (
    compute_boundaries,
    load_timezone,
    resolve_timezone,
)
from tutortrack.domain.errors import TimezoneResolutionError


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_utc_plus_three_boundaries_are_local_calendar_periods():
    tz = load_timezone("UTC+3")
    b = compute_boundaries(tz, utc(2025, 6, 15, 10, 0))

    assert b.today_start == utc(2025, 6, 14, 21, 0)
    assert b.today_end == utc(2025, 6, 15, 21, 0)
    # 2025-06-15 is a Sunday: the week starts today
    assert b.week_start == utc(2025, 6, 14, 21, 0)
    assert b.week_end == utc(2025, 6, 21, 21, 0)
    assert b.month_start == utc(2025, 5, 31, 21, 0)
    assert b.month_end == utc(2025, 6, 30, 21, 0)
    assert b.previous_month_start == utc(2025, 4, 30, 21, 0)
    assert b.previous_month_end == b.month_start


def test_late_evening_utc_session_is_today_for_utc_plus_three_tutor():
    b = compute_boundaries(load_timezone("UTC+3"), utc(2025, 6, 15, 10, 0))
    session_start = utc(2025, 6, 14, 22, 30)  # 01:30 local on the 15th

    assert b.locate(session_start).today
    # a UTC-only day check would have dropped it
    naive_today_start = utc(2025, 6, 15)
    assert not (naive_today_start <= session_start)


def test_periods_are_half_open():
    b = compute_boundaries(pytz.timezone("Europe/Berlin"), utc(2025, 6, 18, 12, 0))

    assert b.locate(b.today_start).today
    assert not b.locate(b.today_end).today
    assert b.locate(b.today_end - timedelta(microseconds=1)).today
    assert b.locate(b.week_start).this_week
    assert not b.locate(b.week_end).this_week
    assert b.locate(b.month_start).this_month
    assert not b.locate(b.month_end).this_month
    assert not b.locate(b.month_start).previous_month
    assert b.locate(b.month_start - timedelta(seconds=1)).previous_month


def test_week_starts_on_sunday():
    b = compute_boundaries(pytz.UTC, utc(2025, 6, 18, 12, 0))  # Wednesday

    assert b.week_start == utc(2025, 6, 15)
    assert b.week_start.weekday() == 6
    assert b.week_end == utc(2025, 6, 22)


def test_saturday_night_stays_in_the_current_week():
    b = compute_boundaries(pytz.UTC, utc(2025, 6, 21, 23, 59))

    assert b.week_start == utc(2025, 6, 15)


def test_dst_transition_day_is_23_hours_long():
    ny = pytz.timezone("America/New_York")
    b = compute_boundaries(ny, utc(2025, 3, 9, 12, 0))

    assert b.today_start == utc(2025, 3, 9, 5, 0)
    assert b.today_end == utc(2025, 3, 10, 4, 0)
    assert b.today_end - b.today_start == timedelta(hours=23)


def test_year_rollover_in_a_zone_ahead_of_utc():
    tokyo = pytz.timezone("Asia/Tokyo")
    b = compute_boundaries(tokyo, utc(2025, 12, 31, 23, 30))  # 08:30 on Jan 1st in Tokyo

    assert b.month_start == utc(2025, 12, 31, 15, 0)
    assert b.month_end == utc(2026, 1, 31, 15, 0)
    assert b.previous_month_start == utc(2025, 11, 30, 15, 0)


def test_naive_now_is_treated_as_utc():
    b = compute_boundaries(pytz.UTC, datetime(2025, 6, 15, 10, 0))

    assert b.now == utc(2025, 6, 15, 10, 0)
    assert b.today_start == utc(2025, 6, 15)


@pytest.mark.parametrize(
    "name, minutes",
    [("UTC+3", 180), ("UTC-05:30", -330), ("GMT+0530", 330), ("utc+14", 840)],
)
def test_fixed_offset_names(name, minutes):
    tz = load_timezone(name)

    assert tz.utcoffset(datetime(2025, 1, 1)) == timedelta(minutes=minutes)


@pytest.mark.parametrize("name", ["Mars/Olympus_Mons", "", None, "UTC+15", "UTC+3:75"])
def test_invalid_timezone_falls_back_to_utc_with_warning(name, caplog):
    with pytest.raises(TimezoneResolutionError):
        load_timezone(name)

    resolved = resolve_timezone(name)

    assert resolved.fell_back
    assert resolved.name == "UTC"
    assert resolved.tz.utcoffset(datetime(2025, 1, 1)) == timedelta(0)
    assert "falling back" in caplog.text


def test_valid_timezone_keeps_its_name():
    resolved = resolve_timezone(" Europe/Kyiv ")

    assert not resolved.fell_back
    assert resolved.name == "Europe/Kyiv"

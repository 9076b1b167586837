from datetime import datetime, timedelta, timezone

import pytz

from tutortrack.domain.earnings.aggregator import calculate_earnings
from tutortrack.domain.earnings.boundaries import compute_boundaries, load_timezone
from tutortrack.domain.sessions.models import NormalizedSession

NOW = datetime(2025, 6, 15, 10, 0, tzinfo=timezone.utc)


def session(sid, start, minutes=60, rate=40.0, paid=True, student_id="s1", name=None, unassigned=None):
    return NormalizedSession(
        session_id=sid,
        start=start,
        end=start + timedelta(minutes=minutes),
        duration_minutes=minutes,
        rate=rate,
        paid=paid,
        student_id=student_id,
        student_name=name,
        unassigned_name=unassigned,
    )


def test_total_is_sum_of_paid_session_earnings_only():
    b = compute_boundaries(pytz.UTC, NOW)
    sessions = [
        session("a", NOW - timedelta(days=400), 60, 50.0),
        session("b", NOW - timedelta(days=2), 45, 40.0),
        session("c", NOW - timedelta(days=1), 90, 30.0, paid=False),
    ]

    summary = calculate_earnings(sessions, b)

    assert summary.total_earnings == sum(s.earnings for s in sessions if s.paid)
    assert summary.total_earnings == 50.0 + 30.0
    assert summary.paid_session_count == 2
    assert summary.session_count == 3


def test_per_student_entry_for_three_paid_sessions():
    b = compute_boundaries(pytz.UTC, NOW)
    sessions = [
        session("a", NOW - timedelta(days=3), 30, 40.0, name="Anna"),
        session("b", NOW - timedelta(days=2), 60, 40.0, name="Anna"),
        session("c", NOW - timedelta(days=1), 90, 40.0, name="Anna"),
    ]

    summary = calculate_earnings(sessions, b)

    assert len(summary.student_earnings) == 1
    entry = summary.student_earnings[0]
    assert entry.student_name == "Anna"
    assert entry.total_earnings == 120.0
    assert entry.session_count == 3


def test_utc_plus_three_late_session_counts_as_today():
    b = compute_boundaries(load_timezone("UTC+3"), NOW)
    late = session("late", datetime(2025, 6, 14, 22, 30, tzinfo=timezone.utc), 60, 40.0)

    summary = calculate_earnings([late], b)

    assert summary.today_earnings == 40.0
    assert summary.this_week_earnings == 40.0
    assert summary.this_month_earnings == 40.0


def test_period_sums_use_half_open_boundaries():
    b = compute_boundaries(pytz.UTC, NOW)
    at_start = session("start", b.today_start, 60, 10.0)
    at_end = session("end", b.today_end, 60, 100.0)

    summary = calculate_earnings([at_start, at_end], b)

    assert summary.today_earnings == 10.0
    assert summary.total_earnings == 110.0


def test_month_session_count_includes_unpaid_but_earnings_do_not():
    b = compute_boundaries(pytz.UTC, NOW)
    sessions = [
        session("p", NOW - timedelta(days=1), 60, 40.0),
        session("u", NOW - timedelta(days=2), 60, 40.0, paid=False),
        session("old", datetime(2025, 5, 20, tzinfo=timezone.utc), 60, 40.0),
    ]

    summary = calculate_earnings(sessions, b)

    assert summary.this_month_session_count == 2
    assert summary.this_month_earnings == 40.0
    assert summary.last_month_earnings == 40.0


def test_active_students_cover_trailing_thirty_days_paid_or_not():
    b = compute_boundaries(pytz.UTC, NOW)
    sessions = [
        session("a", NOW - timedelta(days=1), student_id="s1", paid=False),
        session("b", NOW - timedelta(days=5), student_id="s1"),
        session("c", NOW - timedelta(days=29), student_id="s2"),
        session("d", NOW - timedelta(days=31), student_id="s3"),
        session("e", NOW + timedelta(days=2), student_id="s4"),
        session("f", NOW - timedelta(days=3), student_id=None, unassigned="Chris"),
    ]

    summary = calculate_earnings(sessions, b)

    assert summary.active_student_count == 3  # s1, s2, Chris


def test_student_ranking_descending_with_stable_ties():
    b = compute_boundaries(pytz.UTC, NOW)
    sessions = [
        session("1", NOW - timedelta(days=1), 60, 40.0, student_id="ben", name="Ben"),
        session("2", NOW - timedelta(days=1), 60, 40.0, student_id="cara", name="Cara"),
        session("3", NOW - timedelta(days=1), 60, 90.0, student_id="anna", name="Anna"),
        session("4", NOW - timedelta(days=1), 60, 500.0, student_id="dan", name="Dan", paid=False),
    ]

    ranked = calculate_earnings(sessions, b).student_earnings

    assert [e.student_name for e in ranked] == ["Anna", "Ben", "Cara"]


def test_aggregation_is_idempotent():
    b = compute_boundaries(load_timezone("Europe/Kyiv"), NOW)
    sessions = [
        session(str(i), NOW - timedelta(hours=7 * i), 15 * (i % 4 + 1), 33.3, paid=i % 3 != 0, student_id=f"s{i % 5}")
        for i in range(60)
    ]

    first = calculate_earnings(sessions, b)
    second = calculate_earnings(sessions, b)

    assert first == second
    assert repr(first) == repr(second)


def test_empty_input_yields_zeroes():
    summary = calculate_earnings([], compute_boundaries(pytz.UTC, NOW))

    assert summary.total_earnings == 0.0
    assert summary.active_student_count == 0
    assert summary.student_earnings == ()

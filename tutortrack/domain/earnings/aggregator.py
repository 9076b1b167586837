from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable

from tutortrack.domain.earnings.boundaries import PeriodBoundaries
from tutortrack.domain.sessions.models import NormalizedSession

ACTIVE_WINDOW = timedelta(days=30)


@dataclass(frozen=True)
class StudentEarnings:
    student_key: str
    student_id: str | None
    student_name: str
    total_earnings: float
    session_count: int


@dataclass(frozen=True)
class EarningsSummary:
    total_earnings: float
    today_earnings: float
    this_week_earnings: float
    this_month_earnings: float
    last_month_earnings: float
    this_month_session_count: int
    active_student_count: int
    session_count: int
    paid_session_count: int
    student_earnings: tuple[StudentEarnings, ...]


@dataclass
class _StudentTally:
    student_id: str | None
    student_name: str
    total: float = 0.0
    count: int = 0


def calculate_earnings(sessions: Iterable[NormalizedSession], boundaries: PeriodBoundaries) -> EarningsSummary:
    """
    Single pass over normalized sessions.

    Earnings sums only include paid sessions; the month session count and the
    active-student set include every session. A session's period membership is
    computed once and reused for all period checks.
    """
    total = today = week = month = last_month = 0.0
    month_sessions = 0
    session_count = paid_count = 0

    active_since = boundaries.now - ACTIVE_WINDOW
    active_students: set[str] = set()
    # dict keeps first-seen order, which sorted() preserves for ties
    per_student: dict[str, _StudentTally] = {}

    for s in sessions:
        session_count += 1
        where = boundaries.locate(s.start)

        if where.this_month:
            month_sessions += 1
        if active_since <= s.start <= boundaries.now:
            active_students.add(s.student_key)

        if not s.paid:
            continue

        earnings = s.earnings
        paid_count += 1
        total += earnings
        if where.today:
            today += earnings
        if where.this_week:
            week += earnings
        if where.this_month:
            month += earnings
        if where.previous_month:
            last_month += earnings

        tally = per_student.get(s.student_key)
        if tally is None:
            tally = per_student[s.student_key] = _StudentTally(s.student_id, s.display_name)
        tally.total += earnings
        tally.count += 1

    ranked = sorted(per_student.items(), key=lambda kv: kv[1].total, reverse=True)
    return EarningsSummary(
        total_earnings=total,
        today_earnings=today,
        this_week_earnings=week,
        this_month_earnings=month,
        last_month_earnings=last_month,
        this_month_session_count=month_sessions,
        active_student_count=len(active_students),
        session_count=session_count,
        paid_session_count=paid_count,
        student_earnings=tuple(
            StudentEarnings(
                student_key=key,
                student_id=t.student_id,
                student_name=t.student_name,
                total_earnings=t.total,
                session_count=t.count,
            )
            for key, t in ranked
        ),
    )

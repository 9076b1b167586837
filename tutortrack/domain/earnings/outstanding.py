from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable

from tutortrack.domain.common.time import ensure_utc
from tutortrack.domain.earnings.boundaries import PeriodBoundaries
from tutortrack.domain.sessions.models import NormalizedSession


class ExpectedHorizon(str, Enum):
    NEXT_30_DAYS = "next30days"
    REST_OF_MONTH = "restOfMonth"
    ALL_FUTURE = "allFuture"


@dataclass(frozen=True)
class OutstandingSummary:
    sessions: tuple[NormalizedSession, ...]
    total_owed: float

    @property
    def count(self) -> int:
        return len(self.sessions)


@dataclass(frozen=True)
class ExpectedEarnings:
    horizon: ExpectedHorizon
    total: float
    count: int


def unpaid_past_sessions(sessions: Iterable[NormalizedSession], now: datetime) -> OutstandingSummary:
    """Unpaid sessions that already started, newest first."""
    now_utc = ensure_utc(now)
    overdue = [s for s in sessions if not s.paid and s.start < now_utc]
    overdue.sort(key=lambda s: s.start, reverse=True)
    return OutstandingSummary(sessions=tuple(overdue), total_owed=sum(s.earnings for s in overdue))


def expected_earnings(
    sessions: Iterable[NormalizedSession],
    boundaries: PeriodBoundaries,
    horizon: ExpectedHorizon = ExpectedHorizon.NEXT_30_DAYS,
) -> ExpectedEarnings:
    now = boundaries.now
    if horizon is ExpectedHorizon.NEXT_30_DAYS:
        limit = now + timedelta(days=30)

        def within(start: datetime) -> bool:
            return now < start <= limit
    elif horizon is ExpectedHorizon.REST_OF_MONTH:
        def within(start: datetime) -> bool:
            return now < start < boundaries.month_end
    else:
        def within(start: datetime) -> bool:
            return now < start

    total = 0.0
    count = 0
    for s in sessions:
        if within(s.start):
            total += s.earnings
            count += 1
    return ExpectedEarnings(horizon=horizon, total=total, count=count)

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

import pytz

from tutortrack.domain.common.time import ensure_utc, localize_to_utc
from tutortrack.domain.errors import TimezoneResolutionError

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"

# "UTC+3", "GMT-05:30", "utc+0530"
_OFFSET_RE = re.compile(r"^(?:UTC|GMT)\s*([+-])(\d{1,2})(?::?(\d{2}))?$", re.IGNORECASE)
_MAX_OFFSET_MINUTES = 14 * 60


def load_timezone(name: Optional[str]) -> tzinfo:
    """Strict lookup: IANA names and UTC/GMT fixed offsets, otherwise TimezoneResolutionError."""
    s = (name or "").strip()
    if not s:
        raise TimezoneResolutionError(name, "timezone not set")

    m = _OFFSET_RE.match(s)
    if m:
        sign, hours, minutes = m.groups()
        offset = int(hours) * 60 + int(minutes or 0)
        if offset > _MAX_OFFSET_MINUTES or int(minutes or 0) >= 60:
            raise TimezoneResolutionError(name, "offset out of range")
        if sign == "-":
            offset = -offset
        return pytz.FixedOffset(offset) if offset else pytz.UTC

    try:
        return pytz.timezone(s)
    except pytz.UnknownTimeZoneError as exc:
        raise TimezoneResolutionError(name) from exc


@dataclass(frozen=True)
class ResolvedTimezone:
    tz: tzinfo
    name: str
    error: Optional[TimezoneResolutionError] = None

    @property
    def fell_back(self) -> bool:
        return self.error is not None


def resolve_timezone(name: Optional[str]) -> ResolvedTimezone:
    """
    Lenient lookup used for tutor settings.
    Unknown or empty names resolve to UTC; the error is returned, not raised.
    """
    try:
        tz = load_timezone(name)
    except TimezoneResolutionError as exc:
        logger.warning("Timezone %r could not be resolved (%s); falling back to %s", name, exc.reason, DEFAULT_TIMEZONE)
        return ResolvedTimezone(tz=pytz.UTC, name=DEFAULT_TIMEZONE, error=exc)
    return ResolvedTimezone(tz=tz, name=name.strip())


@dataclass(frozen=True)
class PeriodMembership:
    today: bool
    this_week: bool
    this_month: bool
    previous_month: bool


@dataclass(frozen=True)
class PeriodBoundaries:
    """
    UTC instants bounding the tutor's local calendar periods.
    Every period is half-open: start <= instant < end.
    """
    timezone_name: str
    now: datetime
    today_start: datetime
    today_end: datetime
    week_start: datetime
    week_end: datetime
    month_start: datetime
    month_end: datetime
    previous_month_start: datetime
    previous_month_end: datetime

    def locate(self, instant: datetime) -> PeriodMembership:
        t = ensure_utc(instant)
        return PeriodMembership(
            today=self.today_start <= t < self.today_end,
            this_week=self.week_start <= t < self.week_end,
            this_month=self.month_start <= t < self.month_end,
            previous_month=self.previous_month_start <= t < self.previous_month_end,
        )


def _local_midnight_utc(tz: tzinfo, day: date) -> datetime:
    return localize_to_utc(tz, datetime(day.year, day.month, day.day))


def _first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def compute_boundaries(tz: tzinfo, now: datetime, *, timezone_name: Optional[str] = None) -> PeriodBoundaries:
    """
    Project `now` into the tutor's zone first, then take local period starts
    and convert each back to UTC. Weeks start on Sunday.
    """
    now_utc = ensure_utc(now)
    today = now_utc.astimezone(tz).date()

    week_first = today - timedelta(days=(today.weekday() + 1) % 7)
    month_first = today.replace(day=1)
    previous_month_first = (month_first - timedelta(days=1)).replace(day=1)

    month_start = _local_midnight_utc(tz, month_first)
    return PeriodBoundaries(
        timezone_name=timezone_name or str(tz),
        now=now_utc,
        today_start=_local_midnight_utc(tz, today),
        today_end=_local_midnight_utc(tz, today + timedelta(days=1)),
        week_start=_local_midnight_utc(tz, week_first),
        week_end=_local_midnight_utc(tz, week_first + timedelta(days=7)),
        month_start=month_start,
        month_end=_local_midnight_utc(tz, _first_of_next_month(month_first)),
        previous_month_start=_local_midnight_utc(tz, previous_month_first),
        previous_month_end=month_start,
    )

from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Iterable, Mapping, Optional

import pytz

from tutortrack.domain.common.time import localize_to_utc, parse_iso
from tutortrack.domain.errors import MalformedSessionError
from tutortrack.domain.sessions.models import (
    NormalizationReport,
    NormalizedSession,
    RejectedSession,
)

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?$")


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def normalize_paid(value: Any) -> bool:
    # Only a real True or the exact string "true" count; 1, "1", "yes" do not.
    if value is True:
        return True
    return isinstance(value, str) and value.strip() == "true"


def _parse_rate(value: Any, session_id: Optional[str]) -> float:
    if not _present(value):
        raise MalformedSessionError(session_id, "rate missing")
    if isinstance(value, bool):
        raise MalformedSessionError(session_id, "rate is not numeric")
    if isinstance(value, str) and "," in value:
        # "1,5" and "1,000" are ambiguous
        raise MalformedSessionError(session_id, f"rate is not numeric: {value!r}")
    try:
        rate = float(value.strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise MalformedSessionError(session_id, f"rate is not numeric: {value!r}") from None
    if math.isnan(rate) or math.isinf(rate):
        raise MalformedSessionError(session_id, f"rate is not finite: {value!r}")
    if rate < 0:
        raise MalformedSessionError(session_id, f"rate is negative: {value!r}")
    return rate


def _parse_minutes(value: Any, session_id: Optional[str]) -> int:
    if isinstance(value, bool):
        raise MalformedSessionError(session_id, "duration is not numeric")
    try:
        minutes = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise MalformedSessionError(session_id, f"duration is not numeric: {value!r}") from None
    if math.isnan(minutes) or minutes <= 0:
        raise MalformedSessionError(session_id, f"duration must be positive: {value!r}")
    return _round_half_up(minutes)


def _stored_minutes(value: Any) -> Optional[int]:
    try:
        return _parse_minutes(value, None)
    except MalformedSessionError:
        return None


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _parse_legacy_date(value: Any, session_id: Optional[str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    m = _DATE_RE.match(str(value).strip())
    if not m:
        raise MalformedSessionError(session_id, f"unparseable date: {value!r}")
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        raise MalformedSessionError(session_id, f"invalid date: {value!r}") from None


def _parse_legacy_time(value: Any, session_id: Optional[str]) -> time:
    if isinstance(value, time):
        return value.replace(tzinfo=None)
    m = _TIME_RE.match(str(value).strip())
    if not m:
        raise MalformedSessionError(session_id, f"unparseable time: {value!r}")
    try:
        return time(int(m.group(1)), int(m.group(2)), int(m.group(3) or 0))
    except ValueError:
        raise MalformedSessionError(session_id, f"invalid time: {value!r}") from None


def _student_name(row: Mapping[str, Any]) -> Optional[str]:
    name = row.get("student_name")
    if not _present(name):
        # joined shape: {"students": {"name": ...}}
        joined = row.get("students")
        if isinstance(joined, Mapping):
            name = joined.get("name")
    return str(name).strip() if _present(name) else None


class SessionNormalizer:
    """
    Turns raw session rows into NormalizedSession values.

    UTC `session_start`/`session_end` win whenever both are present; the stored
    `duration` is then ignored. Rows carrying only the legacy `date`/`time`/
    `duration` fields are read as wall-clock time in the tutor's timezone.
    """

    def __init__(self, tz: tzinfo = pytz.UTC) -> None:
        self._tz = tz

    def normalize(self, row: Mapping[str, Any]) -> NormalizedSession:
        session_id = str(row["id"]) if _present(row.get("id")) else None

        from_timestamps = _present(row.get("session_start")) and _present(row.get("session_end"))
        if from_timestamps:
            start, end = self._from_timestamps(row, session_id)
        elif all(_present(row.get(k)) for k in ("date", "time", "duration")):
            start, end = self._from_legacy(row, session_id)
        else:
            raise MalformedSessionError(
                session_id,
                "neither session_start/session_end nor date/time/duration are populated",
            )

        duration_minutes = _round_half_up((end - start).total_seconds() / 60)
        stored = row.get("duration")
        if from_timestamps and _present(stored) and _stored_minutes(stored) != duration_minutes:
            logger.debug(
                "Session %s: stored duration %r disagrees with timestamps (%s min); using timestamps",
                session_id, stored, duration_minutes,
            )

        student_id = row.get("student_id")
        unassigned = row.get("unassigned_name")
        return NormalizedSession(
            session_id=session_id or "",
            start=start,
            end=end,
            duration_minutes=duration_minutes,
            rate=_parse_rate(row.get("rate"), session_id),
            paid=normalize_paid(row.get("paid")),
            student_id=str(student_id) if _present(student_id) else None,
            student_name=_student_name(row),
            unassigned_name=str(unassigned).strip() if _present(unassigned) else None,
        )

    def normalize_all(self, rows: Iterable[Mapping[str, Any]]) -> NormalizationReport:
        sessions: list[NormalizedSession] = []
        rejected: list[RejectedSession] = []
        for row in rows:
            try:
                sessions.append(self.normalize(row))
            except MalformedSessionError as exc:
                logger.warning("Excluding malformed session %s: %s", exc.session_id, exc.reason)
                rejected.append(RejectedSession(session_id=exc.session_id, reason=exc.reason))
        return NormalizationReport(sessions=tuple(sessions), rejected=tuple(rejected))

    def _from_timestamps(self, row: Mapping[str, Any], session_id: Optional[str]) -> tuple[datetime, datetime]:
        try:
            start = parse_iso(row["session_start"])
            end = parse_iso(row["session_end"])
        except (TypeError, ValueError) as exc:
            raise MalformedSessionError(session_id, f"unparseable timestamp: {exc}") from None
        if start >= end:
            raise MalformedSessionError(session_id, "session_end must be after session_start")
        return start, end

    def _from_legacy(self, row: Mapping[str, Any], session_id: Optional[str]) -> tuple[datetime, datetime]:
        day = _parse_legacy_date(row["date"], session_id)
        clock_time = _parse_legacy_time(row["time"], session_id)
        minutes = _parse_minutes(row["duration"], session_id)
        start = localize_to_utc(self._tz, datetime.combine(day, clock_time))
        return start, start + timedelta(minutes=minutes)

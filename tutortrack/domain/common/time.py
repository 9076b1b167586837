from __future__ import annotations

from datetime import datetime, timezone, tzinfo


def parse_iso(value: str | datetime) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.
    A trailing 'Z' and explicit offsets are honoured; naive values are UTC.
    """
    if isinstance(value, datetime):
        dt = value
    elif not isinstance(value, str):
        raise ValueError(f"not an ISO-8601 string: {value!r}")
    else:
        s = value.strip()
        if not s:
            raise ValueError("empty timestamp")
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        # Postgres style "2025-06-15 10:00:00+00"
        if len(s) >= 3 and ("T" in s or " " in s) and s[-3] in "+-" and s[-2:].isdigit():
            s = s + ":00"
        dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def localize_to_utc(tz: tzinfo, naive: datetime) -> datetime:
    """Attach a wall-clock time to `tz` (DST-aware for pytz zones) and convert to UTC."""
    if hasattr(tz, "localize"):
        local = tz.localize(naive)
    else:
        local = naive.replace(tzinfo=tz)
    return local.astimezone(timezone.utc)

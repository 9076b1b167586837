from __future__ import annotations

from datetime import datetime, timezone

import pytz


class SystemClock:
    """Wall clock; `now()` is aware and expressed in the configured zone."""

    def __init__(self, tz_name: str = "UTC") -> None:
        self._tz = pytz.timezone(tz_name)

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone(self._tz)

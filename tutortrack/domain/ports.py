from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, runtime_checkable


Row = dict[str, Any]


@runtime_checkable
class Clock(Protocol):
    def now(self) -> datetime:
        ...


@runtime_checkable
class SessionStore(Protocol):
    """
    Read side of the record store.
    Adapters raise StoreError on failure and return plain dict rows.
    Session rows carry: id, student_id, unassigned_name, date, time, duration,
    session_start, session_end, rate, paid (bool).
    """

    async def count_sessions(self, tutor_id: str, *, started_before: Optional[datetime] = None) -> int:
        ...

    async def fetch_sessions_with_students(self, tutor_id: str) -> list[Row]:
        """Sessions joined to their student's name (`student_name`), ordered by start."""
        ...

    async def fetch_sessions(
        self,
        tutor_id: str,
        *,
        paid: Optional[bool] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> list[Row]:
        ...

    async def fetch_students(self, tutor_id: str) -> list[Row]:
        ...

    async def fetch_tutor(self, tutor_id: str) -> Optional[Row]:
        ...

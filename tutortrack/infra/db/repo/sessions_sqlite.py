from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import aiosqlite

from tutortrack.domain.common.time import ensure_utc, to_iso, utc_now
from tutortrack.domain.errors import StoreError
from tutortrack.domain.ports import Row
from tutortrack.infra.db.connection import Database

_SESSION_COLUMNS = """
    s.id, s.student_id, s.unassigned_name,
    s.date, s.time, s.duration,
    s.session_start, s.session_end,
    s.rate, s.paid, s.status
"""

# legacy rows have no session_start; order them by their local date/time
_ORDER_BY_START = "ORDER BY COALESCE(s.session_start, s.date || 'T' || s.time) ASC, s.id ASC"

# stored values the normalizer treats as paid
_PAID_PREDICATE = "IFNULL(s.paid = 1 OR TRIM(s.paid) = 'true', 0)"


def _session_row(row: aiosqlite.Row) -> Row:
    d = dict(row)
    paid = d.get("paid")
    # INTEGER 0/1 -> bool; legacy text values ("true", "false", "yes") pass
    # through unchanged for the normalizer to judge
    if isinstance(paid, int) and not isinstance(paid, bool) and paid in (0, 1):
        d["paid"] = paid == 1
    return d


class SqliteSessionStore:
    """SessionStore backed by the local SQLite file (tutors/students/sessions)."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def count_sessions(self, tutor_id: str, *, started_before: Optional[datetime] = None) -> int:
        sql = "SELECT COUNT(*) AS cnt FROM sessions s WHERE s.tutor_id=?"
        params: list[Any] = [tutor_id]
        if started_before is not None:
            # legacy rows only carry a tutor-local date, so they are compared by
            # UTC calendar day: a legacy row on the cutoff day is not counted
            sql += (
                " AND ((s.session_start IS NOT NULL AND s.session_start < ?)"
                " OR (s.session_start IS NULL AND s.date < ?))"
            )
            params.extend([to_iso(started_before), ensure_utc(started_before).date().isoformat()])
        row = await self._fetchone(sql, params)
        return int(row["cnt"] or 0) if row else 0

    async def fetch_sessions_with_students(self, tutor_id: str) -> list[Row]:
        rows = await self._fetchall(
            f"""
            SELECT {_SESSION_COLUMNS}, st.name AS student_name
            FROM sessions s
            LEFT JOIN students st ON st.id = s.student_id
            WHERE s.tutor_id=?
            {_ORDER_BY_START};
            """,
            (tutor_id,),
        )
        return [_session_row(r) for r in rows]

    async def fetch_sessions(
        self,
        tutor_id: str,
        *,
        paid: Optional[bool] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> list[Row]:
        sql = f"SELECT {_SESSION_COLUMNS} FROM sessions s WHERE s.tutor_id=?"
        params: list[Any] = [tutor_id]
        if paid is True:
            sql += f" AND {_PAID_PREDICATE}"
        elif paid is False:
            sql += f" AND NOT {_PAID_PREDICATE}"
        if start_from is not None:
            sql += " AND s.session_start >= ?"
            params.append(to_iso(start_from))
        if start_to is not None:
            sql += " AND s.session_start < ?"
            params.append(to_iso(start_to))
        rows = await self._fetchall(f"{sql} {_ORDER_BY_START};", params)
        return [_session_row(r) for r in rows]

    async def fetch_students(self, tutor_id: str) -> list[Row]:
        rows = await self._fetchall(
            "SELECT id, name FROM students WHERE tutor_id=? ORDER BY name;",
            (tutor_id,),
        )
        return [dict(r) for r in rows]

    async def fetch_tutor(self, tutor_id: str) -> Optional[Row]:
        row = await self._fetchone("SELECT id, timezone FROM tutors WHERE id=?;", (tutor_id,))
        return dict(row) if row else None

    # --------------------
    # Fixture writes (seed script and tests only)
    # --------------------

    async def add_tutor(self, tutor_id: str, timezone: Optional[str] = None) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO tutors (id, timezone) VALUES (?, ?);",
            (tutor_id, timezone),
        )

    async def add_student(self, student_id: str, tutor_id: str, name: str) -> None:
        await self._execute(
            "INSERT OR REPLACE INTO students (id, tutor_id, name) VALUES (?, ?, ?);",
            (student_id, tutor_id, name),
        )

    async def add_session(
        self,
        *,
        session_id: str,
        tutor_id: str,
        rate: Optional[float],
        paid: bool = False,
        student_id: Optional[str] = None,
        unassigned_name: Optional[str] = None,
        session_start: Optional[datetime] = None,
        session_end: Optional[datetime] = None,
        date: Optional[str] = None,
        time: Optional[str] = None,
        duration: Optional[int] = None,
        status: str = "scheduled",
    ) -> None:
        await self._execute(
            """
            INSERT INTO sessions (
              id, tutor_id, student_id, unassigned_name,
              date, time, duration,
              session_start, session_end,
              rate, paid, status, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                session_id,
                tutor_id,
                student_id,
                unassigned_name,
                date,
                time,
                duration,
                to_iso(session_start) if session_start else None,
                to_iso(session_end) if session_end else None,
                rate,
                1 if paid else 0,
                status,
                to_iso(utc_now()),
            ),
        )

    async def _fetchone(self, sql: str, params) -> Optional[aiosqlite.Row]:
        try:
            return await self._db.fetchone(sql, params)
        except aiosqlite.Error as exc:
            raise StoreError(f"sqlite read failed: {exc}") from exc

    async def _fetchall(self, sql: str, params) -> list[aiosqlite.Row]:
        try:
            return await self._db.fetchall(sql, params)
        except aiosqlite.Error as exc:
            raise StoreError(f"sqlite read failed: {exc}") from exc

    async def _execute(self, sql: str, params) -> None:
        try:
            await self._db.execute(sql, params)
        except aiosqlite.Error as exc:
            raise StoreError(f"sqlite write failed: {exc}") from exc

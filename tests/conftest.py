from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest
import pytest_asyncio

from tutortrack.domain.common.time import parse_iso, to_iso
from tutortrack.domain.errors import StoreError
from tutortrack.infra.db.connection import Database
from tutortrack.infra.db.repo.sessions_sqlite import SqliteSessionStore


class ManualClock:
    def __init__(self, start: datetime) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


class FakeStore:
    """In-memory SessionStore; `fail` names the methods that raise StoreError."""

    def __init__(
        self,
        sessions: Optional[list[dict[str, Any]]] = None,
        students: Optional[list[dict[str, Any]]] = None,
        tutors: Optional[dict[str, Optional[str]]] = None,
    ) -> None:
        self.sessions = list(sessions or [])
        self.students = list(students or [])
        self.tutors = dict(tutors or {})
        self.count_override: dict[str, int] = {}
        self.fail: set[str] = set()
        self.calls: list[str] = []

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail:
            raise StoreError(f"{name} unavailable")

    def _owned(self, tutor_id: str) -> list[dict[str, Any]]:
        return [dict(s) for s in self.sessions if s.get("tutor_id", "t1") == tutor_id]

    async def count_sessions(self, tutor_id, *, started_before=None):
        self._enter("count_sessions")
        if started_before is None and tutor_id in self.count_override:
            return self.count_override[tutor_id]
        rows = self._owned(tutor_id)
        if started_before is not None:
            rows = [r for r in rows if r.get("session_start") and parse_iso(r["session_start"]) < started_before]
        return len(rows)

    async def fetch_sessions_with_students(self, tutor_id):
        self._enter("fetch_sessions_with_students")
        names = {s["id"]: s["name"] for s in self.students}
        return [{**r, "students": {"name": names[r["student_id"]]} if r.get("student_id") in names else None}
                for r in self._owned(tutor_id)]

    async def fetch_sessions(self, tutor_id, *, paid=None, start_from=None, start_to=None):
        self._enter("fetch_sessions")
        return self._owned(tutor_id)

    async def fetch_students(self, tutor_id):
        self._enter("fetch_students")
        return [dict(s) for s in self.students if s.get("tutor_id", "t1") == tutor_id]

    async def fetch_tutor(self, tutor_id):
        self._enter("fetch_tutor")
        if tutor_id not in self.tutors:
            return None
        return {"id": tutor_id, "timezone": self.tutors[tutor_id]}


def ts_session(
    session_id: str,
    start: str,
    minutes: int = 60,
    *,
    rate: Any = 40,
    paid: Any = True,
    student_id: Optional[str] = "s1",
    tutor_id: str = "t1",
    **extra: Any,
) -> dict[str, Any]:
    begin = parse_iso(start)
    return {
        "id": session_id,
        "tutor_id": tutor_id,
        "student_id": student_id,
        "session_start": to_iso(begin),
        "session_end": to_iso(begin + timedelta(minutes=minutes)),
        "rate": rate,
        "paid": paid,
        **extra,
    }


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(datetime(2025, 6, 15, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_session():
    return ts_session


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore(
        students=[{"id": "s1", "tutor_id": "t1", "name": "Anna"}, {"id": "s2", "tutor_id": "t1", "name": "Ben"}],
        tutors={"t1": "Europe/Moscow"},
    )


@pytest_asyncio.fixture
async def sqlite_store(tmp_path) -> SqliteSessionStore:
    db = Database(str(tmp_path / "data" / "test.db"))
    await db.init_schema()
    return SqliteSessionStore(db)

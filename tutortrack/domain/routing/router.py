from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from tutortrack.domain.errors import FetchError
from tutortrack.domain.ports import Row, SessionStore
from tutortrack.domain.routing.monitor import QueryPerformanceMonitor
from tutortrack.domain.sessions.models import UNKNOWN_STUDENT, NormalizationReport
from tutortrack.domain.sessions.normalizer import SessionNormalizer

logger = logging.getLogger(__name__)


class FetchKind(str, Enum):
    STANDARD = "standard"
    OPTIMIZED = "optimized"
    STANDARD_FALLBACK = "standard_fallback"
    FAILED = "failed"


@dataclass(frozen=True)
class FetchResult:
    kind: FetchKind
    rows: tuple[Row, ...] = ()
    errors: tuple[BaseException, ...] = ()

    @property
    def ok(self) -> bool:
        return self.kind is not FetchKind.FAILED


@dataclass(frozen=True)
class RoutedSessions:
    kind: FetchKind
    report: NormalizationReport


def _with_student_name(row: Row, name: Any) -> Row:
    out = dict(row)
    out.pop("students", None)
    if row.get("student_id") is None:
        # unclaimed booking: the normalizer falls back to unassigned_name
        out["student_name"] = None
    else:
        out["student_name"] = name or UNKNOWN_STUDENT
    return out


class QueryRouter:
    """
    Reads a tutor's sessions through one of two strategies.

    standard:  a single joined read (sessions + student name), ordered by start.
    optimized: raw sessions and the tutor's students as two independent reads,
               merged here by student id.

    An optimized failure falls back to the standard read once; a failing
    standard read ends the request as FAILED.
    """

    def __init__(self, *, store: SessionStore, monitor: Optional[QueryPerformanceMonitor] = None) -> None:
        self._store = store
        self._monitor = monitor

    async def fetch_standard(self, tutor_id: str) -> list[Row]:
        rows = await self._store.fetch_sessions_with_students(tutor_id)
        return [_with_student_name(r, r.get("student_name") or (r.get("students") or {}).get("name")) for r in rows]

    async def fetch_optimized(self, tutor_id: str) -> list[Row]:
        # both reads settle before a failure is raised, so none outlives the attempt
        sessions, students = await asyncio.gather(
            self._store.fetch_sessions(tutor_id),
            self._store.fetch_students(tutor_id),
            return_exceptions=True,
        )
        for outcome in (sessions, students):
            if isinstance(outcome, BaseException):
                raise outcome
        names = {str(s["id"]): s.get("name") for s in students}
        return [
            _with_student_name(r, names.get(str(r["student_id"])) if r.get("student_id") is not None else None)
            for r in sessions
        ]

    async def fetch(self, tutor_id: str, *, use_optimized: bool) -> FetchResult:
        errors: tuple[BaseException, ...] = ()
        if use_optimized:
            optimized = await self._attempt(tutor_id, FetchKind.OPTIMIZED, self.fetch_optimized)
            if optimized.ok:
                return optimized
            errors = optimized.errors
            logger.warning("Optimized read failed for tutor %s; falling back to standard read", tutor_id)
            kind = FetchKind.STANDARD_FALLBACK
        else:
            kind = FetchKind.STANDARD

        standard = await self._attempt(tutor_id, kind, self.fetch_standard)
        if standard.ok:
            return standard
        return FetchResult(kind=FetchKind.FAILED, errors=errors + standard.errors)

    async def load_sessions(
        self,
        tutor_id: str,
        *,
        use_optimized: bool,
        normalizer: SessionNormalizer,
    ) -> RoutedSessions:
        result = await self.fetch(tutor_id, use_optimized=use_optimized)
        if not result.ok:
            raise FetchError(tutor_id, result.errors)

        report = normalizer.normalize_all(result.rows)
        # same order whichever path produced the rows
        ordered = tuple(sorted(report.sessions, key=lambda s: (s.start, s.session_id)))
        return RoutedSessions(
            kind=result.kind,
            report=NormalizationReport(sessions=ordered, rejected=report.rejected),
        )

    async def _attempt(
        self,
        tutor_id: str,
        kind: FetchKind,
        read: Callable[[str], Awaitable[list[Row]]],
    ) -> FetchResult:
        started = self._monitor.start() if self._monitor else 0.0
        try:
            rows = await read(tutor_id)
        except Exception as exc:
            logger.warning("%s read failed for tutor %s: %s", kind.value, tutor_id, exc)
            return FetchResult(kind=FetchKind.FAILED, errors=(exc,))

        if self._monitor:
            label = "optimized" if kind is FetchKind.OPTIMIZED else "standard"
            self._monitor.track(tutor_id, label, started, len(rows))
        return FetchResult(kind=kind, rows=tuple(rows))

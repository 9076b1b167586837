from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from tutortrack.domain.common.time import ensure_utc, to_iso, utc_now
from tutortrack.domain.ports import Clock, SessionStore

logger = logging.getLogger(__name__)

DEFAULT_SLOW_QUERY_MS = 5000.0
LARGE_OPTIMIZED_RESULT = 5000
ARCHIVE_AGE = timedelta(days=365)
ARCHIVE_MIN_SESSIONS = 1000


@dataclass(frozen=True)
class QueryMetrics:
    kind: str
    query_ms: float
    session_count: int
    rating: str
    recorded_at: datetime


def performance_rating(query_ms: float, session_count: int) -> str:
    per_session = query_ms / session_count if session_count > 0 else 0.0
    if per_session < 1:
        return "Excellent"
    if per_session < 3:
        return "Good"
    if per_session < 5:
        return "Fair"
    return "Needs Optimization"


def _short_id(tutor_id: str) -> str:
    return tutor_id[:8] + "..." if len(tutor_id) > 8 else tutor_id


class QueryPerformanceMonitor:
    """
    Keeps the last read timing per tutor and logs how the chosen read path
    performs. Timing uses an injectable monotonic timer (seconds).
    """

    def __init__(
        self,
        *,
        timer: Callable[[], float] = time.monotonic,
        clock: Optional[Clock] = None,
        slow_query_ms: float = DEFAULT_SLOW_QUERY_MS,
    ) -> None:
        self._timer = timer
        self._clock = clock
        self._slow_query_ms = slow_query_ms
        self._metrics: dict[str, QueryMetrics] = {}

    def start(self) -> float:
        return self._timer()

    def track(self, tutor_id: str, kind: str, started: float, session_count: int) -> QueryMetrics:
        query_ms = max(0.0, (self._timer() - started) * 1000.0)
        metrics = QueryMetrics(
            kind=kind,
            query_ms=query_ms,
            session_count=session_count,
            rating=performance_rating(query_ms, session_count),
            recorded_at=self._clock.now() if self._clock else utc_now(),
        )
        self._metrics[tutor_id] = metrics

        logger.info(
            "Query performance [%s] tutor=%s time=%.0fms sessions=%s rating=%s",
            kind, _short_id(tutor_id), query_ms, session_count, metrics.rating,
        )
        if query_ms > self._slow_query_ms:
            logger.warning("Slow query detected: %.0fms for %s sessions", query_ms, session_count)
        if kind == "optimized" and session_count > LARGE_OPTIMIZED_RESULT:
            logger.warning("Consider pagination or archiving for %s sessions", session_count)
        return metrics

    def last(self, tutor_id: str) -> Optional[QueryMetrics]:
        return self._metrics.get(tutor_id)

    def summary(self) -> dict[str, dict[str, Any]]:
        return {
            _short_id(tutor_id): {
                "kind": m.kind,
                "last_query_ms": round(m.query_ms, 1),
                "session_count": m.session_count,
                "rating": m.rating,
                "last_checked": to_iso(m.recorded_at),
            }
            for tutor_id, m in self._metrics.items()
        }

    async def recommend_archiving(self, store: SessionStore, tutor_id: str, now: datetime) -> bool:
        cutoff = ensure_utc(now) - ARCHIVE_AGE
        try:
            old = await store.count_sessions(tutor_id, started_before=cutoff)
        except Exception:
            logger.exception("Archiving check failed for tutor %s", _short_id(tutor_id))
            return False

        should_archive = (old or 0) > ARCHIVE_MIN_SESSIONS
        if should_archive:
            logger.info("Archiving recommended: %s sessions older than %s", old, to_iso(cutoff))
        return should_archive

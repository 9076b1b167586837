from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from tutortrack.domain.common.time import ensure_utc
from tutortrack.domain.earnings.aggregator import EarningsSummary, calculate_earnings
from tutortrack.domain.earnings.boundaries import (
    DEFAULT_TIMEZONE,
    PeriodBoundaries,
    compute_boundaries,
    resolve_timezone,
)
from tutortrack.domain.earnings.outstanding import (
    ExpectedEarnings,
    ExpectedHorizon,
    OutstandingSummary,
    expected_earnings,
    unpaid_past_sessions,
)
from tutortrack.domain.ports import Clock, SessionStore
from tutortrack.domain.routing.classifier import DatasetClassifier
from tutortrack.domain.routing.router import FetchKind, QueryRouter
from tutortrack.domain.sessions.models import RejectedSession
from tutortrack.domain.sessions.normalizer import SessionNormalizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardSnapshot:
    tutor_id: str
    sequence: int
    computed_at: datetime
    timezone: str
    timezone_warning: Optional[str]
    strategy: FetchKind
    session_count: Optional[int]
    boundaries: PeriodBoundaries
    summary: EarningsSummary
    outstanding: OutstandingSummary
    expected: ExpectedEarnings
    rejected: tuple[RejectedSession, ...]


class DashboardService:
    """
    Builds the earnings dashboard for one tutor per call.

    Snapshots carry an increasing `sequence`; callers that issue overlapping
    requests keep the highest one. A FetchError from the router propagates and
    no snapshot is produced.
    """

    def __init__(
        self,
        *,
        store: SessionStore,
        classifier: DatasetClassifier,
        router: QueryRouter,
        clock: Clock,
        default_timezone: str = DEFAULT_TIMEZONE,
        expected_horizon: ExpectedHorizon = ExpectedHorizon.NEXT_30_DAYS,
    ) -> None:
        self._store = store
        self._classifier = classifier
        self._router = router
        self._clock = clock
        self._default_tz = default_timezone
        self._horizon = expected_horizon
        self._sequence = itertools.count(1)

    async def tutor_timezone(self, tutor_id: str) -> str:
        try:
            row = await self._store.fetch_tutor(tutor_id)
        except Exception as exc:
            logger.warning("Could not read timezone for tutor %s (%s); using %s", tutor_id, exc, self._default_tz)
            return self._default_tz
        tz_name = (row or {}).get("timezone")
        return tz_name if tz_name and str(tz_name).strip() else self._default_tz

    async def compute(self, tutor_id: str, *, now: Optional[datetime] = None) -> DashboardSnapshot:
        sequence = next(self._sequence)
        now_utc = ensure_utc(now if now is not None else self._clock.now())

        tz_name, classification = await asyncio.gather(
            self.tutor_timezone(tutor_id),
            self._classifier.classify(tutor_id),
        )
        resolved = resolve_timezone(tz_name)

        routed = await self._router.load_sessions(
            tutor_id,
            use_optimized=classification.use_optimized,
            normalizer=SessionNormalizer(resolved.tz),
        )
        sessions = routed.report.sessions
        boundaries = compute_boundaries(resolved.tz, now_utc, timezone_name=resolved.name)

        summary = calculate_earnings(sessions, boundaries)
        logger.info(
            "Dashboard for tutor %s via %s: %s sessions (%s excluded), month earnings %.2f",
            tutor_id, routed.kind.value, summary.session_count, len(routed.report.rejected),
            summary.this_month_earnings,
        )

        return DashboardSnapshot(
            tutor_id=tutor_id,
            sequence=sequence,
            computed_at=now_utc,
            timezone=resolved.name,
            timezone_warning=str(resolved.error) if resolved.error else None,
            strategy=routed.kind,
            session_count=classification.session_count,
            boundaries=boundaries,
            summary=summary,
            outstanding=unpaid_past_sessions(sessions, now_utc),
            expected=expected_earnings(sessions, boundaries, self._horizon),
            rejected=routed.report.rejected,
        )

    def mark_stale(self, tutor_id: str) -> None:
        """Call on a store change notification for the tutor's tables."""
        self._classifier.cache.invalidate(tutor_id)

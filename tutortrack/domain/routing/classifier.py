from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from tutortrack.domain.errors import ClassificationError
from tutortrack.domain.ports import Clock, SessionStore

logger = logging.getLogger(__name__)

# Tutors owning more sessions than this read through the optimized path.
OPTIMIZED_SESSION_THRESHOLD = 500
DEFAULT_COUNT_TTL = timedelta(minutes=5)


@dataclass(frozen=True)
class _CachedCount:
    count: int
    stored_at: datetime


class SessionCountCache:
    """Per-tutor session counts, fresh for `ttl` after being stored."""

    def __init__(self, clock: Clock, ttl: timedelta = DEFAULT_COUNT_TTL) -> None:
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        self._clock = clock
        self._ttl = ttl
        self._entries: dict[str, _CachedCount] = {}

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def get(self, tutor_id: str) -> Optional[int]:
        entry = self._entries.get(tutor_id)
        if entry is None:
            return None
        if self._clock.now() - entry.stored_at >= self._ttl:
            del self._entries[tutor_id]
            return None
        return entry.count

    def put(self, tutor_id: str, count: int) -> None:
        # concurrent refreshes for one tutor: last write wins
        self._entries[tutor_id] = _CachedCount(count=count, stored_at=self._clock.now())

    def invalidate(self, tutor_id: Optional[str] = None) -> None:
        if tutor_id is None:
            self._entries.clear()
        else:
            self._entries.pop(tutor_id, None)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True)
class Classification:
    tutor_id: str
    session_count: Optional[int]
    use_optimized: bool
    from_cache: bool = False
    error: Optional[ClassificationError] = None


def exceeds_threshold(session_count: int) -> bool:
    return session_count > OPTIMIZED_SESSION_THRESHOLD


class DatasetClassifier:
    def __init__(self, *, store: SessionStore, cache: SessionCountCache) -> None:
        self._store = store
        self._cache = cache

    @property
    def cache(self) -> SessionCountCache:
        return self._cache

    async def measure(self, tutor_id: str) -> int:
        """Count query against the store; raises ClassificationError on failure."""
        try:
            count = await self._store.count_sessions(tutor_id)
        except Exception as exc:
            raise ClassificationError(tutor_id, exc) from exc
        if count is None or count < 0:
            raise ClassificationError(tutor_id, ValueError(f"invalid count {count!r}"))
        return int(count)

    async def classify(self, tutor_id: str) -> Classification:
        cached = self._cache.get(tutor_id)
        if cached is not None:
            logger.debug("Session count cache hit for tutor %s: %s", tutor_id, cached)
            return Classification(
                tutor_id=tutor_id,
                session_count=cached,
                use_optimized=exceeds_threshold(cached),
                from_cache=True,
            )

        try:
            count = await self.measure(tutor_id)
        except ClassificationError as exc:
            logger.warning("%s; using standard read path", exc)
            return Classification(tutor_id=tutor_id, session_count=None, use_optimized=False, error=exc)

        self._cache.put(tutor_id, count)
        decision = exceeds_threshold(count)
        logger.info(
            "Tutor %s owns %s sessions; %s read path",
            tutor_id, count, "optimized" if decision else "standard",
        )
        return Classification(tutor_id=tutor_id, session_count=count, use_optimized=decision)

    async def should_use_optimized(self, tutor_id: str) -> bool:
        return (await self.classify(tutor_id)).use_optimized

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional, Sequence

from tutortrack.config import Settings, load_settings
from tutortrack.domain.common.time import parse_iso, to_iso
from tutortrack.domain.dashboard.dashboard_service import DashboardService, DashboardSnapshot
from tutortrack.domain.errors import FetchError
from tutortrack.domain.ports import Clock
from tutortrack.domain.routing.classifier import DatasetClassifier, SessionCountCache
from tutortrack.domain.routing.monitor import QueryPerformanceMonitor
from tutortrack.domain.routing.router import QueryRouter
from tutortrack.infra.clock.system_clock import SystemClock
from tutortrack.infra.db.connection import Database
from tutortrack.infra.db.repo.sessions_sqlite import SqliteSessionStore


def _abs_db_path(repo_root: Path, db_path_str: str) -> Path:
    p = Path(db_path_str)
    if not p.is_absolute():
        p = repo_root / p
    p.parent.mkdir(parents=True, exist_ok=True)
    return p


def build_dashboard_service(
    settings: Settings,
    store: SqliteSessionStore,
    clock: Optional[Clock] = None,
    monitor: Optional[QueryPerformanceMonitor] = None,
) -> DashboardService:
    clock = clock or SystemClock("UTC")
    cache = SessionCountCache(clock, ttl=timedelta(seconds=settings.count_cache_ttl_seconds))
    monitor = monitor or QueryPerformanceMonitor(clock=clock, slow_query_ms=settings.slow_query_ms)
    return DashboardService(
        store=store,
        classifier=DatasetClassifier(store=store, cache=cache),
        router=QueryRouter(store=store, monitor=monitor),
        clock=clock,
        default_timezone=settings.default_tz,
    )


def format_snapshot(snap: DashboardSnapshot, *, archive_recommended: bool = False) -> str:
    s = snap.summary
    lines = [
        f"Tutor {snap.tutor_id} ({snap.timezone}) at {to_iso(snap.computed_at)} via {snap.strategy.value}",
        f"  Today:       {s.today_earnings:10.2f}",
        f"  This week:   {s.this_week_earnings:10.2f}",
        f"  This month:  {s.this_month_earnings:10.2f}  ({s.this_month_session_count} sessions)",
        f"  Last month:  {s.last_month_earnings:10.2f}",
        f"  Total paid:  {s.total_earnings:10.2f}",
        f"  Active students (30 days): {s.active_student_count}",
        f"  Unpaid past: {snap.outstanding.total_owed:10.2f}  ({snap.outstanding.count} sessions)",
        f"  Expected ({snap.expected.horizon.value}): {snap.expected.total:.2f}  ({snap.expected.count} sessions)",
    ]
    for entry in s.student_earnings:
        lines.append(f"    {entry.student_name:<24} {entry.total_earnings:10.2f}  x{entry.session_count}")
    if snap.timezone_warning:
        lines.append(f"  ! timezone: {snap.timezone_warning}")
    if snap.rejected:
        lines.append(f"  ! {len(snap.rejected)} session(s) excluded as malformed")
    if archive_recommended:
        lines.append("  ! over 1000 sessions are older than a year; consider archiving them")
    return "\n".join(lines)


async def run(tutor_id: str, now_iso: Optional[str] = None) -> int:
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    repo_root = Path.cwd()
    db = Database(str(_abs_db_path(repo_root, settings.db_path)))
    await db.init_schema()

    store = SqliteSessionStore(db)
    monitor = QueryPerformanceMonitor(clock=SystemClock("UTC"), slow_query_ms=settings.slow_query_ms)
    service = build_dashboard_service(settings, store, monitor=monitor)
    try:
        snap = await service.compute(tutor_id, now=parse_iso(now_iso) if now_iso else None)
    except FetchError as exc:
        logging.getLogger(__name__).error("%s", exc)
        return 1

    archive = await monitor.recommend_archiving(store, tutor_id, snap.computed_at)
    print(format_snapshot(snap, archive_recommended=archive))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Print a tutor's earnings dashboard.")
    parser.add_argument("tutor_id")
    parser.add_argument("--now", help="reference instant (ISO-8601), default: current time")
    args = parser.parse_args(argv)
    return asyncio.run(run(args.tutor_id, args.now))


if __name__ == "__main__":
    raise SystemExit(main())

"""Reads and refreshes the precomputed stats materialized views.

Loaders return ``None`` when a view cannot be used so callers fall back to
live aggregation: the relation is missing, it is empty, or its rows were built
for a different reporting window. Staleness is judged by the cache, which owns
the clock. Every other database error propagates.
"""

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from libs.common.logging import get_logger
from services.stats_service.models import (
    GLOBAL_STATS_VIEW,
    MEMBER_STATS_VIEW,
    mv_global_stats,
    mv_member_stats,
)
from services.stats_service.schemas import GlobalStatsResult
from services.stats_service.services.population import MemberStatsSnapshot
from services.stats_service.services.visit_store import timed_query
from services.stats_service.services.window import ReportingWindow
from sqlalchemy import func, select, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

# Postgres SQLSTATE for "relation does not exist"
UNDEFINED_TABLE = "42P01"

STATS_VIEWS = (MEMBER_STATS_VIEW, GLOBAL_STATS_VIEW)


def is_missing_relation(exc: Exception) -> bool:
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == UNDEFINED_TABLE:
        return True
    # SQLite has no SQLSTATE, only the message
    return "no such table" in str(orig).lower()


def _built_for(row, window: ReportingWindow) -> bool:
    return row.window_start == window.start and row.window_end == window.end


async def load_member_stats_snapshot(
    db: AsyncSession, window: ReportingWindow
) -> Optional[tuple[list[MemberStatsSnapshot], datetime]]:
    try:
        result = await timed_query(
            db,
            "member_stats_mv",
            select(mv_member_stats),
            is_expected_error=is_missing_relation,
        )
        rows = result.all()
    except DBAPIError as exc:
        if not is_missing_relation(exc):
            raise
        await db.rollback()
        logger.info("Member stats materialized view not found, using live query")
        return None

    if not rows:
        logger.info("Member stats materialized view is empty, falling back to live query")
        return None

    if not all(_built_for(row, window) for row in rows):
        logger.warning(
            "Member stats materialized view was built for another window "
            "(expected %s..%s), falling back to live query",
            window.start,
            window.end,
        )
        return None

    snapshots = [
        MemberStatsSnapshot(
            member_id=row.member_id,
            total_classes=int(row.total_classes or 0),
            classes_per_month=float(row.classes_per_month or 0),
            early_bird_score=float(row.early_bird_score or 0),
            late_bookings=int(row.late_bookings or 0),
            cancellations=int(row.cancellations or 0),
            perfect_weeks=int(row.perfect_weeks or 0),
        )
        for row in rows
    ]
    computed_at = min(row.computed_at for row in rows)
    return snapshots, computed_at


async def load_global_stats_snapshot(
    db: AsyncSession, window: ReportingWindow
) -> Optional[tuple[GlobalStatsResult, datetime]]:
    try:
        result = await timed_query(
            db,
            "global_stats_mv",
            select(mv_global_stats).limit(1),
            is_expected_error=is_missing_relation,
        )
        row = result.first()
    except DBAPIError as exc:
        if not is_missing_relation(exc):
            raise
        await db.rollback()
        logger.info("Global stats materialized view not found, using live query")
        return None

    if row is None:
        logger.info("Global stats materialized view is empty, falling back to live query")
        return None

    if not _built_for(row, window):
        logger.warning(
            "Global stats materialized view was built for %s..%s "
            "(expected %s..%s), falling back to live query",
            row.window_start,
            row.window_end,
            window.start,
            window.end,
        )
        return None

    total_members = int(row.total_members or 0)
    total_classes = int(row.total_classes or 0)
    stats = GlobalStatsResult(
        total_members=total_members,
        total_classes=total_classes,
        average_classes_per_member=(
            total_classes / total_members if total_members > 0 else 0
        ),
        most_popular_time_slot=row.most_popular_time_slot or "Unknown",
        most_popular_day=(row.most_popular_day or "Unknown").strip(),
        most_popular_coach=row.most_popular_coach or "Unknown",
        average_early_bird_score=int(row.avg_early_bird_score or 0),
    )
    return stats, row.computed_at


@dataclass(frozen=True)
class ViewRefreshResult:
    view_name: str
    rows_count: int
    refresh_duration_ms: int


async def refresh_stats_views(db: AsyncSession) -> list[ViewRefreshResult]:
    """
    Refresh both stats materialized views (Postgres only).

    Returns per-view row counts and timings. Commits on success; errors
    propagate so the caller can roll back.
    """
    results = []
    for view_name in STATS_VIEWS:
        start = time.perf_counter()
        await db.execute(text(f"REFRESH MATERIALIZED VIEW {view_name}"))
        duration_ms = round((time.perf_counter() - start) * 1000)

        count_result = await db.execute(
            select(func.count()).select_from(text(view_name))
        )
        rows_count = count_result.scalar() or 0
        results.append(
            ViewRefreshResult(
                view_name=view_name,
                rows_count=rows_count,
                refresh_duration_ms=duration_ms,
            )
        )
        logger.info(
            "Refreshed %s: %d rows in %dms", view_name, rows_count, duration_ms
        )

    await db.commit()
    return results

"""Read queries against the visit log and member directory.

All statements go through ``timed_query`` so slow or failing queries are
logged with a name. Aggregation happens in Python on the returned rows; the
queries only filter and project.
"""

import time
from datetime import date
from typing import Any, Callable, Iterable, Optional, Sequence

from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.stats_service.models import (
    STAFF_SENTINEL,
    ClassCategory,
    ClassTypeSchedule,
    Member,
    Visit,
)
from services.stats_service.services.window import ReportingWindow
from sqlalchemy import Row, Select, and_, select
from sqlalchemy.engine import Result
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

VISIT_COLUMNS = (
    Visit.member_id,
    Visit.class_date,
    Visit.class_time,
    Visit.location_name,
    Visit.coach_first_name,
    Visit.coach_last_name,
    Visit.class_type,
    Visit.cancelled,
    Visit.missed,
    Visit.booked_at,
    Visit.duration_minutes,
)


async def timed_query(
    db: AsyncSession,
    name: str,
    statement: Any,
    *,
    is_expected_error: Optional[Callable[[Exception], bool]] = None,
) -> Result:
    """
    Execute a statement, warning when it exceeds the slow-query threshold.

    Failures are logged and re-raised. Errors matching ``is_expected_error``
    are the caller's fallback signal and are only logged at debug level.
    """
    threshold_ms = get_settings().SLOW_QUERY_THRESHOLD_MS
    start = time.perf_counter()
    try:
        result = await db.execute(statement)
    except Exception as exc:
        duration_ms = round((time.perf_counter() - start) * 1000)
        if is_expected_error is not None and is_expected_error(exc):
            logger.debug("Query [%s] failed after %dms: %s", name, duration_ms, exc)
        else:
            logger.error(
                "Query [%s] failed after %dms", name, duration_ms, exc_info=True
            )
        raise

    duration_ms = round((time.perf_counter() - start) * 1000)
    if duration_ms >= threshold_ms:
        logger.warning(
            "Slow query [%s]: %dms",
            name,
            duration_ms,
            extra={"extra_fields": {"query": name, "duration_ms": duration_ms}},
        )
    return result


def attended():
    return and_(Visit.cancelled.is_(False), Visit.missed.is_(False))


def in_window(window: ReportingWindow):
    return Visit.class_date.between(window.start, window.end)


def _visit_select() -> Select:
    return select(*VISIT_COLUMNS)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


async def get_member(db: AsyncSession, member_id: str) -> Optional[Member]:
    result = await timed_query(
        db,
        "member_lookup",
        select(Member).where(Member.member_id == member_id).limit(1),
    )
    return result.scalar_one_or_none()


async def get_member_names(
    db: AsyncSession, member_ids: Iterable[str]
) -> dict[str, str]:
    """Map member_id -> raw display name for the ids present in the directory."""
    ids = sorted(set(member_ids))
    if not ids:
        return {}
    result = await timed_query(
        db,
        "member_names",
        select(Member.member_id, Member.name).where(Member.member_id.in_(ids)),
    )
    return {row.member_id: row.name for row in result.all()}


# ---------------------------------------------------------------------------
# Visits
# ---------------------------------------------------------------------------


async def get_member_visits(
    db: AsyncSession, member_id: str, window: Optional[ReportingWindow] = None
) -> Sequence[Row]:
    """All visits for one member, optionally restricted to the window."""
    statement = _visit_select().where(Visit.member_id == member_id)
    if window is not None:
        statement = statement.where(in_window(window))
    result = await timed_query(
        db, "member_visits", statement.order_by(Visit.class_date, Visit.class_time)
    )
    return result.all()


async def get_window_visits(db: AsyncSession, window: ReportingWindow) -> Sequence[Row]:
    """Every visit in the window, for population-level aggregation."""
    result = await timed_query(
        db, "window_visits", _visit_select().where(in_window(window))
    )
    return result.all()


async def get_coach_visits(
    db: AsyncSession, first_name: str, last_name: str, window: ReportingWindow
) -> Sequence[Row]:
    """Attended visits taught by one coach in the window."""
    statement = _visit_select().where(
        Visit.coach_first_name == first_name,
        Visit.coach_last_name == last_name,
        attended(),
        in_window(window),
    )
    result = await timed_query(
        db, "coach_visits", statement.order_by(Visit.class_date, Visit.class_time)
    )
    return result.all()


async def get_attributed_visits(db: AsyncSession, window: ReportingWindow) -> Sequence[Row]:
    """Attended visits in the window that carry a real coach name."""
    statement = select(
        Visit.coach_first_name,
        Visit.coach_last_name,
        Visit.class_date,
        Visit.class_time,
        Visit.location_name,
    ).where(
        attended(),
        in_window(window),
        Visit.coach_first_name.is_not(None),
        Visit.coach_last_name.is_not(None),
        Visit.coach_first_name != STAFF_SENTINEL,
        Visit.coach_last_name != STAFF_SENTINEL,
    )
    result = await timed_query(db, "coach_directory", statement)
    return result.all()


async def get_shared_session_visits(
    db: AsyncSession, member_id: str, window: ReportingWindow
) -> Sequence[Row]:
    """
    Attended visits by other members in sessions the member also attended.

    A session is an exact (class_date, class_time, location_name) match.
    Rows are distinct per (member, session).
    """
    member_sessions = (
        select(Visit.class_date, Visit.class_time, Visit.location_name)
        .where(Visit.member_id == member_id, attended(), in_window(window))
        .distinct()
        .subquery()
    )
    statement = (
        select(
            Visit.member_id,
            Visit.class_date,
            Visit.class_time,
            Visit.location_name,
        )
        .join(
            member_sessions,
            and_(
                Visit.class_date == member_sessions.c.class_date,
                Visit.class_time == member_sessions.c.class_time,
                Visit.location_name == member_sessions.c.location_name,
            ),
        )
        .where(Visit.member_id != member_id, attended())
        .distinct()
    )
    result = await timed_query(db, "top_classmates", statement)
    return result.all()


# ---------------------------------------------------------------------------
# Class type calendar
# ---------------------------------------------------------------------------


async def get_class_type_schedule(
    db: AsyncSession, window: Optional[ReportingWindow] = None
) -> dict[date, ClassCategory]:
    statement = select(ClassTypeSchedule.class_date, ClassTypeSchedule.class_type)
    if window is not None:
        statement = statement.where(
            ClassTypeSchedule.class_date.between(window.start, window.end)
        )
    result = await timed_query(db, "class_type_schedule", statement)
    return {row.class_date: row.class_type for row in result.all()}


def resolve_class_category(
    class_date: date, schedule: dict[date, ClassCategory]
) -> Optional[ClassCategory]:
    """Category programmed for a date; visits inherit it from the calendar."""
    return schedule.get(class_date)

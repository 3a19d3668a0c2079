"""Chain-wide stats across all members, cached separately from peer stats."""

from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Callable, Optional

from libs.common.config import Settings, get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.common.snapshot_cache import SnapshotCache
from services.stats_service.schemas import GlobalStatsResult
from services.stats_service.services.metrics import (
    coach_name,
    day_name,
    early_bird_score,
    format_time_slot,
    is_attended,
    round_int,
    top_key,
    weekday_order,
)
from services.stats_service.services.snapshots import load_global_stats_snapshot
from services.stats_service.services.visit_store import get_window_visits
from services.stats_service.services.window import ReportingWindow
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)

UNKNOWN = "Unknown"


async def compute_global_stats(
    db: AsyncSession, window: ReportingWindow
) -> GlobalStatsResult:
    """Aggregate every visit in the window with a live query."""
    visits = await get_window_visits(db, window)

    members = set()
    attended_by_member = defaultdict(list)
    time_slots = Counter()
    days = Counter()
    coaches = Counter()
    for visit in visits:
        members.add(visit.member_id)
        if not is_attended(visit):
            continue
        attended_by_member[visit.member_id].append(visit)
        if visit.class_time is not None:
            time_slots[visit.class_time] += 1
        days[day_name(visit.class_date)] += 1
        name = coach_name(visit.coach_first_name, visit.coach_last_name)
        if name:
            coaches[name] += 1

    total_members = len(members)
    total_classes = sum(len(v) for v in attended_by_member.values())

    # Mean of per-member rates, not the rate over all classes
    member_scores = [early_bird_score(v) for v in attended_by_member.values()]
    average_early_bird = (
        round_int(sum(member_scores) / len(member_scores)) if member_scores else 0
    )

    popular_time = top_key(time_slots, None)
    return GlobalStatsResult(
        total_members=total_members,
        total_classes=total_classes,
        average_classes_per_member=(
            total_classes / total_members if total_members > 0 else 0
        ),
        most_popular_time_slot=(
            format_time_slot(popular_time) if popular_time is not None else UNKNOWN
        ),
        most_popular_day=top_key(days, UNKNOWN, tiebreak=weekday_order),
        most_popular_coach=top_key(coaches, UNKNOWN),
        average_early_bird_score=average_early_bird,
    )


def build_global_stats_cache(
    session_factory: async_sessionmaker,
    window: ReportingWindow,
    *,
    settings: Optional[Settings] = None,
    clock: Callable[[], datetime] = utc_now,
) -> SnapshotCache[GlobalStatsResult]:
    """Global stats cache backed by ``mv_global_stats`` with a live fallback."""
    settings = settings or get_settings()

    async def load_snapshot():
        async with session_factory() as db:
            return await load_global_stats_snapshot(db, window)

    async def compute_live():
        async with session_factory() as db:
            return await compute_global_stats(db, window)

    return SnapshotCache(
        name="global stats",
        ttl=timedelta(seconds=settings.GLOBAL_STATS_CACHE_TTL_SECONDS),
        max_snapshot_age=timedelta(hours=settings.SNAPSHOT_MAX_AGE_HOURS),
        load_snapshot=load_snapshot,
        compute_live=compute_live,
        clock=clock,
    )

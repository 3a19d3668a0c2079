"""Peer comparison: percentile ranks, population averages and top classmates."""

from collections import Counter

from libs.common.logging import get_logger
from libs.common.member_utils import parse_display_name
from services.stats_service.schemas import Classmate, PeerPercentiles, PeerStatsResult
from services.stats_service.services.metrics import percentile_rank
from services.stats_service.services.population import (
    PERCENTILE_METRICS,
    MemberStatsSnapshot,
    Population,
    compute_member_snapshot,
)
from services.stats_service.services.visit_store import (
    get_member_names,
    get_shared_session_visits,
)
from services.stats_service.services.window import ReportingWindow
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

TOP_CLASSMATES = 3


def compute_percentiles(
    snapshot: MemberStatsSnapshot, population: Population
) -> PeerPercentiles:
    return PeerPercentiles(
        **{
            metric: percentile_rank(
                getattr(snapshot, metric), population.sorted_metrics[metric]
            )
            for metric in PERCENTILE_METRICS
        }
    )


async def get_top_classmates(
    db: AsyncSession, member_id: str, window: ReportingWindow, limit: int = TOP_CLASSMATES
) -> list[Classmate]:
    """Members who shared the most attended sessions with ``member_id``."""
    rows = await get_shared_session_visits(db, member_id, window)
    shared = Counter(row.member_id for row in rows)
    if not shared:
        return []

    names = await get_member_names(db, shared.keys())
    ordered = sorted(
        ((mid, count) for mid, count in shared.items() if mid in names),
        key=lambda item: (-item[1], item[0]),
    )

    classmates = []
    for mid, count in ordered[:limit]:
        first_name, last_name = parse_display_name(names[mid])
        classmates.append(
            Classmate(first_name=first_name, last_name=last_name, shared_classes=count)
        )
    return classmates


async def compute_peer_stats(
    db: AsyncSession,
    member_id: str,
    window: ReportingWindow,
    population: Population,
) -> PeerStatsResult:
    snapshot = population.get(member_id)
    if snapshot is None:
        # Joined after the last cache refresh
        logger.info("Member %s not in cached population, computing live", member_id)
        snapshot = await compute_member_snapshot(db, member_id, window)

    averages = population.averages
    return PeerStatsResult(
        average_classes_per_month=averages.classes_per_month,
        average_early_bird_score=averages.early_bird_score,
        average_late_bookings=averages.late_bookings,
        average_cancellations=averages.cancellations,
        top_classmates=await get_top_classmates(db, member_id, window),
        percentiles=compute_percentiles(snapshot, population),
    )

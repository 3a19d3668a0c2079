"""Population-level member metrics used for peer percentiles.

``Population`` is an immutable snapshot of every active member's
``MemberStatsSnapshot`` for the reporting window, plus the derived averages
and pre-sorted metric columns. It is rebuilt wholesale on every cache refresh.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, Sequence

from libs.common.config import Settings, get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.common.snapshot_cache import SnapshotCache
from services.stats_service.services.metrics import (
    count_late_bookings,
    early_bird_score,
    is_attended,
    perfect_weeks,
)
from services.stats_service.services.visit_store import (
    get_member_visits,
    get_window_visits,
)
from services.stats_service.services.window import ReportingWindow
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)

PERCENTILE_METRICS = (
    "total_classes",
    "early_bird_score",
    "classes_per_month",
    "late_bookings",
    "cancellations",
    "perfect_weeks",
)


@dataclass(frozen=True)
class MemberStatsSnapshot:
    member_id: str
    total_classes: int
    classes_per_month: float
    early_bird_score: float
    late_bookings: int
    cancellations: int
    perfect_weeks: int


@dataclass(frozen=True)
class PeerAverages:
    classes_per_month: float = 0.0
    early_bird_score: float = 0.0
    late_bookings: float = 0.0
    cancellations: float = 0.0

    @classmethod
    def from_snapshots(cls, snapshots: Sequence[MemberStatsSnapshot]) -> "PeerAverages":
        if not snapshots:
            return cls()
        count = len(snapshots)
        return cls(
            classes_per_month=sum(s.classes_per_month for s in snapshots) / count,
            early_bird_score=sum(s.early_bird_score for s in snapshots) / count,
            late_bookings=sum(s.late_bookings for s in snapshots) / count,
            cancellations=sum(s.cancellations for s in snapshots) / count,
        )


@dataclass(frozen=True)
class Population:
    members: tuple[MemberStatsSnapshot, ...]
    averages: PeerAverages
    sorted_metrics: dict[str, list[float]] = field(repr=False)
    _by_member: dict[str, MemberStatsSnapshot] = field(repr=False)

    @classmethod
    def from_snapshots(cls, snapshots: Iterable[MemberStatsSnapshot]) -> "Population":
        members = tuple(snapshots)
        return cls(
            members=members,
            averages=PeerAverages.from_snapshots(members),
            sorted_metrics={
                metric: sorted(getattr(s, metric) for s in members)
                for metric in PERCENTILE_METRICS
            },
            _by_member={s.member_id: s for s in members},
        )

    def __len__(self) -> int:
        return len(self.members)

    def get(self, member_id: str) -> Optional[MemberStatsSnapshot]:
        return self._by_member.get(member_id)


def build_member_snapshot(
    member_id: str, visits: Sequence, window: ReportingWindow
) -> MemberStatsSnapshot:
    """Snapshot for one member from their visits inside the window."""
    attended_days = [v.class_date for v in visits if is_attended(v)]
    total_classes = len(attended_days)
    return MemberStatsSnapshot(
        member_id=member_id,
        total_classes=total_classes,
        classes_per_month=total_classes / window.months,
        early_bird_score=early_bird_score(visits),
        late_bookings=count_late_bookings(visits),
        cancellations=sum(1 for v in visits if not is_attended(v)),
        perfect_weeks=perfect_weeks(attended_days),
    )


def build_member_snapshots(
    visits: Iterable, window: ReportingWindow
) -> list[MemberStatsSnapshot]:
    """One snapshot per member with any visit (attended or not) in the window."""
    by_member = defaultdict(list)
    for visit in visits:
        if window.contains(visit.class_date):
            by_member[visit.member_id].append(visit)
    return [
        build_member_snapshot(member_id, member_visits, window)
        for member_id, member_visits in by_member.items()
    ]


async def compute_population_live(
    db: AsyncSession, window: ReportingWindow
) -> Population:
    visits = await get_window_visits(db, window)
    population = Population.from_snapshots(build_member_snapshots(visits, window))
    logger.info("Computed peer stats for %d members", len(population))
    return population


async def compute_member_snapshot(
    db: AsyncSession, member_id: str, window: ReportingWindow
) -> MemberStatsSnapshot:
    """Live snapshot for a member missing from the cached population."""
    visits = await get_member_visits(db, member_id, window)
    return build_member_snapshot(member_id, visits, window)


def build_population_cache(
    session_factory: async_sessionmaker,
    window: ReportingWindow,
    *,
    settings: Optional[Settings] = None,
    clock: Callable[[], datetime] = utc_now,
) -> SnapshotCache[Population]:
    """Population cache backed by ``mv_member_stats`` with a live fallback."""
    from services.stats_service.services.snapshots import load_member_stats_snapshot

    settings = settings or get_settings()

    async def load_snapshot():
        async with session_factory() as db:
            loaded = await load_member_stats_snapshot(db, window)
        if loaded is None:
            return None
        snapshots, computed_at = loaded
        return Population.from_snapshots(snapshots), computed_at

    async def compute_live():
        async with session_factory() as db:
            return await compute_population_live(db, window)

    return SnapshotCache(
        name="peer stats",
        ttl=timedelta(seconds=settings.PEER_STATS_CACHE_TTL_SECONDS),
        max_snapshot_age=timedelta(hours=settings.SNAPSHOT_MAX_AGE_HOURS),
        load_snapshot=load_snapshot,
        compute_live=compute_live,
        clock=clock,
    )

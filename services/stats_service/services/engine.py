"""Stats orchestrator: composes member, peer, global and coach stats."""

import asyncio
import time
from datetime import datetime
from typing import Callable, Optional

from libs.common.config import Settings, get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.common.snapshot_cache import SnapshotCache
from services.stats_service.schemas import (
    ClientStatsResult,
    CoachStatsResult,
    CoachSummary,
    FullReport,
    GlobalStatsResult,
    PeerStatsResult,
)
from services.stats_service.services import coach_stats, member_stats, peer_stats
from services.stats_service.services.global_stats import build_global_stats_cache
from services.stats_service.services.population import (
    Population,
    build_population_cache,
)
from services.stats_service.services.window import ReportingWindow
from sqlalchemy.ext.asyncio import async_sessionmaker

logger = get_logger(__name__)


class StatsEngine:
    """
    Entry point for every stats computation.

    Holds the session factory and both in-process caches. Each computation
    opens its own session so concurrent work never shares an AsyncSession.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        window: ReportingWindow,
        *,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
        population_cache: Optional[SnapshotCache[Population]] = None,
        global_cache: Optional[SnapshotCache[GlobalStatsResult]] = None,
    ):
        self.settings = settings or get_settings()
        self.session_factory = session_factory
        self.window = window
        self.clock = clock
        self.population_cache = population_cache or build_population_cache(
            session_factory, window, settings=self.settings, clock=clock
        )
        self.global_cache = global_cache or build_global_stats_cache(
            session_factory, window, settings=self.settings, clock=clock
        )

    async def compute_member_stats(self, member_id: str) -> Optional[ClientStatsResult]:
        async with self.session_factory() as db:
            return await member_stats.compute_member_stats(db, member_id, self.window)

    async def compute_peer_comparison(self, member_id: str) -> PeerStatsResult:
        population = await self.population_cache.get()
        async with self.session_factory() as db:
            return await peer_stats.compute_peer_stats(
                db, member_id, self.window, population
            )

    async def compute_global_stats(self) -> GlobalStatsResult:
        return await self.global_cache.get()

    async def compute_coach_stats(
        self, first_name: str, last_name: str
    ) -> Optional[CoachStatsResult]:
        start = time.perf_counter()
        async with self.session_factory() as db:
            result = await coach_stats.compute_coach_stats(
                db, first_name, last_name, self.window
            )
        logger.info(
            "Coach stats for %s %s computed in %dms",
            first_name,
            last_name,
            round((time.perf_counter() - start) * 1000),
        )
        return result

    async def list_coaches(self) -> list[CoachSummary]:
        async with self.session_factory() as db:
            return await coach_stats.list_coaches(
                db, self.window, self.settings.COACH_LIST_MIN_SESSIONS
            )

    async def compute_full_report(self, member_id: str) -> Optional[FullReport]:
        """
        Member stats merged with peer comparison and global stats.

        Returns None when the member does not exist. Peer and global stats
        run concurrently once the member is known.
        """
        start = time.perf_counter()

        client = await self.compute_member_stats(member_id)
        if client is None:
            return None

        peer, global_stats = await asyncio.gather(
            self.compute_peer_comparison(member_id),
            self.compute_global_stats(),
        )

        report = FullReport(
            **client.model_dump(),
            member_id=member_id,
            last_updated=self.clock(),
            peer_comparison=peer,
            global_stats=global_stats,
        )
        logger.info(
            "Stats for member %s computed in %dms",
            member_id,
            round((time.perf_counter() - start) * 1000),
        )
        return report

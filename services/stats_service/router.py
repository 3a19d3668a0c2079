from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, status
from libs.db.config import AsyncSessionLocal
from services.stats_service.schemas import (
    CoachListResponse,
    CoachStatsResult,
    FullReport,
    GlobalStatsResult,
)
from services.stats_service.services.engine import StatsEngine
from services.stats_service.services.window import ReportingWindow

router = APIRouter(tags=["stats"])


@lru_cache
def get_stats_engine() -> StatsEngine:
    """Process-wide engine so the in-process caches survive across requests."""
    return StatsEngine(AsyncSessionLocal, ReportingWindow.from_settings())


@router.get("/members/{member_id}", response_model=FullReport)
async def get_member_report(
    member_id: str,
    engine: StatsEngine = Depends(get_stats_engine),
):
    """
    Full year-in-review report for one member.
    """
    report = await engine.compute_full_report(member_id)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No stats found for member: {member_id}",
        )
    return report


@router.get("/global", response_model=GlobalStatsResult)
async def get_global_stats(engine: StatsEngine = Depends(get_stats_engine)):
    return await engine.compute_global_stats()


@router.get("/coaches", response_model=CoachListResponse)
async def list_coaches(engine: StatsEngine = Depends(get_stats_engine)):
    """
    Coaches who taught enough sessions in the window to get a report.
    """
    return CoachListResponse(coaches=await engine.list_coaches())


@router.get("/coaches/{first_name}/{last_name}", response_model=CoachStatsResult)
async def get_coach_report(
    first_name: str,
    last_name: str,
    engine: StatsEngine = Depends(get_stats_engine),
):
    stats = await engine.compute_coach_stats(first_name, last_name)
    if stats is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No stats found for coach: {first_name} {last_name}",
        )
    return stats

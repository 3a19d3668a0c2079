"""Stats Service schemas package."""

from services.stats_service.schemas.enums import CoachTimeSlot
from services.stats_service.schemas.main import (
    Classmate,
    ClassTypeCount,
    ClientStatsResult,
    CoachClassTypeCount,
    CoachListResponse,
    CoachLocationStats,
    CoachMonthlyCount,
    CoachStatsResult,
    CoachStudentStats,
    CoachSummary,
    CoachTimeSlotStats,
    FavoriteLocation,
    FullReport,
    GlobalStatsResult,
    LocationShare,
    MonthCount,
    PeerPercentiles,
    PeerStatsResult,
    YearCount,
)

__all__ = [
    "Classmate",
    "ClassTypeCount",
    "ClientStatsResult",
    "CoachClassTypeCount",
    "CoachListResponse",
    "CoachLocationStats",
    "CoachMonthlyCount",
    "CoachStatsResult",
    "CoachStudentStats",
    "CoachSummary",
    "CoachTimeSlot",
    "CoachTimeSlotStats",
    "FavoriteLocation",
    "FullReport",
    "GlobalStatsResult",
    "LocationShare",
    "MonthCount",
    "PeerPercentiles",
    "PeerStatsResult",
    "YearCount",
]

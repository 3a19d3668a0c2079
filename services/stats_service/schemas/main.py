from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from services.stats_service.models.enums import ClassCategory


class StatsModel(BaseModel):
    """Base for report payloads: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# ---------------------------------------------------------------------------
# Member stats
# ---------------------------------------------------------------------------


class YearCount(StatsModel):
    year: int
    count: int


class MonthCount(StatsModel):
    month: str
    count: int


class FavoriteLocation(StatsModel):
    name: str
    percentage: int


class LocationShare(StatsModel):
    name: str
    count: int
    percentage: int


class ClassTypeCount(StatsModel):
    category: ClassCategory
    count: int
    percentage: float  # one decimal place, share of categorised classes


class ClientStatsResult(StatsModel):
    first_name: str
    last_name: str
    email: str
    first_seen: Optional[date] = None
    total_classes: int
    all_time_classes: int
    classes_by_year: List[YearCount]
    total_cancellations: int
    total_late_bookings: int
    top_coach: str
    favorite_time_of_day: str
    top_three_time_slots: List[str]
    most_frequent_day: str
    longest_streak: int
    early_bird_score: int
    classes_per_month: List[MonthCount]
    favorite_location: FavoriteLocation
    location_breakdown: List[LocationShare]
    perfect_weeks: int
    class_types: List[ClassTypeCount]


# ---------------------------------------------------------------------------
# Peer comparison
# ---------------------------------------------------------------------------


class Classmate(StatsModel):
    first_name: str
    last_name: str
    shared_classes: int


class PeerPercentiles(StatsModel):
    total_classes: int = 0
    early_bird_score: int = 0
    classes_per_month: int = 0
    late_bookings: int = 0
    cancellations: int = 0
    perfect_weeks: int = 0


class PeerStatsResult(StatsModel):
    average_classes_per_month: float
    average_early_bird_score: float
    average_late_bookings: float
    average_cancellations: float
    top_classmates: List[Classmate]
    percentiles: PeerPercentiles


# ---------------------------------------------------------------------------
# Global stats
# ---------------------------------------------------------------------------


class GlobalStatsResult(StatsModel):
    total_members: int
    total_classes: int
    average_classes_per_member: float
    most_popular_time_slot: str
    most_popular_day: str
    most_popular_coach: str
    average_early_bird_score: int


class FullReport(ClientStatsResult):
    """Member stats merged with peer comparison and chain-wide stats."""

    member_id: str
    last_updated: datetime
    peer_comparison: PeerStatsResult
    global_stats: GlobalStatsResult


# ---------------------------------------------------------------------------
# Coach stats
# ---------------------------------------------------------------------------


class CoachLocationStats(StatsModel):
    name: str
    class_count: int
    percentage: float


class CoachStudentStats(StatsModel):
    first_name: str
    last_name: str
    total_classes: int
    first_class: date
    last_class: date


class CoachMonthlyCount(StatsModel):
    month: str
    class_count: int
    unique_students: int


class CoachTimeSlotStats(StatsModel):
    time_slot: str
    class_count: int
    percentage: float


class CoachClassTypeCount(StatsModel):
    category: ClassCategory
    class_count: int
    percentage: float


class CoachStatsResult(StatsModel):
    coach_first_name: str
    coach_last_name: str
    coach_full_name: str
    first_class_date: date
    total_classes: int
    total_student_visits: int
    unique_students: int
    locations: List[CoachLocationStats]
    total_teaching_hours: float
    busiest_month: CoachMonthlyCount
    average_class_size: float
    top_students: List[CoachStudentStats]
    favorite_time_slot: CoachTimeSlotStats
    all_time_slots: List[CoachTimeSlotStats]
    monthly_breakdown: List[CoachMonthlyCount]
    most_popular_day: str
    class_types: List[CoachClassTypeCount]
    student_retention_rate: float
    longest_teaching_streak: int
    early_morning_warrior: bool
    late_night_hero: bool
    last_updated: datetime


class CoachSummary(StatsModel):
    first_name: str
    last_name: str
    full_name: str
    class_count: int


class CoachListResponse(StatsModel):
    coaches: List[CoachSummary]

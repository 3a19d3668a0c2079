"""Per-member year-in-review stats."""

from collections import Counter
from typing import Optional

from libs.common.logging import get_logger
from libs.common.member_utils import parse_display_name
from services.stats_service.models import ClassCategory
from services.stats_service.schemas import (
    ClassTypeCount,
    ClientStatsResult,
    FavoriteLocation,
    LocationShare,
    MonthCount,
    YearCount,
)
from services.stats_service.services.metrics import (
    count_late_bookings,
    coach_name,
    day_name,
    early_bird_score,
    format_time_slot,
    is_attended,
    longest_streak,
    percentage,
    perfect_weeks,
    ranked,
    round_int,
    top_key,
    weekday_order,
)
from services.stats_service.services.visit_store import (
    get_class_type_schedule,
    get_member,
    get_member_visits,
    resolve_class_category,
)
from services.stats_service.services.window import ReportingWindow
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

UNKNOWN = "Unknown"


async def compute_member_stats(
    db: AsyncSession, member_id: str, window: ReportingWindow
) -> Optional[ClientStatsResult]:
    """
    Compute one member's stats for the window plus their all-time history.

    Returns None when the member id is not in the member directory.
    """
    member = await get_member(db, member_id)
    if member is None:
        logger.info("Member %s not found", member_id)
        return None

    all_visits = await get_member_visits(db, member_id)
    schedule = await get_class_type_schedule(db, window)

    all_attended = [v for v in all_visits if is_attended(v)]
    visits = [v for v in all_visits if window.contains(v.class_date)]
    attended = [v for v in visits if is_attended(v)]

    first_name, last_name = parse_display_name(member.name)
    first_seen = (
        min(v.class_date for v in all_attended)
        if all_attended
        else (member.created_at.date() if member.created_at else None)
    )

    time_slots = Counter(v.class_time for v in attended if v.class_time is not None)
    top_times = [format_time_slot(t) for t, _ in ranked(time_slots)[:3]]

    coaches = Counter(
        name
        for name in (coach_name(v.coach_first_name, v.coach_last_name) for v in attended)
        if name
    )
    days = Counter(day_name(v.class_date) for v in attended)
    locations = _location_breakdown(attended)

    return ClientStatsResult(
        first_name=first_name,
        last_name=last_name,
        email=member.email or "",
        first_seen=first_seen,
        total_classes=len(attended),
        all_time_classes=len(all_attended),
        classes_by_year=[
            YearCount(year=year, count=count)
            for year, count in sorted(
                Counter(v.class_date.year for v in all_attended).items()
            )
        ],
        total_cancellations=len(visits) - len(attended),
        total_late_bookings=count_late_bookings(attended),
        top_coach=top_key(coaches, UNKNOWN),
        favorite_time_of_day=top_times[0] if top_times else UNKNOWN,
        top_three_time_slots=top_times,
        most_frequent_day=top_key(days, UNKNOWN, tiebreak=weekday_order),
        longest_streak=longest_streak(v.class_date for v in attended),
        early_bird_score=early_bird_score(attended),
        classes_per_month=_classes_per_month(attended, window),
        favorite_location=(
            FavoriteLocation(name=locations[0].name, percentage=locations[0].percentage)
            if locations
            else FavoriteLocation(name=UNKNOWN, percentage=0)
        ),
        location_breakdown=locations,
        perfect_weeks=perfect_weeks(v.class_date for v in attended),
        class_types=_class_type_mix(attended, schedule),
    )


def _location_breakdown(attended) -> list[LocationShare]:
    counts = Counter(v.location_name for v in attended if v.location_name)
    total = sum(counts.values())
    return [
        LocationShare(name=name, count=count, percentage=round_int(percentage(count, total)))
        for name, count in ranked(counts)
    ]


def _classes_per_month(attended, window: ReportingWindow) -> list[MonthCount]:
    counts = Counter((v.class_date.year, v.class_date.month) for v in attended)
    return [
        MonthCount(month=label, count=counts.get(key, 0))
        for key, label in zip(window.iter_months(), window.month_labels())
    ]


def _class_type_mix(attended, schedule) -> list[ClassTypeCount]:
    counts = Counter(
        category
        for category in (resolve_class_category(v.class_date, schedule) for v in attended)
        if category is not None
    )
    total = sum(counts.values())
    return [
        ClassTypeCount(
            category=category,
            count=counts.get(category, 0),
            percentage=percentage(counts.get(category, 0), total, 1),
        )
        for category in ClassCategory
    ]

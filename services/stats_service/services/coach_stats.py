"""Coach year-in-review stats.

A session is one scheduled class instance, identified by
(class_date, class_time, location_name). Session counts ignore how many
members attended; visit counts do not.
"""

import calendar
from collections import Counter, defaultdict
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.common.member_utils import parse_display_name
from services.stats_service.models import ClassCategory
from services.stats_service.schemas import (
    CoachClassTypeCount,
    CoachLocationStats,
    CoachMonthlyCount,
    CoachStatsResult,
    CoachStudentStats,
    CoachSummary,
    CoachTimeSlot,
    CoachTimeSlotStats,
)
from services.stats_service.services.metrics import (
    BADGE_SHARE_THRESHOLD,
    coach_time_slot,
    day_name,
    longest_streak,
    percentage,
    ranked,
    round_half_up,
    top_key,
    weekday_order,
)
from services.stats_service.services.visit_store import (
    get_attributed_visits,
    get_coach_visits,
    get_member_names,
)
from services.stats_service.services.window import ReportingWindow
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

NOT_AVAILABLE = "N/A"
TOP_STUDENTS = 10
TIME_SLOT_ORDER = list(CoachTimeSlot)


def session_key(visit) -> tuple:
    return (visit.class_date, visit.class_time, visit.location_name)


async def compute_coach_stats(
    db: AsyncSession, first_name: str, last_name: str, window: ReportingWindow
) -> Optional[CoachStatsResult]:
    """
    Compute a coach's teaching stats for the window.

    Returns None when the coach taught no attended sessions in the window.
    """
    visits = await get_coach_visits(db, first_name, last_name, window)
    if not visits:
        logger.info("No stats found for coach: %s %s", first_name, last_name)
        return None

    sessions = defaultdict(list)
    for visit in visits:
        sessions[session_key(visit)].append(visit)
    total_sessions = len(sessions)

    students = {v.member_id for v in visits}
    session_sizes = [len({v.member_id for v in attendees}) for attendees in sessions.values()]

    # Every attendee row repeats the duration; keep the largest per session
    durations = [
        max((v.duration_minutes for v in attendees if v.duration_minutes), default=0)
        for attendees in sessions.values()
    ]

    all_time_slots = _time_slots(sessions, total_sessions)
    monthly = _monthly_breakdown(sessions)
    busiest = (
        max(monthly, key=lambda m: m.class_count)
        if monthly
        else CoachMonthlyCount(month=NOT_AVAILABLE, class_count=0, unique_students=0)
    )

    bucketed = sum(slot.class_count for slot in all_time_slots)
    slot_counts = {slot.time_slot: slot.class_count for slot in all_time_slots}

    return CoachStatsResult(
        coach_first_name=first_name,
        coach_last_name=last_name,
        coach_full_name=f"{first_name} {last_name}",
        first_class_date=min(v.class_date for v in visits),
        total_classes=total_sessions,
        total_student_visits=len(visits),
        unique_students=len(students),
        locations=_locations(sessions, total_sessions),
        total_teaching_hours=round_half_up(sum(durations) / 60.0, 1),
        busiest_month=busiest,
        average_class_size=round_half_up(sum(session_sizes) / total_sessions, 1),
        top_students=await _top_students(db, visits),
        favorite_time_slot=(
            all_time_slots[0]
            if all_time_slots
            else CoachTimeSlotStats(time_slot=NOT_AVAILABLE, class_count=0, percentage=0)
        ),
        all_time_slots=all_time_slots,
        monthly_breakdown=monthly,
        most_popular_day=top_key(
            Counter(day_name(key[0]) for key in sessions),
            NOT_AVAILABLE,
            tiebreak=weekday_order,
        ),
        class_types=_class_types(sessions, total_sessions),
        student_retention_rate=_retention_rate(visits),
        longest_teaching_streak=longest_streak(key[0] for key in sessions),
        early_morning_warrior=_badge(slot_counts, CoachTimeSlot.EARLY_BIRD, bucketed),
        late_night_hero=_badge(slot_counts, CoachTimeSlot.NIGHT, bucketed),
        last_updated=utc_now(),
    )


def _locations(sessions, total_sessions) -> list[CoachLocationStats]:
    counts = Counter(key[2] for key in sessions if key[2])
    return [
        CoachLocationStats(
            name=name,
            class_count=count,
            percentage=percentage(count, total_sessions, 1),
        )
        for name, count in ranked(counts)
    ]


def _time_slots(sessions, total_sessions) -> list[CoachTimeSlotStats]:
    # Sessions without a start time cannot be bucketed
    counts = Counter(coach_time_slot(key[1]) for key in sessions if key[1] is not None)
    return [
        CoachTimeSlotStats(
            time_slot=slot.value,
            class_count=count,
            percentage=percentage(count, total_sessions, 1),
        )
        for slot, count in ranked(counts, tiebreak=TIME_SLOT_ORDER.index)
    ]


def _monthly_breakdown(sessions) -> list[CoachMonthlyCount]:
    session_counts = Counter()
    month_students = defaultdict(set)
    for key, attendees in sessions.items():
        month = (key[0].year, key[0].month)
        session_counts[month] += 1
        month_students[month].update(v.member_id for v in attendees)

    return [
        CoachMonthlyCount(
            month=calendar.month_name[month],
            class_count=session_counts[(year, month)],
            unique_students=len(month_students[(year, month)]),
        )
        for year, month in sorted(session_counts)
    ]


def _class_types(sessions, total_sessions) -> list[CoachClassTypeCount]:
    counts = Counter()
    for key, attendees in sessions.items():
        labels = {ClassCategory.from_label(v.class_type) for v in attendees}
        labels.discard(None)
        # One category per session; the first label wins if attendee rows disagree
        if labels:
            counts[sorted(labels, key=list(ClassCategory).index)[0]] += 1
    return [
        CoachClassTypeCount(
            category=category,
            class_count=counts.get(category, 0),
            percentage=percentage(counts.get(category, 0), total_sessions, 1),
        )
        for category in ClassCategory
    ]


def _retention_rate(visits) -> float:
    """Percent of students who came back on a later date than their first class."""
    dates_by_student = defaultdict(set)
    for visit in visits:
        dates_by_student[visit.member_id].add(visit.class_date)
    if not dates_by_student:
        return 0.0
    returning = sum(1 for dates in dates_by_student.values() if len(dates) > 1)
    return percentage(returning, len(dates_by_student), 1)


def _badge(slot_counts: dict, slot: CoachTimeSlot, bucketed: int) -> bool:
    if bucketed == 0:
        return False
    return slot_counts.get(slot.value, 0) / bucketed > BADGE_SHARE_THRESHOLD


async def _top_students(db: AsyncSession, visits) -> list[CoachStudentStats]:
    visit_counts = Counter(v.member_id for v in visits)
    first_class = {}
    last_class = {}
    for visit in visits:
        mid = visit.member_id
        first_class[mid] = min(first_class.get(mid, visit.class_date), visit.class_date)
        last_class[mid] = max(last_class.get(mid, visit.class_date), visit.class_date)

    names = await get_member_names(db, visit_counts.keys())
    ordered = [
        (mid, count) for mid, count in ranked(visit_counts) if mid in names
    ][:TOP_STUDENTS]

    students = []
    for mid, count in ordered:
        student_first, student_last = parse_display_name(names[mid])
        students.append(
            CoachStudentStats(
                first_name=student_first,
                last_name=student_last,
                total_classes=count,
                first_class=first_class[mid],
                last_class=last_class[mid],
            )
        )
    return students


async def list_coaches(
    db: AsyncSession, window: ReportingWindow, min_sessions: int = 10
) -> list[CoachSummary]:
    """Coaches with at least ``min_sessions`` sessions taught in the window."""
    rows = await get_attributed_visits(db, window)

    sessions_by_coach = defaultdict(set)
    for row in rows:
        sessions_by_coach[(row.coach_first_name, row.coach_last_name)].add(
            session_key(row)
        )

    counts = Counter(
        {coach: len(keys) for coach, keys in sessions_by_coach.items() if len(keys) >= min_sessions}
    )
    return [
        CoachSummary(
            first_name=first,
            last_name=last,
            full_name=f"{first} {last}",
            class_count=count,
        )
        for (first, last), count in ranked(counts)
    ]

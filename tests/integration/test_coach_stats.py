"""Integration tests for coach stats and the coach directory."""

from datetime import date, time, timedelta

import pytest
from services.stats_service.models import ClassCategory
from services.stats_service.services.coach_stats import (
    compute_coach_stats,
    list_coaches,
)
from tests.factories import MemberFactory, VisitFactory

ALEX_START = date(2025, 1, 6)  # Monday
SAM_START = date(2025, 2, 3)  # Monday


def _coach_sessions(first, last, start, early_sessions, total=12, attendees=("M1",)):
    """``total`` daily sessions; the first ``early_sessions`` start at 05:30."""
    visits = []
    for i in range(total):
        for member_id in attendees:
            visits.append(
                VisitFactory.create(
                    member_id=member_id,
                    class_date=start + timedelta(days=i),
                    class_time=time(5, 30) if i < early_sessions else time(10, 0),
                    coach_first_name=first,
                    coach_last_name=last,
                )
            )
    return visits


async def _seed_alex(db):
    """12 sessions for Alex Rivera, 4 of them before 6 AM."""
    objects = [
        MemberFactory.create(member_id="M1", name="DOE, JANE"),
        MemberFactory.create(member_id="M2", name="Ben Two"),
        # M3 attends but has no directory entry
    ]
    for i in range(12):
        class_date = ALEX_START + timedelta(days=i)
        class_time = time(5, 30) if i < 4 else time(10, 0)
        location = "Downtown" if i < 9 else "Uptown"
        attendees = ["M1"]
        if i < 6:
            attendees.append("M2")
        if i == 0:
            attendees.append("M3")
        for member_id in attendees:
            objects.append(
                VisitFactory.create(
                    member_id=member_id,
                    class_date=class_date,
                    class_time=class_time,
                    location_name=location,
                )
            )
    # Cancelled bookings never count
    objects.append(
        VisitFactory.create(
            member_id="M4",
            class_date=ALEX_START + timedelta(days=1),
            class_time=time(5, 30),
            cancelled=True,
        )
    )
    db.add_all(objects)
    await db.commit()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_coach_session_counts(db_session, window):
    await _seed_alex(db_session)

    stats = await compute_coach_stats(db_session, "Alex", "Rivera", window)

    assert stats is not None
    assert stats.coach_full_name == "Alex Rivera"
    assert stats.first_class_date == ALEX_START
    assert stats.total_classes == 12
    assert stats.total_student_visits == 19
    assert stats.unique_students == 3
    assert stats.average_class_size == 1.6
    assert stats.total_teaching_hours == 10.0
    assert stats.longest_teaching_streak == 12
    assert stats.most_popular_day == "Monday"
    assert stats.student_retention_rate == 66.7


@pytest.mark.asyncio
@pytest.mark.integration
async def test_coach_breakdowns(db_session, window):
    await _seed_alex(db_session)

    stats = await compute_coach_stats(db_session, "Alex", "Rivera", window)

    assert [(loc.name, loc.class_count, loc.percentage) for loc in stats.locations] == [
        ("Downtown", 9, 75.0),
        ("Uptown", 3, 25.0),
    ]
    assert [
        (m.month, m.class_count, m.unique_students) for m in stats.monthly_breakdown
    ] == [("January", 12, 3)]
    assert stats.busiest_month.month == "January"

    assert [(s.time_slot, s.class_count, s.percentage) for s in stats.all_time_slots] == [
        ("Late Morning (9 AM-12 PM)", 8, 66.7),
        ("Early Bird (Before 6 AM)", 4, 33.3),
    ]
    assert stats.favorite_time_slot.time_slot == "Late Morning (9 AM-12 PM)"

    types = {c.category: (c.class_count, c.percentage) for c in stats.class_types}
    assert types[ClassCategory.DURABILITY] == (12, 100.0)
    assert types[ClassCategory.DELOAD] == (0, 0)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_top_students_skip_unknown_members(db_session, window):
    await _seed_alex(db_session)

    stats = await compute_coach_stats(db_session, "Alex", "Rivera", window)

    assert [
        (s.first_name, s.last_name, s.total_classes, s.first_class, s.last_class)
        for s in stats.top_students
    ] == [
        ("Jane", "Doe", 12, ALEX_START, ALEX_START + timedelta(days=11)),
        ("Ben", "Two", 6, ALEX_START, ALEX_START + timedelta(days=5)),
    ]


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_early_morning_badge_above_thirty_percent(db_session, window):
    await _seed_alex(db_session)

    stats = await compute_coach_stats(db_session, "Alex", "Rivera", window)

    # 4 of 12 sessions before 6 AM
    assert stats.early_morning_warrior is True
    assert stats.late_night_hero is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_early_morning_badge_at_or_below_thirty_percent(db_session, window):
    db_session.add_all(_coach_sessions("Sam", "Lee", SAM_START, early_sessions=3))
    await db_session.commit()

    stats = await compute_coach_stats(db_session, "Sam", "Lee", window)

    # 3 of 12 sessions before 6 AM
    assert stats.early_morning_warrior is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_untimed_sessions_are_not_bucketed(db_session, window):
    db_session.add_all(
        [
            VisitFactory.create(
                member_id="M1",
                class_date=SAM_START,
                class_time=None,
                coach_first_name="Sam",
                coach_last_name="Lee",
            ),
            VisitFactory.create(
                member_id="M1",
                class_date=SAM_START + timedelta(days=1),
                class_time=time(20, 0),
                coach_first_name="Sam",
                coach_last_name="Lee",
            ),
        ]
    )
    await db_session.commit()

    stats = await compute_coach_stats(db_session, "Sam", "Lee", window)

    assert stats.total_classes == 2
    assert [(s.time_slot, s.class_count) for s in stats.all_time_slots] == [
        ("Night (After 7 PM)", 1)
    ]
    assert stats.late_night_hero is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_coach_returns_none(db_session, window):
    await _seed_alex(db_session)

    assert await compute_coach_stats(db_session, "Nobody", "Here", window) is None


# ---------------------------------------------------------------------------
# Coach directory
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_coaches_filters_by_session_count(db_session, window):
    db_session.add_all(
        _coach_sessions("Sam", "Lee", SAM_START, early_sessions=0, total=11)
        + _coach_sessions(
            "Alex", "Rivera", ALEX_START, early_sessions=0, attendees=("M1", "M2")
        )
        + _coach_sessions("Pat", "Kim", SAM_START, early_sessions=0, total=9)
        + _coach_sessions("STAFF", "STAFF", ALEX_START, early_sessions=0, total=20)
    )
    await db_session.commit()

    coaches = await list_coaches(db_session, window, min_sessions=10)

    # Ordered by distinct sessions, not visits
    assert [(c.full_name, c.class_count) for c in coaches] == [
        ("Alex Rivera", 12),
        ("Sam Lee", 11),
    ]

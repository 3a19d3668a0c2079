"""Integration tests for chain-wide stats and the global stats cache."""

import logging
from datetime import date, time, timedelta

import pytest
from services.stats_service.models import mv_global_stats
from services.stats_service.services.global_stats import compute_global_stats
from services.stats_service.services.window import ReportingWindow
from tests.factories import VisitFactory


async def _seed_visits(db):
    db.add_all(
        [
            # M1: early bird score 67 (2 of 3)
            VisitFactory.create(member_id="M1", class_date=date(2025, 3, 3)),
            VisitFactory.create(member_id="M1", class_date=date(2025, 3, 4)),
            VisitFactory.create(
                member_id="M1",
                class_date=date(2025, 3, 5),
                class_time=time(17, 30),
                coach_first_name="Sam",
                coach_last_name="Lee",
            ),
            # M2: early bird score 50
            VisitFactory.create(member_id="M2", class_date=date(2025, 3, 3)),
            VisitFactory.create(
                member_id="M2",
                class_date=date(2025, 3, 10),
                class_time=time(18, 0),
                coach_first_name="STAFF",
                coach_last_name="STAFF",
            ),
            # M3 never attended but still counts as a member
            VisitFactory.create(
                member_id="M3", class_date=date(2025, 3, 3), cancelled=True
            ),
            # Outside the window
            VisitFactory.create(member_id="M4", class_date=date(2024, 6, 1)),
        ]
    )
    await db.commit()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_global_stats_live(db_session, window):
    await _seed_visits(db_session)

    stats = await compute_global_stats(db_session, window)

    assert stats.total_members == 3
    assert stats.total_classes == 5
    assert stats.average_classes_per_member == pytest.approx(5 / 3)
    assert stats.most_popular_time_slot == "06:00 AM"
    assert stats.most_popular_day == "Monday"
    assert stats.most_popular_coach == "Alex Rivera"
    # Mean of per-member scores (67 and 50), members without attendance excluded
    assert stats.average_early_bird_score == 59


@pytest.mark.asyncio
@pytest.mark.integration
async def test_global_stats_empty_window(db_session, window):
    stats = await compute_global_stats(db_session, window)

    assert stats.total_members == 0
    assert stats.total_classes == 0
    assert stats.average_classes_per_member == 0
    assert stats.most_popular_time_slot == "Unknown"
    assert stats.most_popular_day == "Unknown"
    assert stats.most_popular_coach == "Unknown"
    assert stats.average_early_bird_score == 0


# ---------------------------------------------------------------------------
# Snapshot-backed cache
# ---------------------------------------------------------------------------


async def _insert_global_snapshot(db, computed_at, built_for=None):
    built_for = built_for or ReportingWindow.for_year(2025)
    await db.execute(
        mv_global_stats.insert().values(
            total_members=120,
            total_classes=4800,
            most_popular_time_slot="06:00 AM",
            most_popular_day="Tuesday  ",
            most_popular_coach="Sam Lee",
            avg_early_bird_score=41.0,
            window_start=built_for.start,
            window_end=built_for.end,
            computed_at=computed_at,
        )
    )
    await db.commit()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_fresh_snapshot_is_served(stats_engine, db_session, snapshot_tables, clock):
    await _seed_visits(db_session)
    await _insert_global_snapshot(db_session, clock() - timedelta(hours=2))

    stats = await stats_engine.compute_global_stats()

    assert stats_engine.global_cache.entry.source == "snapshot"
    assert stats.total_members == 120
    assert stats.average_classes_per_member == pytest.approx(40)
    assert stats.most_popular_day == "Tuesday"
    assert stats.most_popular_coach == "Sam Lee"
    assert stats.average_early_bird_score == 41


@pytest.mark.asyncio
@pytest.mark.integration
async def test_stale_snapshot_falls_back_to_live(
    stats_engine, db_session, snapshot_tables, clock
):
    await _seed_visits(db_session)
    await _insert_global_snapshot(db_session, clock() - timedelta(hours=25))

    stats = await stats_engine.compute_global_stats()

    assert stats_engine.global_cache.entry.source == "live"
    assert stats.total_members == 3

    # The live result is cached; a second call does not hit the database
    assert await stats_engine.compute_global_stats() is stats


@pytest.mark.asyncio
@pytest.mark.integration
async def test_empty_snapshot_falls_back_to_live(stats_engine, db_session, snapshot_tables):
    await _seed_visits(db_session)

    stats = await stats_engine.compute_global_stats()

    assert stats_engine.global_cache.entry.source == "live"
    assert stats.total_classes == 5


@pytest.mark.asyncio
@pytest.mark.integration
async def test_missing_view_falls_back_to_live(stats_engine, db_session):
    await _seed_visits(db_session)

    stats = await stats_engine.compute_global_stats()

    assert stats_engine.global_cache.entry.source == "live"
    assert stats.most_popular_coach == "Alex Rivera"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_snapshot_for_another_window_falls_back_to_live(
    stats_engine, db_session, snapshot_tables, clock
):
    await _seed_visits(db_session)
    await _insert_global_snapshot(
        db_session,
        clock() - timedelta(hours=1),
        built_for=ReportingWindow.for_year(2024),
    )

    stats = await stats_engine.compute_global_stats()

    assert stats_engine.global_cache.entry.source == "live"
    assert stats.total_members == 3
    assert stats.most_popular_coach == "Alex Rivera"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_missing_view_is_not_logged_as_error(stats_engine, db_session, caplog):
    caplog.set_level(logging.DEBUG)
    await _seed_visits(db_session)

    await stats_engine.compute_global_stats()

    assert stats_engine.global_cache.entry.source == "live"
    assert [r for r in caplog.records if r.levelno >= logging.ERROR] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cache_expires_after_ttl(stats_engine, db_session, clock):
    await _seed_visits(db_session)
    first = await stats_engine.compute_global_stats()

    clock.advance(timedelta(hours=1, minutes=1))
    db_session.add(VisitFactory.create(member_id="M5", class_date=date(2025, 4, 1)))
    await db_session.commit()
    second = await stats_engine.compute_global_stats()

    assert first.total_members == 3
    assert second.total_members == 4

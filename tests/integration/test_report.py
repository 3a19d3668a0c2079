"""Integration tests for the full-report orchestrator."""

from datetime import date, timedelta

import pytest
from tests.factories import MemberFactory, VisitFactory


async def _seed(db):
    objects = [
        MemberFactory.create(member_id="M1", name="DOE, JANE"),
        MemberFactory.create(member_id="M2", name="ROE, RICH"),
    ]
    for day in range(8):
        objects.append(
            VisitFactory.create(
                member_id="M1", class_date=date(2025, 5, 5) + timedelta(days=day)
            )
        )
    for day in range(4):
        objects.append(
            VisitFactory.create(
                member_id="M2", class_date=date(2025, 5, 5) + timedelta(days=day)
            )
        )
    db.add_all(objects)
    await db.commit()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_full_report_merges_all_sections(stats_engine, db_session, clock):
    await _seed(db_session)

    report = await stats_engine.compute_full_report("M1")

    assert report is not None
    assert report.member_id == "M1"
    assert report.last_updated == clock()
    assert report.first_name == "Jane"
    assert report.total_classes == 8
    assert report.longest_streak == 8

    assert report.peer_comparison.percentiles.total_classes == 100
    assert [c.first_name for c in report.peer_comparison.top_classmates] == ["Rich"]
    assert report.peer_comparison.top_classmates[0].shared_classes == 4

    assert report.global_stats.total_members == 2
    assert report.global_stats.total_classes == 12


@pytest.mark.asyncio
@pytest.mark.integration
async def test_full_report_for_unknown_member(stats_engine, db_session):
    await _seed(db_session)

    assert await stats_engine.compute_full_report("NOPE") is None
    # Nothing else was computed
    assert stats_engine.population_cache.entry is None
    assert stats_engine.global_cache.entry is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_full_report_serializes_with_camel_case(stats_engine, db_session):
    await _seed(db_session)

    report = await stats_engine.compute_full_report("M1")
    payload = report.model_dump(by_alias=True, mode="json")

    assert payload["memberId"] == "M1"
    assert payload["totalClasses"] == 8
    assert "locationBreakdown" in payload
    assert payload["peerComparison"]["percentiles"]["totalClasses"] == 100
    assert payload["globalStats"]["mostPopularTimeSlot"] == "06:00 AM"

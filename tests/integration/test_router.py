"""Integration tests for the stats HTTP endpoints."""

from datetime import date, time, timedelta

import pytest
from tests.factories import MemberFactory, VisitFactory


async def _seed(db):
    objects = [MemberFactory.create(member_id="M1", name="DOE, JANE")]
    for day in range(12):
        objects.append(
            VisitFactory.create(
                member_id="M1",
                class_date=date(2025, 2, 3) + timedelta(days=day),
                class_time=time(5, 45),
            )
        )
    db.add_all(objects)
    await db.commit()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health(stats_client):
    response = await stats_client.get("/health")
    assert response.status_code == 200
    assert response.json()["service"] == "stats"


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_member_report_endpoint(stats_client, db_session):
    """GET /stats/members/{member_id}: full report with camelCase fields."""
    await _seed(db_session)

    response = await stats_client.get("/stats/members/M1")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["memberId"] == "M1"
    assert data["firstName"] == "Jane"
    assert data["totalClasses"] == 12
    assert data["earlyBirdScore"] == 100
    assert data["firstSeen"] == "2025-02-03"
    assert "peerComparison" in data
    assert "globalStats" in data


@pytest.mark.asyncio
@pytest.mark.integration
async def test_member_report_not_found(stats_client, db_session):
    response = await stats_client.get("/stats/members/NOPE")

    assert response.status_code == 404
    assert "NOPE" in response.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_global_endpoint(stats_client, db_session):
    await _seed(db_session)

    response = await stats_client.get("/stats/global")

    assert response.status_code == 200
    data = response.json()
    assert data["totalMembers"] == 1
    assert data["mostPopularTimeSlot"] == "05:45 AM"


# ---------------------------------------------------------------------------
# Coaches
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_coach_directory_endpoint(stats_client, db_session):
    await _seed(db_session)

    response = await stats_client.get("/stats/coaches")

    assert response.status_code == 200
    assert response.json()["coaches"] == [
        {
            "firstName": "Alex",
            "lastName": "Rivera",
            "fullName": "Alex Rivera",
            "classCount": 12,
        }
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_coach_report_endpoint(stats_client, db_session):
    await _seed(db_session)

    response = await stats_client.get("/stats/coaches/Alex/Rivera")

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["coachFullName"] == "Alex Rivera"
    assert data["totalClasses"] == 12
    assert data["earlyMorningWarrior"] is True
    assert data["busiestMonth"]["month"] == "February"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_coach_report_not_found(stats_client, db_session):
    response = await stats_client.get("/stats/coaches/Nobody/Here")

    assert response.status_code == 404

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from libs.db.base import Base
from services.stats_service import models as _stats_models  # noqa: F401
from services.stats_service.models import snapshot_metadata
from services.stats_service.services.window import ReportingWindow


class FixedClock:
    """Deterministic clock for cache TTL and snapshot staleness tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def window() -> ReportingWindow:
    return ReportingWindow.for_year(2025)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    File-backed SQLite database per test.

    A file (not :memory:) so every session from the factory sees the same data.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'stats.db'}", future=True
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    session = session_factory()
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture
async def snapshot_tables(test_engine):
    """Create the mv_* relations as plain tables so the snapshot path can be read."""
    async with test_engine.begin() as conn:
        await conn.run_sync(snapshot_metadata.create_all)


@pytest.fixture
def stats_engine(session_factory, window, clock):
    from services.stats_service.services.engine import StatsEngine

    return StatsEngine(session_factory, window, clock=clock)


@pytest_asyncio.fixture
async def stats_client(stats_engine) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient against the stats app with the engine overridden.
    """
    from services.stats_service.app.main import app
    from services.stats_service.router import get_stats_engine

    app.dependency_overrides[get_stats_engine] = lambda: stats_engine

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()

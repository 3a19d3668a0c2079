"""ARQ worker for stats service background tasks.

Refreshes the stats materialized views nightly via an ARQ cron job backed by Redis.
Run with: arq services.stats_service.worker.WorkerSettings
"""

from arq import cron
from libs.common.arq_config import STATS_QUEUE_NAME, get_redis_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


# ── Wrapper functions (ARQ requires top-level async callables) ──


async def task_refresh_stats_views(ctx: dict):
    """Refresh mv_member_stats and mv_global_stats."""
    from services.stats_service.tasks import refresh_materialized_views

    logger.info("Running: refresh_stats_views")
    results = await refresh_materialized_views()
    return {r.view_name: r.rows_count for r in results}


# ── Worker configuration ──


class WorkerSettings:
    """ARQ worker settings with cron job schedules."""

    redis_settings = get_redis_settings()
    queue_name = STATS_QUEUE_NAME

    functions = [task_refresh_stats_views]

    cron_jobs = [
        # Nightly at 02:00 UTC, after the day's visits have been ingested
        cron(
            task_refresh_stats_views,
            hour=2,
            minute=0,
            run_at_startup=False,
        ),
    ]

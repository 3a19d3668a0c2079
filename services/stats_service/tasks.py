"""Background tasks for the stats service."""

from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.stats_service.services.snapshots import (
    ViewRefreshResult,
    refresh_stats_views,
)

logger = get_logger(__name__)


async def refresh_materialized_views() -> list[ViewRefreshResult]:
    """Refresh the member and global stats materialized views.

    Runs nightly so the in-process caches can serve snapshots instead of
    aggregating the whole visit log on every cold start. Failures are rolled
    back and re-raised so the job is recorded as failed.
    """
    results: list[ViewRefreshResult] = []
    async for db in get_async_db():
        try:
            results = await refresh_stats_views(db)
            total_ms = sum(r.refresh_duration_ms for r in results)
            logger.info(
                "Stats views refreshed in %dms",
                total_ms,
                extra={
                    "extra_fields": {
                        "views": {r.view_name: r.rows_count for r in results},
                        "duration_ms": total_ms,
                    }
                },
            )
        except Exception:
            logger.error("Error refreshing stats views", exc_info=True)
            await db.rollback()
            raise
        finally:
            await db.close()
            break
    return results

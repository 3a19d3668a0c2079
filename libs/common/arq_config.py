"""ARQ (Async Redis Queue) configuration for the stats background worker.

The worker only runs scheduled maintenance (materialized-view refreshes), so
it gets its own queue and a short connection timeout: a missing Redis should
fail worker startup quickly instead of hanging the deploy.
"""

from urllib.parse import urlparse

from arq.connections import RedisSettings
from libs.common.config import get_settings

STATS_QUEUE_NAME = "arq:stats"


def get_redis_settings() -> RedisSettings:
    """Parse REDIS_URL from application settings into ARQ RedisSettings."""
    settings = get_settings()
    parsed = urlparse(settings.REDIS_URL)

    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        database=int(parsed.path.lstrip("/") or "0"),
        password=parsed.password,
        ssl=parsed.scheme == "rediss",
        conn_timeout=5,
    )

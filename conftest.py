import os

# Settings require DATABASE_URL; tests build their own per-test SQLite engines
# so this only has to be importable, never reachable.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.pytest-stats.db")
os.environ.setdefault("ENVIRONMENT", "development")

from libs.common.config import get_settings  # noqa: E402

# Clear cached settings to reload with the test env vars
get_settings.cache_clear()

"""Materialized views holding precomputed stats.

The views are created by this service's migration and refreshed by the
background worker. They live on their own MetaData so ``create_all`` on the
ORM metadata never tries to create them as plain tables. Every row records
the reporting window it was built for in ``window_start``/``window_end``.
"""

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
)

snapshot_metadata = MetaData()

MEMBER_STATS_VIEW = "mv_member_stats"
GLOBAL_STATS_VIEW = "mv_global_stats"

mv_member_stats = Table(
    MEMBER_STATS_VIEW,
    snapshot_metadata,
    Column("member_id", String, primary_key=True),
    Column("total_classes", Integer),
    Column("classes_per_month", Float),
    Column("early_bird_score", Float),
    Column("late_bookings", Integer),
    Column("cancellations", Integer),
    Column("perfect_weeks", Integer),
    Column("window_start", Date),
    Column("window_end", Date),
    Column("computed_at", DateTime(timezone=True)),
)

mv_global_stats = Table(
    GLOBAL_STATS_VIEW,
    snapshot_metadata,
    Column("total_members", Integer),
    Column("total_classes", Integer),
    Column("most_popular_time_slot", String),
    Column("most_popular_day", String),
    Column("most_popular_coach", String),
    Column("avg_early_bird_score", Float),
    Column("window_start", Date),
    Column("window_end", Date),
    Column("computed_at", DateTime(timezone=True)),
)
